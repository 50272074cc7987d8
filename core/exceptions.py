# core/exceptions.py
"""
Error taxonomy for the payment service.

Services raise these; the HTTP layer turns them into responses with
``payment_service_exception_handler``.
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PaymentServiceError(Exception):
    """Base class: carries an HTTP status and a client-safe message."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class WebhookVerificationError(PaymentServiceError):
    """Inbound event could not be authenticated. Nothing was processed."""

    status_code = 400


class InvalidRequestError(PaymentServiceError):
    status_code = 400


class NotFoundError(PaymentServiceError):
    status_code = 404


class ConflictError(PaymentServiceError):
    status_code = 409


class ProcessorError(PaymentServiceError):
    """Stripe call failed. ``upstream_message`` keeps Stripe's own text."""

    status_code = 500

    def __init__(self, message: str, upstream_message: str = None, code: str = None):
        self.upstream_message = upstream_message
        self.code = code
        super().__init__(message)


class ProcessorResourceMissing(ProcessorError):
    """Stripe reported the referenced object does not exist (resource_missing)."""


class WebhookHandlerError(PaymentServiceError):
    """A reconciliation handler failed; the event stays unacknowledged."""

    status_code = 500

    def __init__(self, event_type: str, event_id: str, original_error: Exception):
        self.event_type = event_type
        self.event_id = event_id
        self.original_error = original_error
        super().__init__(f"Error processing event {event_type}")


async def payment_service_exception_handler(request: Request, exc: PaymentServiceError):
    """Map domain errors to JSON responses."""
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} failed: {exc.message}")
    content = {"detail": exc.message}
    upstream = getattr(exc, "upstream_message", None)
    if upstream:
        content["error"] = upstream
    return JSONResponse(status_code=exc.status_code, content=content)
