# services/webhook_verifier.py
"""
Authenticates inbound Stripe webhooks.

The signature covers ``"{timestamp}.{raw body}"`` (HMAC-SHA256 with the
endpoint secret), so verification must run on the exact bytes received,
before any JSON parsing.
"""
import logging
from typing import Optional

import stripe
from pydantic import ValidationError

from core.config import settings
from core.exceptions import PaymentServiceError, WebhookVerificationError
from schemas.webhook_schema import StripeEvent

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 300  # seconds


class WebhookVerifier:
    def __init__(self, secret: str, tolerance: int = DEFAULT_TOLERANCE):
        self.secret = secret
        self.tolerance = tolerance

    def verify(self, payload: bytes, sig_header: Optional[str]) -> StripeEvent:
        """Check the signature and timestamp, then parse the event envelope."""
        if not sig_header:
            logger.warning("❌ Missing stripe-signature header")
            raise WebhookVerificationError("Missing stripe-signature header")

        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("❌ Webhook body is not valid UTF-8")
            raise WebhookVerificationError("Invalid payload")

        try:
            stripe.WebhookSignature.verify_header(body, sig_header, self.secret, self.tolerance)
        except stripe.SignatureVerificationError as e:
            logger.warning(f"❌ Invalid signature: {e}")
            raise WebhookVerificationError(f"Invalid signature: {e}") from e

        try:
            return StripeEvent.model_validate_json(body)
        except ValidationError as e:
            logger.warning(f"❌ Invalid payload: {e.error_count()} error(s)")
            raise WebhookVerificationError("Invalid payload") from e


def get_webhook_verifier() -> WebhookVerifier:
    """FastAPI dependency. A missing secret is a server misconfiguration."""
    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("❌ STRIPE_WEBHOOK_SECRET not configured")
        raise PaymentServiceError("Webhook secret not configured", status_code=500)
    return WebhookVerifier(settings.STRIPE_WEBHOOK_SECRET, tolerance=settings.STRIPE_WEBHOOK_TOLERANCE)
