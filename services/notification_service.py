# services/notification_service.py
"""
Best-effort audit and notification delivery for webhook processing.

Nothing here may fail a reconciliation: every delivery runs through
``NotificationSink._deliver``, which logs and drops errors. Deliveries are
handed to a scheduler (FastAPI ``BackgroundTasks.add_task``) so they run
after the webhook response; with no scheduler they run inline. No retries.
"""
import logging
from typing import Any, Callable, Dict, Optional

import httpx
from fastapi import BackgroundTasks

from core.config import settings
from schemas.webhook_schema import StripeEvent
from services.email_service import EmailService, email_service

logger = logging.getLogger(__name__)

Scheduler = Callable[..., None]


class NotificationSink:
    def __init__(
        self,
        logging_url: Optional[str] = None,
        notification_url: Optional[str] = None,
        timeout: float = 5.0,
        emailer: Optional[EmailService] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self.logging_url = logging_url
        self.notification_url = notification_url
        self.timeout = timeout
        self.emailer = emailer
        self.scheduler = scheduler

    # ------------------------------------------------------------
    # Delivery plumbing
    # ------------------------------------------------------------
    def _submit(self, description: str, func: Callable[..., Any], *args) -> None:
        if self.scheduler is not None:
            self.scheduler(self._deliver, description, func, *args)
        else:
            self._deliver(description, func, *args)

    def _deliver(self, description: str, func: Callable[..., Any], *args) -> None:
        try:
            func(*args)
            logger.info(f"   (Sent {description})")
        except Exception as e:
            logger.error(f"   Error sending {description}: {e}")

    def _post(self, url: str, payload: Dict[str, Any]) -> None:
        response = httpx.post(url, json=payload, timeout=self.timeout)
        response.raise_for_status()

    # ------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------
    def record_event(self, event: StripeEvent) -> None:
        """Forward event metadata to the external logging service, if configured."""
        if not self.logging_url:
            return

        data_object = event.data_object
        payload = {
            "event": "Stripe Webhook Received",
            "details": {
                "eventType": event.type,
                "eventId": event.id,
                "customerRef": data_object.get("customer") or data_object.get("id"),
                "livemode": event.livemode,
                "objectId": data_object.get("id"),
            },
        }
        self._submit("webhook event to logging service", self._post, self.logging_url, payload)

    # ------------------------------------------------------------
    # Customer notifications
    # ------------------------------------------------------------
    def notify(self, event_type: str, recipient: Optional[str], subject: str, message: str) -> None:
        if self.notification_url:
            payload = {
                "type": "email",
                "recipient": recipient,
                "subject": subject,
                "message": message,
                "eventType": event_type,
            }
            self._submit(f"notification for {event_type}", self._post, self.notification_url, payload)

        if self.emailer is not None and recipient:
            self._submit(
                f"email for {event_type}", self.emailer.send_billing_email, recipient, subject, message
            )

    def subscription_created(self, recipient: Optional[str], plan_id: Optional[str]) -> None:
        self.notify(
            "customer.subscription.created",
            recipient,
            "Your subscription is active",
            f"Welcome! Your subscription for plan {plan_id or 'free'} is now active.",
        )

    def subscription_canceled(self, recipient: Optional[str]) -> None:
        self.notify(
            "customer.subscription.deleted",
            recipient,
            "Your subscription has been canceled",
            "Your subscription has been canceled.",
        )

    def payment_failed(self, recipient: Optional[str], subscription_id: str) -> None:
        self.notify(
            "invoice.payment_failed",
            recipient,
            "Payment failed",
            f"Your payment for subscription {subscription_id} failed. Please update your payment method.",
        )


# ------------------------
# FastAPI dependency
# ------------------------
def get_notification_sink(background_tasks: BackgroundTasks) -> NotificationSink:
    return NotificationSink(
        logging_url=settings.LOGGING_SERVICE_URL,
        notification_url=settings.NOTIFICATION_SERVICE_URL,
        timeout=settings.SINK_TIMEOUT_SECONDS,
        emailer=email_service,
        scheduler=background_tasks.add_task,
    )
