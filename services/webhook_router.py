# services/webhook_router.py
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from core.exceptions import WebhookHandlerError
from repositories.company_store import CompanyStore
from repositories.transaction_store import TransactionStore
from schemas.webhook_schema import StripeEvent
from services.notification_service import NotificationSink
from services.stripe_gateway import StripeGateway

logger = logging.getLogger(__name__)

# Handler outcomes
UPDATED = "updated"
NOOP = "noop"
IGNORED = "ignored"


@dataclass
class ReconciliationContext:
    """Everything a handler may touch while applying one event."""

    transactions: TransactionStore
    companies: CompanyStore
    stripe: StripeGateway
    notifier: NotificationSink
    plan_tiers: Mapping[str, str] = field(default_factory=dict)


class WebhookHandler(ABC):
    """One event category. ``apply`` must be idempotent."""

    @abstractmethod
    def apply(self, event: StripeEvent, context: ReconciliationContext) -> str:
        ...


class EventRouter:
    def __init__(self):
        self._handlers: Dict[str, WebhookHandler] = {}

    def register(self, event_type: str, handler: WebhookHandler) -> None:
        self._handlers[event_type] = handler

    def handler_for(self, event_type: str) -> Optional[WebhookHandler]:
        return self._handlers.get(event_type)

    @property
    def supported_events(self) -> List[str]:
        return sorted(self._handlers)

    def dispatch(self, event: StripeEvent, context: ReconciliationContext) -> str:
        """
        Run the handler registered for ``event.type``.

        Unknown types are acknowledged (IGNORED). A failing handler is logged
        and re-raised as WebhookHandlerError so the event stays unacknowledged.
        """
        handler = self.handler_for(event.type)
        if handler is None:
            logger.info(f"ℹ️ Unhandled event type {event.type} ({event.id})")
            logger.debug(f"Data: {event.data_object}")
            return IGNORED

        try:
            return handler.apply(event, context)
        except Exception as e:
            logger.exception(f"❌ Error processing webhook event {event.type} ({event.id}): {e}")
            raise WebhookHandlerError(event.type, event.id, e) from e
