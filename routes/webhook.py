# routes/webhook.py
import logging

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from core.config import settings
from core.database import get_session
from repositories.company_store import CompanyStore
from repositories.transaction_store import TransactionStore
from schemas.webhook_schema import WebhookAck
from services.notification_service import NotificationSink, get_notification_sink
from services.stripe_gateway import StripeGateway, get_stripe_gateway
from services.webhook_handlers import build_event_router
from services.webhook_router import ReconciliationContext
from services.webhook_verifier import WebhookVerifier, get_webhook_verifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stripe", tags=["Stripe Webhooks"])

event_router = build_event_router()


# ==================================================================
#  ✅ STRIPE WEBHOOK
# ==================================================================
@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    session: Session = Depends(get_session),
    gateway: StripeGateway = Depends(get_stripe_gateway),
    notifier: NotificationSink = Depends(get_notification_sink),
    verifier: WebhookVerifier = Depends(get_webhook_verifier),
):
    """
    Receive a Stripe event. The raw body is verified before parsing.
    400 on verification failure, 500 when a handler fails (Stripe retries),
    200 otherwise, including unhandled event types.
    """
    payload = await request.body()
    event = verifier.verify(payload, request.headers.get("stripe-signature"))
    logger.info(f"--- Received Stripe event type: {event.type} ({event.id}) ---")

    # Background task: only delivered with a 200, not when a handler fails
    notifier.record_event(event)

    context = ReconciliationContext(
        transactions=TransactionStore(session),
        companies=CompanyStore(session),
        stripe=gateway,
        notifier=notifier,
        plan_tiers=settings.PLAN_TIERS,
    )
    # DB and Stripe calls are blocking
    await run_in_threadpool(event_router.dispatch, event, context)

    return WebhookAck(received=True)
