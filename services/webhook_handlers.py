# services/webhook_handlers.py
"""
Reconciliation handlers, one per Stripe event category.

Payment events update ``payment_transactions`` by payment-intent id;
subscription and invoice events go through subscription sync. A missing
local row is a logged no-op.
"""
import logging
import time
from typing import Mapping, Optional

from models.models import InternalStatus, SubscriptionStatus, TransactionStatus
from schemas.webhook_schema import StripeEvent
from services.subscription_sync import SubscriptionState, object_id, sync_company_subscription
from services.webhook_router import NOOP, UPDATED, EventRouter, ReconciliationContext, WebhookHandler

logger = logging.getLogger(__name__)

SUBSCRIPTION_BILLING_REASONS = ("subscription_create", "subscription_cycle")


# ============================================================
# Shared helpers
# ============================================================
def set_payment_status(
    context: ReconciliationContext, payment_intent_id: Optional[str], status: str, internal_status: str
) -> str:
    if not payment_intent_id:
        logger.warning("⚠️ Event carries no PaymentIntent id, nothing to update")
        return NOOP

    updated = context.transactions.set_payment_status(payment_intent_id, status, internal_status)
    if not updated:
        logger.warning(f"⚠️ No transaction for PaymentIntent {payment_intent_id}, nothing to update")
        return NOOP

    logger.info(f"✅ PaymentIntent {payment_intent_id}: status={status}, internal_status={internal_status}")
    return UPDATED


def mark_payment_succeeded(context: ReconciliationContext, payment_intent_id: Optional[str]) -> str:
    return set_payment_status(
        context,
        payment_intent_id,
        TransactionStatus.SUCCEEDED.value,
        InternalStatus.AWAITING_APPROVAL.value,
    )


def sync_from_stripe(context: ReconciliationContext, subscription_id: str):
    """Re-fetch a subscription from Stripe and mirror it. Stripe errors propagate."""
    subscription = context.stripe.retrieve_subscription(subscription_id)
    state = SubscriptionState.from_stripe(subscription)
    company = sync_company_subscription(context.companies, state.customer_id, state, context.plan_tiers)
    return state, company


def invoice_subscription_id(invoice: Mapping) -> Optional[str]:
    subscription_id = object_id(invoice.get("subscription"))
    if subscription_id:
        return subscription_id
    # Newer API versions nest it under parent.subscription_details
    parent = invoice.get("parent") or {}
    details = parent.get("subscription_details") or {}
    return object_id(details.get("subscription"))


def _recipient(company, data_object: Mapping) -> Optional[str]:
    if company is not None:
        return company.email
    return data_object.get("customer_email")


# ============================================================
# Payment intents
# ============================================================
class PaymentIntentSucceededHandler(WebhookHandler):
    def apply(self, event: StripeEvent, context: ReconciliationContext) -> str:
        intent = event.data_object
        logger.info(f"   PaymentIntent successful: {intent.get('id')}")
        return mark_payment_succeeded(context, intent.get("id"))


class PaymentIntentFailedHandler(WebhookHandler):
    def apply(self, event: StripeEvent, context: ReconciliationContext) -> str:
        intent = event.data_object
        logger.info(f"   PaymentIntent failed: {intent.get('id')}")
        return set_payment_status(
            context,
            intent.get("id"),
            TransactionStatus.FAILED.value,
            InternalStatus.DECLINED.value,
        )


# ============================================================
# Checkout
# ============================================================
class CheckoutSessionCompletedHandler(WebhookHandler):
    def apply(self, event: StripeEvent, context: ReconciliationContext) -> str:
        session = event.data_object
        mode = session.get("mode")

        subscription_id = object_id(session.get("subscription"))
        if mode == "subscription" and subscription_id:
            logger.info(f"   Checkout session completed for subscription: {subscription_id}")
            _, company = sync_from_stripe(context, subscription_id)
            return UPDATED if company else NOOP

        payment_intent_id = object_id(session.get("payment_intent"))
        if mode == "payment" and payment_intent_id:
            logger.info(f"   Checkout session completed for one-time payment: {payment_intent_id}")
            return mark_payment_succeeded(context, payment_intent_id)

        logger.info(f"   Checkout session {session.get('id')} completed with nothing to reconcile (mode={mode})")
        return NOOP


# ============================================================
# Subscriptions
# ============================================================
class SubscriptionChangedHandler(WebhookHandler):
    """customer.subscription.created / customer.subscription.updated"""

    def __init__(self, send_welcome: bool = False):
        self.send_welcome = send_welcome

    def apply(self, event: StripeEvent, context: ReconciliationContext) -> str:
        subscription = event.data_object
        logger.info(f"   Subscription {event.type}: {subscription.get('id')} Status: {subscription.get('status')}")

        state = SubscriptionState.from_stripe(subscription)
        company = sync_company_subscription(context.companies, state.customer_id, state, context.plan_tiers)

        if self.send_welcome:
            context.notifier.subscription_created(_recipient(company, subscription), state.plan_id)
        return UPDATED if company else NOOP


class SubscriptionDeletedHandler(WebhookHandler):
    def apply(self, event: StripeEvent, context: ReconciliationContext) -> str:
        subscription = event.data_object
        logger.info(f"   Subscription deleted: {subscription.get('id')}")

        # Terminal state: canceled, no paid plan, access ends now
        state = SubscriptionState(
            id=subscription.get("id"),
            customer_id=object_id(subscription.get("customer")),
            status=SubscriptionStatus.CANCELED.value,
            plan_id=None,
            current_period_end=int(time.time()),
        )
        company = sync_company_subscription(context.companies, state.customer_id, state, context.plan_tiers)

        context.notifier.subscription_canceled(_recipient(company, subscription))
        return UPDATED if company else NOOP


# ============================================================
# Invoices
# ============================================================
class InvoicePaidHandler(WebhookHandler):
    def apply(self, event: StripeEvent, context: ReconciliationContext) -> str:
        invoice = event.data_object
        subscription_id = invoice_subscription_id(invoice)

        if invoice.get("billing_reason") not in SUBSCRIPTION_BILLING_REASONS or not subscription_id:
            logger.info(f"   Invoice paid for other reason: {invoice.get('id')}")
            return NOOP

        logger.info(f"   Invoice paid for subscription: {subscription_id}")
        _, company = sync_from_stripe(context, subscription_id)
        return UPDATED if company else NOOP


class InvoicePaymentFailedHandler(WebhookHandler):
    def apply(self, event: StripeEvent, context: ReconciliationContext) -> str:
        invoice = event.data_object
        logger.info(f"   Invoice payment failed: {invoice.get('id')}")

        subscription_id = invoice_subscription_id(invoice)
        if not subscription_id:
            return NOOP

        state, company = sync_from_stripe(context, subscription_id)
        context.notifier.payment_failed(_recipient(company, invoice), state.id or subscription_id)
        return UPDATED if company else NOOP


# ============================================================
# Registry
# ============================================================
def build_event_router() -> EventRouter:
    router = EventRouter()
    router.register("payment_intent.succeeded", PaymentIntentSucceededHandler())
    router.register("payment_intent.payment_failed", PaymentIntentFailedHandler())
    router.register("checkout.session.completed", CheckoutSessionCompletedHandler())
    router.register("customer.subscription.created", SubscriptionChangedHandler(send_welcome=True))
    router.register("customer.subscription.updated", SubscriptionChangedHandler())
    router.register("customer.subscription.deleted", SubscriptionDeletedHandler())
    router.register("invoice.paid", InvoicePaidHandler())
    router.register("invoice.payment_failed", InvoicePaymentFailedHandler())
    return router
