# ================================================================
# services/payment_service.py — Payment intents, checkout, transactions
# ================================================================
import logging
from typing import Optional

from sqlmodel import Session

from core.config import settings
from core.exceptions import InvalidRequestError, NotFoundError, ProcessorResourceMissing
from models.models import MANUAL_INTERNAL_STATUSES, Company, PaymentTransaction, TransactionStatus, utcnow
from repositories.company_store import CompanyStore
from repositories.transaction_store import TransactionStore
from schemas.payment_schema import CheckoutSessionCreate, PaymentIntentCreate
from services.company_service import CompanyService
from services.stripe_gateway import StripeGateway

logger = logging.getLogger(__name__)


class PaymentService:
    """Administrative payment operations used by the HTTP layer."""

    def __init__(self, session: Session, gateway: StripeGateway):
        self.transactions = TransactionStore(session)
        self.companies = CompanyStore(session)
        self.company_service = CompanyService(session, gateway)
        self.stripe = gateway

    def _connected_company(self, company_id: str) -> Company:
        company = self.companies.get(company_id)
        if not company or not company.stripe_account_id:
            raise NotFoundError("Company not found or not connected to Stripe.")
        return company

    # ------------------------------------------------------------
    # Payment intents
    # ------------------------------------------------------------
    def create_payment_intent(self, request: PaymentIntentCreate) -> dict:
        company = self._connected_company(request.company_id)

        stripe_metadata = {
            **{key: str(value) for key, value in request.metadata.items()},
            "companyId": company.id,
            "customerId": request.customer_id,
        }
        intent = self.stripe.create_payment_intent(
            amount=request.amount,
            currency=request.currency,
            destination_account=company.stripe_account_id,
            application_fee_amount=request.application_fee_amount,
            description=request.description or f"Payment for service from {company.name}",
            metadata=stripe_metadata,
        )

        transaction = self.transactions.add(
            PaymentTransaction(
                company_id=company.id,
                customer=request.customer_id,
                amount=request.amount,
                currency=request.currency.lower(),
                stripe_payment_intent_id=intent["id"],
                status=TransactionStatus.PENDING.value,
                description=request.description,
                payment_metadata={**request.metadata, "customerId": request.customer_id},
            )
        )
        logger.info(f"✅ PaymentIntent {intent['id']} created for company {company.id}")

        return {
            "client_secret": intent["client_secret"],
            "payment_intent_id": intent["id"],
            "transaction_id": transaction.id,
        }

    # ------------------------------------------------------------
    # Checkout sessions
    # ------------------------------------------------------------
    def create_checkout_session(self, request: CheckoutSessionCreate) -> dict:
        if request.mode == "subscription":
            company = self.companies.get(request.company_id)
            if not company:
                raise NotFoundError("Company not found")
            company = self.company_service.ensure_billing_customer(company)
            session = self.stripe.create_checkout_session(
                mode="subscription",
                customer=company.stripe_customer_id,
                line_items=[{"price": request.price_id, "quantity": 1}],
                success_url=settings.STRIPE_SUCCESS_URL,
                cancel_url=settings.STRIPE_CANCEL_URL,
                metadata={**request.metadata, "companyId": company.id},
            )
        else:
            company = self._connected_company(request.company_id)
            session = self.stripe.create_checkout_session(
                mode="payment",
                payment_method_types=["card"],
                line_items=[{
                    "price_data": {
                        "currency": request.currency,
                        "product_data": {"name": request.product_name},
                        "unit_amount": request.amount,
                    },
                    "quantity": 1,
                }],
                payment_intent_data={
                    "application_fee_amount": request.application_fee_amount,
                    "transfer_data": {"destination": company.stripe_account_id},
                },
                success_url=settings.STRIPE_SUCCESS_URL,
                cancel_url=settings.STRIPE_CANCEL_URL,
                metadata={**request.metadata, "companyId": company.id},
            )

        logger.info(f"🛒 Checkout session {session['id']} ({request.mode}) created for company {company.id}")
        return {"checkout_url": session["url"], "session_id": session["id"], "mode": request.mode}

    # ------------------------------------------------------------
    # Subscription cancellation
    # ------------------------------------------------------------
    def cancel_subscription(self, subscription_id: str) -> dict:
        try:
            subscription = self.stripe.cancel_subscription(subscription_id)
        except ProcessorResourceMissing as e:
            raise NotFoundError(f"Subscription {subscription_id} not found") from e

        transaction = self.transactions.mark_subscription_canceled(subscription_id, utcnow())
        if transaction is None:
            logger.info(f"   No local transaction for subscription {subscription_id}")

        logger.info(f"🗑️ Subscription {subscription_id} canceled")
        return {
            "subscription_id": subscription_id,
            "status": subscription.get("status") or "canceled",
            "transaction_id": transaction.id if transaction else None,
        }

    # ------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------
    def get_payment_history(
        self,
        company_id: str,
        status: Optional[str] = None,
        internal_status: Optional[str] = None,
        customer_id: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> dict:
        if not self.companies.get(company_id):
            raise NotFoundError("Company not found")

        total, rows = self.transactions.list_for_company(
            company_id,
            status=status,
            internal_status=internal_status,
            customer=customer_id,
            limit=limit,
            offset=offset,
        )
        return {"total": total, "limit": limit, "offset": offset, "data": rows}

    def get_transaction(self, transaction_id: str) -> PaymentTransaction:
        transaction = self.transactions.get(transaction_id)
        if not transaction:
            raise NotFoundError("Payment transaction not found.")
        return transaction

    def update_internal_status(
        self, transaction_id: str, internal_status: Optional[str], notes: Optional[str] = None
    ) -> PaymentTransaction:
        # Validate before touching the store
        if not internal_status or internal_status not in MANUAL_INTERNAL_STATUSES:
            raise InvalidRequestError(
                f"Invalid or missing internal_status. Must be one of: {', '.join(MANUAL_INTERNAL_STATUSES)}"
            )

        transaction = self.get_transaction(transaction_id)
        transaction = self.transactions.set_internal_status(transaction, internal_status, notes)
        logger.info(f"📝 Transaction {transaction_id} internal status updated to {internal_status}")
        return transaction
