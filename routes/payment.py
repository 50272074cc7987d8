# routes/payment.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from core.database import get_session
from schemas.payment_schema import (
    CheckoutSessionCreate,
    CheckoutSessionResponse,
    InternalStatusUpdate,
    InternalStatusUpdateResponse,
    PaymentIntentCreate,
    PaymentIntentResponse,
    SubscriptionCancelResponse,
    TransactionPage,
    TransactionRead,
)
from services.payment_service import PaymentService
from services.stripe_gateway import StripeGateway, get_stripe_gateway

router = APIRouter(prefix="/api/stripe", tags=["Payments"])


def get_payment_service(
    session: Session = Depends(get_session),
    gateway: StripeGateway = Depends(get_stripe_gateway),
) -> PaymentService:
    return PaymentService(session, gateway)


# ==================================================================
#  ✅ CREATE PAYMENT INTENT
# ==================================================================
@router.post(
    "/create-payment-intent",
    response_model=PaymentIntentResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_payment_intent(
    request: PaymentIntentCreate,
    service: PaymentService = Depends(get_payment_service),
):
    """Create a destination-charge PaymentIntent and record it as pending."""
    return service.create_payment_intent(request)


# ==================================================================
#  ✅ CHECKOUT SESSION (one-time payment or subscription)
# ==================================================================
@router.post("/checkout-session", response_model=CheckoutSessionResponse)
def create_checkout_session(
    request: CheckoutSessionCreate,
    service: PaymentService = Depends(get_payment_service),
):
    return service.create_checkout_session(request)


# ==================================================================
#  ✅ CANCEL SUBSCRIPTION
# ==================================================================
@router.delete("/subscriptions/{subscription_id}", response_model=SubscriptionCancelResponse)
def cancel_subscription(
    subscription_id: str,
    service: PaymentService = Depends(get_payment_service),
):
    return service.cancel_subscription(subscription_id)


# ==================================================================
#  ✅ PAYMENT HISTORY
# ==================================================================
@router.get("/history/{company_id}", response_model=TransactionPage)
def get_payment_history(
    company_id: str,
    status: Optional[str] = None,
    internal_status: Optional[str] = None,
    customer_id: Optional[str] = None,
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    service: PaymentService = Depends(get_payment_service),
):
    """Transactions of a company, newest first."""
    page = service.get_payment_history(
        company_id,
        status=status,
        internal_status=internal_status,
        customer_id=customer_id,
        limit=limit,
        offset=offset,
    )
    page["data"] = [TransactionRead.model_validate(row) for row in page["data"]]
    return page


# ==================================================================
#  ✅ SINGLE TRANSACTION
# ==================================================================
@router.get("/transactions/{transaction_id}", response_model=TransactionRead)
def get_transaction(
    transaction_id: str,
    service: PaymentService = Depends(get_payment_service),
):
    return TransactionRead.model_validate(service.get_transaction(transaction_id))


# ==================================================================
#  ✅ UPDATE INTERNAL STATUS
# ==================================================================
@router.put("/transactions/{transaction_id}/status", response_model=InternalStatusUpdateResponse)
def update_transaction_internal_status(
    transaction_id: str,
    update: InternalStatusUpdate,
    service: PaymentService = Depends(get_payment_service),
):
    transaction = service.update_internal_status(transaction_id, update.internal_status, update.notes)
    return InternalStatusUpdateResponse(
        message=f"Transaction {transaction_id} internal status updated to {update.internal_status}",
        transaction=TransactionRead.model_validate(transaction),
    )
