# payment_schema.py
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models.models import InternalStatus, TransactionStatus


# ---------------------------
# Payment Intent
# ---------------------------
class PaymentIntentCreate(BaseModel):
    company_id: str
    amount: int = Field(..., gt=0, description="Amount in the smallest currency unit")
    currency: str = Field(..., min_length=3, max_length=3)
    customer_id: str = Field(..., min_length=1, max_length=255)
    application_fee_amount: int = Field(..., ge=0, description="Platform fee withheld from the transfer")
    description: Optional[str] = Field(default=None, max_length=500)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def fee_within_amount(self):
        if self.application_fee_amount > self.amount:
            raise ValueError("application_fee_amount cannot exceed amount")
        return self


class PaymentIntentResponse(BaseModel):
    client_secret: str
    payment_intent_id: str
    transaction_id: str
    message: str = "Payment Intent created successfully. Confirm on frontend."


# ---------------------------
# Checkout Session
# ---------------------------
class CheckoutSessionCreate(BaseModel):
    company_id: str
    mode: Literal["payment", "subscription"]

    # subscription mode
    price_id: Optional[str] = Field(default=None, max_length=255)

    # payment mode
    amount: Optional[int] = Field(default=None, gt=0)
    currency: str = Field(default="eur", min_length=3, max_length=3)
    product_name: Optional[str] = Field(default=None, max_length=255)
    application_fee_amount: Optional[int] = Field(default=None, ge=0)

    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def fields_for_mode(self):
        if self.mode == "subscription" and not self.price_id:
            raise ValueError("price_id is required for subscription checkout")
        if self.mode == "payment":
            if self.amount is None or self.application_fee_amount is None or not self.product_name:
                raise ValueError("amount, product_name and application_fee_amount are required for payment checkout")
            if self.application_fee_amount > self.amount:
                raise ValueError("application_fee_amount cannot exceed amount")
        return self


class CheckoutSessionResponse(BaseModel):
    checkout_url: str
    session_id: str
    mode: str


# ---------------------------
# Transactions
# ---------------------------
class TransactionRead(BaseModel):
    id: str
    company_id: str
    customer: str
    amount: int
    currency: str
    stripe_payment_intent_id: str
    stripe_subscription_id: Optional[str] = None
    status: TransactionStatus
    internal_status: InternalStatus
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="payment_metadata")
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class TransactionPage(BaseModel):
    total: int
    limit: int
    offset: int
    data: List[TransactionRead]


class InternalStatusUpdate(BaseModel):
    # Plain str: membership is checked by the service so the rejection is a 400
    internal_status: str
    notes: Optional[str] = Field(default=None, max_length=2000)


class InternalStatusUpdateResponse(BaseModel):
    message: str
    transaction: TransactionRead


# ---------------------------
# Subscription cancellation
# ---------------------------
class SubscriptionCancelResponse(BaseModel):
    subscription_id: str
    status: str
    transaction_id: Optional[str] = None
    detail: str = "Subscription canceled successfully"
