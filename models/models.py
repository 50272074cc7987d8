# models/models.py
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, Relationship, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> str:
    return str(uuid.uuid4())


# ============================================================
# ENUMS
# ============================================================
class TransactionStatus(str, Enum):
    """Stripe's view of the payment. Written by reconciliation only."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    REFUNDED = "refunded"


class InternalStatus(str, Enum):
    """Business workflow state layered on top of the payment status."""

    AWAITING_APPROVAL = "awaiting_approval"
    APPROVED = "approved"
    DECLINED = "declined"
    REJECTED = "rejected"
    FULFILLED = "fulfilled"
    CANCELED_BY_BUSINESS = "canceled_by_business"
    CANCELED_BY_USER = "canceled_by_user"


# Values an operator may set by hand
MANUAL_INTERNAL_STATUSES = (
    InternalStatus.AWAITING_APPROVAL.value,
    InternalStatus.APPROVED.value,
    InternalStatus.DECLINED.value,
    InternalStatus.FULFILLED.value,
    InternalStatus.CANCELED_BY_BUSINESS.value,
)


class AccessLevel(str, Enum):
    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"


# Statuses that never grant paid access, whatever the plan
NO_ACCESS_SUBSCRIPTION_STATUSES = (
    SubscriptionStatus.CANCELED.value,
    SubscriptionStatus.UNPAID.value,
)


# ============================================================
# COMPANY (merchant)
# ============================================================
class Company(SQLModel, table=True):
    __tablename__ = "companies"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    name: str = Field(max_length=255, unique=True, nullable=False)
    email: str = Field(max_length=255, unique=True, nullable=False)
    address: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)

    # ✅ Stripe Connect account (payouts), set once onboarding starts
    stripe_account_id: Optional[str] = Field(default=None, max_length=255, unique=True)
    # ✅ Billing customer, the lookup key for subscription reconciliation
    stripe_customer_id: Optional[str] = Field(default=None, max_length=255, unique=True, index=True)
    stripe_subscription_id: Optional[str] = Field(default=None, max_length=255)

    subscription_status: Optional[str] = Field(default=None, max_length=50)
    access_level: str = Field(default=AccessLevel.FREE.value, max_length=50)
    subscription_expires_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    transactions: List["PaymentTransaction"] = Relationship(back_populates="company")


# ============================================================
# PAYMENT TRANSACTION
# ============================================================
class PaymentTransaction(SQLModel, table=True):
    __tablename__ = "payment_transactions"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    company_id: str = Field(foreign_key="companies.id", nullable=False, index=True)
    customer: str = Field(max_length=255, nullable=False, index=True)

    amount: int = Field(nullable=False)  # smallest currency unit
    currency: str = Field(default="eur", max_length=3)

    stripe_payment_intent_id: str = Field(max_length=255, unique=True, index=True, nullable=False)
    stripe_subscription_id: Optional[str] = Field(default=None, max_length=255, unique=True)

    status: str = Field(default=TransactionStatus.PENDING.value, max_length=20, index=True)
    internal_status: str = Field(default=InternalStatus.AWAITING_APPROVAL.value, max_length=30)

    description: Optional[str] = Field(default=None, max_length=500)
    payment_metadata: Optional[Dict[str, Any]] = Field(
        default=None, sa_column=Column("metadata", JSON, nullable=True)
    )

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)

    company: Optional[Company] = Relationship(back_populates="transactions")

    def merged_metadata(self, extra: Dict[str, Any]) -> Dict[str, Any]:
        """Return existing metadata with ``extra`` layered on top."""
        merged = dict(self.payment_metadata or {})
        merged.update(extra)
        return merged


# ============================================================
# EXPORTS
# ============================================================
__all__ = [
    "Company",
    "PaymentTransaction",
    "TransactionStatus",
    "InternalStatus",
    "MANUAL_INTERNAL_STATUSES",
    "AccessLevel",
    "SubscriptionStatus",
    "NO_ACCESS_SUBSCRIPTION_STATUSES",
]
