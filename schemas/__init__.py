from .company_schema import BillingCustomerResponse, CompanyCreate, CompanyRead, OnboardingLinkResponse
from .payment_schema import (
    PaymentIntentCreate, PaymentIntentResponse,
    CheckoutSessionCreate, CheckoutSessionResponse,
    TransactionRead, TransactionPage,
    InternalStatusUpdate, InternalStatusUpdateResponse,
    SubscriptionCancelResponse,
)
from .webhook_schema import StripeEvent, StripeEventData, WebhookAck

__all__ = [
    # Company
    "CompanyCreate", "CompanyRead", "OnboardingLinkResponse", "BillingCustomerResponse",

    # Payment
    "PaymentIntentCreate", "PaymentIntentResponse",
    "CheckoutSessionCreate", "CheckoutSessionResponse",
    "TransactionRead", "TransactionPage",
    "InternalStatusUpdate", "InternalStatusUpdateResponse",
    "SubscriptionCancelResponse",

    # Webhook
    "StripeEvent", "StripeEventData", "WebhookAck",
]
