# ================================================================
# services/stripe_gateway.py — Outbound Stripe calls
# ================================================================
import logging
from typing import Any, Callable, Dict, Optional

import stripe

from core.config import settings
from core.exceptions import ProcessorError, ProcessorResourceMissing

logger = logging.getLogger(__name__)


class StripeGateway:
    """
    Explicit Stripe client. Every request carries this gateway's API key
    instead of relying on the global ``stripe.api_key``, so tests can swap
    the whole gateway for a fake.
    """

    def __init__(self, api_key: Optional[str]):
        self.api_key = api_key

    def _call(self, action: str, method: Callable[..., Any], *args, **params) -> Dict[str, Any]:
        """
        Run one Stripe request and return its payload as plain dicts,
        so callers read every response with ``.get`` and ``[...]``.
        """
        try:
            result = method(*args, api_key=self.api_key, **params)
        except stripe.InvalidRequestError as e:
            logger.error(f"❌ Stripe {action} rejected: {e}")
            error_cls = ProcessorResourceMissing if e.code == "resource_missing" else ProcessorError
            raise error_cls(f"Stripe {action} failed", upstream_message=str(e), code=e.code) from e
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe {action} failed: {e}")
            raise ProcessorError(f"Stripe {action} failed", upstream_message=str(e), code=e.code) from e

        if isinstance(result, stripe.StripeObject):
            return result.to_dict(recursive=True)
        return result

    # ------------------------
    # Payments
    # ------------------------
    def create_payment_intent(
        self,
        amount: int,
        currency: str,
        destination_account: str,
        application_fee_amount: int,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ):
        return self._call(
            "payment intent creation",
            stripe.PaymentIntent.create,
            amount=amount,
            currency=currency,
            payment_method_types=["card"],
            application_fee_amount=application_fee_amount,
            transfer_data={"destination": destination_account},
            description=description,
            metadata=metadata or {},
        )

    def create_checkout_session(self, **params):
        return self._call("checkout session creation", stripe.checkout.Session.create, **params)

    # ------------------------
    # Customers & subscriptions
    # ------------------------
    def create_customer(self, email: str, name: str, metadata: Optional[Dict[str, str]] = None):
        return self._call(
            "customer creation",
            stripe.Customer.create,
            email=email,
            name=name,
            metadata=metadata or {},
        )

    def retrieve_subscription(self, subscription_id: str):
        return self._call("subscription retrieval", stripe.Subscription.retrieve, subscription_id)

    def cancel_subscription(self, subscription_id: str):
        return self._call("subscription cancellation", stripe.Subscription.cancel, subscription_id)

    # ------------------------
    # Connect
    # ------------------------
    def create_account(self, email: str, metadata: Optional[Dict[str, str]] = None):
        return self._call(
            "account creation",
            stripe.Account.create,
            type="standard",
            email=email,
            capabilities={
                "card_payments": {"requested": True},
                "transfers": {"requested": True},
            },
            metadata=metadata or {},
        )

    def retrieve_account(self, account_id: str):
        return self._call("account retrieval", stripe.Account.retrieve, account_id)

    def create_account_link(self, account_id: str, refresh_url: str, return_url: str):
        return self._call(
            "onboarding link creation",
            stripe.AccountLink.create,
            account=account_id,
            refresh_url=refresh_url,
            return_url=return_url,
            type="account_onboarding",
        )


# ------------------------
# FastAPI dependency
# ------------------------
def get_stripe_gateway() -> StripeGateway:
    return StripeGateway(api_key=settings.STRIPE_SECRET_KEY)
