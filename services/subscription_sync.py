# services/subscription_sync.py
"""
Company subscription mirror.

``sync_company_subscription`` is the only place a Stripe plan id is turned
into an access level. Every webhook handler that learns new subscription
state goes through it.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from models.models import NO_ACCESS_SUBSCRIPTION_STATUSES, AccessLevel, Company
from repositories.company_store import CompanyStore

logger = logging.getLogger(__name__)


def object_id(value: Any) -> Optional[str]:
    """Stripe fields may hold an id string or an expanded object."""
    if isinstance(value, Mapping):
        return value.get("id")
    return value


def _first_item(subscription: Mapping) -> Optional[Mapping]:
    items = subscription.get("items")
    if isinstance(items, Mapping):
        items = items.get("data")
    if not items:
        return None
    return items[0]


@dataclass
class SubscriptionState:
    id: Optional[str]
    customer_id: Optional[str]
    status: str
    plan_id: Optional[str] = None
    current_period_end: Optional[int] = None  # epoch seconds

    @classmethod
    def from_stripe(cls, subscription: Mapping) -> "SubscriptionState":
        item = _first_item(subscription)
        plan_id = None
        period_end = subscription.get("current_period_end")
        if item:
            plan_id = object_id(item.get("price")) or object_id(item.get("plan"))
            if period_end is None:
                period_end = item.get("current_period_end")

        return cls(
            id=subscription.get("id"),
            customer_id=object_id(subscription.get("customer")),
            status=subscription.get("status"),
            plan_id=plan_id,
            current_period_end=period_end,
        )

    @property
    def expires_at(self) -> Optional[datetime]:
        if self.current_period_end is None:
            return None
        return datetime.fromtimestamp(int(self.current_period_end), tz=timezone.utc)


def resolve_access_level(plan_id: Optional[str], status: Optional[str], plan_tiers: Mapping[str, str]) -> str:
    """Plan lookup with a free default; canceled and unpaid never grant paid access."""
    if status in NO_ACCESS_SUBSCRIPTION_STATUSES:
        return AccessLevel.FREE.value
    if not plan_id:
        return AccessLevel.FREE.value
    return plan_tiers.get(plan_id, AccessLevel.FREE.value)


def sync_company_subscription(
    companies: CompanyStore,
    customer_id: Optional[str],
    state: SubscriptionState,
    plan_tiers: Mapping[str, str],
) -> Optional[Company]:
    """
    Mirror ``state`` onto the company owning ``customer_id``.

    Returns the company, or None when no company has that customer id
    (logged, not an error: events can arrive before the local write).
    """
    if not customer_id:
        logger.warning(f"⚠️ Subscription {state.id} has no customer id. Cannot update subscription status.")
        return None

    company = companies.get_by_customer_id(customer_id)
    if not company:
        logger.warning(
            f"⚠️ Company with Stripe Customer ID {customer_id} not found in DB. Cannot update subscription status."
        )
        return None

    access_level = resolve_access_level(state.plan_id, state.status, plan_tiers)
    companies.update_subscription(
        company.id,
        subscription_id=state.id,
        subscription_status=state.status,
        access_level=access_level,
        expires_at=state.expires_at,
    )
    logger.info(
        f"✅ Updated subscription for {company.name}: Status={state.status}, Access={access_level}"
    )
    return company
