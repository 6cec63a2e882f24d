"""
Normalization of Stripe subscriptions into the stored snapshot shape.
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

from .constants import NO_SUBSCRIPTION_STATUS
from .types import PaymentMethodSummary, SubscriptionSnapshot


class _Card(BaseModel):
    brand: Optional[str] = None
    last4: Optional[str] = None


class _PaymentMethod(BaseModel):
    id: Optional[str] = None
    card: Optional[_Card] = None


class _Price(BaseModel):
    id: str


class _SubscriptionItem(BaseModel):
    price: _Price
    # Newer API versions report billing periods per item
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None


class _SubscriptionItemList(BaseModel):
    data: list[_SubscriptionItem] = []


class StripeSubscription(BaseModel):
    """The subset of a Stripe subscription the snapshot is built from."""

    model_config = ConfigDict(extra="ignore")

    id: str
    status: str
    items: _SubscriptionItemList = _SubscriptionItemList()
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None
    cancel_at_period_end: bool = False
    # A bare id string when not expanded
    default_payment_method: Union[_PaymentMethod, str, None] = None


def none_snapshot() -> SubscriptionSnapshot:
    """Snapshot for a customer with no subscription."""
    return {
        "subscriptionId": None,
        "status": NO_SUBSCRIPTION_STATUS,
        "priceId": None,
        "currentPeriodStart": None,
        "currentPeriodEnd": None,
        "cancelAtPeriodEnd": False,
        "paymentMethod": None,
    }


def _payment_method_summary(subscription: StripeSubscription) -> Optional[PaymentMethodSummary]:
    method = subscription.default_payment_method
    if not isinstance(method, _PaymentMethod):
        return None
    card = method.card
    return {
        "brand": card.brand if card else None,
        "last4": card.last4 if card else None,
    }


def snapshot_from_subscription(subscription: dict) -> SubscriptionSnapshot:
    """
    Map one Stripe subscription (as a plain dict) to a snapshot.

    Raises:
        pydantic.ValidationError: the payload lacks id, status or a priced item
    """
    sub = StripeSubscription.model_validate(subscription)
    first_item = sub.items.data[0] if sub.items.data else None

    period_start = sub.current_period_start
    period_end = sub.current_period_end
    if first_item is not None:
        if period_start is None:
            period_start = first_item.current_period_start
        if period_end is None:
            period_end = first_item.current_period_end

    return {
        "subscriptionId": sub.id,
        "status": sub.status,
        "priceId": first_item.price.id if first_item else None,
        "currentPeriodStart": period_start,
        "currentPeriodEnd": period_end,
        "cancelAtPeriodEnd": sub.cancel_at_period_end,
        "paymentMethod": _payment_method_summary(sub),
    }


def build_snapshot(subscriptions: list[dict]) -> SubscriptionSnapshot:
    """Snapshot from a most-recent-first subscription list."""
    if not subscriptions:
        return none_snapshot()
    return snapshot_from_subscription(subscriptions[0])
