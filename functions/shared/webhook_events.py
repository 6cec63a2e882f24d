"""
Typed decoding of the Stripe webhook events that trigger a sync.

Each allowed event category has its own model; the union is discriminated on
the event type, so anything that does not match a known shape is rejected
instead of guessed at.
"""

from typing import Annotated, Literal, Optional, Union

import pydantic
from pydantic import BaseModel, Field, StringConstraints, TypeAdapter

from .errors import ValidationError

StripeCustomerId = Annotated[str, StringConstraints(pattern=r"^cus_[A-Za-z0-9]+$")]


class CheckoutSessionObject(BaseModel):
    id: str
    customer: StripeCustomerId
    mode: Optional[str] = None
    subscription: Optional[str] = None


class SubscriptionObject(BaseModel):
    id: str
    customer: StripeCustomerId
    status: Optional[str] = None


class InvoiceObject(BaseModel):
    # Upcoming invoices have no id yet
    id: Optional[str] = None
    customer: StripeCustomerId
    subscription: Optional[str] = None


class PaymentIntentObject(BaseModel):
    id: str
    customer: StripeCustomerId


class CheckoutSessionData(BaseModel):
    object: CheckoutSessionObject


class SubscriptionData(BaseModel):
    object: SubscriptionObject


class InvoiceData(BaseModel):
    object: InvoiceObject


class PaymentIntentData(BaseModel):
    object: PaymentIntentObject


class _BaseEvent(BaseModel):
    id: str
    created: Optional[int] = None
    livemode: Optional[bool] = None

    @property
    def customer_id(self) -> str:
        return self.data.object.customer


class CheckoutSessionEvent(_BaseEvent):
    type: Literal["checkout.session.completed"]
    data: CheckoutSessionData


class SubscriptionEvent(_BaseEvent):
    type: Literal[
        "customer.subscription.created",
        "customer.subscription.updated",
        "customer.subscription.deleted",
        "customer.subscription.paused",
        "customer.subscription.resumed",
        "customer.subscription.pending_update_applied",
        "customer.subscription.pending_update_expired",
        "customer.subscription.trial_will_end",
    ]
    data: SubscriptionData


class InvoiceEvent(_BaseEvent):
    type: Literal[
        "invoice.paid",
        "invoice.payment_failed",
        "invoice.payment_action_required",
        "invoice.upcoming",
        "invoice.marked_uncollectible",
        "invoice.payment_succeeded",
    ]
    data: InvoiceData


class PaymentIntentEvent(_BaseEvent):
    type: Literal[
        "payment_intent.succeeded",
        "payment_intent.payment_failed",
        "payment_intent.canceled",
    ]
    data: PaymentIntentData


SyncTriggerEvent = Annotated[
    Union[CheckoutSessionEvent, SubscriptionEvent, InvoiceEvent, PaymentIntentEvent],
    Field(discriminator="type"),
]

_event_adapter = TypeAdapter(SyncTriggerEvent)


def parse_sync_event(payload: dict) -> Union[
    CheckoutSessionEvent, SubscriptionEvent, InvoiceEvent, PaymentIntentEvent
]:
    """
    Decode a verified webhook payload into its typed event.

    Raises:
        ValidationError: unknown type, or the object has no usable customer id
    """
    try:
        return _event_adapter.validate_python(payload)
    except pydantic.ValidationError as e:
        # Field names stay in the logs, not in the response
        if any("customer" in error["loc"] for error in e.errors()):
            raise ValidationError("Invalid customer ID in webhook") from e
        raise ValidationError("Invalid webhook payload") from e
