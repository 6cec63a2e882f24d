"""
Shared Type Definitions for Lambda Handlers.

TypedDicts for the customer record stored in DynamoDB and the payloads
passed between handlers.
"""

from typing import TypedDict, Optional


class AuthenticatedUser(TypedDict):
    """Identity taken from the Cognito authorizer claims."""

    user_id: str
    email: Optional[str]


class PaymentMethodSummary(TypedDict):
    """Card brand and last four digits of the default payment method."""

    brand: Optional[str]
    last4: Optional[str]


class SubscriptionSnapshot(TypedDict):
    """Normalized subscription state, replaced wholesale on every sync."""

    subscriptionId: Optional[str]
    status: str
    priceId: Optional[str]
    currentPeriodStart: Optional[int]
    currentPeriodEnd: Optional[int]
    cancelAtPeriodEnd: bool
    paymentMethod: Optional[PaymentMethodSummary]


class CustomerRecord(TypedDict, total=False):
    """One item in the customer table (key fields + snapshot)."""

    userId: str
    stripeCustomerId: str
    email: str
    createdAt: str
    updatedAt: str
    subscriptionId: Optional[str]
    status: str
    priceId: Optional[str]
    currentPeriodStart: Optional[int]
    currentPeriodEnd: Optional[int]
    cancelAtPeriodEnd: bool
    paymentMethod: Optional[PaymentMethodSummary]


class ReconcileRequest(TypedDict, total=False):
    """Payload accepted by the sync function."""

    userId: str
    stripeCustomerId: str
