"""
Shared constants for Stripe subscription sync.
"""

# Status written when a customer has no subscription at all
NO_SUBSCRIPTION_STATUS = "none"

# Webhook event types that trigger a reconciliation
CHECKOUT_EVENTS = ("checkout.session.completed",)

SUBSCRIPTION_EVENTS = (
    "customer.subscription.created",
    "customer.subscription.updated",
    "customer.subscription.deleted",
    "customer.subscription.paused",
    "customer.subscription.resumed",
    "customer.subscription.pending_update_applied",
    "customer.subscription.pending_update_expired",
    "customer.subscription.trial_will_end",
)

INVOICE_EVENTS = (
    "invoice.paid",
    "invoice.payment_failed",
    "invoice.payment_action_required",
    "invoice.upcoming",
    "invoice.marked_uncollectible",
    "invoice.payment_succeeded",
)

PAYMENT_INTENT_EVENTS = (
    "payment_intent.succeeded",
    "payment_intent.payment_failed",
    "payment_intent.canceled",
)

ALLOWED_EVENTS = frozenset(
    CHECKOUT_EVENTS + SUBSCRIPTION_EVENTS + INVOICE_EVENTS + PAYMENT_INTENT_EVENTS
)

# DynamoDB defaults
DEFAULT_CUSTOMER_TABLE = "stripe-customers"
DEFAULT_CUSTOMER_INDEX = "stripeCustomerId-index"

# Cognito custom attribute names
ATTR_SUBSCRIPTION_STATUS = "custom:subscriptionStatus"
ATTR_SUBSCRIPTION_END = "custom:subscriptionEnd"
ATTR_CANCEL_AT_PERIOD_END = "custom:cancelAtPeriodEnd"

# Secrets Manager cache TTL
SECRETS_CACHE_TTL = 300  # 5 minutes
