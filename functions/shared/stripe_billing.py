"""
Stripe API wrapper.

Every call is timed and logged, and Stripe exceptions are converted to
UpstreamError so handlers never see a raw stripe.StripeError.
"""

import json
import logging
from typing import Any, Optional

import stripe

from .errors import SignatureError, UpstreamError, ValidationError
from .logging_utils import timed_external_call

logger = logging.getLogger(__name__)

SERVICE = "stripe"


def _to_dict(obj: Any) -> dict:
    """Plain dict from a StripeObject (or a dict already)."""
    if isinstance(obj, dict):
        return obj
    return obj.to_dict()


class StripeBilling:
    """Billing provider client around an injected stripe.StripeClient."""

    def __init__(self, client: stripe.StripeClient):
        self.client = client

    def create_customer(self, email: Optional[str], metadata: dict[str, str]) -> str:
        """Create a Stripe customer and return its id."""
        params = {"metadata": metadata}
        if email:
            params["email"] = email
        try:
            with timed_external_call(logger, SERVICE, "customers.create"):
                customer = self.client.customers.create(params=params)
        except stripe.StripeError as e:
            raise UpstreamError("Failed to create stripe customer", service=SERVICE) from e
        return customer.id

    def list_subscriptions(self, customer_id: str, limit: int = 1) -> list[dict]:
        """
        Most recent subscriptions for a customer, any status.

        The default payment method is expanded so card details can be read
        without a second call.
        """
        try:
            with timed_external_call(logger, SERVICE, "subscriptions.list"):
                result = self.client.subscriptions.list(
                    params={
                        "customer": customer_id,
                        "status": "all",
                        "limit": limit,
                        "expand": ["data.default_payment_method"],
                    }
                )
        except stripe.StripeError as e:
            raise UpstreamError("Failed to list subscriptions", service=SERVICE) from e
        return [_to_dict(sub) for sub in result.data]

    def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
    ) -> dict:
        """Start a subscription-mode Checkout session for a single price."""
        try:
            with timed_external_call(logger, SERVICE, "checkout.sessions.create"):
                session = self.client.checkout.sessions.create(
                    params={
                        "customer": customer_id,
                        "mode": "subscription",
                        "payment_method_types": ["card"],
                        "line_items": [{"price": price_id, "quantity": 1}],
                        "success_url": success_url,
                        "cancel_url": cancel_url,
                    }
                )
        except stripe.StripeError as e:
            raise UpstreamError("Failed to create checkout session", service=SERVICE) from e
        return {"id": session.id, "url": session.url}

    def create_portal_session(self, customer_id: str, return_url: str) -> dict:
        """Open a Stripe-hosted billing portal session."""
        try:
            with timed_external_call(logger, SERVICE, "billing_portal.sessions.create"):
                session = self.client.billing_portal.sessions.create(
                    params={"customer": customer_id, "return_url": return_url}
                )
        except stripe.StripeError as e:
            raise UpstreamError(
                "Failed to create billing portal session", service=SERVICE
            ) from e
        return {"id": session.id, "url": session.url}

    @staticmethod
    def verify_webhook(raw_body: str, signature_header: str, secret: str) -> dict:
        """
        Verify a webhook signature against the raw body, then parse it.

        The body must be exactly what Stripe sent; parsing before verifying
        would change the signed bytes.

        Raises:
            SignatureError: signature missing, stale or not matching
            ValidationError: body verified but is not a JSON object
        """
        try:
            stripe.WebhookSignature.verify_header(
                raw_body,
                signature_header,
                secret,
                tolerance=stripe.Webhook.DEFAULT_TOLERANCE,
            )
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Invalid Stripe signature: {e}")
            raise SignatureError() from e

        try:
            payload = json.loads(raw_body)
        except json.JSONDecodeError as e:
            raise ValidationError("Invalid webhook payload") from e
        if not isinstance(payload, dict):
            raise ValidationError("Invalid webhook payload")
        return payload
