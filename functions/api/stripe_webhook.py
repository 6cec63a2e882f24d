"""
Stripe Webhook Endpoint - POST /webhook

Verifies the Stripe signature, filters to the events that can change a
customer's subscription state and queues a sync for that customer.
Uses Stripe signature verification instead of user auth.

The sync is dispatched fire-and-forget so the response stays well inside
Stripe's delivery timeout. Sync failures are therefore only visible in the
sync function's logs, never to Stripe's retry logic.
"""

import logging

from shared.billing_utils import get_stripe_webhook_secret
from shared.constants import ALLOWED_EVENTS
from shared.container import Dependencies, get_dependencies
from shared.errors import APIError, InternalError, SignatureError
from shared.logging_utils import configure_structured_logging, set_request_id
from shared.request_utils import get_header, get_raw_body
from shared.response_utils import error_response, json_response
from shared.stripe_billing import StripeBilling
from shared.webhook_events import parse_sync_event

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def handler(event, context):
    """Lambda handler for Stripe webhooks."""
    configure_structured_logging()
    set_request_id(event, context)
    return handle(event, get_dependencies())


def handle(event: dict, deps: Dependencies) -> dict:
    webhook_secret = get_stripe_webhook_secret(deps.settings, deps.secretsmanager)
    if not webhook_secret:
        logger.error("Stripe webhook secret not configured")
        return error_response(500, "stripe_not_configured", "Stripe not configured")

    if deps.invoker is None:
        logger.error("STRIPE_SYNC_FUNCTION_NAME not configured")
        return error_response(500, "sync_not_configured", "Sync function not configured")

    try:
        signature = get_header(event, "stripe-signature")
        if not signature:
            logger.warning("Missing Stripe signature")
            raise SignatureError("No signature provided")

        payload = StripeBilling.verify_webhook(get_raw_body(event), signature, webhook_secret)

        event_type = payload.get("type")
        if not isinstance(event_type, str) or event_type not in ALLOWED_EVENTS:
            logger.info(f"Ignoring Stripe event type: {event_type}")
            return json_response(200, {"received": True, "processed": False})

        stripe_event = parse_sync_event(payload)
        logger.info(
            f"Processing Stripe event: {event_type} (id={stripe_event.id})",
            extra={"stripe_customer_id": stripe_event.customer_id},
        )

        deps.invoker.dispatch_async(stripe_event.customer_id)

        return json_response(200, {"received": True, "processed": True})

    except APIError as e:
        return e.to_response()
    except Exception as e:
        logger.error(f"Webhook error: {e}", exc_info=True)
        return InternalError("Processing failed").to_response()
