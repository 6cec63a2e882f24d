"""
Post-checkout Sync Endpoint - POST /success/sync

Called by the success page right after Checkout. Runs the subscription sync
synchronously so the page renders the state Stripe has now, instead of
waiting for the webhook-driven sync to land.
"""

import logging

from shared.container import Dependencies, get_dependencies
from shared.errors import APIError, InternalError, NotFoundError
from shared.logging_utils import configure_structured_logging, set_request_id
from shared.request_utils import get_authenticated_user, get_origin
from shared.response_utils import error_response, json_response

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def handler(event, context):
    """
    Lambda handler for POST /success/sync.

    Returns the sync result as-is:
    {
        "ok": true,
        "statusCode": 200,
        "data": {"status": "active", ...}
    }
    """
    configure_structured_logging()
    set_request_id(event, context)
    return handle(event, get_dependencies())


def handle(event: dict, deps: Dependencies) -> dict:
    origin = get_origin(event)

    if deps.invoker is None:
        logger.error("STRIPE_SYNC_FUNCTION_NAME not configured")
        return error_response(
            500, "sync_not_configured", "Sync function not configured", origin=origin
        )

    try:
        user_id = get_authenticated_user(event)["user_id"]

        record = deps.directory.get(user_id)
        if not record or not record.get("stripeCustomerId"):
            raise NotFoundError("No Stripe customer found for this user")

        result = deps.invoker.invoke_sync({"stripeCustomerId": record["stripeCustomerId"]})
        if not result.ok:
            logger.warning(
                f"Post-checkout sync failed for {user_id}",
                extra={"status_code": result.status_code, "error": result.error},
            )

        return json_response(result.status_code, result.to_dict(), origin=origin)

    except APIError as e:
        return e.to_response(origin)
    except Exception as e:
        logger.error(f"Post-checkout sync error: {e}", exc_info=True)
        return InternalError("Failed to sync stripe data").to_response(origin)
