"""
Create Checkout Session Endpoint - POST /checkout

Creates a Stripe Checkout session for the subscription price.
Requires a Cognito-authenticated user (user pool authorizer).
"""

import logging

from shared.container import Dependencies, get_dependencies
from shared.errors import APIError, InternalError, UnauthorizedError, UpstreamError
from shared.logging_utils import configure_structured_logging, set_request_id
from shared.request_utils import get_authenticated_user, get_origin
from shared.response_utils import error_response, success_response

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def handler(event, context):
    """
    Lambda handler for POST /checkout.

    No request body required - the user comes from the authorizer claims.

    Returns:
    {
        "url": "https://checkout.stripe.com/..."
    }
    """
    configure_structured_logging()
    set_request_id(event, context)
    return handle(event, get_dependencies())


def _ensure_stripe_customer(deps: Dependencies, user_id: str, email: str) -> str:
    """
    Stripe customer id for the user, creating customer and record on first use.

    The Stripe customer is created before the DynamoDB record. If the record
    write fails the Stripe customer is orphaned; this is logged, not undone.
    """
    record = deps.directory.get(user_id)
    if record and record.get("stripeCustomerId"):
        return record["stripeCustomerId"]

    logger.info(f"Creating new Stripe customer for user {user_id}")
    try:
        customer_id = deps.billing.create_customer(email, {"userId": user_id})
    except UpstreamError as e:
        # Customer creation failures surface as a plain 500
        e.status_code = 500
        raise

    try:
        return deps.directory.create(user_id, customer_id, email)
    except Exception as e:
        logger.error(
            f"Failed to store Stripe customer {customer_id} for {user_id}: {e}",
            extra={"orphaned_customer_id": customer_id},
        )
        raise InternalError("Failed to store customer record") from e


def handle(event: dict, deps: Dependencies) -> dict:
    origin = get_origin(event)

    if deps.billing is None:
        return error_response(
            500, "stripe_not_configured", "Payment system not configured", origin=origin
        )

    price_id = deps.settings.stripe_price_id
    if not price_id:
        logger.error("STRIPE_PRICE_ID not configured")
        return error_response(
            500, "price_not_configured", "Pricing not configured", origin=origin
        )

    try:
        user = get_authenticated_user(event)
        if not user["email"]:
            raise UnauthorizedError()
        user_id = user["user_id"]

        customer_id = _ensure_stripe_customer(deps, user_id, user["email"])

        session = deps.billing.create_checkout_session(
            customer_id,
            price_id,
            success_url=deps.settings.success_url,
            cancel_url=deps.settings.cancel_url,
        )
        logger.info(f"Created checkout session {session['id']} for user {user_id}")

        return success_response({"url": session["url"]}, origin=origin)

    except APIError as e:
        return e.to_response(origin)
    except Exception as e:
        logger.error(f"Error creating checkout session: {e}", exc_info=True)
        return InternalError("Failed to create checkout session").to_response(origin)
