"""
Create Billing Portal Session Endpoint - POST /manage

Creates a Stripe Billing Portal session for subscription management.
Requires a Cognito-authenticated user with a Stripe customer on file.
"""

import logging

from shared.container import Dependencies, get_dependencies
from shared.errors import APIError, InternalError, NotFoundError
from shared.logging_utils import configure_structured_logging, set_request_id
from shared.request_utils import get_authenticated_user, get_origin
from shared.response_utils import error_response, success_response

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def handler(event, context):
    """
    Lambda handler for POST /manage.

    Returns:
    {
        "url": "https://billing.stripe.com/..."
    }
    """
    configure_structured_logging()
    set_request_id(event, context)
    return handle(event, get_dependencies())


def handle(event: dict, deps: Dependencies) -> dict:
    origin = get_origin(event)

    if deps.billing is None:
        return error_response(
            500, "stripe_not_configured", "Payment system not configured", origin=origin
        )

    try:
        user_id = get_authenticated_user(event)["user_id"]

        record = deps.directory.get(user_id)
        if not record or not record.get("stripeCustomerId"):
            logger.warning(f"No Stripe customer found for {user_id}")
            raise NotFoundError("No Stripe customer found for this user")

        session = deps.billing.create_portal_session(
            record["stripeCustomerId"],
            return_url=deps.settings.portal_return_url,
        )
        logger.info(f"Created billing portal session {session['id']} for user {user_id}")

        return success_response({"url": session["url"]}, origin=origin)

    except APIError as e:
        return e.to_response(origin)
    except Exception as e:
        logger.error(f"Error creating billing portal session: {e}", exc_info=True)
        return InternalError("Failed to create billing portal session").to_response(origin)
