"""
Subscription Sync Function - direct invoke only

Payload: {"userId": "..."} or {"stripeCustomerId": "..."}

Always returns a classified result instead of raising, so synchronous callers
can relay it and async invocations are not retried on expected failures:
{
    "ok": true,
    "statusCode": 200,
    "data": {"subscriptionId": "sub_...", "status": "active", ...}
}
{
    "ok": false,
    "statusCode": 404,
    "error": {"code": "not_found", "message": "..."}
}
"""

import logging

from shared.container import Dependencies, get_dependencies
from shared.errors import InternalError
from shared.logging_utils import configure_structured_logging, set_request_id
from shared.reconciler import ReconcileResult

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def handler(event, context):
    """Lambda handler for the subscription sync function."""
    configure_structured_logging()
    set_request_id(event if isinstance(event, dict) else {}, context)
    return handle(event, get_dependencies())


def handle(event, deps: Dependencies) -> dict:
    if deps.reconciler is None:
        logger.error("Stripe API key not configured")
        return ReconcileResult.failure(InternalError("Stripe not configured")).to_dict()

    result = deps.reconciler.handle(event)
    if result.ok:
        logger.info(f"Sync completed with status {result.data['status']}")
    return result.to_dict()
