"""
Invocation of the sync function from other handlers.

Two modes:
- dispatch_async: one-way send (InvocationType=Event). The caller never sees
  the outcome; failed syncs only show up in the sync function's logs. Lambda
  retries async invocations that error, but the sync function returns
  classified results instead of raising, so classified failures are final.
- invoke_sync: request/response, used when the caller needs fresh state.
"""

import json
import logging

from botocore.exceptions import BotoCoreError, ClientError

from .errors import UpstreamError
from .logging_utils import timed_external_call
from .reconciler import ReconcileResult
from .types import ReconcileRequest

logger = logging.getLogger(__name__)

SERVICE = "lambda"


class SyncInvoker:
    """Invokes the sync function by name through an injected Lambda client."""

    def __init__(self, lambda_client, function_name: str):
        self.lambda_client = lambda_client
        self.function_name = function_name

    def dispatch_async(self, stripe_customer_id: str) -> None:
        """Queue a sync for a Stripe customer without waiting for it."""
        payload: ReconcileRequest = {"stripeCustomerId": stripe_customer_id}
        try:
            with timed_external_call(logger, SERVICE, "invoke_async"):
                self.lambda_client.invoke(
                    FunctionName=self.function_name,
                    InvocationType="Event",
                    Payload=json.dumps(payload).encode("utf-8"),
                )
        except (ClientError, BotoCoreError) as e:
            raise UpstreamError("Failed to dispatch subscription sync", service=SERVICE) from e

    def invoke_sync(self, request: ReconcileRequest) -> ReconcileResult:
        """Run a sync and wait for its classified result."""
        try:
            with timed_external_call(logger, SERVICE, "invoke"):
                response = self.lambda_client.invoke(
                    FunctionName=self.function_name,
                    InvocationType="RequestResponse",
                    Payload=json.dumps(request).encode("utf-8"),
                )
                raw = response["Payload"].read()
        except (ClientError, BotoCoreError) as e:
            raise UpstreamError("Failed to invoke subscription sync", service=SERVICE) from e

        if response.get("FunctionError"):
            logger.error(
                f"Sync function raised: {response['FunctionError']}",
                extra={"payload": raw[:500]},
            )
            raise UpstreamError("Subscription sync failed", service=SERVICE)

        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise UpstreamError("Malformed sync response", service=SERVICE) from e

        return ReconcileResult.from_dict(payload)
