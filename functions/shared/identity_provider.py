"""
Cognito user attribute propagation.
"""

import logging
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from .constants import (
    ATTR_CANCEL_AT_PERIOD_END,
    ATTR_SUBSCRIPTION_END,
    ATTR_SUBSCRIPTION_STATUS,
)
from .errors import UpstreamError
from .logging_utils import timed_external_call
from .types import SubscriptionSnapshot

logger = logging.getLogger(__name__)

SERVICE = "cognito"


def subscription_attributes(snapshot: SubscriptionSnapshot) -> list[dict]:
    """
    Reduced view of a snapshot as Cognito custom attributes.

    Cognito stores strings only; a missing period end is written as "".
    """
    period_end: Optional[int] = snapshot.get("currentPeriodEnd")
    return [
        {"Name": ATTR_SUBSCRIPTION_STATUS, "Value": snapshot["status"]},
        {"Name": ATTR_SUBSCRIPTION_END, "Value": "" if period_end is None else str(period_end)},
        {
            "Name": ATTR_CANCEL_AT_PERIOD_END,
            "Value": "true" if snapshot.get("cancelAtPeriodEnd") else "false",
        },
    ]


class CognitoIdentityProvider:
    """Writes subscription attributes onto Cognito users."""

    def __init__(self, client, user_pool_id: str):
        self.client = client
        self.user_pool_id = user_pool_id

    def update_subscription_attributes(
        self, user_id: str, snapshot: SubscriptionSnapshot
    ) -> None:
        try:
            with timed_external_call(logger, SERVICE, "admin_update_user_attributes"):
                self.client.admin_update_user_attributes(
                    UserPoolId=self.user_pool_id,
                    Username=user_id,
                    UserAttributes=subscription_attributes(snapshot),
                )
        except (ClientError, BotoCoreError) as e:
            raise UpstreamError(
                "Failed to update user subscription attributes", service=SERVICE
            ) from e
