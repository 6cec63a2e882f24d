"""
DynamoDB access for customer records.

One item per internal user, keyed by userId, with a GSI on stripeCustomerId
for the reverse lookup used by webhook-driven syncs.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from .types import CustomerRecord

logger = logging.getLogger(__name__)


class CustomerDirectory:
    """Customer table wrapper. Holds the table resource it was built with."""

    def __init__(self, table, index_name: str):
        self.table = table
        self.index_name = index_name

    def get(self, user_id: str) -> Optional[CustomerRecord]:
        """Get a customer record by userId, or None if absent."""
        response = self.table.get_item(Key={"userId": user_id})
        return response.get("Item")

    def query_by_stripe_customer_id(self, stripe_customer_id: str) -> list[CustomerRecord]:
        """
        Reverse lookup through the stripeCustomerId GSI.

        stripeCustomerId is unique, so this returns zero or one record.
        """
        response = self.table.query(
            IndexName=self.index_name,
            KeyConditionExpression=Key("stripeCustomerId").eq(stripe_customer_id),
        )
        items = response.get("Items", [])
        if len(items) > 1:
            logger.error(
                f"Multiple customer records share {stripe_customer_id}",
                extra={"user_ids": [item.get("userId") for item in items]},
            )
        return items

    def put(self, record: CustomerRecord) -> None:
        """Write the full record, replacing whatever was stored under userId."""
        self.table.put_item(Item=record)

    def create(self, user_id: str, stripe_customer_id: str, email: Optional[str]) -> str:
        """
        Store the Stripe customer id for a user on first checkout.

        The write only succeeds if the user has no stripeCustomerId yet. When a
        concurrent checkout won the race, the stored id is returned instead and
        the caller's freshly created Stripe customer is left orphaned.

        Returns:
            The stripeCustomerId now on record for the user.
        """
        item = {
            "userId": user_id,
            "stripeCustomerId": stripe_customer_id,
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }
        if email:
            item["email"] = email

        try:
            self.table.put_item(
                Item=item,
                ConditionExpression="attribute_not_exists(stripeCustomerId)",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] != "ConditionalCheckFailedException":
                raise
            existing = self.get(user_id) or {}
            logger.warning(
                f"Customer record for {user_id} already exists, "
                f"orphaned Stripe customer {stripe_customer_id}"
            )
            return existing["stripeCustomerId"]

        return stripe_customer_id

    def scan(self):
        """Yield every customer record (operator scripts only)."""
        scan_kwargs = {}
        while True:
            response = self.table.scan(**scan_kwargs)
            yield from response.get("Items", [])
            if "LastEvaluatedKey" not in response:
                break
            scan_kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
