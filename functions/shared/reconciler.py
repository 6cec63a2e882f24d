"""
Subscription reconciliation.

Resolves a user / Stripe customer pair, reads the customer's current
subscription from Stripe and overwrites the stored snapshot with it, then
mirrors a reduced view onto the user's Cognito attributes.

Concurrent runs for the same customer are not serialized: each run does a
full put, so the last writer wins.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import pydantic

from .customer_directory import CustomerDirectory
from .errors import APIError, InternalError, NotFoundError, UpstreamError, ValidationError
from .identity_provider import CognitoIdentityProvider
from .stripe_billing import StripeBilling
from .subscription_snapshot import build_snapshot
from .types import CustomerRecord, SubscriptionSnapshot

logger = logging.getLogger(__name__)

# Record fields kept from the stored item; everything else is rewritten
_KEY_FIELDS = ("email", "createdAt")


@dataclass(frozen=True)
class ReconcileResult:
    """
    Outcome of one reconciliation, as returned across the invoke boundary.

    Success carries the snapshot; failure carries a classified error body.
    """

    status_code: int
    data: Optional[SubscriptionSnapshot] = None
    error: Optional[dict] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, snapshot: SubscriptionSnapshot) -> "ReconcileResult":
        return cls(status_code=200, data=snapshot)

    @classmethod
    def failure(cls, error: APIError) -> "ReconcileResult":
        return cls(status_code=error.status_code, error=error.to_body()["error"])

    def to_dict(self) -> dict:
        result: dict[str, Any] = {"ok": self.ok, "statusCode": self.status_code}
        if self.ok:
            result["data"] = self.data
        else:
            result["error"] = self.error
        return result

    @classmethod
    def from_dict(cls, payload: Any) -> "ReconcileResult":
        """
        Parse a result returned by the sync function.

        Raises:
            UpstreamError: payload is not a reconcile result
        """
        if not isinstance(payload, dict) or not isinstance(payload.get("statusCode"), int):
            raise UpstreamError("Malformed sync response", service="lambda")
        if payload.get("ok"):
            return cls(status_code=payload["statusCode"], data=payload.get("data"))
        error = payload.get("error")
        if not isinstance(error, dict):
            error = {"code": "internal_error", "message": str(error or "Sync failed")}
        return cls(status_code=payload["statusCode"], error=error)


def _clean_identifier(value: Any, name: str) -> Optional[str]:
    if value is None or value == "":
        return None
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must be a non-empty string")
    return value.strip()


class SubscriptionReconciler:
    """Syncs one customer's Stripe subscription into DynamoDB and Cognito."""

    def __init__(
        self,
        directory: CustomerDirectory,
        billing: StripeBilling,
        identity: Optional[CognitoIdentityProvider] = None,
    ):
        self.directory = directory
        self.billing = billing
        self.identity = identity

    def _resolve(
        self, user_id: Optional[str], stripe_customer_id: Optional[str]
    ) -> CustomerRecord:
        if user_id:
            record = self.directory.get(user_id)
            if not record or not record.get("stripeCustomerId"):
                raise NotFoundError(f"No Stripe customer on file for user {user_id}")
            return record

        records = self.directory.query_by_stripe_customer_id(stripe_customer_id)
        if not records:
            raise NotFoundError(f"No user found for Stripe customer {stripe_customer_id}")
        return records[0]

    def reconcile(
        self,
        user_id: Optional[str] = None,
        stripe_customer_id: Optional[str] = None,
    ) -> SubscriptionSnapshot:
        """
        Sync one customer and return the new snapshot.

        userId wins when both identifiers are given.

        Raises:
            ValidationError: neither identifier given
            NotFoundError: no matching customer record
            UpstreamError: Stripe or Cognito failed (a Cognito failure is
                raised after the DynamoDB write has completed)
        """
        user_id = _clean_identifier(user_id, "userId")
        stripe_customer_id = _clean_identifier(stripe_customer_id, "stripeCustomerId")
        if not user_id and not stripe_customer_id:
            raise ValidationError("userId or stripeCustomerId is required")

        record = self._resolve(user_id, stripe_customer_id)
        user_id = record["userId"]
        stripe_customer_id = record["stripeCustomerId"]

        logger.info(
            f"Syncing subscription for {user_id}",
            extra={"user_id": user_id, "stripe_customer_id": stripe_customer_id},
        )

        subscriptions = self.billing.list_subscriptions(stripe_customer_id, limit=1)
        try:
            snapshot = build_snapshot(subscriptions)
        except pydantic.ValidationError as e:
            logger.error(f"Unexpected subscription payload for {stripe_customer_id}: {e}")
            raise UpstreamError("Unexpected subscription data from Stripe", service="stripe") from e

        item: CustomerRecord = {
            "userId": user_id,
            "stripeCustomerId": stripe_customer_id,
        }
        for field in _KEY_FIELDS:
            if record.get(field) is not None:
                item[field] = record[field]
        item.update(snapshot)
        item["updatedAt"] = datetime.now(timezone.utc).isoformat()
        self.directory.put(item)

        logger.info(
            f"Stored subscription status {snapshot['status']} for {user_id}",
            extra={"user_id": user_id, "status": snapshot["status"]},
        )

        if self.identity is not None:
            try:
                self.identity.update_subscription_attributes(user_id, snapshot)
            except UpstreamError as e:
                logger.error(f"Stored snapshot for {user_id} but Cognito update failed")
                e.details["persisted"] = True
                raise

        return snapshot

    def handle(self, request: Any) -> ReconcileResult:
        """Run reconcile() for an invoke payload and classify any failure."""
        try:
            if not isinstance(request, dict):
                raise ValidationError("Request must be an object")
            snapshot = self.reconcile(
                user_id=request.get("userId"),
                stripe_customer_id=request.get("stripeCustomerId"),
            )
            return ReconcileResult.success(snapshot)
        except APIError as e:
            logger.warning(
                f"Subscription sync failed: {e.message}",
                extra={"error_code": e.code, "status_code": e.status_code},
            )
            return ReconcileResult.failure(e)
        except Exception as e:
            logger.error(f"Unexpected subscription sync error: {e}", exc_info=True)
            return ReconcileResult.failure(InternalError())
