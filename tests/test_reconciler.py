"""
Tests for the subscription reconciler.
"""

from unittest.mock import MagicMock

import pytest
import stripe
from botocore.exceptions import ClientError
from freezegun import freeze_time

from conftest import make_subscription

from shared.errors import NotFoundError, UpstreamError, ValidationError
from shared.reconciler import ReconcileResult, SubscriptionReconciler


def _stored(customer_table, user_id="u1"):
    return customer_table.get_item(Key={"userId": user_id}).get("Item")


class TestResolution:
    """Tests for identifier validation and customer lookup."""

    def test_requires_an_identifier(self, deps):
        """Should raise ValidationError when neither id is given."""
        with pytest.raises(ValidationError):
            deps.reconciler.reconcile()

    def test_rejects_non_string_identifier(self, deps):
        """Should raise ValidationError for a non-string userId."""
        with pytest.raises(ValidationError):
            deps.reconciler.reconcile(user_id=123)

    def test_user_without_record_is_not_found(self, deps):
        """Should raise NotFoundError when no record exists for the user."""
        with pytest.raises(NotFoundError):
            deps.reconciler.reconcile(user_id="missing")

    def test_user_without_stripe_customer_is_not_found(self, deps, customer_table):
        """Should raise NotFoundError when the record has no stripeCustomerId."""
        customer_table.put_item(Item={"userId": "u2", "email": "u2@example.com"})

        with pytest.raises(NotFoundError):
            deps.reconciler.reconcile(user_id="u2")

    def test_unknown_stripe_customer_is_not_found(self, deps, stripe_client):
        """Should raise NotFoundError when the reverse index has no match."""
        with pytest.raises(NotFoundError):
            deps.reconciler.reconcile(stripe_customer_id="cus_unknown")

        stripe_client.subscriptions.list.assert_not_called()

    def test_resolves_user_from_stripe_customer(self, deps, customer_table, seeded_customer):
        """Should find the owning user through the stripeCustomerId index."""
        deps.reconciler.reconcile(stripe_customer_id="cus_123")

        assert _stored(customer_table)["userId"] == "u1"

    def test_user_id_wins_when_both_given(self, deps, stripe_client, seeded_customer):
        """Should resolve by userId when both identifiers are present."""
        deps.reconciler.reconcile(user_id="u1", stripe_customer_id="cus_other")

        params = stripe_client.subscriptions.list.call_args.kwargs["params"]
        assert params["customer"] == "cus_123"


class TestReconcile:
    """Tests for fetching, normalizing and persisting the snapshot."""

    def test_lists_latest_subscription_any_status(self, deps, stripe_client, seeded_customer):
        """Should ask Stripe for one subscription of any status with the card expanded."""
        deps.reconciler.reconcile(user_id="u1")

        params = stripe_client.subscriptions.list.call_args.kwargs["params"]
        assert params == {
            "customer": "cus_123",
            "status": "all",
            "limit": 1,
            "expand": ["data.default_payment_method"],
        }

    @freeze_time("2025-03-01T12:00:00Z")
    def test_persists_active_subscription(self, deps, stripe_client, customer_table, seeded_customer):
        """Should store the mapped subscription and keep key fields."""
        stripe_client.subscriptions.list.return_value = MagicMock(
            data=[make_subscription(cancel_at_period_end=True)]
        )

        snapshot = deps.reconciler.reconcile(user_id="u1")

        assert snapshot == {
            "subscriptionId": "sub_123",
            "status": "active",
            "priceId": "price_123",
            "currentPeriodStart": 1700000000,
            "currentPeriodEnd": 1702592000,
            "cancelAtPeriodEnd": True,
            "paymentMethod": {"brand": "visa", "last4": "4242"},
        }
        item = _stored(customer_table)
        assert item["subscriptionId"] == "sub_123"
        assert item["priceId"] == "price_123"
        assert item["currentPeriodEnd"] == 1702592000
        assert item["cancelAtPeriodEnd"] is True
        assert item["email"] == "user@example.com"
        assert item["createdAt"] == "2024-01-01T00:00:00+00:00"
        assert item["updatedAt"] == "2025-03-01T12:00:00+00:00"

    def test_zero_subscriptions_clears_snapshot(self, deps, customer_table, seeded_customer):
        """Should overwrite every snapshot field when the subscription is gone."""
        snapshot = deps.reconciler.reconcile(stripe_customer_id="cus_123")

        assert snapshot["status"] == "none"
        item = _stored(customer_table)
        assert item["userId"] == "u1"
        assert item["stripeCustomerId"] == "cus_123"
        assert item["status"] == "none"
        assert item["subscriptionId"] is None
        assert item["priceId"] is None
        assert item["currentPeriodStart"] is None
        assert item["currentPeriodEnd"] is None
        assert item["cancelAtPeriodEnd"] is False
        assert item["paymentMethod"] is None

    def test_repeat_sync_is_identical_except_updated_at(
        self, deps, stripe_client, customer_table, seeded_customer
    ):
        """Should produce the same stored snapshot for the same upstream state."""
        stripe_client.subscriptions.list.return_value = MagicMock(data=[make_subscription()])

        with freeze_time("2025-03-01T12:00:00Z"):
            first_snapshot = deps.reconciler.reconcile(user_id="u1")
            first = _stored(customer_table)
        with freeze_time("2025-03-02T12:00:00Z"):
            second_snapshot = deps.reconciler.reconcile(user_id="u1")
            second = _stored(customer_table)

        assert first_snapshot == second_snapshot
        assert first.pop("updatedAt") != second.pop("updatedAt")
        assert first == second

    def test_unexpanded_payment_method_is_dropped(self, deps, stripe_client, seeded_customer):
        """Should store no payment method when Stripe returns a bare id."""
        stripe_client.subscriptions.list.return_value = MagicMock(
            data=[make_subscription(default_payment_method="pm_123")]
        )

        snapshot = deps.reconciler.reconcile(user_id="u1")

        assert snapshot["paymentMethod"] is None

    def test_stripe_failure_is_upstream_error(self, deps, stripe_client, customer_table, seeded_customer):
        """Should classify Stripe errors and leave the stored record alone."""
        stripe_client.subscriptions.list.side_effect = stripe.APIConnectionError("down")

        with pytest.raises(UpstreamError):
            deps.reconciler.reconcile(user_id="u1")

        assert _stored(customer_table)["subscriptionId"] == "sub_old"

    def test_malformed_subscription_is_upstream_error(self, deps, stripe_client, seeded_customer):
        """Should classify a subscription without id/status as an upstream error."""
        stripe_client.subscriptions.list.return_value = MagicMock(data=[{"object": "subscription"}])

        with pytest.raises(UpstreamError):
            deps.reconciler.reconcile(user_id="u1")


class TestIdentityPropagation:
    """Tests for mirroring the snapshot onto Cognito attributes."""

    def test_updates_cognito_attributes(self, deps, stripe_client, cognito_client, seeded_customer):
        """Should write status, period end and cancel flag for the user."""
        stripe_client.subscriptions.list.return_value = MagicMock(data=[make_subscription()])

        deps.reconciler.reconcile(stripe_customer_id="cus_123")

        cognito_client.admin_update_user_attributes.assert_called_once_with(
            UserPoolId="us-east-1_testpool",
            Username="u1",
            UserAttributes=[
                {"Name": "custom:subscriptionStatus", "Value": "active"},
                {"Name": "custom:subscriptionEnd", "Value": "1702592000"},
                {"Name": "custom:cancelAtPeriodEnd", "Value": "false"},
            ],
        )

    def test_cognito_failure_after_persist(self, deps, cognito_client, customer_table, seeded_customer):
        """Should surface the Cognito failure while keeping the stored snapshot."""
        cognito_client.admin_update_user_attributes.side_effect = ClientError(
            {"Error": {"Code": "UserNotFoundException", "Message": "nope"}},
            "AdminUpdateUserAttributes",
        )

        with pytest.raises(UpstreamError) as exc_info:
            deps.reconciler.reconcile(user_id="u1")

        assert exc_info.value.details == {"persisted": True}
        assert _stored(customer_table)["status"] == "none"

    def test_skips_propagation_without_identity_provider(self, deps, customer_table, seeded_customer):
        """Should only persist when no user pool is configured."""
        reconciler = SubscriptionReconciler(deps.directory, deps.billing, identity=None)

        snapshot = reconciler.reconcile(user_id="u1")

        assert snapshot["status"] == "none"
        assert _stored(customer_table)["status"] == "none"


class TestHandle:
    """Tests for the classified result returned across the invoke boundary."""

    def test_cus_123_without_subscriptions(self, deps, customer_table, seeded_customer):
        """Should return 200 with the none snapshot for a customer with nothing upstream."""
        result = deps.reconciler.handle({"stripeCustomerId": "cus_123"})

        assert result.to_dict() == {
            "ok": True,
            "statusCode": 200,
            "data": {
                "subscriptionId": None,
                "status": "none",
                "priceId": None,
                "currentPeriodStart": None,
                "currentPeriodEnd": None,
                "cancelAtPeriodEnd": False,
                "paymentMethod": None,
            },
        }

    def test_missing_identifiers_is_400(self, deps):
        result = deps.reconciler.handle({})

        assert result.status_code == 400
        assert result.error["code"] == "validation_error"

    def test_non_dict_request_is_400(self, deps):
        result = deps.reconciler.handle("cus_123")

        assert result.status_code == 400

    def test_not_found_is_404(self, deps):
        result = deps.reconciler.handle({"userId": "missing"})

        assert result.to_dict()["statusCode"] == 404
        assert result.to_dict()["error"]["code"] == "not_found"
        assert "data" not in result.to_dict()

    def test_stripe_failure_is_502(self, deps, stripe_client, seeded_customer):
        stripe_client.subscriptions.list.side_effect = stripe.APIConnectionError("down")

        result = deps.reconciler.handle({"userId": "u1"})

        assert result.status_code == 502
        assert result.error["code"] == "upstream_error"

    def test_unexpected_failure_is_500(self, deps, seeded_customer):
        """Should classify unknown exceptions as internal errors."""
        deps.directory.put = MagicMock(side_effect=RuntimeError("boom"))

        result = deps.reconciler.handle({"userId": "u1"})

        assert result.status_code == 500
        assert result.error == {"code": "internal_error", "message": "An internal error occurred"}


class TestReconcileResult:
    """Tests for parsing results returned by the sync function."""

    def test_round_trips_success(self):
        result = ReconcileResult.from_dict({"ok": True, "statusCode": 200, "data": {"status": "active"}})

        assert result.ok
        assert result.data == {"status": "active"}

    def test_parses_failure(self):
        result = ReconcileResult.from_dict(
            {"ok": False, "statusCode": 404, "error": {"code": "not_found", "message": "x"}}
        )

        assert not result.ok
        assert result.status_code == 404

    def test_rejects_malformed_payload(self):
        with pytest.raises(UpstreamError):
            ReconcileResult.from_dict({"errorMessage": "Task timed out"})
