"""
Shared pytest fixtures for Stripe subscription sync tests.
"""

import hashlib
import hmac
import json
import os
import sys
import time
from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws

# Add functions directory to Python path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "functions"))

CUSTOMER_TABLE = "stripe-customers"
CUSTOMER_INDEX = "stripeCustomerId-index"
WEBHOOK_SECRET = "whsec_test_secret"


def pytest_configure(config):
    """Set AWS credentials before test collection.

    This runs before test collection starts, ensuring boto3 resource
    creation during imports doesn't fail with NoRegionError.
    """
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
    os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
    os.environ.setdefault("AWS_REGION", "us-east-1")


@pytest.fixture(autouse=True)
def aws_credentials():
    """Set fake AWS credentials for all tests."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
    os.environ["AWS_REGION"] = "us-east-1"


@pytest.fixture(autouse=True)
def reset_cached_state():
    """Reset shared client, dependency and secret caches between tests."""
    yield
    from shared.aws_clients import reset_clients
    from shared.billing_utils import clear_secret_cache
    from shared.container import reset_dependencies

    reset_clients()
    reset_dependencies()
    clear_secret_cache()


def create_dynamodb_tables(dynamodb):
    """Create the customer table with its stripeCustomerId GSI."""
    dynamodb.create_table(
        TableName=CUSTOMER_TABLE,
        KeySchema=[{"AttributeName": "userId", "KeyType": "HASH"}],
        AttributeDefinitions=[
            {"AttributeName": "userId", "AttributeType": "S"},
            {"AttributeName": "stripeCustomerId", "AttributeType": "S"},
        ],
        GlobalSecondaryIndexes=[
            {
                "IndexName": CUSTOMER_INDEX,
                "KeySchema": [{"AttributeName": "stripeCustomerId", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            },
        ],
        BillingMode="PAY_PER_REQUEST",
    )


@pytest.fixture
def mock_dynamodb():
    """Provide mocked DynamoDB with tables."""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")
        create_dynamodb_tables(dynamodb)
        yield dynamodb


@pytest.fixture
def customer_table(mock_dynamodb):
    return mock_dynamodb.Table(CUSTOMER_TABLE)


@pytest.fixture
def settings():
    from shared.config import Settings

    return Settings(
        customer_table=CUSTOMER_TABLE,
        customer_index=CUSTOMER_INDEX,
        stripe_price_id="price_123",
        app_url="https://app.example.com",
        sync_function_name="stripe-sync",
        user_pool_id="us-east-1_testpool",
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret=WEBHOOK_SECRET,
    )


@pytest.fixture
def stripe_client():
    """MagicMock standing in for stripe.StripeClient."""
    client = MagicMock()
    client.subscriptions.list.return_value = MagicMock(data=[])
    return client


@pytest.fixture
def cognito_client():
    return MagicMock()


@pytest.fixture
def lambda_client():
    client = MagicMock()
    client.invoke.return_value = {"StatusCode": 202}
    return client


@pytest.fixture
def deps(customer_table, settings, stripe_client, cognito_client, lambda_client):
    """Fully wired Dependencies over moto DynamoDB and mocked remote clients."""
    from shared.container import Dependencies
    from shared.customer_directory import CustomerDirectory
    from shared.dispatch import SyncInvoker
    from shared.identity_provider import CognitoIdentityProvider
    from shared.reconciler import SubscriptionReconciler
    from shared.stripe_billing import StripeBilling

    directory = CustomerDirectory(customer_table, CUSTOMER_INDEX)
    billing = StripeBilling(stripe_client)
    identity = CognitoIdentityProvider(cognito_client, settings.user_pool_id)
    return Dependencies(
        settings=settings,
        secretsmanager=MagicMock(),
        directory=directory,
        billing=billing,
        identity=identity,
        invoker=SyncInvoker(lambda_client, settings.sync_function_name),
        reconciler=SubscriptionReconciler(directory, billing, identity),
    )


@pytest.fixture
def api_gateway_event():
    """Base API Gateway event for Lambda handler tests."""
    return {
        "httpMethod": "POST",
        "headers": {},
        "pathParameters": {},
        "queryStringParameters": {},
        "body": None,
        "isBase64Encoded": False,
        "requestContext": {
            "requestId": "req-123",
            "identity": {"sourceIp": "127.0.0.1"},
        },
    }


@pytest.fixture
def authed_event(api_gateway_event):
    """API Gateway event carrying Cognito authorizer claims for user u1."""
    api_gateway_event["requestContext"]["authorizer"] = {
        "claims": {"sub": "u1", "email": "user@example.com"},
    }
    return api_gateway_event


@pytest.fixture
def seeded_customer(customer_table):
    """Stored customer u1 -> cus_123 with an active snapshot."""
    item = {
        "userId": "u1",
        "stripeCustomerId": "cus_123",
        "email": "user@example.com",
        "createdAt": "2024-01-01T00:00:00+00:00",
        "subscriptionId": "sub_old",
        "status": "active",
        "priceId": "price_old",
        "currentPeriodStart": 1690000000,
        "currentPeriodEnd": 1692592000,
        "cancelAtPeriodEnd": False,
        "paymentMethod": {"brand": "visa", "last4": "4242"},
        "updatedAt": "2024-01-02T00:00:00+00:00",
    }
    customer_table.put_item(Item=item)
    return item


def make_subscription(**overrides) -> dict:
    """Stripe subscription as returned by subscriptions.list (expanded)."""
    subscription = {
        "id": "sub_123",
        "object": "subscription",
        "customer": "cus_123",
        "status": "active",
        "items": {
            "object": "list",
            "data": [{"id": "si_123", "price": {"id": "price_123"}}],
        },
        "current_period_start": 1700000000,
        "current_period_end": 1702592000,
        "cancel_at_period_end": False,
        "default_payment_method": {
            "id": "pm_123",
            "object": "payment_method",
            "card": {"brand": "visa", "last4": "4242"},
        },
    }
    subscription.update(overrides)
    return subscription


def make_stripe_event(event_type: str, obj: dict, event_id: str = "evt_123") -> dict:
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "created": 1700000000,
        "livemode": False,
        "data": {"object": obj},
    }


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a Stripe-Signature header for payload."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def lambda_payload(body: dict) -> MagicMock:
    """Streaming body as returned in a RequestResponse invoke."""
    stream = MagicMock()
    stream.read.return_value = json.dumps(body).encode("utf-8")
    return stream
