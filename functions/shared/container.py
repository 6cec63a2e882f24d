"""
Composition root.

Builds the clients and components once per Lambda execution environment and
hands them to handlers. Components only see what they were constructed with.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import stripe

from .aws_clients import get_cognito_idp, get_dynamodb, get_lambda, get_secretsmanager
from .billing_utils import get_stripe_api_key
from .config import Settings
from .customer_directory import CustomerDirectory
from .dispatch import SyncInvoker
from .identity_provider import CognitoIdentityProvider
from .reconciler import SubscriptionReconciler
from .stripe_billing import StripeBilling

logger = logging.getLogger(__name__)


@dataclass
class Dependencies:
    settings: Settings
    secretsmanager: object
    directory: CustomerDirectory
    billing: Optional[StripeBilling] = None
    identity: Optional[CognitoIdentityProvider] = None
    invoker: Optional[SyncInvoker] = None
    reconciler: Optional[SubscriptionReconciler] = None
    stripe_api_key: Optional[str] = None


def build_dependencies(settings: Optional[Settings] = None) -> Dependencies:
    """Wire every component from settings and the shared AWS clients."""
    settings = settings or Settings.from_env()
    secretsmanager = get_secretsmanager()

    directory = CustomerDirectory(
        get_dynamodb().Table(settings.customer_table),
        settings.customer_index,
    )

    billing = None
    api_key = get_stripe_api_key(settings, secretsmanager)
    if api_key:
        billing = StripeBilling(stripe.StripeClient(api_key))
    else:
        logger.error("Stripe API key not configured")

    identity = None
    if settings.user_pool_id:
        identity = CognitoIdentityProvider(get_cognito_idp(), settings.user_pool_id)

    invoker = None
    if settings.sync_function_name:
        invoker = SyncInvoker(get_lambda(), settings.sync_function_name)

    reconciler = None
    if billing is not None:
        reconciler = SubscriptionReconciler(directory, billing, identity)

    return Dependencies(
        settings=settings,
        secretsmanager=secretsmanager,
        directory=directory,
        billing=billing,
        identity=identity,
        invoker=invoker,
        reconciler=reconciler,
        stripe_api_key=api_key,
    )


_dependencies: Optional[Dependencies] = None


def get_dependencies() -> Dependencies:
    """
    Dependencies for this execution environment, built on first use.

    A build without Stripe credentials is not kept, so a transient Secrets
    Manager failure does not stick for the life of the container. Once the
    cached secret expires, a rotated API key triggers a rebuild.
    """
    global _dependencies
    if _dependencies is None or _dependencies.billing is None:
        _dependencies = build_dependencies()
        return _dependencies

    # A failed secret read keeps the current client
    api_key = get_stripe_api_key(_dependencies.settings, _dependencies.secretsmanager)
    if api_key and api_key != _dependencies.stripe_api_key:
        logger.info("Stripe API key changed, rebuilding dependencies")
        _dependencies = build_dependencies(_dependencies.settings)
    return _dependencies


def reset_dependencies() -> None:
    """Drop the cached dependencies. Used in tests for clean state."""
    global _dependencies
    _dependencies = None
