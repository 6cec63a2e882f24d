"""Stripe credential retrieval from Secrets Manager."""

import json
import logging
import time
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings
from .constants import SECRETS_CACHE_TTL

logger = logging.getLogger(__name__)

# Cached secret values keyed by secret ARN: arn -> (value, fetched_at)
_secret_cache: dict[str, tuple[str, float]] = {}


def _read_secret(secretsmanager, secret_arn: str, json_field: str) -> Optional[str]:
    """
    Read a secret, accepting either a JSON document or a plain string.

    JSON documents are expected to hold the value under json_field
    (e.g. {"key": "sk_live_..."}).
    """
    cached = _secret_cache.get(secret_arn)
    if cached and (time.time() - cached[1]) < SECRETS_CACHE_TTL:
        return cached[0]

    try:
        response = secretsmanager.get_secret_value(SecretId=secret_arn)
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Failed to retrieve secret {secret_arn}: {e}")
        return None

    secret_value = response.get("SecretString", "")
    try:
        secret_json = json.loads(secret_value)
        value = secret_json.get(json_field) if isinstance(secret_json, dict) else None
        value = value or secret_value
    except json.JSONDecodeError:
        value = secret_value

    if not value:
        return None

    _secret_cache[secret_arn] = (value, time.time())
    return value


def get_stripe_api_key(settings: Settings, secretsmanager) -> Optional[str]:
    """Stripe secret API key from Secrets Manager, else STRIPE_SECRET_KEY."""
    if settings.stripe_secret_arn:
        api_key = _read_secret(secretsmanager, settings.stripe_secret_arn, "key")
        if api_key:
            return api_key
    return settings.stripe_secret_key


def get_stripe_webhook_secret(settings: Settings, secretsmanager) -> Optional[str]:
    """Webhook signing secret from Secrets Manager, else STRIPE_WEBHOOK_SECRET."""
    if settings.stripe_webhook_secret_arn:
        secret = _read_secret(secretsmanager, settings.stripe_webhook_secret_arn, "secret")
        if secret:
            return secret
    return settings.stripe_webhook_secret


def clear_secret_cache() -> None:
    """Drop cached secrets. Used in tests for clean state."""
    _secret_cache.clear()
