"""
Runtime configuration read from the Lambda environment.
"""

import os
from dataclasses import dataclass
from typing import Optional

from .constants import DEFAULT_CUSTOMER_INDEX, DEFAULT_CUSTOMER_TABLE


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    # CDK sets "" for unconfigured values; treat that as unset
    return os.environ.get(name) or default


@dataclass(frozen=True)
class Settings:
    customer_table: str = DEFAULT_CUSTOMER_TABLE
    customer_index: str = DEFAULT_CUSTOMER_INDEX
    stripe_price_id: Optional[str] = None
    app_url: str = ""
    sync_function_name: Optional[str] = None
    user_pool_id: Optional[str] = None
    stripe_secret_arn: Optional[str] = None
    stripe_webhook_secret_arn: Optional[str] = None
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            customer_table=_env("CUSTOMER_TABLE", DEFAULT_CUSTOMER_TABLE),
            customer_index=_env("CUSTOMER_INDEX", DEFAULT_CUSTOMER_INDEX),
            stripe_price_id=_env("STRIPE_PRICE_ID"),
            app_url=(_env("APP_URL", "") or "").rstrip("/"),
            sync_function_name=_env("STRIPE_SYNC_FUNCTION_NAME"),
            user_pool_id=_env("COGNITO_USER_POOL_ID"),
            stripe_secret_arn=_env("STRIPE_SECRET_ARN"),
            stripe_webhook_secret_arn=_env("STRIPE_WEBHOOK_SECRET_ARN"),
            stripe_secret_key=_env("STRIPE_SECRET_KEY"),
            stripe_webhook_secret=_env("STRIPE_WEBHOOK_SECRET"),
        )

    @property
    def success_url(self) -> str:
        return f"{self.app_url}/success"

    @property
    def cancel_url(self) -> str:
        return f"{self.app_url}/subscribe"

    @property
    def portal_return_url(self) -> str:
        return self.app_url
