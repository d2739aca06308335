"""Runtime configuration for the ordering core.

Persistence is configured through Protean (``[tool.protean]`` in
pyproject.toml, overlaid by PROTEAN_ENV). Everything else the core needs,
mostly provider credentials, comes from environment variables and is read
once into an immutable Settings object that the application factory hands
to the components that need it.
"""

import os
from dataclasses import dataclass

from ordering.utils.logging import current_env


def _env(name: str, default: str | None = None) -> str | None:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value


@dataclass(frozen=True)
class Settings:
    env: str = "development"
    payment_gateway: str = "fake"
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    fulfillment_partner: str = "fake"
    printful_api_key: str | None = None
    printful_store_id: str | None = None
    printful_webhook_secret: str | None = None
    printful_base_url: str = "https://api.printful.com"
    provider_timeout_seconds: float = 30.0

    @property
    def is_production(self) -> bool:
        return self.env == "production"


def load_settings() -> Settings:
    """Build Settings from the current process environment."""
    return Settings(
        env=current_env(),
        payment_gateway=_env("PAYMENT_GATEWAY", "fake"),
        stripe_secret_key=_env("STRIPE_SECRET_KEY"),
        stripe_webhook_secret=_env("STRIPE_WEBHOOK_SECRET"),
        fulfillment_partner=_env("FULFILLMENT_PARTNER", "fake"),
        # PRINTFUL_API_TOKEN is the legacy name
        printful_api_key=_env("PRINTFUL_API_KEY") or _env("PRINTFUL_API_TOKEN"),
        printful_store_id=_env("PRINTFUL_STORE_ID"),
        printful_webhook_secret=_env("PRINTFUL_WEBHOOK_SECRET"),
        printful_base_url=_env("PRINTFUL_BASE_URL", "https://api.printful.com"),
        provider_timeout_seconds=float(_env("PROVIDER_TIMEOUT_SECONDS", "30")),
    )
