"""Application settings loaded from environment variables via pydantic-settings.

Values are read from, in priority order:

    1. Environment variables, e.g. ``YELP_CLIENT_ID=...``
    2. A ``.env`` file in the working directory (local development)
    3. The defaults declared below

Field ``yelp_client_id`` maps to env var ``YELP_CLIENT_ID`` and so on.
An empty credential string means "not configured": that provider is left
out of the credential mapping and never dispatched to.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from globalfood.models.places import DEFAULT_LIMIT, DEFAULT_PROVIDER_PRIORITY


class Settings(BaseSettings):
    """GlobalFood settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Provider credentials ===
    yelp_client_id: str = ""
    yelp_client_secret: str = ""
    foursquare_client_id: str = ""
    foursquare_client_secret: str = ""
    foursquare_version: str = ""  # API version date; adapter default when empty
    foursquare_mode: str = ""
    zomato_api_key: str = ""
    factual_key: str = ""
    factual_secret: str = ""

    # === Search behaviour ===
    provider_timeout_seconds: float = Field(default=5.0, gt=0)
    max_concurrency: int = Field(default=4, ge=0)  # 0 = unbounded
    dedup_distance_meters: float = Field(default=50.0, ge=0)
    dedup_name_similarity: float = Field(default=0.9, ge=0, le=1)
    # Comma-separated in the environment: PROVIDER_PRIORITY=zomato,yelp
    provider_priority: Annotated[list[str], NoDecode] = Field(default_factory=lambda: list(DEFAULT_PROVIDER_PRIORITY))
    default_limit: int = Field(default=DEFAULT_LIMIT, gt=0)

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    @field_validator("provider_priority", mode="before")
    @classmethod
    def _split_priority(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, (list, tuple)):
            return [str(part).strip().lower() for part in value if str(part).strip()]
        return value

    def to_credentials(self) -> dict[str, dict[str, str]]:
        """Return the nested credential mapping for every provider with any key set."""
        bundles = {
            "yelp": {
                "client_id": self.yelp_client_id,
                "client_secret": self.yelp_client_secret,
            },
            "foursquare": {
                "client_id": self.foursquare_client_id,
                "client_secret": self.foursquare_client_secret,
                "version": self.foursquare_version,
                "mode": self.foursquare_mode,
            },
            "zomato": {"api_key": self.zomato_api_key},
            "factual": {"key": self.factual_key, "secret": self.factual_secret},
        }
        credentials: dict[str, dict[str, str]] = {}
        for provider, bundle in bundles.items():
            present = {k: v for k, v in bundle.items() if v}
            if present:
                credentials[provider] = present
        return credentials

    def get_configured_providers(self) -> list[str]:
        """Return providers whose required keys are all non-empty."""
        providers: list[str] = []
        if self.yelp_client_id and self.yelp_client_secret:
            providers.append("yelp")
        if self.foursquare_client_id and self.foursquare_client_secret:
            providers.append("foursquare")
        if self.zomato_api_key:
            providers.append("zomato")
        if self.factual_key and self.factual_secret:
            providers.append("factual")
        return providers
