"""
e3d_commerce.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (e.g., JWT secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="E3D_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "e3d-commerce"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Auth
    jwt_alg: str = "HS256"
    jwt_issuer: str = "e3d-commerce"
    jwt_audience: str = "e3d-api"
    jwt_secret: str = Field(default="development-secret-do-not-use-in-production", repr=False)
    jwt_ttl_minutes: int = Field(default=7 * 24 * 60, ge=1)

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./e3d.db"

    # 3D assets (CDN in front of object storage)
    asset_base_url: str = "https://cdn.example.com/assets/models"
    draco_decoder_path: str = "/draco/"

    # Storefront pricing rules
    currency: str = "USD"
    shipping_rate: Decimal = Decimal("10.00")
    tax_rate: Decimal = Decimal("0.07")

    # Admin reporting
    low_stock_threshold: int = 5


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Every layer receives this object explicitly (app factory, services, seed script);
# nothing reads environment variables directly.
