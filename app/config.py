from functools import lru_cache
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

MYSHOPIFY_PATTERN = r"^[a-z0-9][a-z0-9-]*\.myshopify\.com$"

class Settings(BaseSettings):
    SHOPIFY_API_KEY: str | None = None
    SHOPIFY_API_SECRET: SecretStr | None = None
    SHOPIFY_SCOPES: str = "read_products"
    SHOPIFY_API_VERSION: str = "2025-01"
    SHOPIFY_SANITY_CHECK: bool = True
    SHOP_DOMAIN_PATTERN: str = MYSHOPIFY_PATTERN

    APP_URL: str = "http://localhost:8000"

    STATE_BACKEND: Literal["redis", "database", "cookie"] = "redis"
    STATE_TTL_SECONDS: int = 600
    REDIS_URL: str = "redis://localhost:6379/0"
    DATABASE_URL: str = "sqlite:///./oauth_state.db"
    COOKIE_SECURE: bool = True

    HTTP_TIMEOUT_SECONDS: float = 10.0
    LOG_LEVEL: str = "INFO"
    ENV: str = "dev"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    @property
    def redirect_uri(self) -> str:
        return f"{self.APP_URL.rstrip('/')}/auth/callback"

@lru_cache
def get_settings() -> Settings:
    return Settings()
