from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_LEGACY_OWNER_FIELDS = "userId,userEmail,email,ownerEmail,user_id,owner_id"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = Field(default="E-Waiter Device Authorization", alias="APP_NAME")
    database_url: str = Field(alias="DATABASE_URL")
    jwt_secret: str = Field(alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    auth_flow: Literal["registry", "session"] = Field(default="session", alias="AUTH_FLOW")
    tenant_collection: str = Field(default="Restaurants", alias="TENANT_COLLECTION")
    legacy_owner_fields: str = Field(default=DEFAULT_LEGACY_OWNER_FIELDS, alias="LEGACY_OWNER_FIELDS")
    device_scan_timeout_seconds: float = Field(default=3.0, alias="DEVICE_SCAN_TIMEOUT_SECONDS")
    identity_provider: Literal["local", "http"] = Field(default="local", alias="IDENTITY_PROVIDER")
    identity_provider_url: str | None = Field(default=None, alias="IDENTITY_PROVIDER_URL")
    identity_timeout_seconds: int = Field(default=10, alias="IDENTITY_TIMEOUT_SECONDS")
    rate_limit_login_per_minute: int = Field(default=10, alias="RATE_LIMIT_LOGIN_PER_MINUTE")
    allow_insecure_http: bool = Field(default=False, alias="ALLOW_INSECURE_HTTP")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    admin_token: str | None = Field(default=None, alias="ADMIN_TOKEN")

    @property
    def legacy_owner_field_list(self) -> list[str]:
        return [item.strip() for item in self.legacy_owner_fields.split(",") if item.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
