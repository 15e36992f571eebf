"""Configuration settings for bots built on palaver."""

from functools import lru_cache
from typing import Any

from pydantic import ConfigDict
from pydantic_settings import BaseSettings

# Keys whose values are masked by `Settings.public_dict`
SECRET_FIELDS = {"microsoft_app_password", "qna_endpoint_key"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = ConfigDict(
        env_prefix="PALAVER_",
        env_file=".env",
        extra="ignore",
    )

    # Environment
    env: str = "development"
    log_level: str = "INFO"
    service_name: str = "palaver"

    # Bot Framework credentials (empty app id disables authentication)
    microsoft_app_id: str = ""
    microsoft_app_password: str = ""
    channel_auth_tenant: str = ""
    oauth_scope: str = ""

    # State storage
    storage: str = "memory"  # memory | redis
    redis_url: str = "redis://localhost:6379"
    storage_prefix: str = "palaver:state:"
    state_ttl: int | None = None

    # Dialogs
    default_locale: str = "en-us"

    # QnA Maker
    qna_knowledge_base_id: str = ""
    qna_endpoint_key: str = ""
    qna_host: str = ""

    # HTTP server
    api_host: str = "0.0.0.0"
    api_port: int = 3978

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.env == "production"

    @property
    def auth_enabled(self) -> bool:
        """Authentication is enabled once an app id is configured."""
        return bool(self.microsoft_app_id)

    @property
    def qna_configured(self) -> bool:
        return bool(self.qna_knowledge_base_id and self.qna_endpoint_key and self.qna_host)

    def public_dict(self) -> dict[str, Any]:
        """Settings as a dict with secrets masked."""
        values = self.model_dump()
        for key in SECRET_FIELDS:
            if values.get(key):
                values[key] = "********"
        return values


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
