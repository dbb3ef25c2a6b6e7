from datetime import timedelta
from typing import Any, Dict, Optional

from pydantic_settings import BaseSettings

from hardware_fingerprint import get_hardware_metadata
from models import AgentConfig


class Settings(BaseSettings):
    # License Server Configuration
    LICENSE_SERVER_URL: str = "http://localhost:4000/api"
    LICENSE_SECRET_KEY: str = ""
    LICENSE_PRODUCT_NAME: str = ""
    LICENSE_API_TIMEOUT: float = 10

    # Cache & Grace Period
    CACHE_TTL_SECONDS: int = 3600
    OFFLINE_GRACE_PERIOD_HOURS: int = 24

    # Background revalidation
    VALIDATION_INTERVAL_MINUTES: int = 60

    # Request metadata
    INCLUDE_HARDWARE_METADATA: bool = True

    # Audit trail of validation attempts
    RECORD_VALIDATION_ATTEMPTS: bool = False
    DATABASE_URL: str = "sqlite:///./license_agent.db"

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"


settings = Settings()


def build_agent_config(
    source: Settings = settings,
    static_metadata: Optional[Dict[str, Any]] = None,
) -> AgentConfig:
    """
    Build the agent's configuration from settings.

    Raises InvalidConfigError if the server URL, secret key or product name
    is missing.
    """
    metadata: Dict[str, Any] = {}
    if source.INCLUDE_HARDWARE_METADATA:
        metadata.update(get_hardware_metadata())
    metadata.update(static_metadata or {})

    return AgentConfig(
        server_url=source.LICENSE_SERVER_URL,
        secret_key=source.LICENSE_SECRET_KEY,
        product_name=source.LICENSE_PRODUCT_NAME,
        cache_ttl=timedelta(seconds=source.CACHE_TTL_SECONDS),
        grace_period=timedelta(hours=source.OFFLINE_GRACE_PERIOD_HOURS),
        request_timeout=timedelta(seconds=source.LICENSE_API_TIMEOUT),
        static_metadata=metadata,
    )
