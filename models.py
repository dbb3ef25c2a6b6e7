from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from errors import InvalidConfigError

DEFAULT_CACHE_TTL = timedelta(hours=1)
DEFAULT_GRACE_PERIOD = timedelta(hours=24)
DEFAULT_REQUEST_TIMEOUT = timedelta(seconds=10)

_DATETIME = TypeAdapter(datetime)


class AgentConfig(BaseModel):
    """
    Immutable configuration of a single license agent.

    ``secret_key`` is sent both as the ``license_key`` of every request and as
    the ``X-API-Key`` header.
    """

    model_config = ConfigDict(frozen=True)

    server_url: Optional[str] = None
    secret_key: Optional[str] = None
    product_name: Optional[str] = None
    cache_ttl: timedelta = DEFAULT_CACHE_TTL
    grace_period: timedelta = DEFAULT_GRACE_PERIOD
    request_timeout: timedelta = DEFAULT_REQUEST_TIMEOUT
    static_metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _require_connection_fields(self) -> "AgentConfig":
        missing = [
            name
            for name in ("server_url", "secret_key", "product_name")
            if not (getattr(self, name) or "").strip()
        ]
        if missing:
            # Not a ValueError, so pydantic lets it through unwrapped
            raise InvalidConfigError(f"{', '.join(missing)} required")
        return self


class ValidationRequest(BaseModel):
    license_key: str
    product_name: str
    metadata: Optional[Dict[str, Any]] = None


class Verdict(BaseModel):
    """Response body of the license server's validation route."""

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    status: Optional[str] = None
    reason: Optional[str] = None
    expires_at: Optional[datetime] = None
    allowed_data: Any = None

    @field_validator("expires_at", mode="before")
    @classmethod
    def _lenient_expiry(cls, value: Any) -> Optional[datetime]:
        # A missing or unreadable expiry doesn't invalidate the server's answer
        if not value:
            return None
        try:
            return _DATETIME.validate_python(value)
        except PydanticValidationError:
            return None


class ValidationResult(BaseModel):
    """
    What the agent answers for one validation call.

    ``is_offline`` and ``is_grace_period`` stay ``None`` on a clean online
    answer. ``is_grace_period`` implies ``is_offline``, and an offline result
    always carries the ``NetworkError`` that caused it.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    is_valid: bool
    is_offline: Optional[bool] = None
    is_grace_period: Optional[bool] = None
    reason: Optional[str] = None
    status: Optional[str] = None
    expires_at: Optional[datetime] = None
    allowed_data: Any = None
    error: Optional[Exception] = None
    last_checked_at: Optional[datetime] = None

    @classmethod
    def from_verdict(cls, verdict: Verdict, checked_at: datetime) -> "ValidationResult":
        return cls(
            is_valid=verdict.is_valid,
            reason=verdict.reason,
            status=verdict.status,
            expires_at=verdict.expires_at,
            allowed_data=verdict.allowed_data,
            last_checked_at=checked_at,
        )


# HTTP service models

class ValidateRequest(BaseModel):
    metadata: Optional[Dict[str, Any]] = None


class ErrorInfo(BaseModel):
    type: str
    message: str


class LicenseValidationResponse(BaseModel):
    isValid: bool
    isOffline: Optional[bool] = None
    isGracePeriod: Optional[bool] = None
    reason: Optional[str] = None
    status: Optional[str] = None
    expiresAt: Optional[datetime] = None
    allowedData: Any = None
    error: Optional[ErrorInfo] = None
    lastCheckedAt: Optional[datetime] = None

    @classmethod
    def from_result(cls, result: ValidationResult) -> "LicenseValidationResponse":
        error = None
        if result.error is not None:
            error = ErrorInfo(type=type(result.error).__name__, message=str(result.error))
        return cls(
            isValid=result.is_valid,
            isOffline=result.is_offline,
            isGracePeriod=result.is_grace_period,
            reason=result.reason,
            status=result.status,
            expiresAt=result.expires_at,
            allowedData=result.allowed_data,
            error=error,
            lastCheckedAt=result.last_checked_at,
        )


class LicenseCheckResponse(BaseModel):
    valid: bool


class CacheClearResponse(BaseModel):
    success: bool
    message: str


class HealthCheckResponse(BaseModel):
    status: str
    service: str
    version: str
    productName: Optional[str] = None
    hardwareId: Optional[str] = None
