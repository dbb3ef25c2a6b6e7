from datetime import datetime
from typing import Any, Optional


class LicenseAgentError(Exception):
    """Base class for every error raised by the license agent."""

    kind = "agent"


class InvalidConfigError(LicenseAgentError):
    kind = "config"

    def __init__(self, message: str = "Invalid agent configuration"):
        super().__init__(message)


class NetworkError(LicenseAgentError):
    """
    The license server could not be reached or gave an unusable answer.

    The underlying transport error is kept on ``original_error``.
    """

    kind = "network"

    def __init__(self, message: str = "Network error occurred", original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.original_error = original_error


class ValidationError(LicenseAgentError):
    """
    The license server (or the last cached answer) says the license is invalid.
    """

    kind = "validation"

    def __init__(
        self,
        message: str,
        reason: Optional[str] = None,
        status: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        allowed_data: Any = None,
    ):
        super().__init__(message)
        self.reason = reason
        self.status = status
        self.expires_at = expires_at
        self.allowed_data = allowed_data
