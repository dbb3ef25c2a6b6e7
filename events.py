import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger("license_agent")


class ValidationOutcome(str, Enum):
    FRESH_CACHE = "fresh_cache"
    ONLINE_CHECK = "online_check"
    NO_CACHE_OFFLINE = "no_cache_offline"
    GRACE_PERIOD = "grace_period"
    EXPIRED_GRACE = "expired_grace"

    @property
    def is_remote_attempt(self) -> bool:
        return self is not ValidationOutcome.FRESH_CACHE


@dataclass(frozen=True)
class ValidationEvent:
    """One validation call, as seen by observers."""

    outcome: ValidationOutcome
    product_name: str
    is_valid: bool
    reason: Optional[str]
    occurred_at: datetime
    error: Optional[BaseException] = None


EventSink = Callable[[ValidationEvent], None]


def log_event(event: ValidationEvent) -> None:
    """Default sink: one log line per validation call."""
    if event.outcome is ValidationOutcome.FRESH_CACHE:
        logger.debug("License for %s answered from cache (valid=%s)", event.product_name, event.is_valid)
    elif event.outcome is ValidationOutcome.ONLINE_CHECK:
        logger.info(
            "License for %s checked online: valid=%s reason=%s",
            event.product_name, event.is_valid, event.reason,
        )
    elif event.outcome is ValidationOutcome.GRACE_PERIOD:
        logger.warning(
            "License server unreachable, %s running in grace period: %s",
            event.product_name, event.error,
        )
    else:
        logger.error(
            "License server unreachable and no usable cached license for %s (%s): %s",
            event.product_name, event.reason, event.error,
        )
