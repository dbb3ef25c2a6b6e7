from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from models import ValidationResult


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntry:
    result: ValidationResult
    timestamp: datetime


class ResultCache:
    """
    Single-slot cache for the last clean online validation result.

    Entries never expire in place; freshness is decided by the reader.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._entry: Optional[CacheEntry] = None

    def set(self, result: ValidationResult) -> None:
        # Degraded answers must not refresh the slot
        if result.is_offline or result.is_grace_period:
            return
        self._entry = CacheEntry(result=result.model_copy(update={"error": None}), timestamp=self._clock())

    def get(self) -> Optional[CacheEntry]:
        return self._entry

    def clear(self) -> None:
        self._entry = None

    @staticmethod
    def is_fresh(entry: Optional[CacheEntry], ttl: timedelta, now: datetime) -> bool:
        return entry is not None and now - entry.timestamp < ttl
