import asyncio

import httpx
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from cache import ResultCache, utcnow
from errors import NetworkError, ValidationError
from events import EventSink, ValidationEvent, ValidationOutcome, log_event, logger
from models import AgentConfig, ValidationRequest, ValidationResult, Verdict

__version__ = "1.0.0"

VALIDATE_PATH = "/licenses/validate"
REVALIDATION_JOB_ID = "license_revalidation"


class LicenseAgent:
    """
    Validates one product/key pair against the license server.

    Keeps the last clean online answer in a single-slot cache. While it is
    fresh no request is made; once stale, a failed request falls back to the
    cached answer for as long as the grace period allows.
    """

    def __init__(
        self,
        config: AgentConfig,
        event_sinks: Optional[Sequence[EventSink]] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config = config
        self.cloud_api_url = config.server_url.rstrip("/")
        self.event_sinks = list(event_sinks) if event_sinks is not None else [log_event]
        self.cache = ResultCache(clock)
        self.scheduler = AsyncIOScheduler()
        self._clock = clock

    async def validate(self, metadata: Optional[Dict[str, Any]] = None) -> ValidationResult:
        """
        Validate the license, answering from cache while it is fresh.

        Never raises for network conditions; failures are reported through
        ``is_offline``, ``is_grace_period`` and ``error`` on the result.
        """
        now = self._clock()
        entry = self.cache.get()

        if self.cache.is_fresh(entry, self.config.cache_ttl, now):
            result = entry.result.model_copy()
            self._emit(ValidationOutcome.FRESH_CACHE, result, now)
            return result

        return await self._validate_remote(metadata, now)

    async def force_validate(self, metadata: Optional[Dict[str, Any]] = None) -> ValidationResult:
        """
        Validate against the server even if the cached answer is still fresh.

        Unlike clearing the cache and then validating, the cached answer is
        kept until the check succeeds, so a failed forced check still falls
        back to the grace period. Call ``clear_cache`` first to drop it.
        """
        return await self._validate_remote(metadata, self._clock())

    async def check_or_throw(self, metadata: Optional[Dict[str, Any]] = None) -> None:
        """
        Validate and raise if the license can't be used.

        Raises:
            NetworkError: the server was unreachable and no grace period applies.
            ValidationError: the license is invalid.
        """
        result = await self.validate(metadata)

        if result.is_valid:
            return

        # Grace period results are valid by construction; kept in case that changes
        if result.is_grace_period:
            return

        if isinstance(result.error, NetworkError):
            raise result.error

        raise ValidationError(
            result.reason or "License validation failed",
            reason=result.reason,
            status=result.status,
            expires_at=result.expires_at,
            allowed_data=result.allowed_data,
        )

    def clear_cache(self) -> None:
        self.cache.clear()

    async def _validate_remote(self, metadata: Optional[Dict[str, Any]], now: datetime) -> ValidationResult:
        try:
            verdict = await self._request_verdict(metadata)
        except (httpx.HTTPError, asyncio.TimeoutError, ValueError) as e:
            network_error = NetworkError("Failed to connect to license server", original_error=e)
            network_error.__cause__ = e
            outcome, result = self._offline_result(now, network_error)
            self._emit(outcome, result, now)
            return result

        result = ValidationResult.from_verdict(verdict, checked_at=now)
        self.cache.set(result)
        self._emit(ValidationOutcome.ONLINE_CHECK, result, now)
        return result

    async def _request_verdict(self, metadata: Optional[Dict[str, Any]]) -> Verdict:
        """
        POST the validation request and parse the server's verdict.

        Non-2xx responses and unparseable bodies raise like transport errors.
        The whole exchange is bounded by ``request_timeout``; httpx alone only
        bounds each phase.
        """
        merged = {**self.config.static_metadata, **(metadata or {})}
        request = ValidationRequest(
            license_key=self.config.secret_key,
            product_name=self.config.product_name,
            metadata=merged or None,
        )

        timeout = self.config.request_timeout.total_seconds()
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await asyncio.wait_for(
                client.post(
                    f"{self.cloud_api_url}{VALIDATE_PATH}",
                    json=request.model_dump(exclude_none=True),
                    headers={
                        "Content-Type": "application/json",
                        "X-API-Key": self.config.secret_key,
                    },
                ),
                timeout=timeout,
            )
            response.raise_for_status()
            return Verdict.model_validate(response.json())

    def _offline_result(self, now: datetime, error: NetworkError) -> Tuple[ValidationOutcome, ValidationResult]:
        entry = self.cache.get()

        if entry is None:
            return ValidationOutcome.NO_CACHE_OFFLINE, ValidationResult(
                is_valid=False,
                is_offline=True,
                reason="network_error_no_cache",
                error=error,
            )

        last = entry.result
        if last.is_valid and now - entry.timestamp < self.config.grace_period:
            return ValidationOutcome.GRACE_PERIOD, last.model_copy(update={
                "is_valid": True,
                "is_offline": True,
                "is_grace_period": True,
                "reason": "grace_period",
                "error": error,
            })

        return ValidationOutcome.EXPIRED_GRACE, last.model_copy(update={
            "is_valid": False,
            "is_offline": True,
            "is_grace_period": False,
            "reason": last.reason or "offline_validation_failed",
            "error": error,
        })

    def _emit(self, outcome: ValidationOutcome, result: ValidationResult, now: datetime) -> None:
        event = ValidationEvent(
            outcome=outcome,
            product_name=self.config.product_name,
            is_valid=result.is_valid,
            reason=result.reason,
            occurred_at=now,
            error=result.error,
        )
        for sink in self.event_sinks:
            try:
                sink(event)
            except Exception:
                logger.exception("Validation event sink %r failed", sink)

    def start_periodic_validation(self, interval: timedelta) -> None:
        """
        Revalidate in the background every ``interval``.

        Must be called from a running event loop.
        """
        if not self.scheduler.running:
            self.scheduler.add_job(
                self.validate,
                'interval',
                seconds=interval.total_seconds(),
                id=REVALIDATION_JOB_ID,
                replace_existing=True,
            )
            self.scheduler.start()

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
