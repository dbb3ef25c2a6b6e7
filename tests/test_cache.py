"""Tests for the single-slot result cache."""

from datetime import timedelta

from cache import ResultCache
from errors import NetworkError
from models import ValidationResult


def test_set_stores_clean_online_result(clock) -> None:
    cache = ResultCache(clock)
    result = ValidationResult(is_valid=True, reason="valid", last_checked_at=clock())

    cache.set(result)

    entry = cache.get()
    assert entry is not None
    assert entry.result == result
    assert entry.timestamp == clock()


def test_set_ignores_degraded_results(clock) -> None:
    cache = ResultCache(clock)
    error = NetworkError("down")

    cache.set(ValidationResult(is_valid=False, is_offline=True, reason="network_error_no_cache", error=error))
    cache.set(ValidationResult(is_valid=True, is_offline=True, is_grace_period=True, error=error))

    assert cache.get() is None


def test_set_overwrites_previous_entry(clock) -> None:
    cache = ResultCache(clock)
    cache.set(ValidationResult(is_valid=True, reason="valid"))
    clock.advance(timedelta(seconds=3))

    cache.set(ValidationResult(is_valid=False, reason="revoked"))

    entry = cache.get()
    assert entry.result.reason == "revoked"
    assert entry.timestamp == clock()


def test_clear_empties_the_slot(clock) -> None:
    cache = ResultCache(clock)
    cache.set(ValidationResult(is_valid=True))

    cache.clear()

    assert cache.get() is None


def test_is_fresh_compares_age_against_ttl(clock) -> None:
    cache = ResultCache(clock)
    cache.set(ValidationResult(is_valid=True))
    entry = cache.get()
    ttl = timedelta(seconds=10)

    assert ResultCache.is_fresh(entry, ttl, clock() + timedelta(seconds=9))
    assert not ResultCache.is_fresh(entry, ttl, clock() + timedelta(seconds=10))
    assert not ResultCache.is_fresh(None, ttl, clock())
