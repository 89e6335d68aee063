"""Day-scoped availability cache.

Entries are keyed ``<prefix>:<YYYY-MM-DD>:<suffix>``. Every key written for a
day is recorded in that day's registry so the whole day can be dropped at
once after a booking is created or cancelled.
"""

from __future__ import annotations

from typing import Any, Callable, List

from django.conf import settings  # type: ignore
from django.core.cache import cache  # type: ignore

INVALIDATED_PREFIXES = ("availability", "bookings")


def _registry_key(date_key: str) -> str:
    return f"cache-keys:{date_key}"


def build_key(date_key: str, suffix: str, prefix: str = "availability") -> str:
    return f"{prefix}:{date_key}:{suffix}"


def _register_cache_key(date_key: str, key: str) -> None:
    registry = _registry_key(date_key)
    keys: List[str] | None = cache.get(registry)
    if keys is None:
        cache.set(registry, [key], None)
        return
    if key in keys:
        return
    keys.append(key)
    cache.set(registry, keys, None)


def remember(
    date_key: str,
    suffix: str,
    builder: Callable[[], Any],
    timeout: int | None = None,
    prefix: str = "availability",
) -> Any:
    """Return the cached value for the day, building and storing it on a miss."""
    key = build_key(date_key, suffix, prefix)
    cached = cache.get(key)
    if cached is not None:
        return cached

    result = builder()
    if timeout is None:
        timeout = getattr(settings, "AVAILABILITY_CACHE_TIMEOUT", 60)
    cache.set(key, result, timeout)
    _register_cache_key(date_key, key)
    return result


def invalidate_date(date_key: str) -> int:
    """Drop every availability and bookings entry of the day. Returns how many keys went."""
    registry = _registry_key(date_key)
    prefixes = tuple(f"{prefix}:{date_key}:" for prefix in INVALIDATED_PREFIXES)
    keys = [key for key in (cache.get(registry) or []) if key.startswith(prefixes)]
    if keys:
        cache.delete_many(keys)
    cache.delete(registry)
    return len(keys)


__all__ = [
    "build_key",
    "invalidate_date",
    "remember",
]
