"""Per-caller daily run quota backed by an atomic counter store."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

DAY_SECONDS = 86400


class Admission(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"
    GUARD_FAILURE = "guard_failure"


@dataclass
class RateConfig:
    max_per_day: int = 2
    disabled: bool = False


class DailyCounter(Protocol):
    async def incr(self, key: str, ttl_seconds: int) -> int:
        """Atomically increment ``key`` and return the new count."""


class RedisDailyCounter:
    """INCR + EXPIRE on first hit, so every day key cleans itself up."""

    def __init__(self, redis: Any) -> None:
        self._redis = redis

    async def incr(self, key: str, ttl_seconds: int) -> int:
        count = int(await self._redis.incr(key))
        if count == 1:
            await self._redis.expire(key, ttl_seconds)
        return count


class InMemoryDailyCounter:
    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        # key -> (expires_at_epoch_s, count)
        self._buckets: dict[str, tuple[float, int]] = {}
        self._lock = asyncio.Lock()

    async def incr(self, key: str, ttl_seconds: int) -> int:
        async with self._lock:
            now = self._clock()
            expires_at, count = self._buckets.get(key, (now + ttl_seconds, 0))
            if now >= expires_at:
                expires_at, count = now + ttl_seconds, 0
            count += 1
            self._buckets[key] = (expires_at, count)
            return count


class RateGuard:
    """Admit at most ``max_per_day`` runs per caller per UTC calendar day."""

    def __init__(
        self,
        counter: DailyCounter | None,
        config: RateConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._counter = counter
        self._config = config or RateConfig()
        self._clock = clock

    def day_key(self, caller_key: str) -> str:
        day = datetime.fromtimestamp(self._clock(), tz=timezone.utc).strftime("%Y%m%d")
        return f"runs:{caller_key}:{day}"

    async def admit(self, caller_key: str) -> Admission:
        if self._config.disabled or self._counter is None:
            return Admission.ALLOWED

        key = self.day_key(caller_key)
        try:
            count = await self._counter.incr(key, DAY_SECONDS)
        except Exception:
            logger.exception("Rate guard counter failed", extra={"guard_key": key})
            return Admission.GUARD_FAILURE

        if count > self._config.max_per_day:
            logger.info(
                "Run quota exhausted",
                extra={"guard_key": key, "count": count},
            )
            return Admission.DENIED
        return Admission.ALLOWED


def caller_key_from_request(request: Any) -> str:
    forwarded = request.headers.get("x-forwarded-for") or ""
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    client = getattr(request, "client", None)
    if client is not None and client.host:
        return client.host
    return "unknown"


__all__ = [
    "Admission",
    "DailyCounter",
    "InMemoryDailyCounter",
    "RateConfig",
    "RateGuard",
    "RedisDailyCounter",
    "caller_key_from_request",
]
