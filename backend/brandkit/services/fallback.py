"""Retry and ordered-fallback helpers shared by every provider adapter."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Strategy = Callable[[], Awaitable[T]]


class AdapterError(RuntimeError):
    """Raised when a provider call fails or returns unusable output."""


class AdapterConfigurationError(AdapterError):
    """Raised when a provider is not configured (missing credentials)."""


async def call_with_retries(
    task: Callable[[], Awaitable[T]],
    *,
    operation: str,
    attempts: int = 0,
    backoff_seconds: float = 0.0,
    timeout: float | None = None,
) -> T:
    """Run ``task`` with a timeout, retrying ``attempts`` extra times.

    Configuration errors are never retried.
    """

    last_error: Exception | None = None
    for attempt in range(attempts + 1):
        try:
            if timeout:
                return await asyncio.wait_for(task(), timeout=timeout)
            return await task()
        except AdapterConfigurationError:
            raise
        except Exception as exc:
            last_error = exc
            if attempt == attempts:
                break
            wait_seconds = backoff_seconds * (attempt + 1)
            logger.warning(
                "%s attempt %s failed, retrying",
                operation,
                attempt + 1,
                extra={"operation": operation, "retry_after_s": wait_seconds},
                exc_info=exc,
            )
            if wait_seconds > 0:
                await asyncio.sleep(wait_seconds)

    raise AdapterError(f"{operation} failed: {last_error}") from last_error


async def first_success(
    candidates: Sequence[Strategy[T]],
    *,
    operation: str,
) -> T:
    """Try each strategy in order and return the first result.

    A strategy fails by raising or by returning ``None``. When every
    strategy fails an :class:`AdapterError` chained to the last failure is
    raised.
    """

    if not candidates:
        raise AdapterError(f"{operation}: no strategies configured")

    last_error: Exception | None = None
    for index, candidate in enumerate(candidates):
        try:
            result = await candidate()
        except AdapterConfigurationError:
            raise
        except Exception as exc:
            last_error = exc
            logger.warning(
                "%s strategy %s failed",
                operation,
                index + 1,
                extra={"operation": operation, "strategy_index": index},
                exc_info=exc,
            )
            continue
        if result is not None:
            if index:
                logger.info(
                    "%s served by fallback strategy %s",
                    operation,
                    index + 1,
                    extra={"operation": operation, "strategy_index": index},
                )
            return result
        last_error = AdapterError(f"{operation}: strategy {index + 1} returned no result")

    raise AdapterError(f"{operation} failed after {len(candidates)} strategies") from last_error


__all__ = [
    "AdapterConfigurationError",
    "AdapterError",
    "Strategy",
    "call_with_retries",
    "first_success",
]
