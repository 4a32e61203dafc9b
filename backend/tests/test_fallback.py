"""Tests for the retry and fallback helpers."""
from __future__ import annotations

import asyncio

import pytest

from brandkit.services.fallback import (
    AdapterConfigurationError,
    AdapterError,
    call_with_retries,
    first_success,
)


@pytest.mark.anyio
async def test_first_success_returns_first_usable_result() -> None:
    calls: list[str] = []

    async def broken() -> str:
        calls.append("broken")
        raise ValueError("boom")

    async def empty() -> None:
        calls.append("empty")
        return None

    async def good() -> str:
        calls.append("good")
        return "ok"

    async def never() -> str:
        calls.append("never")
        return "unused"

    result = await first_success([broken, empty, good, never], operation="demo")

    assert result == "ok"
    assert calls == ["broken", "empty", "good"]


@pytest.mark.anyio
async def test_first_success_raises_when_all_fail() -> None:
    async def broken() -> str:
        raise ValueError("boom")

    with pytest.raises(AdapterError) as exc_info:
        await first_success([broken, broken], operation="demo")

    assert isinstance(exc_info.value.__cause__, ValueError)


@pytest.mark.anyio
async def test_first_success_stops_on_configuration_error() -> None:
    calls: list[str] = []

    async def unconfigured() -> str:
        calls.append("unconfigured")
        raise AdapterConfigurationError("missing key")

    async def good() -> str:
        calls.append("good")
        return "ok"

    with pytest.raises(AdapterConfigurationError):
        await first_success([unconfigured, good], operation="demo")
    assert calls == ["unconfigured"]


@pytest.mark.anyio
async def test_call_with_retries_retries_then_succeeds() -> None:
    attempts = {"count": 0}

    async def flaky() -> str:
        attempts["count"] += 1
        if attempts["count"] < 3:
            raise RuntimeError("transient")
        return "done"

    assert await call_with_retries(flaky, operation="demo", attempts=2) == "done"
    assert attempts["count"] == 3


@pytest.mark.anyio
async def test_call_with_retries_wraps_final_failure() -> None:
    async def broken() -> str:
        raise RuntimeError("still broken")

    with pytest.raises(AdapterError, match="demo failed: still broken"):
        await call_with_retries(broken, operation="demo", attempts=1)


@pytest.mark.anyio
async def test_call_with_retries_times_out() -> None:
    async def slow() -> str:
        await asyncio.sleep(1)
        return "late"

    with pytest.raises(AdapterError):
        await call_with_retries(slow, operation="demo", timeout=0.01)
