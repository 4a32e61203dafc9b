"""Tests for image reference helpers."""
from __future__ import annotations

from types import SimpleNamespace

import httpx
import pytest

from conftest import inline
from brandkit.schemas.brand_kit import UrlImage
from brandkit.services.fallback import AdapterError
from brandkit.services.images import ensure_inline


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/gone.png":
        return httpx.Response(404)
    return httpx.Response(200, content=b"jpeg-bytes", headers={"content-type": "image/jpeg; q=1"})


@pytest.mark.anyio
async def test_ensure_inline_downloads_url_refs() -> None:
    async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as client:
        image = await ensure_inline(UrlImage(location="https://cdn.example.com/a.jpg"), client=client)

    assert image.mime_type == "image/jpeg"
    assert image.data == "anBlZy1ieXRlcw=="


@pytest.mark.anyio
async def test_ensure_inline_keeps_inline_refs() -> None:
    image = inline("logo")

    assert await ensure_inline(image) is image


@pytest.mark.anyio
async def test_ensure_inline_errors() -> None:
    async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as client:
        with pytest.raises(AdapterError):
            await ensure_inline(UrlImage(location="https://cdn.example.com/gone.png"), client=client)

    with pytest.raises(AdapterError, match="Unsupported image reference"):
        await ensure_inline(SimpleNamespace(kind="svg"))  # type: ignore[arg-type]
