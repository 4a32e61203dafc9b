"""Tests for the Gemini adapter against a stub client."""
from __future__ import annotations

import base64
import io
import json
from types import SimpleNamespace
from typing import Any, Callable

import pytest

from brandkit.core.config import Settings
from brandkit.schemas.brand_kit import InlineImage, Tone
from brandkit.services.fallback import AdapterConfigurationError, AdapterError
from brandkit.services.gemini import DEFAULT_TYPOGRAPHY, GeminiAdapter
from brandkit.services.images import PLACEHOLDER_PNG_BASE64

PNG_BYTES = base64.b64decode(PLACEHOLDER_PNG_BASE64)


def _image_response(data: bytes = PNG_BYTES) -> Any:
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type="image/png"), text=None)
    return SimpleNamespace(text=None, candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


def _text_response(text: str) -> Any:
    return SimpleNamespace(text=text, candidates=[])


class _StubModels:
    def __init__(self, handler: Callable[..., Any]) -> None:
        self._handler = handler
        self.calls: list[dict] = []

    async def generate_content(self, *, model: str, contents: Any, config: Any = None) -> Any:
        self.calls.append({"model": model, "contents": contents, "config": config})
        result = self._handler(model=model, contents=contents)
        if isinstance(result, Exception):
            raise result
        return result


class _StubGemini:
    def __init__(self, handler: Callable[..., Any]) -> None:
        self.models = _StubModels(handler)
        self.aio = SimpleNamespace(models=self.models)


def _adapter(handler: Callable[..., Any], **settings: Any) -> tuple[GeminiAdapter, _StubGemini]:
    client = _StubGemini(handler)
    values = {"provider_retry_attempts": 0, "gemini_api_key": None}
    values.update(settings)
    return GeminiAdapter(Settings(**values), client=client), client


@pytest.mark.anyio
async def test_missing_key_is_a_configuration_error() -> None:
    adapter = GeminiAdapter(Settings(gemini_api_key=None))

    with pytest.raises(AdapterConfigurationError):
        await adapter.generate_color_palette("coffee", "warm")


@pytest.mark.anyio
async def test_palette_is_normalised_and_truncated() -> None:
    payload = {"palette": ["#1a2b3c", "4d5e6f", "Sand #ABCDEF", "#000", "#ffffff", "#123456"]}
    adapter, _ = _adapter(lambda **_: _text_response(json.dumps(payload)))

    palette = await adapter.generate_color_palette("coffee", "warm")

    assert palette == ["#1A2B3C", "#4D5E6F", "#ABCDEF", "#000", "#FFFFFF"]


@pytest.mark.anyio
async def test_short_palette_is_an_error() -> None:
    adapter, _ = _adapter(lambda **_: _text_response(json.dumps({"palette": ["#111111"]})))

    with pytest.raises(AdapterError):
        await adapter.generate_color_palette("coffee", "warm")


@pytest.mark.anyio
async def test_typography_falls_back_to_second_model_then_default() -> None:
    def handler(*, model: str, contents: Any) -> Any:
        if model == "gemini-2.5-flash":
            return RuntimeError("overloaded")
        return _text_response(json.dumps({"headingFont": "Playfair Display", "bodyFont": "Lato"}))

    adapter, client = _adapter(handler)
    typography = await adapter.generate_typography("coffee", "warm")

    assert (typography.heading_font, typography.body_font) == ("Playfair Display", "Lato")
    assert [call["model"] for call in client.models.calls] == ["gemini-2.5-flash", "gemini-2.0-flash"]

    broken, _ = _adapter(lambda **_: RuntimeError("down"))
    assert await broken.generate_typography("coffee", "warm") == DEFAULT_TYPOGRAPHY


@pytest.mark.anyio
async def test_logo_variants_fall_back_to_primary() -> None:
    def handler(*, model: str, contents: Any) -> Any:
        if contents.startswith("Primary"):
            return _image_response()
        return _text_response("no image today")

    adapter, _ = _adapter(handler)
    logos = await adapter.generate_logo_variants("Solara", "coffee", "warm")

    assert logos.primary.kind == "inline"
    assert logos.secondary == logos.primary
    assert logos.submark == logos.primary


@pytest.mark.anyio
async def test_missing_primary_logo_uses_placeholder() -> None:
    adapter, _ = _adapter(lambda **_: RuntimeError("image model down"))

    logos = await adapter.generate_logo_variants("Solara", "coffee", "warm")

    assert logos.primary == InlineImage(data=PLACEHOLDER_PNG_BASE64)


@pytest.mark.anyio
async def test_imagery_count() -> None:
    adapter, client = _adapter(lambda **_: _image_response())

    images = await adapter.generate_brand_imagery("coffee", "warm", 3)

    assert len(images) == 3
    assert len(client.models.calls) == 3


@pytest.mark.anyio
async def test_social_backdrops_are_resized_per_platform() -> None:
    pytest.importorskip("PIL")
    from PIL import Image

    adapter, _ = _adapter(lambda **_: _image_response())

    backdrops = await adapter.generate_social_backdrops("Solara", "coffee", "warm")

    sizes = {
        backdrop.platform: Image.open(io.BytesIO(base64.b64decode(backdrop.image.data))).size
        for backdrop in backdrops
    }
    assert sizes == {"instagram": (1080, 1350), "tiktok": (1080, 1920), "linkedin": (1584, 396)}


@pytest.mark.anyio
async def test_ad_copy_from_json() -> None:
    payload = {"script": "[SFX: pour] VO: Fresh coffee.", "voiceover": "Fresh coffee, every day."}
    adapter, client = _adapter(lambda **_: _text_response(json.dumps(payload)))

    script, voiceover = await adapter.generate_ad_copy("Solara", "coffee", "warm", Tone.BOLD)

    assert script == payload["script"]
    assert voiceover == "Fresh coffee, every day."
    assert "Tone: bold" in client.models.calls[0]["contents"]


@pytest.mark.anyio
async def test_ad_copy_from_raw_text_is_sanitised() -> None:
    adapter, _ = _adapter(lambda **_: _text_response("NARRATOR: (warmly) Meet Solara."))

    script, voiceover = await adapter.generate_ad_copy("Solara", "coffee", "warm")

    assert script == "NARRATOR: (warmly) Meet Solara."
    assert voiceover == "Meet Solara."


@pytest.mark.anyio
async def test_video_prompt_echoes_script_on_failure() -> None:
    adapter, _ = _adapter(lambda **_: RuntimeError("down"))

    assert await adapter.generate_video_prompt("Solara", "Meet Solara.", "9:16") == "Meet Solara."


@pytest.mark.anyio
async def test_video_prompt_uses_safe_aspect_ratio() -> None:
    adapter, client = _adapter(lambda **_: _text_response("  Slow dolly over a coffee cup.  "))

    prompt = await adapter.generate_video_prompt("Solara", "Meet Solara.", "4:3")

    assert prompt == "Slow dolly over a coffee cup."
    assert "safe framing for 16:9" in client.models.calls[0]["contents"][0]


@pytest.mark.anyio
async def test_edit_image_returns_new_inline_image() -> None:
    edited_bytes = b"edited-png"
    adapter, client = _adapter(lambda **_: _image_response(edited_bytes))

    result = await adapter.edit_image(InlineImage(data=PLACEHOLDER_PNG_BASE64), "more contrast")

    assert base64.b64decode(result.data) == edited_bytes
    assert len(client.models.calls[0]["contents"]) == 2
