"""Gemini-backed adapters for the visual identity, ad copy and image edits."""
from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, List, Optional, Sequence

from google import genai
from google.genai import types

from brandkit.core.config import Settings
from brandkit.schemas.brand_kit import (
    BACKDROP_SIZES,
    PALETTE_SIZE,
    AspectRatio,
    InlineImage,
    LogoVariants,
    SocialBackdrop,
    Tone,
    Typography,
)
from brandkit.services.fallback import (
    AdapterConfigurationError,
    AdapterError,
    call_with_retries,
    first_success,
)
from brandkit.services.images import (
    decode_image,
    encode_image,
    placeholder_image,
    resize_to_cover,
)
from brandkit.services.voiceover_text import to_voiceover_text

logger = logging.getLogger(__name__)

DEFAULT_TYPOGRAPHY = Typography(heading_font="Inter", body_font="Inter")
VIDEO_ASPECT_RATIOS: frozenset[str] = frozenset({"16:9", "9:16", "1:1"})

_HEX_COLOUR = re.compile(r"#[0-9a-fA-F]{6}\b|#[0-9a-fA-F]{3}\b")
_BARE_HEX = re.compile(r"[0-9a-fA-F]{6}")

_BACKDROP_HINTS = {
    "instagram": "portrait 4:5 feed post background",
    "tiktok": "tall 9:16 vertical video background",
    "linkedin": "wide banner background with calm negative space",
}


def create_gemini_client(settings: Settings) -> genai.Client:
    """Build a Gemini client from settings; raises when no key is configured."""

    if not settings.gemini_api_key:
        raise AdapterConfigurationError("Gemini not configured. Set GEMINI_API_KEY.")
    return genai.Client(
        api_key=settings.gemini_api_key,
        http_options=types.HttpOptions(timeout=int(settings.provider_request_timeout * 1000)),
    )


class GeminiAdapter:
    """Wrap Gemini calls and normalise their output to plain values."""

    def __init__(self, settings: Settings, *, client: Any | None = None) -> None:
        self._settings = settings
        self._client = client

    # -- visual identity -------------------------------------------------

    async def generate_logo_variants(
        self, name: str, description: str, keywords: str
    ) -> LogoVariants:
        common = (
            f"Brand: {name}. About: {description}. Vibe: {keywords}. Clean vector aesthetic, "
            "flat 2D, high contrast, no text, no watermark, centered on neutral #f0f0f0 background."
        )
        prompts = {
            "primary": f"Primary logo mark. {common} Balanced symbol suitable as main mark.",
            "secondary": (
                f"Secondary logo mark. {common} Alternate lockup or simplified variation "
                "that complements the primary."
            ),
            "submark": (
                f"Submark logo. {common} Monogram/circular badge variant derived from the primary mark."
            ),
        }
        self._get_client()
        results = await asyncio.gather(
            *(self._image_with_fallback(prompt, operation=f"logo_{variant}") for variant, prompt in prompts.items()),
            return_exceptions=True,
        )
        primary, secondary, submark = (
            result if isinstance(result, InlineImage) else None for result in results
        )
        if primary is None:
            logger.warning("No primary logo returned, using placeholder", extra={"operation": "logo_primary"})
            primary = placeholder_image()
        return LogoVariants(
            primary=primary,
            secondary=secondary or primary,
            submark=submark or primary,
        )

    async def generate_color_palette(self, description: str, keywords: str) -> List[str]:
        prompt = (
            f'Generate a {PALETTE_SIZE}-color brand palette for a brand described as "{description}". '
            f"The vibe should be {keywords}. The colors should be modern and complementary. "
            "Use hex codes."
        )
        schema = {
            "type": "OBJECT",
            "properties": {"palette": {"type": "ARRAY", "items": {"type": "STRING"}}},
        }
        payload = await self._json(prompt, schema=schema, operation="color_palette")
        colours = [str(item).strip() for item in (payload or {}).get("palette") or [] if str(item).strip()]
        if len(colours) < PALETTE_SIZE:
            raise AdapterError(
                f"color_palette returned {len(colours)} colours, expected {PALETTE_SIZE}"
            )
        return [_normalise_colour(colour) for colour in colours[:PALETTE_SIZE]]

    async def generate_typography(self, description: str, keywords: str) -> Typography:
        prompt = (
            "Suggest a heading font and a body font pairing from Google Fonts for a brand "
            f'described as "{description}". The vibe is {keywords}. The fonts should be highly '
            "readable and web-safe."
        )
        schema = {
            "type": "OBJECT",
            "properties": {"headingFont": {"type": "STRING"}, "bodyFont": {"type": "STRING"}},
        }

        def _attempt(model: str):
            async def run() -> Optional[Typography]:
                payload = await self._json(prompt, schema=schema, operation="typography", model=model)
                heading = str((payload or {}).get("headingFont") or "").strip()
                body = str((payload or {}).get("bodyFont") or "").strip()
                if not heading or not body:
                    return None
                return Typography(heading_font=heading, body_font=body)

            return run

        async def _default() -> Typography:
            return DEFAULT_TYPOGRAPHY

        return await first_success(
            [
                _attempt(self._settings.gemini_text_model),
                _attempt(self._settings.gemini_text_fallback_model),
                _default,
            ],
            operation="typography",
        )

    async def generate_brand_imagery(
        self, description: str, keywords: str, count: int = 2
    ) -> List[InlineImage]:
        prompt = (
            "An abstract, high-quality background image suitable for a brand website. "
            f"The brand is about: {description}. The mood should be {keywords}. "
            "Photorealistic, subtle, professional."
        )
        images = await asyncio.gather(
            *(self._image(prompt, operation="brand_imagery") for _ in range(max(1, count)))
        )
        return list(images)

    async def generate_social_backdrops(
        self, name: str, description: str, keywords: str
    ) -> List[SocialBackdrop]:
        async def _one(platform: str) -> SocialBackdrop:
            width, height = BACKDROP_SIZES[platform]
            prompt = (
                f"Social media {_BACKDROP_HINTS[platform]} for the brand {name}. "
                f"The brand is about: {description}. Mood: {keywords}. "
                "No text, no logos, leave room for overlay copy."
            )
            raw = await self._image(prompt, operation=f"backdrop_{platform}")
            resized = await asyncio.to_thread(resize_to_cover, raw, width, height)
            return SocialBackdrop(platform=platform, image=resized)

        return list(await asyncio.gather(*(_one(platform) for platform in BACKDROP_SIZES)))

    # -- copy ------------------------------------------------------------

    async def generate_ad_copy(
        self, name: str, description: str, keywords: str, tone: Tone | str = Tone.FRIENDLY
    ) -> tuple[str, str]:
        """Return ``(script, voiceover)``; voiceover is non-empty when script is."""

        tone_value = tone.value if isinstance(tone, Tone) else (tone or Tone.FRIENDLY.value)
        prompt = (
            f"Create a 15-25 second radio ad for {name}. Return JSON with two fields: script "
            "(with brief SFX/stage directions and labels) and voiceover (plain sentences only, "
            "no labels, no SFX, no quotes, ready for TTS). Focus on one key benefit and a clear "
            f"CTA. Brand: {description}. Vibe: {keywords}. Tone: {tone_value}."
        )
        schema = {
            "type": "OBJECT",
            "properties": {"script": {"type": "STRING"}, "voiceover": {"type": "STRING"}},
        }
        raw = await self._text(prompt, operation="ad_copy", schema=schema)
        try:
            payload = json.loads(raw)
            if not isinstance(payload, dict):
                raise ValueError("ad copy payload is not an object")
            script = str(payload.get("script") or "").strip()
            voiceover = str(payload.get("voiceover") or "").strip()
        except ValueError:
            logger.warning("Ad copy was not valid JSON, using raw text", extra={"operation": "ad_copy"})
            script, voiceover = raw.strip(), ""
        if script and not voiceover:
            voiceover = to_voiceover_text(script)
        return script, voiceover

    async def generate_video_prompt(
        self, name: str, script: str, aspect_ratio: AspectRatio | str = "16:9"
    ) -> str:
        ratio = aspect_ratio if aspect_ratio in VIDEO_ASPECT_RATIOS else "16:9"
        instructions = (
            "Create a concise, production-ready single prompt for an AI video generator.\n"
            "Return ONLY the prompt text, no quotes or formatting.\n"
            "Keep it under 600 characters.\n"
            "Include: high-level visual style, subject/action, camera motion, pacing, mood, "
            f"color cues, and safe framing for {ratio}.\n"
            "If brand name is provided, tastefully weave it as on-screen text cues without quotes."
        )
        contents = [instructions, f"Brand: {name or 'Acme'}", f"Ad script: {script}"]

        async def _crafted() -> Optional[str]:
            text = await self._text(contents, operation="video_prompt")
            return text.strip() or None

        async def _echo() -> str:
            return script

        return await first_success([_crafted, _echo], operation="video_prompt")

    # -- edits -----------------------------------------------------------

    async def edit_image(self, image: InlineImage, instruction: str) -> InlineImage:
        contents = [
            types.Part.from_bytes(data=decode_image(image), mime_type=image.mime_type),
            types.Part.from_text(
                text=f"Edit the image based on this instruction: {instruction}. "
                "Keep overall composition and quality."
            ),
        ]
        return await self._image(contents, operation="edit_image")

    # -- plumbing --------------------------------------------------------

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = create_gemini_client(self._settings)
        return self._client

    async def _generate(self, *, model: str, contents: Any, config: Any, operation: str) -> Any:
        client = self._get_client()
        return await call_with_retries(
            lambda: client.aio.models.generate_content(model=model, contents=contents, config=config),
            operation=operation,
            attempts=self._settings.provider_retry_attempts,
            backoff_seconds=self._settings.provider_retry_backoff_seconds,
            timeout=self._settings.provider_request_timeout,
        )

    async def _image(
        self, contents: Any, *, operation: str, model: str | None = None
    ) -> InlineImage:
        response = await self._generate(
            model=model or self._settings.gemini_image_model,
            contents=contents,
            config=types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"]),
            operation=operation,
        )
        image = _extract_image(response)
        if image is None:
            raise AdapterError(f"{operation}: no image data returned")
        return image

    async def _image_with_fallback(self, prompt: str, *, operation: str) -> InlineImage:
        models = _unique([self._settings.gemini_image_model, self._settings.gemini_image_fallback_model])
        return await first_success(
            [
                (lambda model=model: self._image(prompt, operation=operation, model=model))
                for model in models
            ],
            operation=operation,
        )

    async def _text(
        self,
        contents: Any,
        *,
        operation: str,
        schema: dict | None = None,
        model: str | None = None,
    ) -> str:
        config = None
        if schema is not None:
            config = types.GenerateContentConfig(
                response_mime_type="application/json", response_schema=schema
            )
        response = await self._generate(
            model=model or self._settings.gemini_text_model,
            contents=contents,
            config=config,
            operation=operation,
        )
        return _extract_text(response)

    async def _json(
        self, prompt: str, *, schema: dict, operation: str, model: str | None = None
    ) -> dict | None:
        text = await self._text(prompt, operation=operation, schema=schema, model=model)
        if not text:
            return None
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise AdapterError(f"{operation}: could not parse JSON response") from exc
        return payload if isinstance(payload, dict) else None


def _extract_image(response: Any) -> InlineImage | None:
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            data = getattr(inline, "data", None) if inline else None
            if not data:
                continue
            mime_type = getattr(inline, "mime_type", None) or "image/png"
            if isinstance(data, str):
                return InlineImage(data=data, mime_type=mime_type)
            return encode_image(data, mime_type=mime_type)
    return None


def _extract_text(response: Any) -> str:
    text = getattr(response, "text", None)
    if text:
        return str(text)
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            if getattr(part, "text", None):
                return str(part.text)
    return ""


def _normalise_colour(value: str) -> str:
    if _BARE_HEX.fullmatch(value):
        return f"#{value.upper()}"
    match = _HEX_COLOUR.search(value)
    if not match:
        return value
    return match.group(0).upper()


def _unique(values: Sequence[str]) -> List[str]:
    seen: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


__all__ = ["DEFAULT_TYPOGRAPHY", "GeminiAdapter", "VIDEO_ASPECT_RATIOS", "create_gemini_client"]
