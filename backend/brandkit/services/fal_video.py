"""fal.ai adapter for short ad videos."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from brandkit.core.config import Settings
from brandkit.schemas.brand_kit import BrandVideo
from brandkit.services.fallback import AdapterConfigurationError, AdapterError, call_with_retries
from brandkit.services.gemini import VIDEO_ASPECT_RATIOS

logger = logging.getLogger(__name__)


class FalVideoAdapter:
    def __init__(
        self, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        self._settings = settings
        self._transport = transport

    async def generate_ad_video(self, prompt: str, aspect_ratio: str = "16:9") -> BrandVideo:
        if not self._settings.fal_ai_key:
            raise AdapterConfigurationError("FAL not configured. Set FAL_AI_KEY.")
        if not prompt:
            raise AdapterError("Missing video prompt")
        ratio = aspect_ratio if aspect_ratio in VIDEO_ASPECT_RATIOS else "16:9"

        async with httpx.AsyncClient(
            base_url=self._settings.fal_base_url,
            headers={"Authorization": f"Key {self._settings.fal_ai_key}"},
            timeout=max(self._settings.provider_request_timeout, 300.0),
            transport=self._transport,
        ) as client:

            async def _call() -> dict[str, Any]:
                response = await client.post(
                    f"/{self._settings.fal_video_model}",
                    json={"prompt": prompt, "aspect_ratio": ratio},
                )
                response.raise_for_status()
                return response.json()

            payload = await call_with_retries(
                _call,
                operation="ad_video",
                attempts=self._settings.provider_retry_attempts,
                backoff_seconds=self._settings.provider_retry_backoff_seconds,
            )

        url = _video_url(payload)
        if not url:
            raise AdapterError("ad_video: no video URL returned")
        logger.info("Ad video generated", extra={"operation": "ad_video", "aspect_ratio": ratio})
        return BrandVideo(url=url, aspect_ratio=ratio)


def _video_url(payload: dict[str, Any]) -> str | None:
    data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
    video = data.get("video") if isinstance(data, dict) else None
    if isinstance(video, dict):
        return video.get("url")
    if isinstance(video, str):
        return video
    return None


__all__ = ["FalVideoAdapter"]
