"""ElevenLabs adapters: voice catalogue, text-to-speech and music."""
from __future__ import annotations

import logging
from typing import Any, List

import httpx

from brandkit.core.config import Settings
from brandkit.schemas.brand_kit import AudioAsset, Voice
from brandkit.services.blobs import LocalBlobRegistry
from brandkit.services.fallback import AdapterConfigurationError, AdapterError, call_with_retries

logger = logging.getLogger(__name__)


class ElevenLabsAdapter:
    """Call the ElevenLabs REST API and park generated audio in the blob registry."""

    def __init__(
        self,
        settings: Settings,
        blobs: LocalBlobRegistry,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._blobs = blobs
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._settings.elevenlabs_api_key)

    async def list_voices(self) -> List[Voice]:
        """Return available voices; empty when unconfigured or on any failure."""

        if not self.configured:
            return []
        try:
            async with self._client() as client:
                response = await client.get("/v1/voices")
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Voice listing failed", extra={"operation": "list_voices"}, exc_info=exc)
            return []

        voices = [_voice_from_payload(item) for item in payload.get("voices") or []]
        voices = [voice for voice in voices if voice.id]
        # voices with a preview first
        voices.sort(key=lambda voice: (voice.preview_url is None, voice.name.lower()))
        return voices

    async def generate_voiceover(self, text: str, label: str, voice_id: str) -> AudioAsset:
        if not text or not voice_id:
            raise AdapterError("Missing text or voice id for voiceover")
        self._ensure_configured()
        body = {"text": text, "model_id": self._settings.elevenlabs_tts_model}
        data = await self._post_audio(
            f"/v1/text-to-speech/{voice_id}",
            json=body,
            params={"output_format": self._settings.elevenlabs_output_format},
            operation="voiceover",
        )
        return AudioAsset(url=self._blobs.put(data, "audio/mpeg"), name=label)

    async def generate_music(self, prompt: str, label: str) -> AudioAsset:
        self._ensure_configured()
        body = {"prompt": prompt, "music_length_ms": int(self._settings.music_length_ms)}
        data = await self._post_audio("/v1/music", json=body, operation="music")
        return AudioAsset(url=self._blobs.put(data, "audio/mpeg"), name=label)

    def _ensure_configured(self) -> None:
        if not self.configured:
            raise AdapterConfigurationError("ElevenLabs not configured. Set ELEVENLABS_API_KEY.")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._settings.elevenlabs_base_url,
            headers={"xi-api-key": self._settings.elevenlabs_api_key or ""},
            timeout=self._settings.provider_request_timeout,
            transport=self._transport,
        )

    async def _post_audio(
        self,
        path: str,
        *,
        json: dict[str, Any],
        operation: str,
        params: dict[str, str] | None = None,
    ) -> bytes:
        async with self._client() as client:

            async def _call() -> bytes:
                response = await client.post(path, json=json, params=params)
                response.raise_for_status()
                return response.content

            data = await call_with_retries(
                _call,
                operation=operation,
                attempts=self._settings.provider_retry_attempts,
                backoff_seconds=self._settings.provider_retry_backoff_seconds,
            )
        if not data:
            raise AdapterError(f"{operation}: empty audio returned")
        return data


def _voice_from_payload(item: dict[str, Any]) -> Voice:
    labels = item.get("labels") or {}
    samples = item.get("samples") or []
    preview = item.get("preview_url") or (samples[0].get("preview_url") if samples else None)
    return Voice(
        id=str(item.get("voice_id") or ""),
        name=str(item.get("name") or ""),
        preview_url=preview or None,
        category=item.get("category") or "generated",
        description=item.get("description") or "",
        accent=labels.get("accent") or "",
        gender=labels.get("gender") or "",
        age=labels.get("age") or "",
    )


__all__ = ["ElevenLabsAdapter"]
