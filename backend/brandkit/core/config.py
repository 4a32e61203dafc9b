"""Application-wide settings and provider configuration helpers."""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application configuration.

    Every field maps to the upper-cased environment variable of the same name
    (``GEMINI_API_KEY``, ``REDIS_URL`` ...). The instance is built once per
    process by :func:`get_settings` and handed to services explicitly.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Gemini (image + text generation)
    gemini_api_key: Optional[str] = Field(default=None)
    gemini_image_model: str = Field(default="gemini-2.5-flash-image-preview")
    gemini_image_fallback_model: str = Field(default="gemini-2.5-flash-image-preview")
    gemini_text_model: str = Field(default="gemini-2.5-flash")
    gemini_text_fallback_model: str = Field(default="gemini-2.0-flash")
    imagery_count: int = Field(default=2, ge=1, le=6)

    # ElevenLabs (voices, text-to-speech, music)
    elevenlabs_api_key: Optional[str] = Field(default=None)
    elevenlabs_base_url: str = Field(default="https://api.elevenlabs.io")
    elevenlabs_tts_model: str = Field(default="eleven_multilingual_v2")
    elevenlabs_output_format: str = Field(default="mp3_44100_128")
    music_length_ms: int = Field(default=15000)

    # fal.ai (ad video)
    fal_ai_key: Optional[str] = Field(default=None)
    fal_base_url: str = Field(default="https://fal.run")
    fal_video_model: str = Field(default="fal-ai/veo3/fast")

    # Cloudflare R2 blob storage
    cloudflare_account_id: Optional[str] = Field(default=None)
    r2_access_key_id: Optional[str] = Field(default=None)
    r2_secret_access_key: Optional[str] = Field(default=None)
    r2_bucket_name: Optional[str] = Field(default=None)
    r2_region: str = Field(default="auto")
    r2_public_base_url: Optional[str] = Field(default=None)

    # Shared provider call policy
    provider_request_timeout: float = Field(default=120.0)
    provider_retry_attempts: int = Field(default=1)
    provider_retry_backoff_seconds: float = Field(default=1.5)

    # Rate guard
    redis_url: Optional[str] = Field(default=None)
    rate_limit_disabled: bool = Field(default=False)
    rate_limit_max_per_ip_per_day: int = Field(default=2, ge=0)

    # Share snapshots and local blobs
    share_ttl_seconds: int = Field(default=24 * 60 * 60)
    blob_ttl_seconds: int = Field(default=60 * 60)

    # Optional relational mirror of published shares
    database_url: Optional[str] = Field(default=None)
    database_echo: bool = Field(default=False)

    kit_run_store_path: str = Field(default="storage/kit_runs.jsonl")

    @property
    def r2_configured(self) -> bool:
        return bool(
            self.cloudflare_account_id
            and self.r2_access_key_id
            and self.r2_secret_access_key
            and self.r2_bucket_name
        )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
