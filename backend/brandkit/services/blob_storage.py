"""Persist generated assets in Cloudflare R2 and return their public URL."""
from __future__ import annotations

import asyncio
import base64
from typing import Any

from brandkit.core.config import Settings


class BlobStorageError(RuntimeError):
    """Base error for blob storage operations."""


class BlobStorageConfigError(BlobStorageError):
    """Raised when required R2 settings are missing."""


class BlobStorage:
    """Upload bytes to an S3-compatible bucket (R2)."""

    def __init__(self, settings: Settings, *, client: Any | None = None) -> None:
        self._settings = settings
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or self._settings.r2_configured

    async def upload_blob(self, data: bytes | str, key: str, content_type: str) -> str:
        """Store ``data`` (raw bytes or base64 text) under ``key``; return its URL."""

        self._validate_config()
        payload = _as_bytes(data)
        client = self._get_client()
        try:
            await asyncio.to_thread(
                client.put_object,
                Bucket=self._settings.r2_bucket_name,
                Key=key,
                Body=payload,
                ContentType=content_type,
            )
        except Exception as exc:
            raise BlobStorageError(f"Upload of {key} failed") from exc
        return self.public_url(key)

    def public_url(self, key: str) -> str:
        base = self._settings.r2_public_base_url
        if base:
            return f"{base.rstrip('/')}/{key}"
        return (
            f"https://{self._settings.cloudflare_account_id}.r2.cloudflarestorage.com/"
            f"{self._settings.r2_bucket_name}/{key}"
        )

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = self._build_client()
        return self._client

    def _build_client(self) -> Any:
        try:
            import boto3
            from botocore.config import Config
        except Exception as exc:
            raise BlobStorageConfigError("boto3 is required for blob storage operations") from exc

        return boto3.client(
            "s3",
            endpoint_url=f"https://{self._settings.cloudflare_account_id}.r2.cloudflarestorage.com",
            region_name=self._settings.r2_region,
            aws_access_key_id=self._settings.r2_access_key_id,
            aws_secret_access_key=self._settings.r2_secret_access_key,
            config=Config(signature_version="s3v4"),
        )

    def _validate_config(self) -> None:
        if self._client is not None:
            return
        required = {
            "cloudflare_account_id": self._settings.cloudflare_account_id,
            "r2_access_key_id": self._settings.r2_access_key_id,
            "r2_secret_access_key": self._settings.r2_secret_access_key,
            "r2_bucket_name": self._settings.r2_bucket_name,
        }
        missing = [key for key, value in required.items() if not value]
        if missing:
            raise BlobStorageConfigError("Missing required R2 config: " + ", ".join(sorted(missing)))


def _as_bytes(data: bytes | str) -> bytes:
    if isinstance(data, bytes):
        return data
    if "," in data and data.startswith("data:"):
        data = data.split(",", 1)[1]
    return base64.b64decode(data)


__all__ = ["BlobStorage", "BlobStorageConfigError", "BlobStorageError"]
