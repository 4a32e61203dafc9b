"""Bundle a kit's metadata and every resolvable asset into a ZIP archive."""
from __future__ import annotations

import io
import json
import logging
import re
import time
import zipfile
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import httpx

from brandkit.schemas.brand_kit import BrandKit, ImageRef, InlineImage, UrlImage
from brandkit.services.blobs import LocalBlobRegistry
from brandkit.services.images import decode_image, fetch_bytes

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
}


class ExportPackager:
    """Build the downloadable archive for a kit.

    Assets that cannot be fetched are skipped; the export itself only fails
    if the archive cannot be written.
    """

    def __init__(
        self,
        blobs: LocalBlobRegistry,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._blobs = blobs
        self._transport = transport
        self._timeout = timeout

    async def package(self, kit: BrandKit) -> bytes:
        buffer = io.BytesIO()
        async with httpx.AsyncClient(
            transport=self._transport, timeout=self._timeout, follow_redirects=True
        ) as client:
            with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
                archive.writestr("brandkit.json", json.dumps(kit_metadata(kit), indent=2))

                await self._add_image(archive, client, "logo", kit.logo)
                if kit.logos is not None:
                    for variant in ("primary", "secondary", "submark"):
                        await self._add_image(
                            archive, client, f"logo-{variant}", getattr(kit.logos, variant)
                        )
                for index, image in enumerate(kit.imagery, start=1):
                    await self._add_image(archive, client, f"images/image-{index}", image)
                for backdrop in kit.social_backdrops or []:
                    await self._add_image(archive, client, f"social/{backdrop.platform}", backdrop.image)

                await self._add_media(archive, client, "audio/intro", kit.audio.intro.url, fixed_ext="mp3")
                await self._add_media(archive, client, "audio/outro", kit.audio.outro.url, fixed_ext="mp3")
                if kit.ad is not None and kit.ad.audio_url:
                    await self._add_media(archive, client, "audio/ad-voiceover", kit.ad.audio_url)
                if kit.ad_video is not None and kit.ad_video.url:
                    await self._add_media(archive, client, "ad-video", kit.ad_video.url, video=True)
        return buffer.getvalue()

    async def _add_image(
        self, archive: zipfile.ZipFile, client: httpx.AsyncClient, stem: str, image: ImageRef
    ) -> None:
        try:
            if isinstance(image, InlineImage):
                data, content_type = decode_image(image), image.mime_type
            else:
                data, content_type = await fetch_bytes(image.location, client=client)
        except Exception:
            logger.warning("Skipping export asset", extra={"asset": stem}, exc_info=True)
            return
        location = image.location if isinstance(image, UrlImage) else ""
        archive.writestr(f"{stem}.{image_extension(content_type, location)}", data)

    async def _add_media(
        self,
        archive: zipfile.ZipFile,
        client: httpx.AsyncClient,
        stem: str,
        url: str,
        *,
        fixed_ext: str | None = None,
        video: bool = False,
    ) -> None:
        if not url:
            return
        resolved = await self._fetch_media(client, url)
        if resolved is None:
            logger.warning("Skipping export asset", extra={"asset": stem})
            return
        data, content_type = resolved
        if fixed_ext:
            extension = fixed_ext
        elif video:
            extension = video_extension(content_type, url)
        else:
            extension = audio_extension(content_type)
        archive.writestr(f"{stem}.{extension}", data)

    async def _fetch_media(
        self, client: httpx.AsyncClient, url: str
    ) -> Optional[tuple[bytes, str | None]]:
        blob = self._blobs.get(url)
        if blob is not None:
            return blob.data, blob.content_type
        if not re.match(r"^https?://", url, re.IGNORECASE):
            return None
        try:
            return await fetch_bytes(url, client=client)
        except httpx.HTTPError:
            return None


def kit_metadata(kit: BrandKit, *, now: datetime | None = None) -> dict[str, Any]:
    def ref_type(image: ImageRef) -> str:
        return image.kind

    if kit.logos is not None:
        logos = {
            "primary": ref_type(kit.logos.primary),
            "secondary": ref_type(kit.logos.secondary),
            "submark": ref_type(kit.logos.submark),
        }
    else:
        logos = {"primary": ref_type(kit.logo)}

    metadata: dict[str, Any] = {
        "name": kit.name,
        "colorPalette": list(kit.color_palette),
        "typography": {
            "headingFont": kit.typography.heading_font,
            "bodyFont": kit.typography.body_font,
        },
        "assets": {
            "logos": logos,
            "imageryCount": len(kit.imagery),
            "socialBackdrops": [
                {"platform": backdrop.platform, "type": ref_type(backdrop.image)}
                for backdrop in kit.social_backdrops or []
            ],
            "audio": {
                "hasIntro": bool(kit.audio.intro.url),
                "hasOutro": bool(kit.audio.outro.url),
            },
        },
        "generatedAt": (now or datetime.now(timezone.utc)).isoformat(),
    }
    if kit.ad is not None:
        metadata["ad"] = {
            "voiceId": kit.ad.voice_id,
            "voiceName": kit.ad.voice_name,
            "hasVoiceoverAudio": bool(kit.ad.audio_url),
        }
    if kit.ad_video is not None:
        metadata["adVideo"] = {"url": kit.ad_video.url, "aspectRatio": kit.ad_video.aspect_ratio}
    return metadata


def image_extension(content_type: str | None, url: str = "") -> str:
    content_type = (content_type or "").split(";")[0].strip().lower()
    if content_type in IMAGE_EXTENSIONS:
        return IMAGE_EXTENSIONS[content_type]
    match = re.search(r"\.(png|jpe?g|webp|gif)(\?|$)", url, re.IGNORECASE)
    if match:
        return "jpg" if match.group(1).lower() == "jpeg" else match.group(1).lower()
    return "png"


def audio_extension(content_type: str | None) -> str:
    content_type = content_type or ""
    if "wav" in content_type:
        return "wav"
    if "ogg" in content_type:
        return "ogg"
    return "mp3"


def video_extension(content_type: str | None, url: str) -> str:
    content_type = content_type or ""
    if "webm" in content_type:
        return "webm"
    if "quicktime" in content_type or re.search(r"\.mov(\?|$)", url, re.IGNORECASE):
        return "mov"
    if re.search(r"\.webm(\?|$)", url, re.IGNORECASE):
        return "webm"
    return "mp4"


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def export_filename(kit: BrandKit, *, clock: Callable[[], float] = time.time) -> str:
    return f"brand-kit-{slugify(kit.name)}-{int(clock() * 1000)}.zip"


__all__ = [
    "ExportPackager",
    "audio_extension",
    "export_filename",
    "image_extension",
    "kit_metadata",
    "slugify",
    "video_extension",
]
