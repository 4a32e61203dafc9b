"""Publish sanitized kit snapshots under opaque, expiring ids."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, List, Optional, Protocol, Sequence
from uuid import uuid4

from sqlalchemy.ext.asyncio import async_sessionmaker

from brandkit.db.models import Share, ShareAsset
from brandkit.schemas.brand_kit import (
    AudioAsset,
    BrandAudio,
    BrandKit,
    ImageRef,
    InlineImage,
    SharedAd,
    ShareSnapshot,
    UrlImage,
)
from brandkit.services.blob_storage import BlobStorage
from brandkit.services.blobs import BLOB_PREFIX, LocalBlobRegistry
from brandkit.services.export import slugify

logger = logging.getLogger(__name__)

SHARE_TTL_SECONDS = 24 * 60 * 60


class ShareStoreError(RuntimeError):
    """Raised when a snapshot could not be stored."""


class ShareBackend(Protocol):
    async def put(self, share_id: str, payload: str, ttl_seconds: int) -> None: ...

    async def get(self, share_id: str) -> Optional[str]: ...

    async def add_to_owner(self, owner_key: str, share_id: str) -> None: ...

    async def owner_shares(self, owner_key: str) -> List[str]: ...


class ShareObserver(Protocol):
    async def share_published(
        self, share_id: str, snapshot: ShareSnapshot, owner_key: str | None
    ) -> None: ...


class InMemoryShareBackend:
    """Single-process backend; expired entries disappear on read."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._records: dict[str, tuple[float, str]] = {}
        self._owners: dict[str, set[str]] = {}
        self._lock = asyncio.Lock()

    async def put(self, share_id: str, payload: str, ttl_seconds: int) -> None:
        async with self._lock:
            self._records[share_id] = (self._clock() + ttl_seconds, payload)

    async def get(self, share_id: str) -> Optional[str]:
        async with self._lock:
            entry = self._records.get(share_id)
            if entry is None:
                return None
            expires_at, payload = entry
            if expires_at <= self._clock():
                del self._records[share_id]
                return None
            return payload

    async def add_to_owner(self, owner_key: str, share_id: str) -> None:
        async with self._lock:
            self._owners.setdefault(owner_key, set()).add(share_id)

    async def owner_shares(self, owner_key: str) -> List[str]:
        async with self._lock:
            return sorted(self._owners.get(owner_key, ()))


class RedisShareBackend:
    """Multi-instance backend: ``share:{id}`` strings and ``user:{owner}:shares`` sets."""

    def __init__(self, redis: Any) -> None:
        self._redis = redis

    async def put(self, share_id: str, payload: str, ttl_seconds: int) -> None:
        await self._redis.set(f"share:{share_id}", payload, ex=ttl_seconds)

    async def get(self, share_id: str) -> Optional[str]:
        value = await self._redis.get(f"share:{share_id}")
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def add_to_owner(self, owner_key: str, share_id: str) -> None:
        await self._redis.sadd(f"user:{owner_key}:shares", share_id)

    async def owner_shares(self, owner_key: str) -> List[str]:
        members = await self._redis.smembers(f"user:{owner_key}:shares")
        return sorted(
            member.decode("utf-8") if isinstance(member, bytes) else member
            for member in members or ()
        )


class ShareStore:
    def __init__(
        self,
        backend: ShareBackend,
        *,
        ttl_seconds: int = SHARE_TTL_SECONDS,
        observers: Sequence[ShareObserver] = (),
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._backend = backend
        self._ttl = ttl_seconds
        self._observers = list(observers)
        self._clock = clock

    async def publish(self, kit: BrandKit, owner_key: str | None = None) -> str:
        """Store a sanitized snapshot of ``kit`` and return its id.

        Local blob references must already have been resolved to persisted
        URLs; anything still local is dropped here, never uploaded.
        """

        snapshot = snapshot_from_kit(kit, created_at=int(self._clock() * 1000))
        share_id = uuid4().hex
        try:
            await self._backend.put(share_id, snapshot.model_dump_json(), self._ttl)
        except Exception as exc:
            logger.exception("Share publish failed", extra={"brand_name": kit.name})
            raise ShareStoreError("Share failed") from exc

        owner_key = (owner_key or "").strip() or None
        if owner_key:
            try:
                await self._backend.add_to_owner(owner_key, share_id)
            except Exception:
                logger.warning(
                    "Owner index update failed",
                    extra={"share_id": share_id},
                    exc_info=True,
                )

        for observer in self._observers:
            try:
                await observer.share_published(share_id, snapshot, owner_key)
            except Exception:
                logger.warning(
                    "Share observer failed",
                    extra={"share_id": share_id, "observer": type(observer).__name__},
                    exc_info=True,
                )

        logger.info("Share published", extra={"share_id": share_id, "brand_name": kit.name})
        return share_id

    async def retrieve(self, share_id: str) -> ShareSnapshot | None:
        payload = await self._backend.get(share_id)
        if payload is None:
            return None
        return ShareSnapshot.model_validate_json(payload)

    async def list_by_owner(self, owner_key: str) -> List[str]:
        if not owner_key:
            return []
        try:
            return await self._backend.owner_shares(owner_key)
        except Exception:
            logger.warning("Owner index lookup failed", exc_info=True)
            return []


def snapshot_from_kit(kit: BrandKit, *, created_at: int = 0) -> ShareSnapshot:
    """Project ``kit`` onto the re-servable subset used for sharing."""

    ad = None
    if kit.ad is not None:
        ad = SharedAd(
            copy_script=kit.ad.copy_script,
            voiceover_text=kit.ad.voiceover_text,
            voice_id=kit.ad.voice_id,
            voice_name=kit.ad.voice_name,
            audio_url=_persisted(kit.ad.audio_url),
        )

    intro = kit.audio.intro.model_copy(update={"url": _persisted(kit.audio.intro.url) or ""})
    outro = kit.audio.outro.model_copy(update={"url": _persisted(kit.audio.outro.url) or ""})
    audio = BrandAudio(intro=intro, outro=outro) if intro.url or outro.url else None

    return ShareSnapshot(
        name=kit.name,
        logo=kit.logo,
        logos=kit.logos,
        color_palette=list(kit.color_palette),
        typography=kit.typography,
        imagery=list(kit.imagery),
        social_backdrops=list(kit.social_backdrops) if kit.social_backdrops is not None else None,
        audio=audio,
        ad=ad,
        ad_video=kit.ad_video,
        created_at=created_at,
    )


def _persisted(url: str | None) -> str | None:
    if not url or url.startswith(BLOB_PREFIX):
        return None
    return url


class ShareSQLMirror:
    """Best-effort relational copy of published shares and their asset URLs."""

    def __init__(self, session_maker: async_sessionmaker) -> None:
        self._session_maker = session_maker

    async def share_published(
        self, share_id: str, snapshot: ShareSnapshot, owner_key: str | None
    ) -> None:
        async with self._session_maker() as session:
            session.add(Share(id=share_id, user_id=owner_key, name=snapshot.name))
            await session.flush()
            session.add_all(
                ShareAsset(id=uuid4().hex, share_id=share_id, kind=kind, url=url, extra=extra)
                for kind, url, extra in share_asset_rows(snapshot)
            )
            await session.commit()


def share_asset_rows(snapshot: ShareSnapshot) -> List[tuple[str, str, dict | None]]:
    """(kind, url, extra) for every asset of ``snapshot`` held by URL."""

    rows: List[tuple[str, str, dict | None]] = []
    if snapshot.logos is not None:
        for variant in ("primary", "secondary", "submark"):
            _append_image(rows, f"logo_{variant}", getattr(snapshot.logos, variant))
    else:
        _append_image(rows, "logo_primary", snapshot.logo)
    for index, image in enumerate(snapshot.imagery, start=1):
        _append_image(rows, f"imagery_{index}", image)
    for backdrop in snapshot.social_backdrops or []:
        _append_image(rows, f"backdrop_{backdrop.platform}", backdrop.image, {"platform": backdrop.platform})
    if snapshot.audio is not None:
        for slot in ("intro", "outro"):
            asset: AudioAsset = getattr(snapshot.audio, slot)
            if asset.url:
                rows.append((f"audio_{slot}", asset.url, {"name": asset.name}))
    if snapshot.ad is not None and snapshot.ad.audio_url:
        rows.append(("ad_voiceover", snapshot.ad.audio_url, {"voice_id": snapshot.ad.voice_id}))
    if snapshot.ad_video is not None and snapshot.ad_video.url:
        rows.append(("ad_video", snapshot.ad_video.url, {"aspect_ratio": snapshot.ad_video.aspect_ratio}))
    return rows


def _append_image(rows: list, kind: str, image: ImageRef, extra: dict | None = None) -> None:
    if isinstance(image, UrlImage):
        rows.append((kind, image.location, extra))


class ShareAssetResolver:
    """Turn a kit's ephemeral parts into persisted URLs before publishing.

    Inline images are uploaded when blob storage is configured; local audio
    refs are uploaded from the blob registry. Without storage the kit comes
    back unchanged and local audio is simply dropped at publish time.
    """

    def __init__(self, storage: BlobStorage, blobs: LocalBlobRegistry) -> None:
        self._storage = storage
        self._blobs = blobs

    async def resolve(self, kit: BrandKit) -> BrandKit:
        if not self._storage.configured:
            return kit

        prefix = f"kits/{slugify(kit.name) or 'brand'}/{uuid4().hex}"
        update: dict[str, Any] = {"logo": await self._image(kit.logo, f"{prefix}/logo")}
        if kit.logos is not None:
            update["logos"] = kit.logos.model_copy(
                update={
                    variant: await self._image(getattr(kit.logos, variant), f"{prefix}/logo-{variant}")
                    for variant in ("primary", "secondary", "submark")
                }
            )
        update["imagery"] = [
            await self._image(image, f"{prefix}/images/image-{index}")
            for index, image in enumerate(kit.imagery, start=1)
        ]
        if kit.social_backdrops is not None:
            update["social_backdrops"] = [
                backdrop.model_copy(
                    update={"image": await self._image(backdrop.image, f"{prefix}/social/{backdrop.platform}")}
                )
                for backdrop in kit.social_backdrops
            ]
        update["audio"] = kit.audio.model_copy(
            update={
                "intro": await self._audio(kit.audio.intro, f"{prefix}/audio/intro"),
                "outro": await self._audio(kit.audio.outro, f"{prefix}/audio/outro"),
            }
        )
        if kit.ad is not None and kit.ad.audio_url:
            update["ad"] = kit.ad.model_copy(
                update={"audio_url": await self._audio_url(kit.ad.audio_url, f"{prefix}/audio/ad-voiceover")}
            )
        return kit.model_copy(update=update)

    async def _image(self, image: ImageRef, key: str) -> ImageRef:
        if not isinstance(image, InlineImage):
            return image
        extension = "jpg" if image.mime_type == "image/jpeg" else "png"
        location = await self._storage.upload_blob(image.data, f"{key}.{extension}", image.mime_type)
        return UrlImage(location=location)

    async def _audio(self, asset: AudioAsset, key: str) -> AudioAsset:
        url = await self._audio_url(asset.url, key)
        if url == asset.url:
            return asset
        return asset.model_copy(update={"url": url})

    async def _audio_url(self, url: str, key: str) -> str:
        blob = self._blobs.get(url) if url else None
        if blob is None:
            return url
        extension = "wav" if "wav" in blob.content_type else "mp3"
        return await self._storage.upload_blob(blob.data, f"{key}.{extension}", blob.content_type)


__all__ = [
    "InMemoryShareBackend",
    "RedisShareBackend",
    "ShareAssetResolver",
    "ShareBackend",
    "ShareSQLMirror",
    "ShareStore",
    "ShareStoreError",
    "share_asset_rows",
    "snapshot_from_kit",
]
