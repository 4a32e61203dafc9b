"""Tests for publishing and retrieving shared kit snapshots."""
from __future__ import annotations

import pytest

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from conftest import make_kit
from brandkit.db.base import Base
from brandkit.db.models import Share, ShareAsset
from brandkit.schemas.brand_kit import AudioAsset, BrandAd, BrandAudio, BrandVideo, UrlImage
from brandkit.services.blobs import LocalBlobRegistry
from brandkit.services.share_store import (
    InMemoryShareBackend,
    RedisShareBackend,
    ShareAssetResolver,
    ShareSQLMirror,
    ShareStore,
    ShareStoreError,
    snapshot_from_kit,
)


class _Clock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class _FakeRedis:
    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.sets: dict[str, set[str]] = {}

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.values[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def get(self, key: str) -> str | None:
        return self.values.get(key)

    async def sadd(self, key: str, *members: str) -> int:
        self.sets.setdefault(key, set()).update(members)
        return len(members)

    async def smembers(self, key: str) -> set[str]:
        return set(self.sets.get(key, set()))


class _BrokenIndex(InMemoryShareBackend):
    async def add_to_owner(self, owner_key: str, share_id: str) -> None:
        raise ConnectionError("index down")


class _BrokenBackend(InMemoryShareBackend):
    async def put(self, share_id: str, payload: str, ttl_seconds: int) -> None:
        raise ConnectionError("store down")


class _BrokenObserver:
    async def share_published(self, *args: object) -> None:
        raise RuntimeError("mirror down")


class _FakeStorage:
    configured = True

    def __init__(self) -> None:
        self.uploads: list[tuple[str, str]] = []

    async def upload_blob(self, data: bytes | str, key: str, content_type: str) -> str:
        self.uploads.append((key, content_type))
        return f"https://assets.example.com/{key}"


def _shared_kit(blobs: LocalBlobRegistry | None = None):
    local = blobs.put(b"intro") if blobs is not None else "/api/blobs/abc"
    return make_kit(
        audio=BrandAudio(
            intro=AudioAsset(url=local, name="Intro Jingle"),
            outro=AudioAsset(url="https://cdn.example.com/outro.mp3", name="Outro Jingle"),
        ),
        ad=BrandAd(
            copy_script="Meet Solara.",
            voiceover_text="Meet Solara.",
            voice_id="v1",
            voice_name="Aria",
            audio_url="/api/blobs/def",
            tts_error="stale",
        ),
        ad_video=BrandVideo(url="https://cdn.example.com/ad.mp4", aspect_ratio="9:16"),
    )


@pytest.mark.anyio
async def test_publish_then_retrieve_round_trip() -> None:
    clock = _Clock()
    store = ShareStore(InMemoryShareBackend(clock=clock), clock=clock)
    kit = _shared_kit()

    share_id = await store.publish(kit)
    snapshot = await store.retrieve(share_id)

    assert snapshot == snapshot_from_kit(kit, created_at=int(clock.now * 1000))
    assert snapshot is not None
    assert snapshot.created_at == int(clock.now * 1000)


@pytest.mark.anyio
async def test_snapshot_drops_local_audio_and_tts_error() -> None:
    snapshot = snapshot_from_kit(_shared_kit())

    assert snapshot.audio is not None
    assert snapshot.audio.intro.url == ""
    assert snapshot.audio.outro.url == "https://cdn.example.com/outro.mp3"
    assert snapshot.ad is not None
    assert snapshot.ad.audio_url is None
    assert "tts_error" not in snapshot.ad.model_dump()
    assert snapshot.ad_video is not None


@pytest.mark.anyio
async def test_snapshot_without_persisted_audio_has_no_audio() -> None:
    assert snapshot_from_kit(make_kit()).audio is None


@pytest.mark.anyio
async def test_ids_are_opaque_and_unique() -> None:
    store = ShareStore(InMemoryShareBackend())
    kit = make_kit()

    first, second = await store.publish(kit), await store.publish(kit)

    assert first != second
    assert "solara" not in first.lower()


@pytest.mark.anyio
async def test_expired_and_missing_look_the_same() -> None:
    clock = _Clock()
    store = ShareStore(InMemoryShareBackend(clock=clock), ttl_seconds=86400, clock=clock)
    share_id = await store.publish(make_kit())

    clock.now += 86399
    assert await store.retrieve(share_id) is not None
    clock.now += 2
    assert await store.retrieve(share_id) is None
    assert await store.retrieve("never-existed") is None


@pytest.mark.anyio
async def test_owner_index_grows_and_unknown_owner_is_empty() -> None:
    store = ShareStore(InMemoryShareBackend())

    first = await store.publish(make_kit(), owner_key="owner-1")
    assert await store.list_by_owner("owner-1") == [first]
    second = await store.publish(make_kit(), owner_key="owner-1")

    assert sorted(await store.list_by_owner("owner-1")) == sorted([first, second])
    assert await store.list_by_owner("someone-else") == []
    assert await store.list_by_owner("") == []


@pytest.mark.anyio
async def test_owner_index_failure_does_not_fail_publish() -> None:
    store = ShareStore(_BrokenIndex())

    share_id = await store.publish(make_kit(), owner_key="owner-1")

    assert await store.retrieve(share_id) is not None


@pytest.mark.anyio
async def test_backend_failure_is_a_share_error() -> None:
    with pytest.raises(ShareStoreError):
        await ShareStore(_BrokenBackend()).publish(make_kit())


@pytest.mark.anyio
async def test_observer_failure_does_not_fail_publish() -> None:
    store = ShareStore(InMemoryShareBackend(), observers=[_BrokenObserver()])

    assert await store.publish(make_kit())


@pytest.mark.anyio
async def test_redis_backend_layout() -> None:
    redis = _FakeRedis()
    store = ShareStore(RedisShareBackend(redis), ttl_seconds=86400)

    share_id = await store.publish(make_kit(), owner_key="owner-1")

    assert f"share:{share_id}" in redis.values
    assert redis.ttls[f"share:{share_id}"] == 86400
    assert redis.sets["user:owner-1:shares"] == {share_id}
    assert (await store.retrieve(share_id)).name == "Solara Coffee"  # type: ignore[union-attr]
    assert await store.list_by_owner("owner-1") == [share_id]


@pytest.mark.anyio
async def test_sql_mirror_records_share_and_url_assets() -> None:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    session_maker = async_sessionmaker(engine, expire_on_commit=False)

    kit = make_kit(
        imagery=[UrlImage(location="https://assets.example.com/1.png")],
        ad_video=BrandVideo(url="https://cdn.example.com/ad.mp4"),
    )
    store = ShareStore(InMemoryShareBackend(), observers=[ShareSQLMirror(session_maker)])
    share_id = await store.publish(kit, owner_key="owner-1")

    async with session_maker() as session:
        share = await session.get(Share, share_id)
        assets = (await session.execute(select(ShareAsset).where(ShareAsset.share_id == share_id))).scalars().all()

    assert share is not None
    assert share.user_id == "owner-1"
    assert share.name == "Solara Coffee"
    assert {asset.kind for asset in assets} == {"imagery_1", "ad_video"}
    await engine.dispose()


@pytest.mark.anyio
async def test_resolver_uploads_inline_images_and_local_audio() -> None:
    blobs = LocalBlobRegistry()
    storage = _FakeStorage()
    kit = _shared_kit(blobs)

    resolved = await ShareAssetResolver(storage, blobs).resolve(kit)  # type: ignore[arg-type]

    assert resolved.logo.kind == "url"
    assert all(image.kind == "url" for image in resolved.imagery)
    assert resolved.audio.intro.url.startswith("https://assets.example.com/kits/solara-coffee/")
    assert resolved.audio.outro.url == "https://cdn.example.com/outro.mp3"
    # the ad voiceover ref was never issued by this registry, so it stays as is
    assert resolved.ad is not None and resolved.ad.audio_url == "/api/blobs/def"
    assert any(key.endswith("/audio/intro.mp3") for key, _ in storage.uploads)


@pytest.mark.anyio
async def test_resolver_without_storage_is_a_no_op() -> None:
    class _Unconfigured(_FakeStorage):
        configured = False

    kit = _shared_kit()

    assert await ShareAssetResolver(_Unconfigured(), LocalBlobRegistry()).resolve(kit) is kit  # type: ignore[arg-type]
