"""FastAPI dependency helpers."""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Optional

from fastapi import Depends
from redis.asyncio import Redis

from brandkit.core.config import Settings, get_settings
from brandkit.db.session import get_session_maker
from brandkit.services.adapters import GenerationAdapters, build_adapters
from brandkit.services.assembler import KitAssembler
from brandkit.services.blob_storage import BlobStorage
from brandkit.services.blobs import LocalBlobRegistry
from brandkit.services.export import ExportPackager
from brandkit.services.kit_runs import KitRunLog
from brandkit.services.mutator import KitMutator
from brandkit.services.rate_limit import RateConfig, RateGuard, RedisDailyCounter
from brandkit.services.share_store import (
    InMemoryShareBackend,
    RedisShareBackend,
    ShareAssetResolver,
    ShareSQLMirror,
    ShareStore,
)


@lru_cache
def _create_blob_registry(ttl_seconds: int) -> LocalBlobRegistry:
    return LocalBlobRegistry(ttl_seconds=ttl_seconds)


@lru_cache
def _create_redis_client(url: str) -> Redis:
    return Redis.from_url(url, decode_responses=True)


@lru_cache
def _create_memory_share_backend() -> InMemoryShareBackend:
    return InMemoryShareBackend()


@lru_cache
def _create_kit_run_log(path: str) -> KitRunLog:
    return KitRunLog(path)


def get_blob_registry(settings: Settings = Depends(get_settings)) -> LocalBlobRegistry:
    """Process-wide registry of short-lived generated audio."""

    return _create_blob_registry(settings.blob_ttl_seconds)


def get_redis_client(settings: Settings = Depends(get_settings)) -> Optional[Redis]:
    if not settings.redis_url:
        return None
    return _create_redis_client(settings.redis_url)


def get_adapters(
    settings: Settings = Depends(get_settings),
    blobs: LocalBlobRegistry = Depends(get_blob_registry),
) -> GenerationAdapters:
    return build_adapters(settings, blobs)


def get_rate_guard(
    settings: Settings = Depends(get_settings),
    redis: Optional[Redis] = Depends(get_redis_client),
) -> RateGuard:
    counter = RedisDailyCounter(redis) if redis is not None else None
    return RateGuard(
        counter,
        RateConfig(
            max_per_day=settings.rate_limit_max_per_ip_per_day,
            disabled=settings.rate_limit_disabled,
        ),
    )


def get_kit_run_log(settings: Settings = Depends(get_settings)) -> KitRunLog:
    return _create_kit_run_log(settings.kit_run_store_path)


def get_assembler(
    settings: Settings = Depends(get_settings),
    adapters: GenerationAdapters = Depends(get_adapters),
    blobs: LocalBlobRegistry = Depends(get_blob_registry),
    run_log: KitRunLog = Depends(get_kit_run_log),
) -> KitAssembler:
    """Provide a kit assembler per request."""

    return KitAssembler(
        adapters,
        blobs=blobs,
        run_log=run_log,
        imagery_count=settings.imagery_count,
    )


def get_mutator(
    adapters: GenerationAdapters = Depends(get_adapters),
    blobs: LocalBlobRegistry = Depends(get_blob_registry),
) -> KitMutator:
    return KitMutator(adapters, blobs=blobs)


def get_share_store(
    settings: Settings = Depends(get_settings),
    redis: Optional[Redis] = Depends(get_redis_client),
) -> ShareStore:
    """Redis-backed when REDIS_URL is set, otherwise a per-process memory store."""

    backend: Any
    if redis is not None:
        backend = RedisShareBackend(redis)
    else:
        backend = _create_memory_share_backend()
    observers = []
    if settings.database_url:
        observers.append(ShareSQLMirror(get_session_maker(settings)))
    return ShareStore(backend, ttl_seconds=settings.share_ttl_seconds, observers=observers)


def get_share_resolver(
    settings: Settings = Depends(get_settings),
    blobs: LocalBlobRegistry = Depends(get_blob_registry),
) -> ShareAssetResolver:
    return ShareAssetResolver(BlobStorage(settings), blobs)


def get_exporter(blobs: LocalBlobRegistry = Depends(get_blob_registry)) -> ExportPackager:
    return ExportPackager(blobs)
