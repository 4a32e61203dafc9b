"""In-process registry for short-lived generated media (audio clips)."""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable
from uuid import uuid4

BLOB_PREFIX = "/api/blobs/"


@dataclass(slots=True)
class LocalBlob:
    data: bytes
    content_type: str
    expires_at: float


class LocalBlobRegistry:
    """Hold generated bytes under local references until released or expired.

    Only references issued by this registry are ever considered local; any
    other URL (a persisted upload, a vendor CDN link) is left alone by
    :meth:`release`.
    """

    def __init__(
        self, *, ttl_seconds: int = 3600, clock: Callable[[], float] = time.time
    ) -> None:
        self._ttl = float(max(1, ttl_seconds))
        self._clock = clock
        self._blobs: dict[str, LocalBlob] = {}
        self._lock = threading.Lock()

    def put(self, data: bytes, content_type: str = "audio/mpeg") -> str:
        blob_id = uuid4().hex
        with self._lock:
            self._evict_expired()
            self._blobs[blob_id] = LocalBlob(
                data=data,
                content_type=content_type,
                expires_at=self._clock() + self._ttl,
            )
        return f"{BLOB_PREFIX}{blob_id}"

    def get(self, ref: str) -> LocalBlob | None:
        blob_id = _blob_id(ref)
        if blob_id is None:
            return None
        with self._lock:
            blob = self._blobs.get(blob_id)
            if blob is None:
                return None
            if blob.expires_at <= self._clock():
                self._blobs.pop(blob_id, None)
                return None
            return blob

    def is_local(self, url: str | None) -> bool:
        blob_id = _blob_id(url)
        if blob_id is None:
            return False
        with self._lock:
            return blob_id in self._blobs

    def release(self, url: str | None) -> bool:
        """Drop a local reference. Returns False for anything not issued here."""

        blob_id = _blob_id(url)
        if blob_id is None:
            return False
        with self._lock:
            return self._blobs.pop(blob_id, None) is not None

    def release_all(self, urls: Iterable[str | None]) -> int:
        return sum(1 for url in urls if self.release(url))

    def __len__(self) -> int:
        with self._lock:
            return len(self._blobs)

    def _evict_expired(self) -> None:
        now = self._clock()
        expired = [key for key, blob in self._blobs.items() if blob.expires_at <= now]
        for key in expired:
            del self._blobs[key]


def _blob_id(ref: str | None) -> str | None:
    if not ref or not ref.startswith(BLOB_PREFIX):
        return None
    blob_id = ref[len(BLOB_PREFIX):]
    return blob_id or None


__all__ = ["BLOB_PREFIX", "LocalBlob", "LocalBlobRegistry"]
