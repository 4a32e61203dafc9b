"""Serve short-lived generated media by local reference."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from brandkit.deps import get_blob_registry
from brandkit.services.blobs import BLOB_PREFIX, LocalBlobRegistry

router = APIRouter(prefix="/blobs", tags=["blobs"])


@router.get("/{blob_id}", response_class=Response, summary="Stream a local blob")
async def get_blob(
    blob_id: str,
    blobs: LocalBlobRegistry = Depends(get_blob_registry),
) -> Response:
    blob = blobs.get(f"{BLOB_PREFIX}{blob_id}")
    if blob is None:
        raise HTTPException(status_code=404, detail="Not found")
    return Response(content=blob.data, media_type=blob.content_type)
