"""Share publishing and retrieval endpoints."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from brandkit.deps import get_share_resolver, get_share_store
from brandkit.schemas.api import OwnerShares, ShareCreated
from brandkit.schemas.brand_kit import BrandKit, ShareSnapshot
from brandkit.services.blob_storage import BlobStorageError
from brandkit.services.share_store import ShareAssetResolver, ShareStore, ShareStoreError

router = APIRouter(tags=["shares"])


@router.post(
    "/shares",
    response_model=ShareCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Publish a kit snapshot",
)
async def create_share(
    kit: BrandKit,
    x_user_id: Optional[str] = Header(default=None),
    resolver: ShareAssetResolver = Depends(get_share_resolver),
    store: ShareStore = Depends(get_share_store),
) -> ShareCreated:
    try:
        resolved = await resolver.resolve(kit)
        share_id = await store.publish(resolved, owner_key=x_user_id)
    except (BlobStorageError, ShareStoreError) as exc:
        raise HTTPException(status_code=500, detail="Share failed") from exc
    return ShareCreated(id=share_id)


@router.get("/shares/{share_id}", response_model=ShareSnapshot, summary="Fetch a shared snapshot")
async def get_share(
    share_id: str,
    store: ShareStore = Depends(get_share_store),
) -> ShareSnapshot:
    snapshot = await store.retrieve(share_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Not found")
    return snapshot


@router.get("/users/{owner_key}/shares", response_model=OwnerShares, summary="List an owner's shares")
async def list_owner_shares(
    owner_key: str,
    store: ShareStore = Depends(get_share_store),
) -> OwnerShares:
    return OwnerShares(shares=await store.list_by_owner(owner_key))
