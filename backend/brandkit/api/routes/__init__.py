"""API route registrations."""
from fastapi import APIRouter

from brandkit.api.routes import blobs, guard, kit_runs, kits, shares, voices


api_router = APIRouter()
api_router.include_router(guard.router)
api_router.include_router(kits.router)
api_router.include_router(shares.router)
api_router.include_router(voices.router)
api_router.include_router(blobs.router)
api_router.include_router(kit_runs.router)

__all__ = ["api_router"]
