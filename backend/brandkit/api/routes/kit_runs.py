"""Kit run observability endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query

from brandkit.deps import get_kit_run_log
from brandkit.schemas.api import KitRunListResponse
from brandkit.services.kit_runs import KitRunLog

router = APIRouter(prefix="/kit-runs", tags=["kit-runs"])


@router.get("", response_model=KitRunListResponse, summary="List recorded kit runs")
async def list_kit_runs(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    status: Literal["success", "failed"] | None = Query(None, description="Filter by run status"),
    degraded: str | None = Query(None, description="Only runs where this optional step fell back"),
    since: datetime | None = Query(None, description="Only runs created after this time"),
    log: KitRunLog = Depends(get_kit_run_log),
) -> KitRunListResponse:
    """Return paginated run records, newest first."""

    runs, total = await log.list_runs(
        limit=limit, offset=offset, status=status, degraded=degraded, since=since
    )
    return KitRunListResponse(runs=runs, total=total, limit=limit, offset=offset)
