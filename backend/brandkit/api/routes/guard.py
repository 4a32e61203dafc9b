"""Run admission endpoint."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status

from brandkit.deps import get_rate_guard
from brandkit.schemas.api import GuardResponse
from brandkit.services.rate_limit import Admission, RateGuard, caller_key_from_request

router = APIRouter(prefix="/guard", tags=["guard"])


@router.post("/start", response_model=GuardResponse, summary="Admit a new generation run")
async def start_run(
    request: Request,
    guard: RateGuard = Depends(get_rate_guard),
) -> GuardResponse:
    """Consume one of the caller's daily runs, or refuse."""

    admission = await guard.admit(caller_key_from_request(request))
    if admission is Admission.DENIED:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Daily limit reached. Please try again tomorrow.",
        )
    if admission is Admission.GUARD_FAILURE:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Guard failed",
        )
    return GuardResponse()
