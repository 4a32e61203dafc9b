"""Brand kit generation, mutation and export endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from brandkit.deps import get_assembler, get_blob_registry, get_exporter, get_mutator
from brandkit.schemas.api import (
    AssembleRequest,
    DiscardResponse,
    MutationRequest,
    MutationResponse,
)
from brandkit.schemas.brand_kit import BrandKit
from brandkit.services.assembler import (
    KitAssembler,
    KitAssemblyError,
    KitConfigurationError,
    local_audio_refs,
)
from brandkit.services.blobs import LocalBlobRegistry
from brandkit.services.export import ExportPackager, export_filename
from brandkit.services.mutator import KitMutator

router = APIRouter(prefix="/kits", tags=["kits"])


@router.post(
    "",
    response_model=BrandKit,
    status_code=status.HTTP_201_CREATED,
    summary="Generate a complete brand kit",
)
async def create_kit(
    payload: AssembleRequest,
    assembler: KitAssembler = Depends(get_assembler),
) -> BrandKit:
    try:
        return await assembler.assemble(payload.input, previous=payload.previous_kit)
    except KitConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except KitAssemblyError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@router.post(
    "/mutations",
    response_model=MutationResponse,
    summary="Replace a single field of an existing kit",
)
async def mutate_kit(
    payload: MutationRequest,
    mutator: KitMutator = Depends(get_mutator),
) -> MutationResponse:
    """Apply one operation; failures come back next to the unchanged kit."""

    result = await mutator.apply(payload.kit, payload.operation)
    return MutationResponse(kit=result.kit, failure=result.failure)


@router.post("/discard", response_model=DiscardResponse, summary="Release a discarded kit's audio")
async def discard_kit(
    kit: BrandKit,
    blobs: LocalBlobRegistry = Depends(get_blob_registry),
) -> DiscardResponse:
    return DiscardResponse(released=blobs.release_all(local_audio_refs(kit)))


@router.post(
    "/export",
    response_class=Response,
    responses={200: {"content": {"application/zip": {}}}},
    summary="Download the kit as a ZIP archive",
)
async def export_kit(
    kit: BrandKit,
    exporter: ExportPackager = Depends(get_exporter),
) -> Response:
    archive = await exporter.package(kit)
    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(kit)}"'},
    )
