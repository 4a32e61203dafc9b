"""Voice catalogue and brand idea endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from brandkit.deps import get_adapters
from brandkit.schemas.api import VoiceList
from brandkit.schemas.brand_kit import BrandIdea
from brandkit.services.adapters import GenerationAdapters
from brandkit.services.brand_ideas import random_brand_idea

router = APIRouter(tags=["catalogue"])


@router.get("/voices", response_model=VoiceList, summary="List voiceover voices")
async def list_voices(adapters: GenerationAdapters = Depends(get_adapters)) -> VoiceList:
    """Empty when no voice provider is configured."""

    return VoiceList(voices=await adapters.list_voices())


@router.get("/brand-ideas/random", response_model=BrandIdea, summary="Suggest a brand to try")
async def random_idea() -> BrandIdea:
    return random_brand_idea()
