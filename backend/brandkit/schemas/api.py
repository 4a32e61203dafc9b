"""Request and response bodies of the HTTP surface."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from brandkit.schemas.brand_kit import AspectRatio, BrandInput, BrandKit, Platform, Voice


class GuardResponse(BaseModel):
    ok: bool = True


class AssembleRequest(BaseModel):
    input: BrandInput
    previous_kit: Optional[BrandKit] = Field(
        default=None, description="Kit being replaced; its local audio refs are released"
    )


class EditLogo(BaseModel):
    op: Literal["edit_logo"] = "edit_logo"
    variant: Literal["logo", "primary", "secondary", "submark"] = "primary"
    instruction: str = Field(..., min_length=1)


class EditImagery(BaseModel):
    op: Literal["edit_imagery"] = "edit_imagery"
    index: int = Field(..., ge=0)
    instruction: str = Field(..., min_length=1)


class EditBackdrop(BaseModel):
    op: Literal["edit_backdrop"] = "edit_backdrop"
    platform: Platform
    instruction: str = Field(..., min_length=1)


class GenerateMusic(BaseModel):
    op: Literal["generate_music"] = "generate_music"
    slot: Literal["intro", "outro"]


class GenerateVoiceover(BaseModel):
    op: Literal["generate_voiceover"] = "generate_voiceover"
    voice_id: Optional[str] = None
    voice_name: Optional[str] = None


class GenerateAdVideo(BaseModel):
    op: Literal["generate_ad_video"] = "generate_ad_video"
    aspect_ratio: AspectRatio = "16:9"


KitOperation = Annotated[
    Union[EditLogo, EditImagery, EditBackdrop, GenerateMusic, GenerateVoiceover, GenerateAdVideo],
    Field(discriminator="op"),
]


class MutationFailure(BaseModel):
    operation: str
    message: str


class MutationRequest(BaseModel):
    kit: BrandKit
    operation: KitOperation


class MutationResponse(BaseModel):
    kit: BrandKit
    failure: Optional[MutationFailure] = None


class DiscardResponse(BaseModel):
    released: int


class ShareCreated(BaseModel):
    id: str


class OwnerShares(BaseModel):
    shares: List[str]


class VoiceList(BaseModel):
    voices: List[Voice]


class KitRun(BaseModel):
    """One line of the generation run log."""

    request_id: str
    brand_name: str
    status: Literal["success", "failed"]
    duration_ms: float
    input_hash: str
    imagery_count: int = 0
    degraded: List[str] = Field(default_factory=list, description="Optional steps that fell back")
    error: Optional[str] = None
    metadata: dict = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class KitRunListResponse(BaseModel):
    runs: List[KitRun]
    total: int
    limit: int
    offset: int


__all__ = [
    "AssembleRequest",
    "DiscardResponse",
    "EditBackdrop",
    "EditImagery",
    "EditLogo",
    "GenerateAdVideo",
    "GenerateMusic",
    "GenerateVoiceover",
    "GuardResponse",
    "KitOperation",
    "KitRun",
    "KitRunListResponse",
    "MutationFailure",
    "MutationRequest",
    "MutationResponse",
    "OwnerShares",
    "ShareCreated",
    "VoiceList",
]
