"""Schemas for the brand kit aggregate and its parts."""
from __future__ import annotations

import re
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

PALETTE_SIZE = 5

Platform = Literal["instagram", "tiktok", "linkedin"]
AspectRatio = Literal["16:9", "9:16", "1:1"]

# platform -> (width, height) in pixels
BACKDROP_SIZES: dict[str, tuple[int, int]] = {
    "instagram": (1080, 1350),
    "tiktok": (1080, 1920),
    "linkedin": (1584, 396),
}


class Tone(str, Enum):
    FRIENDLY = "friendly"
    PROFESSIONAL = "professional"
    BOLD = "bold"
    PLAYFUL = "playful"
    INSPIRATIONAL = "inspirational"


class BrandInput(BaseModel):
    """A single form submission describing the brand to generate."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Brand name")
    description: str = Field(..., min_length=1, description="What the brand is about")
    keywords: str = Field(default="", description="Free-text vibe keywords")
    tone: Tone = Field(default=Tone.FRIENDLY)
    voice_id: Optional[str] = Field(default=None, description="Voice used for the ad voiceover")
    voice_name: Optional[str] = None
    skip_music: bool = False
    generate_voiceover: bool = False

    @field_validator("name", "description")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


class InlineImage(BaseModel):
    kind: Literal["inline"] = "inline"
    data: str = Field(..., description="Base64 encoded image bytes")
    mime_type: str = "image/png"


class UrlImage(BaseModel):
    kind: Literal["url"] = "url"
    location: str = Field(..., description="Externally resolvable image URL")


ImageRef = Annotated[Union[InlineImage, UrlImage], Field(discriminator="kind")]


class LogoVariants(BaseModel):
    primary: ImageRef
    secondary: ImageRef
    submark: ImageRef


class Typography(BaseModel):
    heading_font: str
    body_font: str

    def short_heading_font(self) -> str:
        return short_font_name(self.heading_font)

    def short_body_font(self) -> str:
        return short_font_name(self.body_font)


_FONT_NOISE = re.compile(
    r"\b(font|typeface|family|google fonts?|for (?:headings?|body)(?: text)?|"
    r"heading|body|sans-serif|serif)\b",
    re.IGNORECASE,
)


def short_font_name(raw: str, default: str = "Inter") -> str:
    """Extract a plausible font family name from a free-text model answer.

    ``"Montserrat (Google Fonts) - geometric, bold"`` becomes ``"Montserrat"``.
    """

    text = (raw or "").strip().strip("\"'`*")
    if not text:
        return default
    text = re.sub(r"^[A-Za-z ]{0,24}:\s*", "", text)
    text = re.split(r"[\(\[\n:;,]| - | – |\bwith\b|\bfor\b", text, maxsplit=1)[0]
    text = _FONT_NOISE.sub(" ", text)
    text = re.sub(r"\s+", " ", text).strip(" .-\"'")
    words = text.split(" ")
    if len(words) > 4:
        text = " ".join(words[:3])
    return text or default


class SocialBackdrop(BaseModel):
    platform: Platform
    image: ImageRef


class BrandAd(BaseModel):
    copy_script: str
    voiceover_text: str
    voice_id: Optional[str] = None
    voice_name: Optional[str] = None
    audio_url: Optional[str] = None
    tts_error: Optional[str] = None


class BrandVideo(BaseModel):
    url: str
    aspect_ratio: AspectRatio = "16:9"


class AudioAsset(BaseModel):
    url: str = ""
    name: str = ""


class BrandAudio(BaseModel):
    intro: AudioAsset = Field(default_factory=lambda: AudioAsset(name="Intro Jingle"))
    outro: AudioAsset = Field(default_factory=lambda: AudioAsset(name="Outro Jingle"))


class BrandKit(BaseModel):
    """The aggregate root produced by one generation run."""

    name: str
    logo: ImageRef
    logos: Optional[LogoVariants] = None
    color_palette: List[str]
    typography: Typography
    imagery: List[ImageRef] = Field(default_factory=list)
    social_backdrops: Optional[List[SocialBackdrop]] = None
    audio: BrandAudio = Field(default_factory=BrandAudio)
    ad: Optional[BrandAd] = None
    ad_video: Optional[BrandVideo] = None

    @field_validator("color_palette")
    @classmethod
    def _five_colours(cls, value: List[str]) -> List[str]:
        if len(value) != PALETTE_SIZE:
            raise ValueError(f"color palette must contain exactly {PALETTE_SIZE} colours")
        return value


class SharedAd(BaseModel):
    copy_script: str
    voiceover_text: str
    voice_id: Optional[str] = None
    voice_name: Optional[str] = None
    audio_url: Optional[str] = None


class ShareSnapshot(BaseModel):
    """Sanitized, externally re-servable projection of a kit."""

    name: str
    logo: ImageRef
    logos: Optional[LogoVariants] = None
    color_palette: List[str]
    typography: Typography
    imagery: List[ImageRef] = Field(default_factory=list)
    social_backdrops: Optional[List[SocialBackdrop]] = None
    audio: Optional[BrandAudio] = None
    ad: Optional[SharedAd] = None
    ad_video: Optional[BrandVideo] = None
    created_at: int = Field(default=0, description="Epoch milliseconds")


class Voice(BaseModel):
    id: str
    name: str
    preview_url: Optional[str] = None
    category: str = "generated"
    description: str = ""
    accent: str = ""
    gender: str = ""
    age: str = ""


class BrandIdea(BaseModel):
    name: str
    description: str
    keywords: str
    tone: Tone = Tone.FRIENDLY
