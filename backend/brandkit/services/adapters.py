"""The adapter surface consumed by the assembler and mutator."""
from __future__ import annotations

from typing import List, Protocol

from brandkit.core.config import Settings
from brandkit.schemas.brand_kit import (
    AudioAsset,
    BrandVideo,
    ImageRef,
    InlineImage,
    LogoVariants,
    SocialBackdrop,
    Tone,
    Typography,
    Voice,
)
from brandkit.services.blobs import LocalBlobRegistry
from brandkit.services.elevenlabs import ElevenLabsAdapter
from brandkit.services.fal_video import FalVideoAdapter
from brandkit.services.gemini import GeminiAdapter
from brandkit.services.images import ensure_inline


class GenerationAdapters(Protocol):
    async def generate_logo_variants(self, name: str, description: str, keywords: str) -> LogoVariants: ...

    async def generate_color_palette(self, description: str, keywords: str) -> List[str]: ...

    async def generate_typography(self, description: str, keywords: str) -> Typography: ...

    async def generate_brand_imagery(self, description: str, keywords: str, count: int) -> List[InlineImage]: ...

    async def generate_social_backdrops(self, name: str, description: str, keywords: str) -> List[SocialBackdrop]: ...

    async def generate_ad_copy(self, name: str, description: str, keywords: str, tone: Tone) -> tuple[str, str]: ...

    async def generate_video_prompt(self, name: str, script: str, aspect_ratio: str) -> str: ...

    async def generate_ad_video(self, prompt: str, aspect_ratio: str) -> BrandVideo: ...

    async def generate_music(self, prompt: str, label: str) -> AudioAsset: ...

    async def generate_voiceover(self, text: str, label: str, voice_id: str) -> AudioAsset: ...

    async def edit_image(self, image: InlineImage, instruction: str) -> InlineImage: ...

    async def dereference_image(self, ref: ImageRef) -> InlineImage: ...

    async def list_voices(self) -> List[Voice]: ...


class ProviderAdapters:
    """Route each capability to the vendor that serves it."""

    def __init__(
        self,
        *,
        gemini: GeminiAdapter,
        elevenlabs: ElevenLabsAdapter,
        video: FalVideoAdapter,
    ) -> None:
        self.gemini = gemini
        self.elevenlabs = elevenlabs
        self.video = video

    async def generate_logo_variants(self, name: str, description: str, keywords: str) -> LogoVariants:
        return await self.gemini.generate_logo_variants(name, description, keywords)

    async def generate_color_palette(self, description: str, keywords: str) -> List[str]:
        return await self.gemini.generate_color_palette(description, keywords)

    async def generate_typography(self, description: str, keywords: str) -> Typography:
        return await self.gemini.generate_typography(description, keywords)

    async def generate_brand_imagery(self, description: str, keywords: str, count: int) -> List[InlineImage]:
        return await self.gemini.generate_brand_imagery(description, keywords, count)

    async def generate_social_backdrops(self, name: str, description: str, keywords: str) -> List[SocialBackdrop]:
        return await self.gemini.generate_social_backdrops(name, description, keywords)

    async def generate_ad_copy(self, name: str, description: str, keywords: str, tone: Tone) -> tuple[str, str]:
        return await self.gemini.generate_ad_copy(name, description, keywords, tone)

    async def generate_video_prompt(self, name: str, script: str, aspect_ratio: str) -> str:
        return await self.gemini.generate_video_prompt(name, script, aspect_ratio)

    async def generate_ad_video(self, prompt: str, aspect_ratio: str) -> BrandVideo:
        return await self.video.generate_ad_video(prompt, aspect_ratio)

    async def generate_music(self, prompt: str, label: str) -> AudioAsset:
        return await self.elevenlabs.generate_music(prompt, label)

    async def generate_voiceover(self, text: str, label: str, voice_id: str) -> AudioAsset:
        return await self.elevenlabs.generate_voiceover(text, label, voice_id)

    async def edit_image(self, image: InlineImage, instruction: str) -> InlineImage:
        return await self.gemini.edit_image(image, instruction)

    async def dereference_image(self, ref: ImageRef) -> InlineImage:
        return await ensure_inline(ref)

    async def list_voices(self) -> List[Voice]:
        return await self.elevenlabs.list_voices()


def build_adapters(settings: Settings, blobs: LocalBlobRegistry) -> ProviderAdapters:
    """Construct the adapter bundle from explicit configuration."""

    return ProviderAdapters(
        gemini=GeminiAdapter(settings),
        elevenlabs=ElevenLabsAdapter(settings, blobs),
        video=FalVideoAdapter(settings),
    )


__all__ = ["GenerationAdapters", "ProviderAdapters", "build_adapters"]
