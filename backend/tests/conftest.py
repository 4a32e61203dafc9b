from __future__ import annotations

from typing import List

import pytest

from brandkit.schemas.brand_kit import (
    AudioAsset,
    BrandKit,
    BrandVideo,
    ImageRef,
    InlineImage,
    LogoVariants,
    SocialBackdrop,
    Tone,
    Typography,
    UrlImage,
    Voice,
)
from brandkit.services.blobs import LocalBlobRegistry
from brandkit.services.fallback import AdapterError

PALETTE = ["#111111", "#222222", "#333333", "#444444", "#555555"]


def inline(tag: str) -> InlineImage:
    import base64

    return InlineImage(data=base64.b64encode(tag.encode()).decode("ascii"))


class StubAdapters:
    """Deterministic adapter bundle; names in ``fail`` raise AdapterError."""

    def __init__(self, blobs: LocalBlobRegistry | None = None, *, fail: set[str] | None = None) -> None:
        self.blobs = blobs if blobs is not None else LocalBlobRegistry()
        self.fail = set(fail or ())
        self.calls: List[tuple] = []

    def _check(self, name: str, *args: object) -> None:
        self.calls.append((name, *args))
        if name in self.fail:
            raise AdapterError(f"{name} exploded")

    def called(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def generate_logo_variants(self, name: str, description: str, keywords: str) -> LogoVariants:
        self._check("logo", name)
        return LogoVariants(primary=inline("primary"), secondary=inline("secondary"), submark=inline("submark"))

    async def generate_color_palette(self, description: str, keywords: str) -> List[str]:
        self._check("palette")
        return list(PALETTE)

    async def generate_typography(self, description: str, keywords: str) -> Typography:
        self._check("typography")
        return Typography(heading_font="Montserrat", body_font="Inter")

    async def generate_brand_imagery(self, description: str, keywords: str, count: int) -> List[InlineImage]:
        self._check("imagery", count)
        return [inline(f"image-{index}") for index in range(count)]

    async def generate_social_backdrops(self, name: str, description: str, keywords: str) -> List[SocialBackdrop]:
        self._check("backdrops")
        return [
            SocialBackdrop(platform=platform, image=inline(platform))
            for platform in ("instagram", "tiktok", "linkedin")
        ]

    async def generate_ad_copy(self, name: str, description: str, keywords: str, tone: Tone) -> tuple[str, str]:
        self._check("ad_copy", tone)
        return (
            f"[Upbeat music] NARRATOR: Meet {name}. **Fresh** every morning.",
            f"Meet {name}. Fresh every morning.",
        )

    async def generate_video_prompt(self, name: str, script: str, aspect_ratio: str) -> str:
        self._check("video_prompt", aspect_ratio)
        return f"Cinematic spot for {name}"

    async def generate_ad_video(self, prompt: str, aspect_ratio: str) -> BrandVideo:
        self._check("video", prompt, aspect_ratio)
        return BrandVideo(url="https://cdn.example.com/ad.mp4", aspect_ratio=aspect_ratio)

    async def generate_music(self, prompt: str, label: str) -> AudioAsset:
        self._check("music", prompt)
        if f"music:{label}" in self.fail:
            raise AdapterError(f"{label} exploded")
        return AudioAsset(url=self.blobs.put(prompt.encode()), name=label)

    async def generate_voiceover(self, text: str, label: str, voice_id: str) -> AudioAsset:
        self._check("voiceover", text, voice_id)
        return AudioAsset(url=self.blobs.put(text.encode()), name=label)

    async def edit_image(self, image: InlineImage, instruction: str) -> InlineImage:
        self._check("edit", instruction)
        return inline(f"edited:{instruction}")

    async def dereference_image(self, ref: ImageRef) -> InlineImage:
        self._check("dereference")
        if isinstance(ref, UrlImage):
            return inline(f"downloaded:{ref.location}")
        return ref

    async def list_voices(self) -> List[Voice]:
        self._check("voices")
        return [Voice(id="v1", name="Aria", preview_url="https://cdn.example.com/aria.mp3")]


def make_kit(**overrides: object) -> BrandKit:
    logos = LogoVariants(primary=inline("primary"), secondary=inline("secondary"), submark=inline("submark"))
    values: dict = {
        "name": "Solara Coffee",
        "logo": logos.primary,
        "logos": logos,
        "color_palette": list(PALETTE),
        "typography": Typography(heading_font="Montserrat", body_font="Inter"),
        "imagery": [inline("image-0"), inline("image-1")],
        "social_backdrops": [SocialBackdrop(platform="instagram", image=inline("instagram"))],
    }
    values.update(overrides)
    return BrandKit(**values)


@pytest.fixture
def anyio_backend() -> str:
    """Force anyio-based tests to run with asyncio backend only."""

    return "asyncio"


@pytest.fixture
def blobs() -> LocalBlobRegistry:
    return LocalBlobRegistry()


@pytest.fixture
def adapters(blobs: LocalBlobRegistry) -> StubAdapters:
    return StubAdapters(blobs)
