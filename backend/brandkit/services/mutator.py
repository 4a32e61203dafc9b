"""Single-field updates to an existing kit."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from brandkit.schemas.api import (
    EditBackdrop,
    EditImagery,
    EditLogo,
    GenerateAdVideo,
    GenerateMusic,
    GenerateVoiceover,
    KitOperation,
    MutationFailure,
)
from brandkit.schemas.brand_kit import BrandKit, ImageRef, InlineImage
from brandkit.services.adapters import GenerationAdapters
from brandkit.services.assembler import (
    INTRO_LABEL,
    OUTRO_LABEL,
    VOICEOVER_LABEL,
    VOICEOVER_UNAVAILABLE,
    intro_prompt,
    outro_prompt,
)
from brandkit.services.blobs import LocalBlobRegistry

logger = logging.getLogger(__name__)

EDIT_FAILED = "Edit failed"


@dataclass(slots=True)
class MutationResult:
    kit: BrandKit
    failure: Optional[MutationFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class KitMutator:
    """Apply one operation to a kit and return a new kit.

    The input kit is never modified. Adapter failures come back as a
    :class:`MutationFailure` next to the unchanged kit instead of raising.
    """

    def __init__(self, adapters: GenerationAdapters, *, blobs: LocalBlobRegistry | None = None) -> None:
        self._adapters = adapters
        self._blobs = blobs

    async def apply(self, kit: BrandKit, operation: KitOperation) -> MutationResult:
        handlers = {
            "edit_logo": self._edit_logo,
            "edit_imagery": self._edit_imagery,
            "edit_backdrop": self._edit_backdrop,
            "generate_music": self._generate_music,
            "generate_voiceover": self._generate_voiceover,
            "generate_ad_video": self._generate_ad_video,
        }
        handler = handlers[operation.op]
        try:
            return await handler(kit, operation)
        except Exception as exc:
            logger.warning(
                "Kit mutation failed",
                extra={"operation": operation.op, "brand_name": kit.name},
                exc_info=exc,
            )
            return _failed(kit, operation.op, _failure_message(operation.op))

    async def _edit_logo(self, kit: BrandKit, operation: EditLogo) -> MutationResult:
        if operation.variant == "logo":
            current: ImageRef = kit.logo
        elif kit.logos is None:
            return _failed(kit, operation.op, "Logo variants unavailable")
        else:
            current = getattr(kit.logos, operation.variant)

        instruction = (
            f"Modify logo for {kit.name}: {operation.instruction}. "
            "Keep it text-free, vector-like and minimal."
        )
        edited = await self._edit(current, instruction)
        if operation.variant == "logo":
            return MutationResult(kit=kit.model_copy(update={"logo": edited}))
        logos = kit.logos.model_copy(update={operation.variant: edited})
        return MutationResult(kit=kit.model_copy(update={"logos": logos}))

    async def _edit_imagery(self, kit: BrandKit, operation: EditImagery) -> MutationResult:
        if operation.index >= len(kit.imagery):
            return _failed(kit, operation.op, f"No image at position {operation.index}")

        edited = await self._edit(kit.imagery[operation.index], operation.instruction)
        imagery = list(kit.imagery)
        imagery[operation.index] = edited
        return MutationResult(kit=kit.model_copy(update={"imagery": imagery}))

    async def _edit_backdrop(self, kit: BrandKit, operation: EditBackdrop) -> MutationResult:
        backdrops = list(kit.social_backdrops or [])
        for index, backdrop in enumerate(backdrops):
            if backdrop.platform == operation.platform:
                break
        else:
            return _failed(kit, operation.op, f"No {operation.platform} backdrop")

        edited = await self._edit(backdrops[index].image, operation.instruction)
        backdrops[index] = backdrops[index].model_copy(update={"image": edited})
        return MutationResult(kit=kit.model_copy(update={"social_backdrops": backdrops}))

    async def _generate_music(self, kit: BrandKit, operation: GenerateMusic) -> MutationResult:
        if operation.slot == "intro":
            prompt, label = intro_prompt(kit.name), INTRO_LABEL
        else:
            prompt, label = outro_prompt(kit.name), OUTRO_LABEL

        asset = await self._adapters.generate_music(prompt, label)
        previous = getattr(kit.audio, operation.slot)
        audio = kit.audio.model_copy(update={operation.slot: asset})
        self._release(previous.url, keep=asset.url)
        return MutationResult(kit=kit.model_copy(update={"audio": audio}))

    async def _generate_voiceover(self, kit: BrandKit, operation: GenerateVoiceover) -> MutationResult:
        ad = kit.ad
        if ad is None:
            return _failed(kit, operation.op, VOICEOVER_UNAVAILABLE)
        if operation.voice_id:
            ad = ad.model_copy(
                update={"voice_id": operation.voice_id, "voice_name": operation.voice_name}
            )
        if not ad.voiceover_text or not ad.voice_id:
            return _failed(kit, operation.op, VOICEOVER_UNAVAILABLE)

        try:
            asset = await self._adapters.generate_voiceover(ad.voiceover_text, VOICEOVER_LABEL, ad.voice_id)
        except Exception as exc:
            logger.warning(
                "Voiceover regeneration failed",
                extra={"brand_name": kit.name, "voice_id": ad.voice_id},
                exc_info=exc,
            )
            failed_ad = ad.model_copy(update={"tts_error": VOICEOVER_UNAVAILABLE})
            return MutationResult(
                kit=kit.model_copy(update={"ad": failed_ad}),
                failure=MutationFailure(operation=operation.op, message=VOICEOVER_UNAVAILABLE),
            )

        self._release(ad.audio_url, keep=asset.url)
        ad = ad.model_copy(update={"audio_url": asset.url, "tts_error": None})
        return MutationResult(kit=kit.model_copy(update={"ad": ad}))

    async def _generate_ad_video(self, kit: BrandKit, operation: GenerateAdVideo) -> MutationResult:
        if kit.ad is None or not kit.ad.copy_script:
            return _failed(kit, operation.op, "Ad copy unavailable")

        prompt = await self._adapters.generate_video_prompt(kit.name, kit.ad.copy_script, operation.aspect_ratio)
        video = await self._adapters.generate_ad_video(prompt, operation.aspect_ratio)
        return MutationResult(kit=kit.model_copy(update={"ad_video": video}))

    async def _edit(self, ref: ImageRef, instruction: str) -> InlineImage:
        inline = await self._adapters.dereference_image(ref)
        return await self._adapters.edit_image(inline, instruction)

    def _release(self, url: str | None, *, keep: str | None) -> None:
        if self._blobs is None or not url or url == keep:
            return
        self._blobs.release(url)


def _failed(kit: BrandKit, operation: str, message: str) -> MutationResult:
    return MutationResult(kit=kit, failure=MutationFailure(operation=operation, message=message))


def _failure_message(operation: str) -> str:
    if operation.startswith("edit_"):
        return EDIT_FAILED
    if operation == "generate_music":
        return "Music generation failed"
    if operation == "generate_ad_video":
        return "Video generation failed"
    return VOICEOVER_UNAVAILABLE


__all__ = ["EDIT_FAILED", "KitMutator", "MutationResult"]
