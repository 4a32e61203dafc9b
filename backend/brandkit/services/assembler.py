"""Brand kit assembly: fan out to the adapters and merge one coherent kit."""
from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional
from uuid import uuid4

from pydantic import ValidationError

from brandkit.schemas.api import KitRun
from brandkit.schemas.brand_kit import (
    AudioAsset,
    BrandAd,
    BrandAudio,
    BrandInput,
    BrandKit,
    InlineImage,
    LogoVariants,
    SocialBackdrop,
    Typography,
)
from brandkit.services.adapters import GenerationAdapters
from brandkit.services.blobs import LocalBlobRegistry
from brandkit.services.fallback import AdapterConfigurationError
from brandkit.services.kit_runs import KitRunLog

logger = logging.getLogger(__name__)

INTRO_LABEL = "Intro Jingle"
OUTRO_LABEL = "Outro Jingle"
VOICEOVER_LABEL = "Ad Voiceover"
VOICEOVER_UNAVAILABLE = "Voiceover unavailable right now. Try again or choose a different voice."


class KitAssemblyError(RuntimeError):
    """Raised when the mandatory visual identity group could not be generated."""


class KitConfigurationError(KitAssemblyError):
    """Raised when a provider required by the mandatory group is not configured."""


@dataclass(slots=True)
class _VisualIdentity:
    logos: LogoVariants
    color_palette: List[str]
    typography: Typography
    imagery: List[InlineImage]
    social_backdrops: List[SocialBackdrop]


@dataclass(slots=True)
class _RunState:
    degraded: List[str] = field(default_factory=list)
    timings: dict[str, float] = field(default_factory=dict)


class KitAssembler:
    """Run the full generation pipeline for one :class:`BrandInput`.

    1. logo variants, palette, typography, imagery and social backdrops run
       concurrently and are all-or-nothing;
    2. ad copy, then voiceover when requested, degrading to "no ad" or
       "ad without audio" on failure;
    3. intro and outro jingles concurrently, unless skipped, degrading to
       "no audio" on failure. Steps 2 and 3 overlap.
    """

    def __init__(
        self,
        adapters: GenerationAdapters,
        *,
        blobs: LocalBlobRegistry | None = None,
        run_log: KitRunLog | None = None,
        imagery_count: int = 2,
    ) -> None:
        self._adapters = adapters
        self._blobs = blobs
        self._run_log = run_log
        self._imagery_count = imagery_count

    async def assemble(
        self, brand_input: BrandInput, *, previous: BrandKit | None = None
    ) -> BrandKit:
        request_id = uuid4().hex
        state = _RunState()
        started_at = time.perf_counter()
        status = "failed"
        error_message: str | None = None
        kit: BrandKit | None = None

        logger.info(
            "Starting brand kit generation",
            extra={
                "request_id": request_id,
                "brand_name": brand_input.name,
                "skip_music": brand_input.skip_music,
                "generate_voiceover": brand_input.generate_voiceover,
            },
        )

        try:
            step_started = time.perf_counter()
            visuals = await self._generate_visual_identity(brand_input)
            state.timings["visual_ms"] = (time.perf_counter() - step_started) * 1000

            step_started = time.perf_counter()
            ad, audio = await asyncio.gather(
                self._generate_ad(brand_input, state, request_id),
                self._generate_jingles(brand_input, state, request_id),
            )
            state.timings["optional_ms"] = (time.perf_counter() - step_started) * 1000

            try:
                kit = BrandKit(
                    name=brand_input.name,
                    logo=visuals.logos.primary,
                    logos=visuals.logos,
                    color_palette=visuals.color_palette,
                    typography=visuals.typography,
                    imagery=list(visuals.imagery),
                    social_backdrops=list(visuals.social_backdrops),
                    audio=audio,
                    ad=ad,
                )
            except ValidationError as exc:
                raise KitAssemblyError(f"Brand kit generation failed: {exc}") from exc
        except Exception as exc:
            error_message = str(exc)
            logger.exception(
                "Brand kit generation failed",
                extra={"request_id": request_id, "brand_name": brand_input.name},
            )
            raise
        else:
            status = "success"
            if previous is not None:
                self.release_superseded(previous, kit)
            logger.info(
                "Brand kit generation completed",
                extra={
                    "request_id": request_id,
                    "brand_name": brand_input.name,
                    "degraded": state.degraded,
                    "timings_ms": state.timings,
                },
            )
            return kit
        finally:
            await self._record_run(
                brand_input=brand_input,
                request_id=request_id,
                status=status,
                state=state,
                kit=kit,
                error=error_message,
                duration_ms=(time.perf_counter() - started_at) * 1000,
            )

    def release_superseded(self, previous: BrandKit, current: BrandKit | None = None) -> int:
        """Release local audio refs of ``previous`` that ``current`` no longer uses.

        Persisted URLs are never touched; only refs issued by the local blob
        registry can be released.
        """

        if self._blobs is None:
            return 0
        keep = set(local_audio_refs(current)) if current is not None else set()
        stale = [url for url in local_audio_refs(previous) if url not in keep]
        released = self._blobs.release_all(stale)
        if released:
            logger.debug("Released superseded audio blobs", extra={"released": released})
        return released

    async def _generate_visual_identity(self, brand_input: BrandInput) -> _VisualIdentity:
        adapters = self._adapters
        name, description, keywords = brand_input.name, brand_input.description, brand_input.keywords
        try:
            logos, palette, typography, imagery, backdrops = await asyncio.gather(
                adapters.generate_logo_variants(name, description, keywords),
                adapters.generate_color_palette(description, keywords),
                adapters.generate_typography(description, keywords),
                adapters.generate_brand_imagery(description, keywords, self._imagery_count),
                adapters.generate_social_backdrops(name, description, keywords),
            )
        except AdapterConfigurationError as exc:
            raise KitConfigurationError(str(exc)) from exc
        except Exception as exc:
            raise KitAssemblyError(f"Brand kit generation failed: {exc}") from exc

        return _VisualIdentity(
            logos=logos,
            color_palette=list(palette),
            typography=typography,
            imagery=list(imagery),
            social_backdrops=list(backdrops),
        )

    async def _generate_ad(
        self, brand_input: BrandInput, state: _RunState, request_id: str
    ) -> Optional[BrandAd]:
        try:
            script, voiceover_text = await self._adapters.generate_ad_copy(
                brand_input.name,
                brand_input.description,
                brand_input.keywords,
                brand_input.tone,
            )
        except Exception as exc:
            state.degraded.append("ad_copy")
            logger.warning(
                "Ad copy unavailable", extra={"request_id": request_id}, exc_info=exc
            )
            return None

        script = (script or "").strip()
        if not script:
            state.degraded.append("ad_copy")
            return None

        ad = BrandAd(
            copy_script=script,
            voiceover_text=(voiceover_text or "").strip() or _fallback_voiceover(script),
            voice_id=brand_input.voice_id,
            voice_name=brand_input.voice_name,
        )
        if not (brand_input.generate_voiceover and brand_input.voice_id):
            return ad

        try:
            audio = await self._adapters.generate_voiceover(
                ad.voiceover_text, VOICEOVER_LABEL, brand_input.voice_id
            )
        except Exception as exc:
            state.degraded.append("voiceover")
            logger.warning(
                "Voiceover unavailable", extra={"request_id": request_id}, exc_info=exc
            )
            return ad.model_copy(update={"tts_error": VOICEOVER_UNAVAILABLE})
        return ad.model_copy(update={"audio_url": audio.url})

    async def _generate_jingles(
        self, brand_input: BrandInput, state: _RunState, request_id: str
    ) -> BrandAudio:
        empty = BrandAudio(intro=AudioAsset(name=INTRO_LABEL), outro=AudioAsset(name=OUTRO_LABEL))
        if brand_input.skip_music:
            return empty

        results = await asyncio.gather(
            self._adapters.generate_music(intro_prompt(brand_input.name), INTRO_LABEL),
            self._adapters.generate_music(outro_prompt(brand_input.name), OUTRO_LABEL),
            return_exceptions=True,
        )
        intro, outro = results
        if isinstance(intro, BaseException) or isinstance(outro, BaseException):
            failure = intro if isinstance(intro, BaseException) else outro
            state.degraded.append("music")
            logger.warning(
                "Jingle generation unavailable",
                extra={"request_id": request_id},
                exc_info=failure,
            )
            # a half-finished pair is discarded; release whichever clip did succeed
            if self._blobs is not None:
                for result in results:
                    if isinstance(result, AudioAsset):
                        self._blobs.release(result.url)
            return empty
        return BrandAudio(intro=intro, outro=outro)

    async def _record_run(
        self,
        *,
        brand_input: BrandInput,
        request_id: str,
        status: str,
        state: _RunState,
        kit: BrandKit | None,
        error: str | None,
        duration_ms: float,
    ) -> None:
        if self._run_log is None:
            return

        run = KitRun(
            request_id=request_id,
            brand_name=brand_input.name,
            status=status,
            duration_ms=duration_ms,
            input_hash=_input_hash(brand_input),
            imagery_count=len(kit.imagery) if kit else 0,
            degraded=list(state.degraded),
            error=error,
            metadata={
                "visual_ms": state.timings.get("visual_ms"),
                "optional_ms": state.timings.get("optional_ms"),
                "tone": brand_input.tone.value,
                "skip_music": brand_input.skip_music,
                "generate_voiceover": brand_input.generate_voiceover,
            },
        )
        try:
            await self._run_log.record(run)
        except Exception:  # pragma: no cover - recording must never fail a run
            logger.exception("Recording kit run failed", extra={"request_id": request_id})


def intro_prompt(name: str) -> str:
    return f"Upbeat and modern intro music for {name}"


def outro_prompt(name: str) -> str:
    return f"Calm and conclusive outro music for {name}"


def local_audio_refs(kit: BrandKit | None) -> List[str]:
    """Every audio URL held by ``kit`` (local or not; callers filter)."""

    if kit is None:
        return []
    urls = [kit.audio.intro.url, kit.audio.outro.url]
    if kit.ad and kit.ad.audio_url:
        urls.append(kit.ad.audio_url)
    return [url for url in urls if url]


def _fallback_voiceover(script: str) -> str:
    from brandkit.services.voiceover_text import to_voiceover_text

    return to_voiceover_text(script)


def _input_hash(brand_input: BrandInput) -> str:
    hasher = hashlib.sha256()
    for part in (brand_input.name, brand_input.description, brand_input.keywords, brand_input.tone.value):
        hasher.update(part.strip().encode("utf-8"))
        hasher.update(b"\x00")
    return hasher.hexdigest()


__all__ = [
    "KitAssembler",
    "KitAssemblyError",
    "KitConfigurationError",
    "intro_prompt",
    "local_audio_refs",
    "outro_prompt",
]
