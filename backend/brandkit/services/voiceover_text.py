"""Turn an ad script with stage directions into clean text-to-speech input."""
from __future__ import annotations

import re

# **SFX: whoosh** / __Music swells__
_EMPHASIZED_SPANS = re.compile(r"(\*\*|__)(.+?)\1", re.DOTALL)
# [Sound of waves] / (upbeat music) / {pause}
_BRACKETED = re.compile(r"\[[^\]]*\]|\([^)]*\)|\{[^}]*\}")
_LABELS = re.compile(
    r"\b(?:voice[\s-]?over|vo|sfx|narrator|announcer|music|sound|speaker(?:\s*\d+)?)\s*:",
    re.IGNORECASE,
)
_BARE_VOICEOVER = re.compile(r"\bvoice[\s-]?over\b:?", re.IGNORECASE)
_MARKERS = re.compile(r"[*_#`~\"“”]")
_WHITESPACE = re.compile(r"\s+")


def to_voiceover_text(script: str) -> str:
    """Strip stage directions, emphasis markers and labels from ``script``.

    The result is never empty when ``script`` contains any non-whitespace
    character: if stripping removes everything, the whitespace-collapsed
    script is returned instead.
    """

    raw = script or ""
    text = _EMPHASIZED_SPANS.sub(" ", raw)
    text = _BRACKETED.sub(" ", text)
    text = _LABELS.sub(" ", text)
    text = _BARE_VOICEOVER.sub(" ", text)
    text = _MARKERS.sub(" ", text)
    text = _WHITESPACE.sub(" ", text).strip()
    text = re.sub(r"\s+([,.!?;:])", r"\1", text)
    if text:
        return text
    return _WHITESPACE.sub(" ", raw).strip()


__all__ = ["to_voiceover_text"]
