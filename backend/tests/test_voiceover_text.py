"""Tests for the voiceover text normaliser."""
from __future__ import annotations

import pytest

from brandkit.services.voiceover_text import to_voiceover_text


def test_strips_stage_directions_and_labels() -> None:
    script = "[Sound of waves] NARRATOR: Meet Solara Coffee. (beat) VO: Brewed for busy mornings!"

    assert to_voiceover_text(script) == "Meet Solara Coffee. Brewed for busy mornings!"


def test_strips_bold_directions_and_markers() -> None:
    script = '**SFX: whoosh** Say hello to #NovaFit, your "smart" coach.'

    assert to_voiceover_text(script) == "Say hello to NovaFit, your smart coach."


def test_plain_text_is_kept() -> None:
    assert to_voiceover_text("Simple   words,  nothing else .") == "Simple words, nothing else."


@pytest.mark.parametrize("script", ["[music]", "(pause) {beat}", "**Music swells**"])
def test_never_empty_for_non_empty_script(script: str) -> None:
    assert to_voiceover_text(script) == script


def test_empty_script_stays_empty() -> None:
    assert to_voiceover_text("   ") == ""
