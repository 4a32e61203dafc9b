"""Curated random brand ideas used to prefill the generation form."""
from __future__ import annotations

import random

from brandkit.schemas.brand_kit import BrandIdea, Tone

NAMES = ("Solara Coffee", "NovaFit", "Lumen AI", "Breeze Bank", "CozyCart")
DESCRIPTIONS = (
    "A modern, eco-friendly coffee brand for busy professionals.",
    "A smart fitness companion that makes workouts simple and fun.",
    "An AI assistant that streamlines creative workflows.",
    "A digital-first, fee-free bank with personality.",
    "A delightful shopping app focused on curated essentials.",
)
VIBES = (
    "minimalist, warm, friendly",
    "bold, energetic, confident",
    "clean, professional, trustworthy",
    "playful, modern, vibrant",
)


def random_brand_idea(rng: random.Random | None = None) -> BrandIdea:
    picker = rng or random
    return BrandIdea(
        name=picker.choice(NAMES),
        description=picker.choice(DESCRIPTIONS),
        keywords=picker.choice(VIBES),
        tone=Tone.FRIENDLY,
    )


__all__ = ["random_brand_idea"]
