"""Built-in vocabulary tables used by the text-driven metrics.

These are deliberately small, fixed tables covering the vocabulary the
built-in metrics need.
"""

from __future__ import annotations

POSITIVE = "positive"
NEGATIVE = "negative"
MIXED = "mixed"

# Emotion key -> valence class
EMOTIONS: dict[str, str] = {
    "joy": POSITIVE,
    "hope": POSITIVE,
    "love": POSITIVE,
    "wonder": POSITIVE,
    "serenity": POSITIVE,
    "gratitude": POSITIVE,
    "pride": POSITIVE,
    "amusement": POSITIVE,
    "fear": NEGATIVE,
    "sadness": NEGATIVE,
    "anger": NEGATIVE,
    "disgust": NEGATIVE,
    "anxiety": NEGATIVE,
    "despair": NEGATIVE,
    "guilt": NEGATIVE,
    "shame": NEGATIVE,
    "nostalgia": MIXED,
    "suspense": MIXED,
    "curiosity": MIXED,
    "awe": MIXED,
    "melancholy": MIXED,
    "longing": MIXED,
    "unease": MIXED,
    "tension": MIXED,
}

# Mood preset key -> (display label, weighted emotions)
MOOD_PRESETS: dict[str, dict] = {
    "mysterious": {"label": "Mysterious", "emotions": {"curiosity": 2, "unease": 1, "wonder": 1}},
    "ominous": {"label": "Ominous", "emotions": {"fear": 2, "anxiety": 2, "tension": 1}},
    "triumphant": {"label": "Triumphant", "emotions": {"joy": 3, "pride": 2, "hope": 1}},
    "melancholic": {"label": "Melancholic", "emotions": {"sadness": 2, "nostalgia": 2, "longing": 1}},
    "romantic": {"label": "Romantic", "emotions": {"love": 3, "longing": 1, "hope": 1}},
    "tense": {"label": "Tense", "emotions": {"tension": 3, "anxiety": 2, "fear": 1}},
    "peaceful": {"label": "Peaceful", "emotions": {"serenity": 3, "gratitude": 1, "hope": 1}},
    "adventurous": {"label": "Adventurous", "emotions": {"curiosity": 2, "wonder": 2, "hope": 1}},
    "horrific": {"label": "Horrific", "emotions": {"fear": 3, "disgust": 2, "despair": 1}},
    "comedic": {"label": "Comedic", "emotions": {"amusement": 3, "joy": 2, "wonder": 1}},
    "epic": {"label": "Epic", "emotions": {"awe": 3, "tension": 2, "hope": 1}},
    "intimate": {"label": "Intimate", "emotions": {"love": 2, "serenity": 2, "longing": 1}},
    "desperate": {"label": "Desperate", "emotions": {"despair": 2, "tension": 2, "fear": 2}},
    "revelatory": {"label": "Revelatory", "emotions": {"awe": 2, "wonder": 2, "curiosity": 1}},
    "bittersweet": {"label": "Bittersweet", "emotions": {"joy": 2, "sadness": 2, "nostalgia": 1}},
}

TONE_WORDS: dict[str, list[str]] = {
    "hopeful": ["hope", "bright", "future", "better", "light", "promise", "optimistic"],
    "melancholic": ["sad", "sorrow", "loss", "grief", "longing", "wistful", "regret"],
    "determination": ["resolve", "determined", "unwavering", "strong", "push", "overcome"],
    "neutral": ["stated", "according", "research", "data", "analysis", "evidence"],
    "grounded": ["real", "practical", "everyday", "simple", "ordinary", "mundane"],
    "dark": ["shadow", "fear", "danger", "threat", "ominous", "dread"],
    "light": ["joy", "happy", "bright", "sunny", "cheerful", "warm"],
    "mysterious": ["unknown", "secret", "hidden", "strange", "enigma", "puzzle"],
    "tense": ["tension", "pressure", "urgent", "critical", "desperate", "intense"],
}

RESOLUTION_WORDS = ("resolved", "solved", "ended", "concluded", "settled", "peace")

SENTIMENT_POSITIVE = (
    "happy", "joy", "hope", "love", "bright", "success", "win", "triumph", "peace", "warm",
)
SENTIMENT_NEGATIVE = (
    "sad", "fear", "dark", "loss", "fail", "pain", "death", "cold", "angry", "hate",
)

_MAN_IN_A_HOLE = [0.6, 0.5, 0.4, 0.35, 0.3, 0.25, 0.35, 0.5, 0.7, 0.8]
_TRAGEDY = [0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.6, 0.4, 0.3, 0.2]
_RAGS_TO_RICHES = [0.2, 0.3, 0.35, 0.4, 0.5, 0.55, 0.6, 0.7, 0.75, 0.8]
_STEADY_FALL = [0.8, 0.75, 0.7, 0.6, 0.55, 0.5, 0.4, 0.35, 0.3, 0.2]

# 10-point target arcs in [0, 1]
ARC_TEMPLATES: dict[str, list[float]] = {
    "man_in_a_hole": _MAN_IN_A_HOLE,
    "tragedy": _TRAGEDY,
    "rags_to_riches": _RAGS_TO_RICHES,
    "steady_fall": _STEADY_FALL,
    "fall_rise": _MAN_IN_A_HOLE,
    "rise_fall": _TRAGEDY,
    "steady_rise": _RAGS_TO_RICHES,
}

DEFAULT_ARC = "man_in_a_hole"


def tone_words(tone: str) -> list[str]:
    """Keywords for a tone; an unknown tone is its own single keyword."""
    key = str(tone or "").strip().lower()
    return list(TONE_WORDS.get(key, [key] if key else []))
