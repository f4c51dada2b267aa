"""CAD: Character Attribute Drift.

For each character with declared traits, the portrayal in each
token-budgeted window of scenes is compared against the trait baseline:
``drift = 1 - clamp01(cosine(embed(name + traits), embed(mentions)))``.
Lower is better; the metric passes when the mean drift is below 0.15.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..context import MetricContext
from ..models import CharacterEntity, MetricResult, World
from ..registry import MetricDescriptor
from ..utils import average, clamp01, fold_diacritics, normalize_string, split_sentences
from .base import scored, skipped

CODE = "CAD"
THRESHOLD = 0.15

WORST_WINDOWS = 3


@dataclass
class TextWindow:
    index: int
    scene_ids: list[str] = field(default_factory=list)
    texts: list[str] = field(default_factory=list)
    token_count: int = 0

    @property
    def text(self) -> str:
        return "\n".join(self.texts)


def build_windows(world: World, budget: int) -> list[TextWindow]:
    """Partition ordered scenes into windows of at most ``budget`` tokens.

    Scenes are never split: a window is closed before a scene that would
    push it over budget, so a single oversized scene gets its own window.
    When there are no scenes the whole document text is one window.
    """
    windows: list[TextWindow] = []
    current = TextWindow(index=1)

    for scene in world.scenes.ordered():
        if current.scene_ids and current.token_count + scene.token_count > budget:
            windows.append(current)
            current = TextWindow(index=len(windows) + 1)
        current.scene_ids.append(scene.id)
        text = normalize_string(scene.text)
        if text:
            current.texts.append(text)
        current.token_count += scene.token_count

    if current.scene_ids:
        windows.append(current)

    if not windows and normalize_string(world.texts.document_text):
        windows.append(TextWindow(
            index=1,
            scene_ids=list(world.scenes.ordered_ids),
            texts=[world.texts.document_text],
            token_count=world.texts.token_count,
        ))
    return windows


def mention_sentences(text: str, aliases: list[str]) -> list[str]:
    """Sentences of ``text`` that mention any alias, ignoring case and accents."""
    folded = [fold_diacritics(a) for a in aliases if a]
    return [s for s in split_sentences(text) if any(a in fold_diacritics(s) for a in folded)]


def character_drift(
    ctx: MetricContext, character: CharacterEntity, windows: list[TextWindow]
) -> dict[str, Any]:
    baseline = ctx.embed(f"{character.name} {' '.join(character.traits)}".strip())
    aliases = character.aliases

    scores = []
    for window in windows:
        sentences = mention_sentences(window.text, aliases)
        if not sentences:
            continue
        similarity = clamp01(ctx.cosine(baseline, ctx.embed(". ".join(sentences))))
        scores.append({
            "window_index": window.index,
            "sceneIds": list(window.scene_ids),
            "similarity": similarity,
            "drift": 1.0 - similarity,
        })

    entry: dict[str, Any] = {
        "character": character.name,
        "traits": list(character.traits),
        "windows_analyzed": len(scores),
    }
    if not scores:
        entry.update(status="no_mentions", CAD_char=None, worst_windows=[])
        return entry

    worst = sorted(scores, key=lambda s: s["drift"], reverse=True)[:WORST_WINDOWS]
    entry.update(status="ok", CAD_char=average(s["drift"] for s in scores), worst_windows=worst)
    return entry


def compute(ctx: MetricContext) -> MetricResult:
    eligible = [c for c in ctx.world.entities.characters if c.traits]
    if not eligible:
        return skipped(CODE, THRESHOLD, "no_characters_with_traits")

    budget = ctx.options.cad_window_tokens
    windows = build_windows(ctx.world, budget)
    if not windows:
        return skipped(CODE, THRESHOLD, "no_text_windows")

    per_character = [character_drift(ctx, c, windows) for c in eligible]
    computed = [p for p in per_character if p["CAD_char"] is not None]
    if not computed:
        return skipped(CODE, THRESHOLD, "no_character_windows", per_character=per_character)

    value = average(p["CAD_char"] for p in computed)
    return scored(
        CODE,
        value,
        THRESHOLD,
        value < THRESHOLD,
        {
            "window_token_size": budget,
            "windows_total": len(windows),
            "characters_total": len(eligible),
            "characters_computed": len(computed),
            "per_character": per_character,
        },
    )


DESCRIPTOR = MetricDescriptor(
    code=CODE,
    compute=compute,
    threshold=THRESHOLD,
    description="Character Attribute Drift",
)
