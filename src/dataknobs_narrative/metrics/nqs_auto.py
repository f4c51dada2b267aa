"""NQS_AUTO: automated narrative quality composite.

A weighted mean over up to twelve components: six structural sub-scores
derived from the extracted entities and the world, plus the upstream
metrics CS, CAD (as ``cad_quality``), OI, EAP, CPSR and CSA. Components
whose upstream value is unavailable are dropped and the weights are
renormalized over what remains, so a missing optional input never drags
the score down.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

from ..context import MetricContext
from ..entities import extract_entities_from_ast
from ..models import ExtractedEntities, MetricResult, World
from ..registry import MetricDescriptor
from ..utils import as_number, clamp01, normalize_string
from .base import scored, skipped

CODE = "NQS_AUTO"
THRESHOLD = 0.70

WEIGHTS: dict[str, float] = {
    "completeness": 0.12,
    "cs": 0.12,
    "cad_quality": 0.08,
    "oi": 0.08,
    "eap": 0.10,
    "cpsr": 0.08,
    "csa": 0.08,
    "explainability": 0.08,
    "charContinuity": 0.08,
    "locLogic": 0.06,
    "actionCoherence": 0.06,
    "sceneCompleteness": 0.06,
}

UPSTREAM = {"cs": "CS", "oi": "OI", "eap": "EAP", "cpsr": "CPSR", "csa": "CSA"}

_DIGITS_RE = re.compile(r"^\d+$")
_ID_LIKE_RE = re.compile(r"^[A-Z]|[A-Za-z]*\d")


def entities_for(ctx: MetricContext) -> ExtractedEntities:
    """Entities from the parser AST when it declares any, else from the world."""
    if ctx.ast and isinstance(ctx.ast.get("entities"), Mapping) and ctx.ast["entities"]:
        return extract_entities_from_ast(ctx.ast)
    return ctx.world.entities


def _ratio(count: int, needed: int) -> float:
    return 1.0 if count >= needed else count / needed


def completeness_score(counts: Mapping[str, int]) -> float:
    return clamp01(
        _ratio(counts["characters"], 2) * 0.20
        + _ratio(counts["locations"], 2) * 0.15
        + _ratio(counts["scenes"], 3) * 0.25
        + (1.0 if counts["themes"] >= 1 else 0.0) * 0.10
        + _ratio(counts["dialogues"], 2) * 0.15
        + _ratio(counts["relationships"], 2) * 0.15
    )


def explainability_score(entities: ExtractedEntities, arc_name: Any) -> float:
    score = 0.0
    if arc_name:
        score += 0.15
    if entities.themes:
        score += 0.15
    if entities.relationships:
        score += 0.15
    if entities.world_rules:
        score += 0.15
    if len(entities.moods) >= 3:
        score += 0.15
    if entities.wisdom:
        score += 0.15
    if entities.patterns:
        score += 0.10
    return clamp01(score)


def scene_appearances(world: World, keys: Iterable[str]) -> dict[str, int]:
    """Number of ordered scenes whose mentions include each key."""
    counts = {k: 0 for k in keys}
    for scene in world.scenes.ordered():
        for key in counts:
            if key in scene.entity_mentions:
                counts[key] += 1
    return counts


def char_continuity_score(world: World, entities: ExtractedEntities) -> float:
    keys = [c.key for c in entities.characters]
    if not keys:
        return 0.0
    counts = scene_appearances(world, keys)
    recurring = sum(1 for n in counts.values() if n >= 2)

    hero = next(
        (c for c in entities.characters if str(c.archetype or "").lower() in ("protagonist", "hero")),
        entities.characters[0],
    )
    scene_count = world.scenes.count
    presence = counts.get(hero.key, 0) / scene_count if scene_count else 0.0
    return clamp01((recurring / len(keys)) * 0.5 + min(1.0, presence) * 0.5)


def loc_logic_score(world: World, entities: ExtractedEntities) -> float:
    keys = [loc.key for loc in entities.locations]
    if not keys:
        return 0.0
    counts = scene_appearances(world, keys)
    reused = sum(1 for n in counts.values() if n >= 2)
    avg_usage = sum(counts.values()) / len(keys)
    expected = max(3.0, world.scenes.count / 3)
    return clamp01(min(1.0, (reused / len(keys)) * 0.5 + (avg_usage / max(1.0, expected)) * 0.5))


def looks_like_entity_id(token: Any) -> bool:
    """Single capitalized or digit-bearing word such as ``Anna`` or ``R2``."""
    t = normalize_string(token)
    if not t or any(ch.isspace() for ch in t) or _DIGITS_RE.match(t):
        return False
    return bool(_ID_LIKE_RE.search(t))


def action_coherence_score(world: World, entities: ExtractedEntities) -> float:
    chars = {c.key for c in entities.characters}
    known = chars | {loc.key for loc in entities.locations} | {o.key for o in entities.objects}

    total = 0
    valid = 0
    for scene in world.scenes.ordered():
        for event in scene.events:
            total += 1
            subject_ok = event.subject.lower() in chars
            obj = normalize_string(event.objects[0]) if event.objects else ""
            object_ok = not obj or obj.lower() in known or not looks_like_entity_id(obj)
            if subject_ok and object_ok:
                valid += 1
    if total == 0:
        return 1.0
    return clamp01(valid / total)


def scene_completeness_score(world: World, entities: ExtractedEntities) -> float:
    if not world.scenes.count:
        return 0.0
    chars = {c.key for c in entities.characters}
    locs = {loc.key for loc in entities.locations}
    complete = sum(
        1
        for scene in world.scenes.ordered()
        if scene.entity_mentions & chars and scene.entity_mentions & locs and scene.events
    )
    return clamp01(complete / world.scenes.count)


def weighted_composite(
    components: Mapping[str, float | None], weights: Mapping[str, float] = WEIGHTS
) -> tuple[float | None, list[str], list[str]]:
    """Renormalized weighted mean over the available components.

    Returns:
        ``(score, used, missing)``; ``score`` is None when nothing is available.
    """
    used = []
    total_w = 0.0
    total = 0.0
    for key, w in weights.items():
        v = as_number(components.get(key))
        if v is None:
            continue
        used.append(key)
        total_w += w
        total += v * w
    missing = [k for k in weights if k not in used]
    if not total_w:
        return None, used, missing
    return clamp01(total / total_w), used, missing


def compute(ctx: MetricContext) -> MetricResult:
    world = ctx.world
    entities = entities_for(ctx)
    counts = {
        "characters": len(entities.characters),
        "locations": len(entities.locations),
        "scenes": world.scenes.count,
        "themes": len(entities.themes),
        "dialogues": len(entities.dialogues),
        "relationships": len(entities.relationships),
    }
    blueprint = (ctx.ast or {}).get("blueprint")
    arc_name = blueprint.get("arc") if isinstance(blueprint, Mapping) else None

    cad = ctx.metric_value("CAD")
    components: dict[str, float | None] = {
        "completeness": completeness_score(counts),
        "cad_quality": None if cad is None else clamp01(1 - min(1.0, cad * 4)),
        "explainability": explainability_score(entities, arc_name),
        "charContinuity": char_continuity_score(world, entities),
        "locLogic": loc_logic_score(world, entities),
        "actionCoherence": action_coherence_score(world, entities),
        "sceneCompleteness": scene_completeness_score(world, entities),
    }
    for key, code in UPSTREAM.items():
        components[key] = ctx.metric_value(code)
    components = {k: components[k] for k in WEIGHTS}

    score, used, missing = weighted_composite(components)
    if score is None:
        return skipped(CODE, THRESHOLD, "no_components", components=components)

    return scored(
        CODE,
        score,
        THRESHOLD,
        score >= THRESHOLD,
        {
            "score": score,
            "used_components": used,
            "missing_components": missing,
            "weights": dict(WEIGHTS),
            "components": components,
            "counts": counts,
        },
    )


DESCRIPTOR = MetricDescriptor(
    code=CODE,
    compute=compute,
    depends_on=("CS", "CAD", "OI", "EAP", "CPSR", "CSA", "CAR"),
    threshold=THRESHOLD,
    description="Narrative Quality Score (automated)",
)
