"""CSA: Constraint Satisfaction Accuracy.

Each declared constraint is checked over the scenes it scopes (their
concatenated text plus their entity-mention sets):

- ``requires`` / ``forbids``: presence or absence of the target
- ``must introduce|include|resolve|<action>``: presence, presence plus a
  resolution keyword, or a matching scene event
- ``tone``: a scene declaring the tone, else enough tone keywords in text
- ``max`` / ``min``: counts of scenes, chapters, characters or locations

The score is the satisfied fraction; an empty constraint list is
vacuously satisfied.
"""

from __future__ import annotations

import math
from typing import Any

from ..context import MetricContext
from ..lexicons import RESOLUTION_WORDS, tone_words
from ..models import Constraint, MetricResult, World
from ..registry import MetricDescriptor
from ..utils import as_number, join_scope_text, normalize_string, to_lower_id, union_lower_sets
from .base import scored

CODE = "CSA"
THRESHOLD = 0.98

TONE_MATCH_RATIO = 0.2


def scope_entity_mentions(world: World, scene_ids: list[str]) -> set[str]:
    scenes = (world.scenes.by_id.get(scene_id) for scene_id in scene_ids)
    return union_lower_sets(s.entity_mentions for s in scenes if s is not None)


def count_scope_items(world: World, scene_ids: list[str], what: Any) -> int:
    """Count ``what`` (scenes, chapters, characters, locations) in scope.

    Anything else counts the distinct entity mentions.
    """
    key = to_lower_id(what)
    if not key:
        return 0
    if "scene" in key:
        return len(scene_ids)
    if "chapter" in key:
        chapters = set()
        for scene_id in scene_ids:
            scene = world.scenes.by_id.get(scene_id)
            if scene is not None and scene.chapter_id:
                chapters.add(str(scene.chapter_id))
        return len(chapters)

    mentions = scope_entity_mentions(world, scene_ids)
    if "character" in key:
        return len(mentions & world.entities.character_names())
    if "location" in key:
        return len(mentions & world.entities.location_names())
    return len(mentions)


def _present(text_lower: str, mentions: set[str], target: Any) -> bool:
    t = to_lower_id(target)
    if not t:
        return False
    return t in mentions or t in text_lower


def _check_must(
    world: World, c: Constraint, text_lower: str, mentions: set[str]
) -> tuple[bool, dict[str, Any]]:
    action = to_lower_id(c.action)
    target = normalize_string(c.target)
    target_lower = target.lower()
    evidence = {"action": action, "target": target}

    if action in ("introduce", "include"):
        return _present(text_lower, mentions, target), evidence
    if action == "resolve":
        resolved = any(w in text_lower for w in RESOLUTION_WORDS)
        return _present(text_lower, mentions, target) and resolved, evidence

    for scene_id in c.scene_ids:
        scene = world.scenes.by_id.get(scene_id)
        if scene is None:
            continue
        for event in scene.events:
            if not event.verb or event.verb.lower() != action:
                continue
            objects = [o.lower() for o in event.objects]
            if (
                event.subject.lower() == target_lower
                or target_lower in objects
                or f"{action} {target_lower}" in text_lower
            ):
                return True, evidence
    return False, evidence


def _check_tone(
    world: World, c: Constraint, text_lower: str
) -> tuple[bool, dict[str, Any] | None]:
    value = to_lower_id(c.value)
    for scene_id in c.scene_ids:
        scene = world.scenes.by_id.get(scene_id)
        if scene is not None and to_lower_id(scene.properties.get("tone")) == value:
            return True, {"tone": value, "declared": True}

    words = tone_words(value)
    if not words:
        return True, None
    matches = sum(1 for w in words if w in text_lower)
    needed = math.ceil(len(words) * TONE_MATCH_RATIO)
    return matches >= needed, {"matches": matches, "totalWords": len(words), "words": words}


def _check_limit(world: World, c: Constraint) -> tuple[bool, dict[str, Any]]:
    actual = count_scope_items(world, c.scene_ids, c.what)
    limit = as_number(c.count)
    if limit is None:
        return False, {"error": "invalid_limit", "what": c.what, "limit": c.count}
    ok = actual <= limit if c.type == "max" else actual >= limit
    return ok, {"what": c.what, "actual": actual, "limit": limit}


def check_constraint(world: World, c: Constraint) -> tuple[bool, dict[str, Any] | None]:
    """Evaluate one constraint; returns ``(satisfied, evidence)``."""
    text_lower = join_scope_text(world, c.scene_ids).lower()
    mentions = scope_entity_mentions(world, c.scene_ids)

    if c.type == "requires":
        return _present(text_lower, mentions, c.target), {"target": normalize_string(c.target)}
    if c.type == "forbids":
        return not _present(text_lower, mentions, c.target), {"target": normalize_string(c.target)}
    if c.type == "must":
        return _check_must(world, c, text_lower, mentions)
    if c.type == "tone":
        return _check_tone(world, c, text_lower)
    if c.type in ("max", "min"):
        return _check_limit(world, c)
    # unrecognized constraint kinds are not checked
    return True, None


def compute(ctx: MetricContext) -> MetricResult:
    world = ctx.world
    constraints = world.constraints
    if not constraints:
        return scored(CODE, 1.0, THRESHOLD, True, {"total": 0, "satisfied": 0, "violations": [], "results": []})

    results = []
    satisfied = 0
    for c in constraints:
        ok, evidence = check_constraint(world, c)
        if ok:
            satisfied += 1
        results.append({
            "type": c.type,
            "subject": c.subject,
            "scopeId": c.scope_id,
            "sceneIds": list(c.scene_ids),
            "line": c.line,
            "ok": ok,
            "evidence": evidence,
        })

    total = len(constraints)
    value = satisfied / total
    violations = [
        {k: r[k] for k in ("type", "subject", "scopeId", "line", "evidence")}
        for r in results
        if not r["ok"]
    ]
    return scored(
        CODE,
        value,
        THRESHOLD,
        value >= THRESHOLD,
        {"satisfied": satisfied, "total": total, "violations": violations, "results": results},
    )


DESCRIPTOR = MetricDescriptor(
    code=CODE,
    compute=compute,
    threshold=THRESHOLD,
    description="Constraint Satisfaction Accuracy",
)
