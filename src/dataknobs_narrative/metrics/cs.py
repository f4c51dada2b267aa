"""CS: Coherence Score.

``CS = clamp01(0.50*EC + 0.40*CC - 0.30*LVP)`` where

- EC is the mean Jaccard similarity of the character/location sets of
  consecutive scenes,
- CC scores each consecutive pair by whether a shared entity drives a
  cause verb in the first scene and an effect verb in the second,
- LVP is the logic-violation penalty from semantic errors, location jump
  warnings and CSA violations, per scene.
"""

from __future__ import annotations

from ..context import MetricContext
from ..models import MetricResult, Scene
from ..registry import MetricDescriptor
from ..utils import average, clamp01, jaccard
from .base import scored

CODE = "CS"
THRESHOLD = 0.75

W_EC = 0.50
W_CC = 0.40
W_LVP = 0.30

CC_BOTH = 1.0
CC_ONE = 0.7
CC_SHARED = 0.4


def pair_causal_score(shared: set[str], has_cause: bool, has_effect: bool) -> float:
    if not shared:
        return 0.0
    if has_cause and has_effect:
        return CC_BOTH
    if has_cause or has_effect:
        return CC_ONE
    return CC_SHARED


def _has_verb(scene: Scene | None, verbs: set[str], subjects: set[str]) -> bool:
    if scene is None:
        return False
    return any(
        e.verb.lower() in verbs and e.subject.lower() in subjects for e in scene.events
    )


def compute(ctx: MetricContext) -> MetricResult:
    if not ctx.diagnostics.parse.valid:
        return scored(CODE, 0.0, THRESHOLD, False, {"status": "parse_invalid"})

    world = ctx.world
    scene_ids = world.scenes.ordered_ids
    characters = world.entities.character_names()
    locations = world.entities.location_names()

    def entity_set(scene: Scene | None) -> set[str]:
        out: set[str] = set()
        if scene is None:
            return out
        out.update(m for m in scene.entity_mentions if m in characters or m in locations)
        out.update(c.strip().lower() for c in scene.included_characters if c.strip().lower() in characters)
        out.update(loc.strip().lower() for loc in scene.included_locations if loc.strip().lower() in locations)
        return out

    scenes = [world.scenes.by_id.get(i) for i in scene_ids]
    entity_sets = [entity_set(s) for s in scenes]

    ec_pairs = [jaccard(a, b) for a, b in zip(entity_sets, entity_sets[1:])]
    ec = 1.0 if len(entity_sets) <= 1 else average(ec_pairs)

    cause_verbs = {v.lower() for v in ctx.options.cause_verbs}
    effect_verbs = {v.lower() for v in ctx.options.effect_verbs}

    cc_pairs = []
    cc_details = []
    for i in range(len(scene_ids) - 1):
        shared = entity_sets[i] & entity_sets[i + 1]
        has_cause = _has_verb(scenes[i], cause_verbs, shared)
        has_effect = _has_verb(scenes[i + 1], effect_verbs, shared)
        score = pair_causal_score(shared, has_cause, has_effect)
        cc_pairs.append(score)
        cc_details.append({
            "from": scene_ids[i],
            "to": scene_ids[i + 1],
            "shared": sorted(shared),
            "hasCause": has_cause,
            "hasEffect": has_effect,
            "score": score,
        })
    cc = 1.0 if len(scene_ids) <= 1 else average(cc_pairs)

    semantic_errors = len(ctx.diagnostics.semantic.errors)
    location_jumps = ctx.diagnostics.semantic.warning_codes().count("location_jump")
    csa = ctx.metric("CSA")
    csa_violations = len((csa.details.get("violations") or []) if csa is not None else [])

    violations = semantic_errors + location_jumps + csa_violations
    lvp = min(1.0, violations / max(1, len(scene_ids)))

    value = clamp01(W_EC * ec + W_CC * cc - W_LVP * lvp)
    return scored(
        CODE,
        value,
        THRESHOLD,
        value > THRESHOLD,
        {
            "components": {"EC": ec, "CC": cc, "LVP": lvp},
            "weights": {"w_ec": W_EC, "w_cc": W_CC, "w_lvp": W_LVP},
            "violations": {
                "semantic_errors": semantic_errors,
                "location_jumps": location_jumps,
                "csa_violations": csa_violations,
                "total": violations,
            },
            "pairs": {"ec": ec_pairs, "cc": cc_details},
        },
    )


DESCRIPTOR = MetricDescriptor(
    code=CODE,
    compute=compute,
    depends_on=("CSA",),
    threshold=THRESHOLD,
    description="Coherence Score",
)
