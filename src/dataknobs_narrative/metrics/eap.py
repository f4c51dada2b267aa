"""EAP: Emotional Arc Profile.

Scene valences (from declared moods, falling back to a small sentiment
lexicon) form the measured arc. Both the measured arc and a target
template are resampled to ten points and compared with Pearson's ``r``;
``EAP = clamp01((r + 1) / 2)``. A constant sequence has no defined
correlation and is scored ``r = 0``, a neutral 0.5.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Sequence

import numpy as np

from ..context import MetricContext
from ..lexicons import (
    ARC_TEMPLATES,
    DEFAULT_ARC,
    EMOTIONS,
    MOOD_PRESETS,
    NEGATIVE,
    POSITIVE,
    SENTIMENT_NEGATIVE,
    SENTIMENT_POSITIVE,
)
from ..models import MetricResult, Scene
from ..registry import MetricDescriptor
from ..utils import as_number, clamp01, normalize_string, to_lower_id
from .base import scored, skipped

logger = logging.getLogger(__name__)

CODE = "EAP"
THRESHOLD = 0.85
CORRELATION_THRESHOLD = 0.7

ARC_POINTS = 10
NEUTRAL = 0.5

_POSITIVE_RE = [re.compile(rf"\b{w}\b") for w in SENTIMENT_POSITIVE]
_NEGATIVE_RE = [re.compile(rf"\b{w}\b") for w in SENTIMENT_NEGATIVE]


def emotion_valence(emotion: str) -> float:
    kind = EMOTIONS.get(str(emotion).lower())
    if kind == POSITIVE:
        return 1.0
    if kind == NEGATIVE:
        return 0.0
    return NEUTRAL


def valence_from_emotions(emotions: Any) -> float | None:
    """Weighted mean valence of ``{emotion: intensity}``.

    Non-numeric intensities weigh 1; non-positive ones are ignored.
    """
    if not isinstance(emotions, Mapping):
        return None
    total_w = 0.0
    total = 0.0
    for key, raw_w in emotions.items():
        w = as_number(raw_w)
        if w is None:
            w = 1.0
        if w <= 0:
            continue
        total_w += w
        total += emotion_valence(key) * w
    if not total_w:
        return None
    return clamp01(total / total_w)


def _preset_by_label(label: str) -> str | None:
    target = label.strip().lower()
    for key, preset in MOOD_PRESETS.items():
        if to_lower_id(preset.get("label")) == target:
            return key
    return None


def mood_valence(scene: Scene, ast: Mapping[str, Any] | None) -> tuple[float, dict[str, Any]] | None:
    """Valence from the scene's declared mood, or None if it cannot be resolved."""
    mood = normalize_string(scene.properties.get("mood"))
    if not mood:
        return None
    key = mood.lower()

    if key in MOOD_PRESETS:
        v = valence_from_emotions(MOOD_PRESETS[key]["emotions"])
        if v is not None:
            return v, {"kind": "preset", "id": key}

    label_key = _preset_by_label(mood)
    if label_key is not None:
        v = valence_from_emotions(MOOD_PRESETS[label_key]["emotions"])
        if v is not None:
            return v, {"kind": "preset_label", "id": label_key}

    entities = (ast or {}).get("entities")
    entity = entities.get(mood) if isinstance(entities, Mapping) else None
    if isinstance(entity, Mapping) and to_lower_id(entity.get("type")) == "mood":
        v = valence_from_emotions((entity.get("properties") or {}).get("emotions"))
        if v is not None:
            return v, {"kind": "mood_entity", "id": mood}

    if key in EMOTIONS:
        return emotion_valence(key), {"kind": "emotion", "id": key}
    return None


def sentiment_valence(text: str) -> float:
    lower = normalize_string(text).lower()
    if not lower:
        return NEUTRAL
    pos = sum(len(p.findall(lower)) for p in _POSITIVE_RE)
    neg = sum(len(p.findall(lower)) for p in _NEGATIVE_RE)
    raw = (pos - neg) / max(1, pos + neg)
    return clamp01((raw + 1) / 2)


def arc_points(values: Sequence[Any]) -> list[float]:
    """Finite floats for an arc; invalid points become neutral."""
    points = []
    for v in values or []:
        n = as_number(v)
        points.append(NEUTRAL if n is None else n)
    return points


def resample(values: Sequence[Any], n: int = ARC_POINTS) -> list[float]:
    """Resample to ``n`` points.

    Longer sequences are bucket-averaged, shorter ones linearly
    interpolated; a sequence already of length ``n`` is returned as is.
    """
    arr = arc_points(values)
    if not arr:
        return [NEUTRAL] * n
    if len(arr) == n:
        return arr

    length = len(arr)
    if length > n:
        out = []
        for i in range(n):
            start = (i * length) // n
            end = max(start + 1, ((i + 1) * length) // n)
            out.append(float(np.mean(arr[start:end])))
        return out

    if n == 1:
        return [arr[0]]
    positions = np.linspace(0, length - 1, n)
    return [float(v) for v in np.interp(positions, np.arange(length), arr)]


def pearson(a: Sequence[float], b: Sequence[float]) -> float:
    """Pearson correlation; 0 when lengths differ or either side is constant."""
    if len(a) != len(b) or not len(a):
        return 0.0
    xa = np.asarray(a, dtype=np.float64)
    xb = np.asarray(b, dtype=np.float64)
    da = xa - xa.mean()
    db = xb - xb.mean()
    var_a = float(np.dot(da, da))
    var_b = float(np.dot(db, db))
    if not var_a or not var_b:
        return 0.0
    return float(np.dot(da, db)) / float(np.sqrt(var_a * var_b))


def resolve_target(target_arc: Any) -> tuple[list[float], str]:
    """Target arc values and the template name reported in details."""
    if isinstance(target_arc, (list, tuple)):
        return arc_points(target_arc), "custom_array"
    key = to_lower_id(target_arc) or DEFAULT_ARC
    if key not in ARC_TEMPLATES:
        logger.debug("Unknown arc template '%s', using %s", key, DEFAULT_ARC)
        key = DEFAULT_ARC
    return list(ARC_TEMPLATES[key]), key


def compute(ctx: MetricContext) -> MetricResult:
    scene_ids = ctx.world.scenes.ordered_ids
    if not scene_ids:
        return skipped(CODE, THRESHOLD, "no_scenes")

    target, template = resolve_target(ctx.options.target_arc)

    measured = []
    per_scene = []
    for scene_id in scene_ids:
        scene = ctx.world.scenes.by_id.get(scene_id) or Scene(id=scene_id)
        resolved = mood_valence(scene, ctx.ast)
        if resolved is None:
            valence, source = sentiment_valence(scene.text), {"kind": "sentiment"}
        else:
            valence, source = resolved
        measured.append(valence)
        per_scene.append({"sceneId": scene_id, "valence": valence, "source": source})

    target_n = resample(target)
    measured_n = resample(measured)
    r = pearson(target_n, measured_n)
    value = clamp01((r + 1) / 2)

    return scored(
        CODE,
        value,
        THRESHOLD,
        r > CORRELATION_THRESHOLD,
        {
            "correlation_r": r,
            "correlation_threshold": CORRELATION_THRESHOLD,
            "template": template,
            "measured_scene_valence": per_scene,
            "resampled": {"target": target_n, "measured": measured_n},
        },
    )


DESCRIPTOR = MetricDescriptor(
    code=CODE,
    compute=compute,
    threshold=THRESHOLD,
    description="Emotional Arc Profile",
)
