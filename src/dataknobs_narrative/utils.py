"""Pure numeric and string helpers shared by the metric plugins."""

from __future__ import annotations

import math
import re
import unicodedata
from typing import TYPE_CHECKING, Any, Iterable, Mapping

if TYPE_CHECKING:
    from .models import World

_WHITESPACE_RE = re.compile(r"\s+")
_SENTENCE_END_RE = re.compile(r"[.!?]+")


def clamp(x: Any, lo: float, hi: float) -> float | None:
    """Clamp a finite number into ``[lo, hi]``; None for non-finite input."""
    n = as_number(x)
    if n is None:
        return None
    return max(lo, min(hi, n))


def clamp01(x: Any) -> float:
    """Clamp into ``[0, 1]``; non-finite input maps to 0."""
    n = as_number(x)
    if n is None:
        return 0.0
    return max(0.0, min(1.0, n))


def as_number(x: Any) -> float | None:
    """Coerce to a finite float, or None.

    Booleans are not numbers here, and neither are NaN or infinities.
    """
    if x is None or isinstance(x, bool):
        return None
    try:
        n = float(x)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(n):
        return None
    return n


def first_present(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present, non-None value among ``keys``."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def normalize_string(x: Any) -> str:
    if x is None:
        return ""
    return str(x).strip()


def to_lower_id(x: Any) -> str:
    return normalize_string(x).lower()


def fold_diacritics(text: str) -> str:
    """Lowercase and strip combining marks (``"Zoë"`` -> ``"zoe"``)."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def count_tokens(text: Any) -> int:
    s = normalize_string(text)
    if not s:
        return 0
    return len([t for t in _WHITESPACE_RE.split(s) if t])


def split_sentences(text: Any) -> list[str]:
    """Split on runs of ``.``, ``!`` and ``?``, dropping empty pieces."""
    parts = _SENTENCE_END_RE.split(normalize_string(text))
    return [p.strip() for p in parts if p.strip()]


def join_scope_text(world: World, scene_ids: Iterable[str]) -> str:
    """Concatenate the non-empty texts of the given scenes, newline-joined."""
    parts = []
    for scene_id in scene_ids or []:
        scene = world.scenes.by_id.get(scene_id)
        if scene is None:
            continue
        text = normalize_string(scene.text)
        if text:
            parts.append(text)
    return "\n".join(parts)


def union_lower_sets(sets: Iterable[Iterable[Any]]) -> set[str]:
    out: set[str] = set()
    for s in sets or []:
        for v in s or []:
            out.add(str(v).lower())
    return out


def jaccard(a: Iterable[Any], b: Iterable[Any]) -> float:
    """Jaccard similarity ``|A & B| / |A | B|``; two empty sets score 1."""
    set_a = a if isinstance(a, (set, frozenset)) else set(a or [])
    set_b = b if isinstance(b, (set, frozenset)) else set(b or [])
    if not set_a and not set_b:
        return 1.0
    inter = len(set_a & set_b)
    union = len(set_a) + len(set_b) - inter
    return inter / union if union else 0.0


def average(nums: Iterable[Any]) -> float:
    """Mean of the finite values; 0 when there are none."""
    values = [n for n in (as_number(x) for x in nums or []) if n is not None]
    if not values:
        return 0.0
    return sum(values) / len(values)
