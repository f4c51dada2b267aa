"""OI: Originality Index, ``1 - max similarity`` to a trope corpus."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..context import MetricContext
from ..models import MetricResult
from ..registry import MetricDescriptor
from ..utils import clamp01, first_present, normalize_string
from .base import scored, skipped

CODE = "OI"
THRESHOLD = 0.8

PREVIEW_CHARS = 140


def trope_text(entry: Any) -> str:
    if entry is None:
        return ""
    if isinstance(entry, Mapping):
        return normalize_string(first_present(entry, "text", "description", "trope", "name", default=""))
    return normalize_string(entry)


def trope_id(entry: Any, index: int) -> str:
    if isinstance(entry, Mapping):
        return str(first_present(entry, "id", "key", "trope", "name", default=f"trope_{index}"))
    return f"trope_{index}"


def compute(ctx: MetricContext) -> MetricResult:
    tropes = ctx.corpora.tropes
    if not tropes:
        return skipped(CODE, THRESHOLD, "missing_trope_corpus")

    story_text = normalize_string(ctx.world.texts.document_text)
    if not story_text:
        return skipped(CODE, THRESHOLD, "missing_story_text")

    story = ctx.embed(story_text)
    max_sim = 0.0
    best = None
    for i, entry in enumerate(tropes):
        text = trope_text(entry)
        if not text:
            continue
        sim = clamp01(ctx.cosine(story, ctx.embed(text)))
        # ties go to the later trope
        if sim >= max_sim:
            max_sim = sim
            best = {"id": trope_id(entry, i), "similarity": sim, "preview": text[:PREVIEW_CHARS]}

    value = clamp01(1.0 - max_sim)
    return scored(
        CODE,
        value,
        THRESHOLD,
        value > THRESHOLD,
        {
            "corpus_size": len(tropes),
            "max_similarity": max_sim,
            "best_match": best,
            "profile": ctx.profile,
        },
    )


DESCRIPTOR = MetricDescriptor(
    code=CODE,
    compute=compute,
    threshold=THRESHOLD,
    description="Originality Index",
)
