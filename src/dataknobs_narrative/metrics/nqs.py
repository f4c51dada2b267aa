"""NQS: hybrid Narrative Quality Score, ``0.5*CS + 0.5*H``.

``H`` is the mean human overall rating mapped from 1..5 onto 0..1. There
is no absolute threshold: the score is judged only against a supplied
baseline, passing on a relative improvement of at least 25%.
"""

from __future__ import annotations

from ..context import MetricContext
from ..models import MetricResult
from ..registry import MetricDescriptor
from ..utils import as_number, clamp01
from .base import scored, skipped

CODE = "NQS"
MIN_IMPROVEMENT = 0.25


def compute(ctx: MetricContext) -> MetricResult:
    cs = ctx.metric_value("CS")
    if cs is None:
        return skipped(CODE, None, "missing_CS")

    raw = ctx.human.overall_ratings if ctx.human is not None else []
    ratings = [n for n in (as_number(r) for r in raw) if n is not None]
    if not ratings:
        return skipped(CODE, None, "missing_human_overall_ratings")

    avg_rating = sum(ratings) / len(ratings)
    h = clamp01((avg_rating - 1) / 4)
    value = clamp01(0.5 * cs + 0.5 * h)

    baseline = as_number(ctx.options.baseline_nqs)
    improvement = (value - baseline) / baseline if baseline is not None and baseline > 0 else None
    passed = None if improvement is None else improvement >= MIN_IMPROVEMENT

    return scored(
        CODE,
        value,
        None,
        passed,
        {
            "CS": cs,
            "human_overall_avg": avg_rating,
            "H": h,
            "baseline_nqs": baseline,
            "improvement": improvement,
        },
    )


DESCRIPTOR = MetricDescriptor(
    code=CODE,
    compute=compute,
    depends_on=("CS",),
    description="Narrative Quality Score (hybrid)",
)
