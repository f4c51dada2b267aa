"""XAI: Explainability Score from human-rated sessions (1-5 scale)."""

from __future__ import annotations

from collections.abc import Mapping

from ..context import MetricContext
from ..models import MetricResult
from ..registry import MetricDescriptor
from ..utils import average, clamp
from .base import scored, skipped

CODE = "XAI"
THRESHOLD = 4.0

DIMENSIONS = ("clarity", "evidence", "actionability", "trust")


def compute(ctx: MetricContext) -> MetricResult:
    sessions = ctx.human.xai_sessions if ctx.human is not None else []
    if not sessions:
        return skipped(CODE, THRESHOLD, "missing_xai_sessions")

    per_session = []
    scores = []
    for i, session in enumerate(sessions):
        session = session if isinstance(session, Mapping) else {}
        session_id = session.get("id") or f"session_{i + 1}"
        ratings = {d: clamp(session.get(d), 1, 5) for d in DIMENSIONS}
        if any(v is None for v in ratings.values()):
            per_session.append({"id": session_id, "status": "skipped", "reason": "missing_dimensions"})
            continue
        score = sum(ratings.values()) / len(DIMENSIONS)
        scores.append(score)
        per_session.append({"id": session_id, **ratings, "score": score})

    if not scores:
        return skipped(CODE, THRESHOLD, "no_valid_sessions", per_session=per_session)

    value = average(scores)
    return scored(
        CODE,
        value,
        THRESHOLD,
        value >= THRESHOLD,
        {
            "sessions_total": len(sessions),
            "sessions_used": len(scores),
            "per_session": per_session,
        },
    )


DESCRIPTOR = MetricDescriptor(
    code=CODE,
    compute=compute,
    threshold=THRESHOLD,
    description="Explainability Score",
)
