"""CAR: Compliance Adherence Rate.

Every scene text is one artifact run through the deterministic
guardrails. The strict rate counts only clean (``pass``) artifacts; the
lenient rate also accepts ``warn``.
"""

from __future__ import annotations

from ..context import MetricContext
from ..guardrails import GuardrailStatus, run_guardrails
from ..models import MetricResult
from ..registry import MetricDescriptor
from ..utils import normalize_string
from .base import scored

CODE = "CAR"
THRESHOLD = 0.999


def compute(ctx: MetricContext) -> MetricResult:
    policies = list(ctx.options.car_policies)
    references = ctx.corpora.references

    per_artifact = []
    passes = 0
    acceptable = 0
    for scene_id in ctx.world.scenes.ordered_ids:
        scene = ctx.world.scenes.by_id.get(scene_id)
        report = run_guardrails(
            normalize_string(scene.text if scene else ""), policies=policies, references=references
        )
        per_artifact.append({"id": scene_id, "status": report.status.value, "summary": report.summary})
        if report.status is GuardrailStatus.PASS:
            passes += 1
        if report.status in (GuardrailStatus.PASS, GuardrailStatus.WARN):
            acceptable += 1

    total = max(1, len(per_artifact))
    strict = passes / total
    lenient = acceptable / total
    return scored(
        CODE,
        strict,
        THRESHOLD,
        strict >= THRESHOLD,
        {
            "CAR_strict": strict,
            "CAR_lenient": lenient,
            "passes": passes,
            "total": total,
            "policies": policies,
            "per_artifact": per_artifact,
        },
    )


DESCRIPTOR = MetricDescriptor(
    code=CODE,
    compute=compute,
    threshold=THRESHOLD,
    description="Compliance Adherence Rate",
)
