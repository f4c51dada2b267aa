"""CPSR: CNL Parse Success Rate.

A single artifact is one parse attempt: it scores 1 when both the parse
and the semantic stage are valid (and, in strict mode, produced no
warnings), else 0.
"""

from __future__ import annotations

from ..context import MetricContext
from ..models import MetricResult
from ..registry import MetricDescriptor
from .base import scored

CODE = "CPSR"
THRESHOLD = 0.95


def compute(ctx: MetricContext) -> MetricResult:
    strict = bool(ctx.options.strict)
    parse = ctx.diagnostics.parse
    semantic = ctx.diagnostics.semantic

    warning_count = len(parse.warnings) + len(semantic.warnings)
    ok = parse.valid and semantic.valid and (not strict or warning_count == 0)
    value = 1.0 if ok else 0.0

    return scored(
        CODE,
        value,
        THRESHOLD,
        value >= THRESHOLD,
        {
            "strict": strict,
            "parse_valid": parse.valid,
            "semantic_valid": semantic.valid,
            "warning_count": warning_count,
            "error_count": len(parse.errors) + len(semantic.errors),
        },
    )


DESCRIPTOR = MetricDescriptor(
    code=CODE,
    compute=compute,
    threshold=THRESHOLD,
    description="CNL Parse Success Rate",
)
