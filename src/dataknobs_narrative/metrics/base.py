"""Result builders shared by the metric plugins."""

from __future__ import annotations

from typing import Any

from ..models import MetricResult, MetricStatus


def skipped(code: str, threshold: float | None, reason: str, **extra: Any) -> MetricResult:
    """Build an in-band "insufficient input" result.

    ``value`` and ``passed`` are both None; ``details`` carries the status,
    the machine-readable ``reason`` and any extra explanation fields.
    """
    details: dict[str, Any] = {"status": MetricStatus.SKIPPED.value, "reason": reason}
    details.update(extra)
    return MetricResult(code=code, value=None, threshold=threshold, passed=None, details=details)


def scored(
    code: str,
    value: float,
    threshold: float | None,
    passed: bool | None,
    details: dict[str, Any] | None = None,
) -> MetricResult:
    return MetricResult(
        code=code,
        value=float(value),
        threshold=threshold,
        passed=passed,
        details=details or {},
    )
