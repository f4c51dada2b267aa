"""Metric execution engine.

The engine turns a requested set of metric codes into an execution plan
and runs it against a ``MetricContext``:

- resolve_order: transitive dependency closure plus a topological sort,
  ties broken by registration order so the plan is deterministic
- compute_all: runs the plan, isolating each metric's failures
- evaluate: convenience wrapper producing a JSON-ready report

Graph problems (unknown codes, cycles) raise ``ConfigurationError``
before any metric runs. A metric that raises is recorded as an errored
result and the batch continues.

Example:
    >>> ctx = MetricContext.from_dict({"world": {...}, "diagnostics": {...}})
    >>> results = compute_all(ctx, ["CS"])
    >>> [r.code for r in results]
    ['CSA', 'CS']
"""

from __future__ import annotations

import copy
import heapq
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Mapping

from .context import MetricContext
from .exceptions import ConfigurationError
from .models import MetricResult, MetricStatus
from .registry import MetricDescriptor, MetricRegistry, default_registry
from .utils import as_number

logger = logging.getLogger(__name__)


def normalize_codes(codes: Iterable[Any] | None) -> List[str] | None:
    """Trim and upper-case requested codes; None or empty means "all"."""
    if codes is None:
        return None
    out = []
    for code in codes:
        c = str(code).strip().upper()
        if c and c not in out:
            out.append(c)
    return out or None


def _find_cycle(registry: MetricRegistry, nodes: Iterable[str]) -> List[str]:
    visited: set[str] = set()
    stack: List[str] = []

    def dfs(code: str) -> List[str] | None:
        visited.add(code)
        stack.append(code)
        for dep in registry[code].depends_on:
            if dep in stack:
                return stack[stack.index(dep):] + [dep]
            if dep not in visited:
                found = dfs(dep)
                if found:
                    return found
        stack.pop()
        return None

    for code in nodes:
        if code not in visited:
            found = dfs(code)
            if found:
                return found
    return []


def resolve_order(
    registry: MetricRegistry, codes: Iterable[Any] | None = None
) -> List[str]:
    """Expand ``codes`` to their dependency closure and sort topologically.

    Args:
        registry: Registry to resolve against.
        codes: Requested codes, or None for every registered metric.

    Returns:
        Codes in execution order; dependencies always come first.

    Raises:
        ConfigurationError: If a code (or dependency) is unknown, or the
            dependency graph has a cycle.
    """
    requested = normalize_codes(codes)
    if requested is None:
        requested = registry.list_keys()

    closure: set[str] = set()
    frontier = list(requested)
    while frontier:
        code = frontier.pop()
        if code in closure:
            continue
        descriptor = registry.get_descriptor(code)
        closure.add(code)
        for dep in descriptor.depends_on:
            if dep not in registry:
                raise ConfigurationError(
                    f"Metric '{code}' depends on unknown metric '{dep}'",
                    context={"code": code, "dependency": dep},
                )
            frontier.append(dep)

    indegree = {code: 0 for code in closure}
    dependents: Dict[str, List[str]] = {code: [] for code in closure}
    for code in closure:
        for dep in set(registry[code].depends_on):
            indegree[code] += 1
            dependents[dep].append(code)

    ready = [(registry.registration_index(c), c) for c, n in indegree.items() if n == 0]
    heapq.heapify(ready)
    order: List[str] = []
    while ready:
        _, code = heapq.heappop(ready)
        order.append(code)
        for child in dependents[code]:
            indegree[child] -= 1
            if indegree[child] == 0:
                heapq.heappush(ready, (registry.registration_index(child), child))

    if len(order) != len(closure):
        remaining = sorted(closure - set(order), key=registry.registration_index)
        cycle = _find_cycle(registry, remaining)
        raise ConfigurationError(
            f"Cyclic metric dependency detected at '{cycle[0] if cycle else remaining[0]}'",
            context={"cycle": cycle, "unresolved": remaining},
        )

    logger.debug("Resolved metric order: %s", order)
    return order


def dependency_levels(registry: MetricRegistry, order: List[str]) -> List[List[str]]:
    """Group an execution order into levels whose members are independent."""
    level_of: Dict[str, int] = {}
    for code in order:
        deps = registry[code].depends_on
        level_of[code] = 1 + max((level_of[d] for d in deps), default=-1)
    levels: List[List[str]] = [[] for _ in range(max(level_of.values(), default=-1) + 1)]
    for code in order:
        levels[level_of[code]].append(code)
    return levels


def _error_result(descriptor: MetricDescriptor, message: str, error_type: str) -> MetricResult:
    return MetricResult(
        code=descriptor.code,
        version=descriptor.version,
        value=None,
        threshold=descriptor.threshold,
        passed=False,
        details={
            "status": MetricStatus.ERROR.value,
            "message": message,
            "error_type": error_type,
        },
    )


def run_metric(descriptor: MetricDescriptor, ctx: MetricContext) -> MetricResult:
    """Compute one metric, converting any exception into an errored result."""
    try:
        out = descriptor.compute(ctx)
    except Exception as e:
        logger.warning("Metric '%s' computation failed: %s", descriptor.code, e)
        return _error_result(descriptor, str(e), type(e).__name__)

    if isinstance(out, Mapping):
        out = MetricResult.from_dict({"code": descriptor.code, **out})
    if not isinstance(out, MetricResult):
        logger.warning("Metric '%s' returned %s", descriptor.code, type(out).__name__)
        return _error_result(
            descriptor, f"compute returned {type(out).__name__}", "InvalidResult"
        )

    value = out.value
    if value is not None:
        value = as_number(value)
        if value is None:
            return _error_result(descriptor, f"non-finite value {out.value!r}", "InvalidResult")

    result = MetricResult(
        code=descriptor.code,
        version=str(descriptor.version),
        value=value,
        threshold=out.threshold if out.threshold is not None else descriptor.threshold,
        passed=None if out.passed is None else bool(out.passed),
        details=copy.deepcopy(out.details or {}),
    )
    if result.status is MetricStatus.SKIPPED:
        logger.debug("Metric '%s' skipped: %s", result.code, result.details.get("reason"))
    else:
        logger.debug("Metric '%s' = %s (pass=%s)", result.code, result.value, result.passed)
    return result


def compute_all(
    ctx: MetricContext,
    codes: Iterable[Any] | None = None,
    registry: MetricRegistry | None = None,
    max_workers: int = 1,
) -> List[MetricResult]:
    """Compute the requested metrics (and their dependencies) into ``ctx.metrics``.

    Args:
        ctx: Evaluation context; results are written to ``ctx.metrics``.
        codes: Metric codes to compute, or None for all registered metrics.
        registry: Registry to use (defaults to the built-in one).
        max_workers: When greater than 1, independent metrics of the same
            dependency level run concurrently. Results are identical to
            sequential execution.

    Returns:
        Results in execution order.

    Raises:
        ConfigurationError: If the requested set cannot be resolved.
    """
    registry = registry or default_registry()
    order = resolve_order(registry, codes)

    if max_workers <= 1:
        for code in order:
            ctx.metrics[code] = run_metric(registry[code], ctx)
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            for level in dependency_levels(registry, order):
                futures = [pool.submit(run_metric, registry[code], ctx) for code in level]
                # a level is published only once every member is complete
                level_results = [f.result() for f in futures]
                for code, result in zip(level, level_results):
                    ctx.metrics[code] = result

    return [ctx.metrics[code] for code in order]


def summarize_results(results: Iterable[MetricResult]) -> Dict[str, Any]:
    """Roll results up into pass/fail lists.

    A run passes when no result has ``passed is False``. Scored results
    with no verdict (e.g. NQS without a baseline) are listed as unjudged.
    """
    failed: List[str] = []
    skipped: List[str] = []
    errored: List[str] = []
    unjudged: List[str] = []
    for r in results:
        if r.status is MetricStatus.ERROR:
            errored.append(r.code)
        if r.passed is False:
            failed.append(r.code)
        elif r.passed is None:
            (skipped if r.value is None else unjudged).append(r.code)
    return {
        "pass": not failed,
        "failed": failed,
        "skipped": skipped,
        "errored": errored,
        "unjudged": unjudged,
    }


def evaluate(
    ctx: MetricContext | Mapping[str, Any],
    codes: Iterable[Any] | None = None,
    registry: MetricRegistry | None = None,
    max_workers: int = 1,
) -> Dict[str, Any]:
    """Run a metric set and return a JSON-serializable report."""
    if not isinstance(ctx, MetricContext):
        ctx = MetricContext.from_dict(ctx)
    results = compute_all(ctx, codes, registry=registry, max_workers=max_workers)
    return {
        "profile": ctx.profile,
        "seed": ctx.seed,
        "dim": ctx.dim,
        "metrics": {
            "results": [r.to_dict() for r in results],
            "summary": summarize_results(results),
        },
    }
