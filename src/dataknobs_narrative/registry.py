"""Metric descriptors and the immutable registry that holds them.

A registry is built once, validated at construction, and then passed by
reference to the engine. Nothing mutates it afterwards, so several
registries (the default one, test doubles, custom suites) can coexist in
one process.

Example:
    ```python
    from dataknobs_narrative.metrics.base import scored
    from dataknobs_narrative.registry import MetricDescriptor, MetricRegistry

    def compute_length(ctx):
        return scored("LEN", len(ctx.world.texts.document_text), threshold=None, passed=None)

    registry = MetricRegistry.from_descriptors([
        MetricDescriptor(code="LEN", compute=compute_length),
    ])
    registry.list_keys()
    # ['LEN']
    ```
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, List, Mapping, Tuple

from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from .context import MetricContext
    from .models import MetricResult

logger = logging.getLogger(__name__)

ComputeFn = Callable[["MetricContext"], "MetricResult"]


@dataclass(frozen=True)
class MetricDescriptor:
    """Static description of one metric plugin.

    Attributes:
        code: Unique metric code.
        compute: Pure function from context to result.
        version: Implementation version reported on every result.
        depends_on: Codes whose results must be in ``ctx.metrics`` first.
        threshold: Default threshold, used when a result omits one.
        description: Short human-readable name.
    """

    code: str
    compute: ComputeFn
    version: str = "1.0"
    depends_on: Tuple[str, ...] = ()
    threshold: float | None = None
    description: str = ""

    def __post_init__(self) -> None:
        # accept any iterable for depends_on while keeping the descriptor hashable
        object.__setattr__(self, "depends_on", tuple(self.depends_on))


class MetricRegistry(Mapping[str, MetricDescriptor]):
    """Immutable, ordered mapping of metric code to descriptor.

    Registration order is preserved and is the tie-breaker for the
    engine's topological sort.

    Raises:
        ConfigurationError: On duplicate codes or dependencies on codes
            that are not in the registry.
    """

    def __init__(self, name: str, descriptors: Iterable[MetricDescriptor]) -> None:
        self._name = name
        items: dict[str, MetricDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.code in items:
                raise ConfigurationError(
                    f"Metric '{descriptor.code}' already registered in {name}",
                    context={"code": descriptor.code, "registry": name},
                )
            items[descriptor.code] = descriptor
        for descriptor in items.values():
            for dep in descriptor.depends_on:
                if dep not in items:
                    raise ConfigurationError(
                        f"Metric '{descriptor.code}' depends on unknown metric '{dep}'",
                        context={
                            "code": descriptor.code,
                            "dependency": dep,
                            "registry": name,
                            "available_keys": list(items),
                        },
                    )
        self._items = items
        self._order = {code: i for i, code in enumerate(items)}
        logger.debug("Built metric registry %s with %d metrics", name, len(items))

    @classmethod
    def from_descriptors(
        cls, descriptors: Iterable[MetricDescriptor], name: str = "metrics"
    ) -> MetricRegistry:
        return cls(name, descriptors)

    @property
    def name(self) -> str:
        return self._name

    def __getitem__(self, code: str) -> MetricDescriptor:
        return self._items[code]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get_descriptor(self, code: str) -> MetricDescriptor:
        """Get a descriptor by code.

        Raises:
            ConfigurationError: If the code is not registered.
        """
        if code not in self._items:
            raise ConfigurationError(
                f"Unknown metric code '{code}'",
                context={"code": code, "registry": self._name, "available_keys": list(self._items)},
            )
        return self._items[code]

    def list_keys(self) -> List[str]:
        return list(self._items)

    def registration_index(self, code: str) -> int:
        return self._order[code]

    def with_descriptors(
        self, descriptors: Iterable[MetricDescriptor], name: str | None = None
    ) -> MetricRegistry:
        """New registry with ``descriptors`` added or replacing same-code entries."""
        merged = dict(self._items)
        for descriptor in descriptors:
            merged[descriptor.code] = descriptor
        return MetricRegistry(name or self._name, merged.values())

    def __repr__(self) -> str:
        return f"MetricRegistry({self._name!r}, {self.list_keys()!r})"


_DEFAULT_REGISTRY: MetricRegistry | None = None


def default_registry() -> MetricRegistry:
    """The built-in registry of all eleven narrative metrics."""
    global _DEFAULT_REGISTRY
    if _DEFAULT_REGISTRY is None:
        from .metrics import ALL_METRICS

        _DEFAULT_REGISTRY = MetricRegistry("narrative_metrics", ALL_METRICS)
    return _DEFAULT_REGISTRY
