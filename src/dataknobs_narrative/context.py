"""Evaluation context shared by all metrics of one run."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from .config import MetricOptions
from .embedding import DEFAULT_DIM, DEFAULT_SEED, Embedding, EmbeddingBackend, get_backend
from .exceptions import InvalidInputError
from .models import Corpora, Diagnostics, HumanRatings, MetricResult, World
from .utils import as_number


@dataclass
class MetricContext:
    """Everything a metric may read, plus the results computed so far.

    A context is built once per evaluation run. The embedding backend is
    selected once from ``profile``/``seed``/``dim`` at construction, and
    ``metrics`` is filled in by the engine as each metric completes.

    Attributes:
        world: The story world model.
        diagnostics: Parse and semantic diagnostics from the front-end.
        options: Metric tuning options.
        corpora: Trope, retrieval and reference corpora.
        human: Human ratings, or None when no human input exists.
        profile: Embedding profile (``"vsa"`` or ``"bow"``).
        seed: Embedding hash seed.
        dim: Embedding dimension (``options.dim`` takes precedence).
        ast: Raw parser AST, when available.
        metrics: Results of this run, keyed by metric code.
    """

    world: World = field(default_factory=World)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    options: MetricOptions = field(default_factory=MetricOptions)
    corpora: Corpora = field(default_factory=Corpora)
    human: HumanRatings | None = None
    profile: str = "vsa"
    seed: int | float = DEFAULT_SEED
    dim: int | None = None
    ast: dict[str, Any] | None = None
    metrics: dict[str, MetricResult] = field(default_factory=dict)
    backend: EmbeddingBackend | None = None

    def __post_init__(self) -> None:
        self.profile = str(self.profile or "vsa").strip().lower()
        if self.options.dim is not None:
            self.dim = self.options.dim
        if self.dim is None:
            self.dim = DEFAULT_DIM
        if self.backend is None:
            self.backend = get_backend(self.profile, dim=self.dim, seed=self.seed)

    def embed(self, text: str | None) -> Embedding:
        return self.backend.embed(text)

    def cosine(self, a: Embedding | None, b: Embedding | None) -> float:
        return self.backend.cosine(a, b)

    def metric(self, code: str) -> MetricResult | None:
        return self.metrics.get(code)

    def metric_value(self, code: str) -> float | None:
        """Value of an upstream metric, or None if absent, skipped or errored."""
        result = self.metrics.get(code)
        if result is None or not result.is_available:
            return None
        return as_number(result.value)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MetricContext:
        """Build a context from the harness's plain-dict form.

        Raises:
            InvalidInputError: If a section has the wrong shape.
        """
        if not isinstance(data, Mapping):
            raise InvalidInputError(
                "context must be a mapping", context={"type": type(data).__name__}
            )
        options = data.get("options")
        if isinstance(options, MetricOptions):
            metric_options = options
        else:
            metric_options = MetricOptions.from_dict(options)

        human_raw = data.get("human")
        seed = as_number(data.get("seed"))
        dim = as_number(data.get("dim"))
        ast = data.get("_ast", data.get("ast"))

        return cls(
            world=World.from_dict(data.get("world")),
            diagnostics=Diagnostics.from_dict(data.get("diagnostics")),
            options=metric_options,
            corpora=Corpora.from_dict(data.get("corpora")),
            human=HumanRatings.from_dict(human_raw) if isinstance(human_raw, Mapping) else None,
            profile=str(data.get("profile") or "vsa"),
            seed=DEFAULT_SEED if seed is None else (int(seed) if seed.is_integer() else seed),
            dim=None if dim is None else int(dim),
            ast=dict(ast) if isinstance(ast, Mapping) else None,
        )
