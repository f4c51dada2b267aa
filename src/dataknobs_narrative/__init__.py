"""Deterministic narrative quality metrics for parsed CNL stories.

This package evaluates a parsed story world against a registry of metric
plugins:

- **Engine**: dependency-ordered execution with per-metric fault isolation
- **Registry**: immutable metric descriptor maps (built-in or custom)
- **Context**: the typed story world, diagnostics, corpora and options
- **Embedding**: deterministic hashed-vector and bag-of-words backends
- **Metrics**: CPSR, CSA, CS, CAD, OI, EAP, CAR, RQ, XAI, NQS, NQS_AUTO

Example:
    ```python
    from dataknobs_narrative import MetricContext, evaluate

    report = evaluate({
        "world": world_dict,
        "diagnostics": {"parse": {"valid": True}, "semantic": {"valid": True}},
    })
    report["metrics"]["summary"]["pass"]
    ```
"""

from dataknobs_narrative.config import MetricOptions, load_options
from dataknobs_narrative.context import MetricContext
from dataknobs_narrative.embedding import (
    BagOfWordsBackend,
    Embedding,
    EmbeddingBackend,
    HashedVectorBackend,
    cosine_embedding,
    get_backend,
)
from dataknobs_narrative.engine import (
    compute_all,
    evaluate,
    normalize_codes,
    resolve_order,
    summarize_results,
)
from dataknobs_narrative.exceptions import (
    ConfigurationError,
    InvalidInputError,
    MetricComputeError,
    NarrativeMetricsError,
)
from dataknobs_narrative.models import MetricResult, MetricStatus, World
from dataknobs_narrative.registry import MetricDescriptor, MetricRegistry, default_registry

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Engine
    "compute_all",
    "evaluate",
    "normalize_codes",
    "resolve_order",
    "summarize_results",
    # Registry
    "MetricDescriptor",
    "MetricRegistry",
    "default_registry",
    # Context and models
    "MetricContext",
    "MetricOptions",
    "load_options",
    "MetricResult",
    "MetricStatus",
    "World",
    # Embedding
    "Embedding",
    "EmbeddingBackend",
    "HashedVectorBackend",
    "BagOfWordsBackend",
    "cosine_embedding",
    "get_backend",
    # Exceptions
    "NarrativeMetricsError",
    "ConfigurationError",
    "MetricComputeError",
    "InvalidInputError",
]
