"""Metric options: defaults, dict/YAML loading and environment overrides.

Options can come from three places, applied in this order:

1. Built-in defaults (the dataclass field defaults below)
2. A dict or YAML file (``load_options``)
3. Environment variables ``NARRATIVE_METRICS_<FIELD>``

Environment format:
    NARRATIVE_METRICS_STRICT=true
    NARRATIVE_METRICS_CAD_WINDOW_TOKENS=5000
    NARRATIVE_METRICS_CAUSE_VERBS=threatens,betrays

Example:
    ```python
    from dataknobs_narrative.config import load_options

    options = load_options("metrics.yaml")
    options.cad_window_tokens
    # 10000
    ```
"""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

import yaml  # type: ignore[import-untyped]

from .exceptions import ConfigurationError
from .lexicons import DEFAULT_ARC
from .utils import as_number

logger = logging.getLogger(__name__)

ENV_PREFIX = "NARRATIVE_METRICS_"

DEFAULT_CAUSE_VERBS = ["threatens", "decides", "reveals", "betrays", "destroys"]
DEFAULT_EFFECT_VERBS = ["escapes", "confronts", "travels", "resolves", "is_defeated_by"]
DEFAULT_CAR_POLICIES = ["bias", "originality", "pii", "harmful", "repetition"]

# camelCase spellings accepted from the front-end
_ALIASES = {
    "cadWindowTokens": "cad_window_tokens",
    "causeVerbs": "cause_verbs",
    "effectVerbs": "effect_verbs",
    "targetArc": "target_arc",
    "rqTopK": "rq_top_k",
    "baselineNqs": "baseline_nqs",
    "carPolicies": "car_policies",
}

_LIST_FIELDS = {"cause_verbs", "effect_verbs", "car_policies"}


@dataclass
class MetricOptions:
    """Tunable parameters consumed by the metric plugins.

    Attributes:
        strict: CPSR counts any parse/semantic warning as a failure.
        cad_window_tokens: Token budget of a CAD window.
        cause_verbs: Verbs that open a causal link in CS.
        effect_verbs: Verbs that close a causal link in CS.
        target_arc: Arc template name, or an explicit list of valences.
        rq_top_k: Default ``k`` for RQ recall@k.
        baseline_nqs: Baseline for NQS relative improvement.
        dim: Embedding dimension override.
        car_policies: Guardrail policies applied by CAR.
        extra: Unrecognized keys, kept for custom metrics.
    """

    strict: bool = False
    cad_window_tokens: int = 10000
    cause_verbs: List[str] = field(default_factory=lambda: list(DEFAULT_CAUSE_VERBS))
    effect_verbs: List[str] = field(default_factory=lambda: list(DEFAULT_EFFECT_VERBS))
    target_arc: Union[str, List[Any]] = DEFAULT_ARC
    rq_top_k: int = 5
    baseline_nqs: float | None = None
    dim: int | None = None
    car_policies: List[str] = field(default_factory=lambda: list(DEFAULT_CAR_POLICIES))
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> MetricOptions:
        """Build options from a dict, ignoring None values.

        Raises:
            ConfigurationError: If a value cannot be coerced to its field type.
        """
        options = cls()
        options.update(data or {})
        return options

    def update(self, data: Mapping[str, Any]) -> None:
        known = {f.name for f in fields(self)} - {"extra"}
        for raw_key, value in data.items():
            key = _ALIASES.get(raw_key, raw_key)
            if value is None:
                continue
            if key in known:
                setattr(self, key, _coerce(key, value))
            else:
                self.extra[raw_key] = copy.deepcopy(value)

    def to_dict(self) -> Dict[str, Any]:
        result = {f.name: copy.deepcopy(getattr(self, f.name)) for f in fields(self) if f.name != "extra"}
        result.update(copy.deepcopy(self.extra))
        return result


def _coerce(key: str, value: Any) -> Any:
    if key in _LIST_FIELDS:
        if isinstance(value, str):
            value = [v for v in (p.strip() for p in value.split(",")) if v]
        return [str(v).lower() for v in value]
    if key == "strict":
        if isinstance(value, str):
            return value.strip().lower() in ("true", "yes", "1")
        return bool(value)
    if key in ("cad_window_tokens", "rq_top_k", "dim"):
        n = as_number(value)
        if n is None or n <= 0:
            raise ConfigurationError(
                f"Option '{key}' must be a positive number",
                context={"option": key, "value": value},
            )
        return int(n)
    if key == "baseline_nqs":
        return as_number(value)
    if key == "target_arc":
        if isinstance(value, (list, tuple)):
            return list(value)
        return str(value).strip().lower()
    return value


def parse_env_value(value: str) -> Any:
    """Parse an environment value as bool, int, float, else string."""
    if value.lower() in ["true", "yes", "1"]:
        return True
    elif value.lower() in ["false", "no", "0"]:
        return False

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    return value


def env_overrides(environ: Mapping[str, str] | None = None, prefix: str = ENV_PREFIX) -> Dict[str, Any]:
    """Collect option overrides from environment variables."""
    environ = os.environ if environ is None else environ
    known = {f.name for f in fields(MetricOptions)} - {"extra"}
    overrides: Dict[str, Any] = {}
    for key, raw in environ.items():
        if not key.startswith(prefix):
            continue
        name = key[len(prefix):].lower()
        if not name:
            continue
        # known fields are coerced by MetricOptions itself
        overrides[name] = raw if name in known else parse_env_value(raw)
        logger.debug("Option override from %s", key)
    return overrides


def load_options(
    source: Union[str, Path, Mapping[str, Any], None] = None,
    environ: Mapping[str, str] | None = None,
    use_env: bool = True,
) -> MetricOptions:
    """Load options from a dict or YAML/JSON file, then apply env overrides.

    Args:
        source: Options dict, path to a YAML file, or None for defaults.
        environ: Environment mapping (defaults to ``os.environ``).
        use_env: Whether to apply environment overrides at all.

    Raises:
        ConfigurationError: If the file is missing or not a mapping.
    """
    data: Mapping[str, Any]
    if source is None:
        data = {}
    elif isinstance(source, Mapping):
        data = source
    else:
        path = Path(source)
        if not path.exists():
            raise ConfigurationError(
                f"Options file not found: {path}", context={"path": str(path)}
            )
        with open(path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, Mapping):
            raise ConfigurationError(
                f"Options file must contain a mapping: {path}",
                context={"path": str(path), "type": type(loaded).__name__},
            )
        # allow the options under a top-level "options" key
        data = loaded.get("options", loaded) if isinstance(loaded.get("options"), Mapping) else loaded

    options = MetricOptions.from_dict(data)
    if use_env:
        overrides = env_overrides(environ)
        if overrides:
            options.update(overrides)
    return options
