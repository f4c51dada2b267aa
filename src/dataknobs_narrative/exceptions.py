"""Exception hierarchy for the narrative metrics interpreter.

Built on the common exception framework from dataknobs_common.

Only two kinds of problems are ever raised out of an evaluation run:

- Configuration problems with the metric graph itself (unknown codes,
  unknown dependencies, cycles). These are fatal and raised before any
  metric computes.
- Structurally unusable input handed to the context builders.

Everything else (insufficient input, a metric blowing up) is reported
in-band on the ``MetricResult`` so that sibling metrics keep running.

Example:
    ```python
    from dataknobs_narrative.exceptions import ConfigurationError

    try:
        compute_all(ctx, ["CS", "NOPE"])
    except ConfigurationError as e:
        logger.error(f"Bad metric set: {e}")
        logger.error(f"Context: {e.context}")
    ```
"""

from typing import Any, Dict

from dataknobs_common import (
    ConfigurationError as BaseConfigurationError,
    DataknobsError,
    ValidationError as BaseValidationError,
)


class NarrativeMetricsError(DataknobsError):
    """Base exception for the narrative metrics package."""

    pass


class ConfigurationError(NarrativeMetricsError, BaseConfigurationError):
    """Raised when the metric graph or its configuration is invalid.

    Common scenarios:
    - A requested metric code is not registered
    - A metric declares a dependency on an unregistered code
    - The dependency graph contains a cycle
    - Duplicate metric codes in a registry

    Example:
        ```python
        raise ConfigurationError(
            "Cyclic metric dependency detected at 'CS'",
            context={"code": "CS", "cycle": ["CS", "CSA", "CS"]}
        )
        ```
    """

    pass


class MetricComputeError(NarrativeMetricsError):
    """Raised by a metric's compute when it cannot produce a result.

    The engine isolates this (and any other exception) into an errored
    result for that one metric; dependents treat the metric as absent.
    """

    def __init__(self, code: str, message: str, context: Dict[str, Any] | None = None):
        self.code = code
        super().__init__(
            f"{code}: {message}",
            context={"code": code, **(context or {})},
        )


class InvalidInputError(NarrativeMetricsError, BaseValidationError):
    """Raised when evaluation input cannot be interpreted at all.

    Example:
        ```python
        raise InvalidInputError(
            "world must be a mapping",
            context={"field": "world", "type": "list"}
        )
        ```
    """

    pass


__all__ = [
    "NarrativeMetricsError",
    "ConfigurationError",
    "MetricComputeError",
    "InvalidInputError",
]
