"""Tests for the exception hierarchy."""

import pytest
from dataknobs_common import ConfigurationError as BaseConfigurationError
from dataknobs_common import DataknobsError, ValidationError

from dataknobs_narrative.exceptions import (
    ConfigurationError,
    InvalidInputError,
    MetricComputeError,
    NarrativeMetricsError,
)


class TestHierarchy:
    """Test that package errors extend the common dataknobs errors."""

    def test_configuration_error(self):
        """Test catching a graph error through the common base classes."""
        with pytest.raises(BaseConfigurationError) as exc_info:
            raise ConfigurationError("Unknown metric 'NOPE'", context={"code": "NOPE"})
        assert isinstance(exc_info.value, NarrativeMetricsError)
        assert exc_info.value.context == {"code": "NOPE"}
        assert exc_info.value.details is exc_info.value.context

    def test_invalid_input_is_validation_error(self):
        """Test that unusable input is a common validation error."""
        error = InvalidInputError("world must be a mapping", details={"field": "world"})
        assert isinstance(error, ValidationError)
        assert isinstance(error, DataknobsError)
        assert error.context == {"field": "world"}

    def test_metric_compute_error_carries_code(self):
        """Test the code prefix and context of a compute failure."""
        error = MetricComputeError("EAP", "bad arc", context={"points": 0})
        assert str(error) == "EAP: bad arc"
        assert error.code == "EAP"
        assert error.context == {"code": "EAP", "points": 0}
        assert isinstance(error, DataknobsError)
