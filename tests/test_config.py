"""Tests for metric options loading."""

import pytest
import yaml

from dataknobs_narrative.config import (
    DEFAULT_CAUSE_VERBS,
    MetricOptions,
    env_overrides,
    load_options,
    parse_env_value,
)
from dataknobs_narrative.exceptions import ConfigurationError


class TestMetricOptions:
    """Test MetricOptions defaults and coercion."""

    def test_defaults(self):
        """Test built-in defaults."""
        options = MetricOptions()
        assert options.strict is False
        assert options.cad_window_tokens == 10000
        assert options.cause_verbs == DEFAULT_CAUSE_VERBS
        assert options.target_arc == "man_in_a_hole"
        assert options.rq_top_k == 5
        assert options.baseline_nqs is None

    def test_camel_case_and_extra(self):
        """Test camelCase aliases and unknown keys."""
        options = MetricOptions.from_dict({
            "cadWindowTokens": 500,
            "targetArc": "Tragedy",
            "causeVerbs": ["Betrays"],
            "custom_flag": True,
        })
        assert options.cad_window_tokens == 500
        assert options.target_arc == "tragedy"
        assert options.cause_verbs == ["betrays"]
        assert options.extra == {"custom_flag": True}
        assert options.to_dict()["custom_flag"] is True

    def test_custom_arc_array(self):
        """Test that an explicit arc is kept as given, invalid points included."""
        assert MetricOptions.from_dict({"target_arc": [0, "0.5", 1]}).target_arc == [0, "0.5", 1]
        assert MetricOptions.from_dict({"targetArc": (0.2, None)}).target_arc == [0.2, None]

    def test_invalid_positive_int(self):
        """Test that a non-positive window size is rejected."""
        with pytest.raises(ConfigurationError):
            MetricOptions.from_dict({"cad_window_tokens": 0})

    def test_none_values_are_ignored(self):
        """Test that None keeps the default."""
        assert MetricOptions.from_dict({"rq_top_k": None}).rq_top_k == 5


class TestEnvironment:
    """Test environment overrides."""

    def test_parse_env_value(self):
        """Test bool, int, float and string parsing."""
        assert parse_env_value("true") is True
        assert parse_env_value("no") is False
        assert parse_env_value("42") == 42
        assert parse_env_value("0.5") == 0.5
        assert parse_env_value("hello") == "hello"

    def test_env_overrides(self):
        """Test collecting prefixed variables."""
        environ = {
            "NARRATIVE_METRICS_STRICT": "true",
            "NARRATIVE_METRICS_RQ_TOP_K": "1",
            "NARRATIVE_METRICS_MY_FLAG": "yes",
            "OTHER_VAR": "x",
        }
        overrides = env_overrides(environ)
        assert overrides == {"strict": "true", "rq_top_k": "1", "my_flag": True}

    def test_env_beats_file(self, tmp_path):
        """Test that environment overrides win over file values."""
        path = tmp_path / "metrics.yaml"
        path.write_text(yaml.safe_dump({"cad_window_tokens": 2000, "rq_top_k": 3}))
        environ = {
            "NARRATIVE_METRICS_CAD_WINDOW_TOKENS": "5000",
            "NARRATIVE_METRICS_CAUSE_VERBS": "Threatens, Flees",
        }
        options = load_options(path, environ=environ)
        assert options.cad_window_tokens == 5000
        assert options.rq_top_k == 3
        assert options.cause_verbs == ["threatens", "flees"]

    def test_env_disabled(self):
        """Test ignoring the environment."""
        options = load_options({"strict": True}, environ={"NARRATIVE_METRICS_STRICT": "false"}, use_env=False)
        assert options.strict is True


class TestLoadOptions:
    """Test loading from dicts and YAML files."""

    def test_nested_options_key(self, tmp_path):
        """Test options under a top-level ``options`` key."""
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"options": {"strict": True, "baseline_nqs": 0.5}}))
        options = load_options(path, environ={})
        assert options.strict is True
        assert options.baseline_nqs == 0.5

    def test_missing_file(self, tmp_path):
        """Test a missing file."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_options(tmp_path / "nope.yaml", environ={})
        assert "not found" in str(exc_info.value)

    def test_non_mapping_file(self, tmp_path):
        """Test a YAML file that is not a mapping."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            load_options(path, environ={})

    def test_empty_file_gives_defaults(self, tmp_path):
        """Test an empty YAML file."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_options(path, environ={}) == MetricOptions()
