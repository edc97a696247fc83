"""
Tests for EngineConfig.
"""

import pytest

from eventexpr.config import (
    DEFAULT_CALL_TIMEOUT_MS,
    ConfigError,
    EngineConfig,
)
from eventexpr.github.client import DEFAULT_GITHUB_URL


class TestDefaults:
    def test_defaults(self):
        config = EngineConfig()
        assert config.event_identifier == "ce"
        assert config.constants == {"cat": "🐱"}
        assert config.call_timeout_ms == DEFAULT_CALL_TIMEOUT_MS
        assert config.evaluation_timeout_ms is None

    def test_constants_are_not_shared(self):
        assert EngineConfig().constants is not EngineConfig().constants

    def test_with_overrides_skips_none(self):
        config = EngineConfig().with_overrides(call_timeout_ms=5, evaluation_timeout_ms=None)
        assert config.call_timeout_ms == 5
        assert config.evaluation_timeout_ms is None


class TestFromEnv:
    def test_empty_environment(self):
        config = EngineConfig.from_env({})
        assert config.github.base_url == DEFAULT_GITHUB_URL
        assert config.github.token is None
        assert config.call_timeout_ms == DEFAULT_CALL_TIMEOUT_MS

    def test_reads_variables(self):
        config = EngineConfig.from_env(
            {
                "EVENTEXPR_GITHUB_URL": "http://localhost:9000",
                "GITHUB_TOKEN": "t0ken",
                "EVENTEXPR_CALL_TIMEOUT_MS": "250",
                "EVENTEXPR_EVAL_TIMEOUT_MS": "1000",
            }
        )
        assert config.github.base_url == "http://localhost:9000"
        assert config.github.token == "t0ken"
        assert config.github.timeout_ms == 250
        assert config.call_timeout_ms == 250
        assert config.evaluation_timeout_ms == 1000

    def test_blank_values_use_defaults(self):
        config = EngineConfig.from_env({"EVENTEXPR_CALL_TIMEOUT_MS": " ", "GITHUB_TOKEN": ""})
        assert config.call_timeout_ms == DEFAULT_CALL_TIMEOUT_MS
        assert config.github.token is None

    def test_non_integer_timeout(self):
        with pytest.raises(ConfigError, match="EVENTEXPR_CALL_TIMEOUT_MS must be an integer"):
            EngineConfig.from_env({"EVENTEXPR_CALL_TIMEOUT_MS": "soon"})

    def test_negative_timeout(self):
        with pytest.raises(ConfigError, match="must not be negative"):
            EngineConfig.from_env({"EVENTEXPR_EVAL_TIMEOUT_MS": "-1"})

    def test_log_level(self):
        assert EngineConfig.from_env({}).log_level == "warning"
        assert EngineConfig.from_env({"EVENTEXPR_LOG_LEVEL": "DEBUG"}).log_level == "debug"

    def test_unknown_log_level(self):
        with pytest.raises(ConfigError, match="EVENTEXPR_LOG_LEVEL must be a log level name"):
            EngineConfig.from_env({"EVENTEXPR_LOG_LEVEL": "loud"})
