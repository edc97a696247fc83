"""
Engine configuration.

Everything the runtime needs is carried by an EngineConfig value; nothing
is read from process-wide state once the config is built. `from_env` maps
the environment variables below onto a config.
"""

import os
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional

from eventexpr.expr.limits import DEFAULT_EXPRESSION_LIMITS, ExpressionLimits
from eventexpr.github.client import DEFAULT_GITHUB_URL, GitHubClientOptions
from eventexpr.util.logging import parse_log_level

ENV_VAR_LOG_LEVEL = "EVENTEXPR_LOG_LEVEL"
ENV_VAR_GITHUB_URL = "EVENTEXPR_GITHUB_URL"
ENV_VAR_GITHUB_TOKEN = "GITHUB_TOKEN"
ENV_VAR_CALL_TIMEOUT_MS = "EVENTEXPR_CALL_TIMEOUT_MS"
ENV_VAR_EVAL_TIMEOUT_MS = "EVENTEXPR_EVAL_TIMEOUT_MS"

DEFAULT_LOG_LEVEL = "warning"
DEFAULT_CALL_TIMEOUT_MS = 10000

EVENT_IDENTIFIER = "ce"

DEFAULT_CONSTANTS: Mapping[str, Any] = {"cat": "🐱"}

DEFAULT_EXPRESSION = 'ce.type == "com.example.someevent"'

DEFAULT_EVENT = """
{
    "specversion" : "0.2",
    "type" : "com.example.someevent",
    "owner": "tektoncd",
    "repo": "pipeline",
    "ref": "refs/heads/master",
    "source" : "/mycontext",
    "id" : "A234-1234-1234",
    "time" : "2018-04-05T17:31:00Z",
    "comexampleextension1" : "value",
    "comexampleextension2" : {
        "otherValue": 5,
        "stringValue": "value"
    },
    "contenttype" : "text/xml",
    "data" : "<much wow=\\"xml\\"/>"
}
"""


class ConfigError(Exception):
    """An environment variable holds an unusable value."""

    stage = "config"


@dataclass(frozen=True)
class EngineConfig:
    """Runtime configuration for building an engine."""

    # Identifier the input event is bound to
    event_identifier: str = EVENT_IDENTIFIER

    # Constant string identifiers available to every expression
    constants: Mapping[str, Any] = field(default_factory=lambda: dict(DEFAULT_CONSTANTS))

    github: GitHubClientOptions = field(default_factory=GitHubClientOptions)

    # Timeout of a single external call in milliseconds
    call_timeout_ms: Optional[int] = DEFAULT_CALL_TIMEOUT_MS

    # Deadline for a whole evaluation run; None means unbounded
    evaluation_timeout_ms: Optional[int] = None

    limits: ExpressionLimits = DEFAULT_EXPRESSION_LIMITS

    # Level name passed to enable_logging
    log_level: str = DEFAULT_LOG_LEVEL

    def with_overrides(self, **changes: Any) -> "EngineConfig":
        """Returns a copy with the given non-None fields replaced."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """
        Builds a config from environment variables.

        Raises:
            ConfigError: If a timeout variable is not a non-negative integer,
                or the log level is unknown
        """
        env = os.environ if environ is None else environ
        call_timeout_ms = _int_var(env, ENV_VAR_CALL_TIMEOUT_MS, DEFAULT_CALL_TIMEOUT_MS)
        return cls(
            github=GitHubClientOptions(
                base_url=env.get(ENV_VAR_GITHUB_URL) or DEFAULT_GITHUB_URL,
                token=env.get(ENV_VAR_GITHUB_TOKEN) or None,
                timeout_ms=call_timeout_ms or DEFAULT_CALL_TIMEOUT_MS,
            ),
            call_timeout_ms=call_timeout_ms,
            evaluation_timeout_ms=_int_var(env, ENV_VAR_EVAL_TIMEOUT_MS, None),
            log_level=_log_level_var(env),
        )


def _int_var(env: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {value}")
    return value


def _log_level_var(env: Mapping[str, str]) -> str:
    raw = (env.get(ENV_VAR_LOG_LEVEL) or "").strip()
    if not raw:
        return DEFAULT_LOG_LEVEL
    try:
        parse_log_level(raw)
    except ValueError:
        raise ConfigError(f"{ENV_VAR_LOG_LEVEL} must be a log level name, got {raw!r}")
    return raw.lower()
