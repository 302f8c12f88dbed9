"""Environment-based configuration for the policy compiler."""

import logging
from enum import Enum

from pydantic import field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class FailureMode(str, Enum):
    """What the proxy filter does when the limiter service is unreachable."""

    DENY = "deny"
    ALLOW = "allow"


class CounterFormat(str, Enum):
    """How counter variables and activation conditions are written."""

    INDEXED = "indexed"
    """Reference request data through descriptors[0]["<key>"]."""

    PLAIN = "plain"
    """Use raw selectors and identifiers."""


class CompilerSettings(BaseSettings):
    """Policy compiler configuration.

    All settings can be overridden via environment variables with
    POLICY_ prefix. For example:
        POLICY_FAILURE_MODE=allow
        POLICY_LIMITS_DOMAIN=internal

    Settings are passed explicitly into the pipeline; nothing reads the
    environment after construction.
    """

    # Proxy filter
    failure_mode: FailureMode = FailureMode.DENY
    limiter_service: str = "ratelimit-service"

    # Limiter counters
    identifier_prefix: str = "limit."
    limits_domain: str = ""
    counter_format: CounterFormat = CounterFormat.INDEXED

    # Sinks
    limiter_url: str = "http://localhost:8080"
    output_dir: str = "./policy-artifacts"
    sink_timeout_seconds: float = 5.0

    model_config = {"env_prefix": "POLICY_"}

    @field_validator("failure_mode", mode="before")
    @classmethod
    def _fallback_failure_mode(cls, value: object) -> object:
        if isinstance(value, FailureMode):
            return value
        normalized = str(value).strip().lower()
        if normalized not in {mode.value for mode in FailureMode}:
            logger.warning(
                f"Invalid failure mode '{value}', falling back to '{FailureMode.DENY.value}'"
            )
            return FailureMode.DENY
        return normalized

    @field_validator("counter_format", mode="before")
    @classmethod
    def _fallback_counter_format(cls, value: object) -> object:
        if isinstance(value, CounterFormat):
            return value
        normalized = str(value).strip().lower()
        if normalized not in {fmt.value for fmt in CounterFormat}:
            logger.warning(
                f"Invalid counter format '{value}', falling back to "
                f"'{CounterFormat.INDEXED.value}'"
            )
            return CounterFormat.INDEXED
        return normalized
