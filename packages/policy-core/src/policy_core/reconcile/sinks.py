"""
Sink protocols and local sink implementations.

Sinks are the boundary between the compiler and the systems that enforce
its output:
- LimiterSinkProtocol: Reads and writes limiter counter definitions
- FilterConfigSinkProtocol: Reads and writes per-gateway filter configs

Implementations:
- MemorySink: In-process storage (tests, dry runs)
- JsonFileSink: One JSON file per artifact in a directory
"""

import asyncio
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from policy_core.ratelimit.filter_config import FilterConfig, serialize_artifact
from policy_core.ratelimit.limits import LimiterCounterDefinition
from policy_protocols import ObjectKey

LIMITS_FILE = "limits.json"
FILTER_CONFIG_DIR = "filter-configs"


@runtime_checkable
class LimiterSinkProtocol(Protocol):
    """Deployed limiter counters."""

    async def read_limits(self) -> list[LimiterCounterDefinition]:
        """Return the counter definitions currently deployed."""
        ...

    async def write_limits(self, limits: list[LimiterCounterDefinition]) -> None:
        """Replace the deployed counter definitions."""
        ...


@runtime_checkable
class FilterConfigSinkProtocol(Protocol):
    """Deployed proxy filter configurations."""

    async def read_config(self, gateway_key: ObjectKey) -> FilterConfig | None:
        """Return the deployed config of a gateway, or None if there is none."""
        ...

    async def write_config(self, gateway_key: ObjectKey, config: FilterConfig) -> None:
        """Replace the deployed config of a gateway."""
        ...


@dataclass
class MemorySink:
    """
    In-memory limiter and filter config sink.

    Attributes:
        limits: Deployed counter definitions
        configs: Deployed filter configs by gateway
        writes: Number of write calls, for asserting compare-then-write
    """

    limits: list[LimiterCounterDefinition] = field(default_factory=list)
    configs: dict[ObjectKey, FilterConfig] = field(default_factory=dict)
    writes: int = 0

    async def read_limits(self) -> list[LimiterCounterDefinition]:
        return [definition.model_copy() for definition in self.limits]

    async def write_limits(self, limits: list[LimiterCounterDefinition]) -> None:
        self.limits = [definition.model_copy() for definition in limits]
        self.writes += 1

    async def read_config(self, gateway_key: ObjectKey) -> FilterConfig | None:
        config = self.configs.get(gateway_key)
        return config.model_copy(deep=True) if config is not None else None

    async def write_config(self, gateway_key: ObjectKey, config: FilterConfig) -> None:
        self.configs[gateway_key] = config.model_copy(deep=True)
        self.writes += 1


@dataclass
class JsonFileSink:
    """
    Sink writing artifacts as JSON files under a directory.

    Layout:
        <directory>/limits.json
        <directory>/filter-configs/<namespace>_<name>.json

    File I/O runs in the default executor so reads and writes do not block
    the event loop.

    Attributes:
        directory: Output directory, created on first write.
    """

    directory: Path

    def __post_init__(self) -> None:
        self.directory = Path(self.directory)

    @property
    def limits_path(self) -> Path:
        return self.directory / LIMITS_FILE

    def config_path(self, gateway_key: ObjectKey) -> Path:
        return self.directory / FILTER_CONFIG_DIR / f"{gateway_key.namespace}_{gateway_key.name}.json"

    async def read_limits(self) -> list[LimiterCounterDefinition]:
        loop = asyncio.get_running_loop()

        def _blocking_read():
            if not self.limits_path.exists():
                return []
            data = json.loads(self.limits_path.read_text())
            return [LimiterCounterDefinition.model_validate(item) for item in data]

        return await loop.run_in_executor(None, _blocking_read)

    async def write_limits(self, limits: list[LimiterCounterDefinition]) -> None:
        content = serialize_artifact("limits", limits)
        loop = asyncio.get_running_loop()

        def _blocking_write():
            self.directory.mkdir(parents=True, exist_ok=True)
            self.limits_path.write_text(content)

        await loop.run_in_executor(None, _blocking_write)

    async def read_config(self, gateway_key: ObjectKey) -> FilterConfig | None:
        path = self.config_path(gateway_key)
        loop = asyncio.get_running_loop()

        def _blocking_read():
            if not path.exists():
                return None
            return FilterConfig.model_validate_json(path.read_text())

        return await loop.run_in_executor(None, _blocking_read)

    async def write_config(self, gateway_key: ObjectKey, config: FilterConfig) -> None:
        content = serialize_artifact(f"filter config {gateway_key}", config)
        path = self.config_path(gateway_key)
        loop = asyncio.get_running_loop()

        def _blocking_write():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)

        await loop.run_in_executor(None, _blocking_write)
