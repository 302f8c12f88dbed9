"""
Reconciler: compare-then-write of compiled artifacts.

One reconciliation:
1. Compiles the snapshot into desired counters and filter configs
2. Reads the deployed counters and configs from the sinks
3. Writes only what differs (order-insensitive comparison)

Everything is recomputed from the snapshot each time; the deployed state
read back from the sinks is only compared, never modified.

Example:
    ```python
    async with httpx.AsyncClient(base_url=settings.limiter_url) as http:
        reconciler = Reconciler(
            limiter_sink=HttpLimiterSink(http=http),
            config_sink=JsonFileSink(Path(settings.output_dir)),
            settings=settings,
        )
        result = await reconciler.reconcile(snapshot)
        print(result.limits_changed, result.changed_gateways)
    ```
"""

import logging
from dataclasses import dataclass, field

import httpx

from policy_core.config import CompilerSettings
from policy_core.exceptions import SinkError
from policy_core.ratelimit.compiler import CompilationResult, compile_snapshot
from policy_core.ratelimit.filter_config import FilterConfig
from policy_core.ratelimit.index import LimitIndex, limits_changed
from policy_core.reconcile.sinks import FilterConfigSinkProtocol, LimiterSinkProtocol
from policy_core.snapshot import Snapshot
from policy_protocols import ObjectKey

logger = logging.getLogger(__name__)

SINK_ERRORS = (httpx.HTTPError, OSError, ValueError)


@dataclass
class ReconcileResult:
    """
    Outcome of one reconciliation.

    Attributes:
        compilation: Desired state computed from the snapshot
        limits_changed: Whether limiter counters were written
        changed_gateways: Gateways whose filter config was written
    """

    compilation: CompilationResult
    limits_changed: bool = False
    changed_gateways: list[ObjectKey] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.limits_changed or bool(self.changed_gateways)


class Reconciler:
    """
    Drives compilation and sink updates for snapshots.

    This class is sink-agnostic: it works with any LimiterSinkProtocol and
    FilterConfigSinkProtocol implementation.
    """

    def __init__(
        self,
        limiter_sink: LimiterSinkProtocol,
        config_sink: FilterConfigSinkProtocol,
        settings: CompilerSettings,
    ) -> None:
        """
        Initialize reconciler.

        Args:
            limiter_sink: Where limiter counters are read and written
            config_sink: Where per-gateway filter configs are read and written
            settings: Compiler settings used for every reconciliation
        """
        self.limiter_sink = limiter_sink
        self.config_sink = config_sink
        self.settings = settings

    async def reconcile(self, snapshot: Snapshot) -> ReconcileResult:
        """
        Compile the snapshot and write whatever differs from deployed state.

        Raises:
            InvalidPathError: If compilation meets a structurally invalid path.
            ArtifactSerializationError: If an artifact cannot be encoded.
            SinkError: If a sink read or write fails.
        """
        compilation = compile_snapshot(snapshot, self.settings)
        result = ReconcileResult(compilation=compilation)

        result.limits_changed = await self._sync_limits(compilation.index)
        for gateway_key, config in compilation.filter_configs.items():
            if await self._sync_config(gateway_key, config):
                result.changed_gateways.append(gateway_key)

        logger.info(
            f"Reconciled {len(compilation.filter_configs)} gateways: "
            f"limits changed={result.limits_changed}, "
            f"configs changed={[str(k) for k in result.changed_gateways]}"
        )
        return result

    async def _sync_limits(self, desired: LimitIndex) -> bool:
        try:
            deployed = LimitIndex.from_definitions(await self.limiter_sink.read_limits())
        except SINK_ERRORS as e:
            raise SinkError("read", "limits", e) from e

        if not limits_changed(desired, deployed):
            logger.debug("Limiter counters up to date")
            return False

        try:
            await self.limiter_sink.write_limits(desired.to_definitions())
        except SINK_ERRORS as e:
            raise SinkError("write", "limits", e) from e
        return True

    async def _sync_config(self, gateway_key: ObjectKey, desired: FilterConfig) -> bool:
        target = f"filter config {gateway_key}"
        try:
            deployed = await self.config_sink.read_config(gateway_key)
        except SINK_ERRORS as e:
            raise SinkError("read", target, e) from e

        if desired.equal_to(deployed):
            logger.debug(f"Filter config of {gateway_key} up to date")
            return False

        try:
            await self.config_sink.write_config(gateway_key, desired)
        except SINK_ERRORS as e:
            raise SinkError("write", target, e) from e
        return True
