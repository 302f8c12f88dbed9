"""Reconciliation of compiled artifacts against deployed state."""

from policy_core.reconcile.http_sink import HttpLimiterSink, LimitsDocument
from policy_core.reconcile.reconciler import Reconciler, ReconcileResult
from policy_core.reconcile.sinks import (
    FilterConfigSinkProtocol,
    JsonFileSink,
    LimiterSinkProtocol,
    MemorySink,
)

__all__ = [
    "FilterConfigSinkProtocol",
    "HttpLimiterSink",
    "JsonFileSink",
    "LimiterSinkProtocol",
    "LimitsDocument",
    "MemorySink",
    "Reconciler",
    "ReconcileResult",
]
