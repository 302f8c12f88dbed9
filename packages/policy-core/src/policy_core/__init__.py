"""
Policy Core Library

Compiles traffic policies attached to gateway resources into enforcement
configuration. This package provides:

- Resources: Gateway, Listener, HTTPRoute and their matches
- Policies: RateLimitPolicy, AuthPolicy, DNSPolicy, TLSPolicy
- Topology: Resource graph with attached policies and request paths
- Merge: Effective rules per request path (defaults / overrides)
- Rate limit compilation: Limiter counters and proxy filter configs
- Reconcile: Compare-then-write against deployed state
- CLI infrastructure: Typer-based command structure
"""

__version__ = "0.1.0"

# Re-export public types for convenient imports
from policy_core.config import CompilerSettings, CounterFormat, FailureMode
from policy_core.exceptions import (
    ArtifactSerializationError,
    InvalidPathError,
    PolicyCompilerError,
    SinkError,
)
from policy_core.merge import EffectiveRuleSet, effective_policies
from policy_core.policies import Policy, RateLimitPolicy, parse_policy
from policy_core.ratelimit import CompilationResult, LimitIndex, compile_snapshot
from policy_core.snapshot import Snapshot, load_snapshot
from policy_core.topology import Topology, build_topology

__all__ = [
    "__version__",
    # Configuration
    "CompilerSettings",
    "CounterFormat",
    "FailureMode",
    # Errors
    "ArtifactSerializationError",
    "InvalidPathError",
    "PolicyCompilerError",
    "SinkError",
    # Pipeline
    "CompilationResult",
    "EffectiveRuleSet",
    "LimitIndex",
    "Policy",
    "RateLimitPolicy",
    "Snapshot",
    "Topology",
    "build_topology",
    "compile_snapshot",
    "effective_policies",
    "load_snapshot",
    "parse_policy",
]
