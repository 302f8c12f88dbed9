"""
Rate limit compilation.

Key components:
- compile_snapshot / compile_topology: Full pipeline from resources to artifacts
- limit_identifier: Stable identifier of a policy limit
- compile_rule: Proxy filter rule of a limit on a route rule
- counter_definitions: Limiter counters of a limit
- LimitIndex: Order-insensitive comparison of desired and deployed counters
- FilterConfig: Per-gateway proxy filter configuration
"""

from policy_core.ratelimit.compiler import (
    CompilationResult,
    compile_effective_policies,
    compile_path,
    compile_snapshot,
    compile_topology,
)
from policy_core.ratelimit.filter_config import FilterConfig, FilterPolicy, serialize_artifact
from policy_core.ratelimit.identifiers import (
    limit_identifier,
    limits_namespace,
    marshal_namespace,
    policy_key_from_locator,
    unmarshal_namespace,
)
from policy_core.ratelimit.index import LimitEntry, LimitIndex, limits_changed
from policy_core.ratelimit.limits import LimiterCounterDefinition, counter_definitions
from policy_core.ratelimit.rates import rate_to_seconds
from policy_core.ratelimit.rules import (
    CompiledRule,
    Condition,
    DataItem,
    PatternExpression,
    compile_rule,
    conditions_from_route_rule,
)

__all__ = [
    "CompilationResult",
    "CompiledRule",
    "Condition",
    "DataItem",
    "FilterConfig",
    "FilterPolicy",
    "LimitEntry",
    "LimitIndex",
    "LimiterCounterDefinition",
    "PatternExpression",
    "compile_effective_policies",
    "compile_path",
    "compile_rule",
    "compile_snapshot",
    "compile_topology",
    "conditions_from_route_rule",
    "counter_definitions",
    "limit_identifier",
    "limits_changed",
    "limits_namespace",
    "marshal_namespace",
    "policy_key_from_locator",
    "rate_to_seconds",
    "serialize_artifact",
    "unmarshal_namespace",
]
