"""
Rate limit compiler.

Turns effective rate limit rule sets into the two artifacts enforcement
needs:

1. Limiter counter definitions, collected in a LimitIndex keyed by route
   (one counter per limit rate, shared by every path through the route)
2. One FilterConfig per gateway, with one FilterPolicy per request path
   that has effective limits

The pipeline is synchronous and has no side effects; settings are passed
in explicitly.

Example:
    ```python
    result = compile_snapshot(load_snapshot("snapshot.yaml"), CompilerSettings())
    for definition in result.limits:
        print(definition.namespace, definition.max_value, definition.seconds)
    ```
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from policy_core.config import CompilerSettings
from policy_core.merge import EffectiveRuleSet, effective_policies
from policy_core.ratelimit.filter_config import FilterConfig, FilterPolicy
from policy_core.ratelimit.identifiers import (
    limit_identifier,
    limits_namespace,
    policy_key_from_locator,
)
from policy_core.ratelimit.index import LimitIndex
from policy_core.ratelimit.limits import LimiterCounterDefinition, counter_definitions
from policy_core.ratelimit.rules import CompiledRule, compile_rule
from policy_core.topology import (
    Topology,
    build_topology,
    hostnames_from_listener_and_route,
    objects_in_request_path,
)
from policy_protocols import ObjectKey, PolicyKind

if TYPE_CHECKING:
    from policy_core.snapshot import Snapshot

logger = logging.getLogger(__name__)


@dataclass
class CompilationResult:
    """
    Desired enforcement state computed from a topology.

    Attributes:
        topology: The resource graph the result was computed from
        effective: Effective rate limit rule sets by request path id
        index: Desired limiter counters
        filter_configs: Desired proxy filter configuration per gateway
    """

    topology: Topology
    effective: dict[str, EffectiveRuleSet] = field(default_factory=dict)
    index: LimitIndex = field(default_factory=LimitIndex)
    filter_configs: dict[ObjectKey, FilterConfig] = field(default_factory=dict)

    @property
    def limits(self) -> list[LimiterCounterDefinition]:
        return self.index.to_definitions()

    @property
    def unattached(self) -> list[str]:
        return [policy.locator for policy in self.topology.unattached_policies]


def compile_path(
    rule_set: EffectiveRuleSet, settings: CompilerSettings
) -> tuple[FilterPolicy | None, dict[str, list[LimiterCounterDefinition]]]:
    """
    Compile the effective limits of one request path.

    Returns:
        The filter entry of the path (None when it has no limits) and the
        counter definitions of each limit, by identifier.

    Raises:
        InvalidPathError: If the rule set's path is structurally invalid.
    """
    objects = objects_in_request_path(rule_set.path)
    namespace = limits_namespace(objects.route.key, settings.limits_domain)
    predicates = rule_set.top_level_predicates()

    rules: list[CompiledRule] = []
    definitions: dict[str, list[LimiterCounterDefinition]] = {}
    for name, rule in sorted(rule_set.limits().items()):
        identifier = limit_identifier(
            policy_key_from_locator(rule.source), name, settings.identifier_prefix
        )
        rules.append(compile_rule(identifier, rule.spec, objects.rule.rule, predicates))
        definitions[identifier] = counter_definitions(
            namespace, identifier, rule.spec, settings.counter_format
        )

    if not rules:
        return None, definitions

    filter_policy = FilterPolicy(
        name=rule_set.path_id,
        domain=namespace,
        service=settings.limiter_service,
        hostnames=hostnames_from_listener_and_route(
            objects.listener.listener.hostname, objects.route.route.hostnames
        ),
        rules=rules,
    )
    return filter_policy, definitions


def compile_effective_policies(
    topology: Topology,
    effective: dict[str, EffectiveRuleSet],
    settings: CompilerSettings,
) -> CompilationResult:
    """
    Compile effective rate limit rule sets into counters and filter configs.

    Counters of a limit are added once per limiter namespace even when the
    limit is in effect on several paths through the same route. Every
    gateway gets a filter config, empty when nothing applies to it.
    """
    result = CompilationResult(topology=topology, effective=effective)
    for gateway_key in sorted(topology.gateways):
        result.filter_configs[gateway_key] = FilterConfig(failure_mode=settings.failure_mode)

    seen: set[tuple[str, str]] = set()
    for rule_set in effective.values():
        filter_policy, definitions = compile_path(rule_set, settings)
        for identifier, counters in definitions.items():
            if not counters:
                continue
            key = (counters[0].namespace, identifier)
            if key in seen:
                continue
            seen.add(key)
            for definition in counters:
                result.index.add_from_definition(definition)

        if filter_policy is None:
            logger.debug(f"No effective limits on path {rule_set.path_id}")
            continue
        gateway_key = objects_in_request_path(rule_set.path).gateway.key
        result.filter_configs[gateway_key].policies.append(filter_policy)

    logger.debug(
        f"Compiled {len(result.index)} limiter counters for {len(effective)} request paths"
    )
    return result


def compile_topology(topology: Topology, settings: CompilerSettings) -> CompilationResult:
    """Merge rate limit policies along every path and compile the result."""
    effective = effective_policies(topology, PolicyKind.RATE_LIMIT)
    return compile_effective_policies(topology, effective, settings)


def compile_snapshot(snapshot: "Snapshot", settings: CompilerSettings) -> CompilationResult:
    """Build the topology of a snapshot and compile it."""
    topology = build_topology(
        gateways=snapshot.gateways,
        routes=snapshot.routes,
        policies=snapshot.policies,
        gateway_classes=snapshot.gateway_classes or None,
    )
    return compile_topology(topology, settings)
