"""
Policy merge resolver.

Computes, for every request path, the effective rules of one policy kind
by combining the policies attached along the path.

Policies are folded from the most specific (route rule) to the least
specific (gateway class). At each step the less specific policy, the
ancestor, is combined with the rules accumulated so far using the
ancestor's own mode and strategy:

- atomic defaults: the accumulated rules stay unless they are empty, in
  which case the ancestor's rules replace them
- merge defaults: the accumulated rules stay and the ancestor adds the
  rule names they lack
- atomic overrides: the ancestor's rules replace the accumulated rules
- merge overrides: the ancestor's rules are written over the accumulated
  rules, which keep the names the ancestor does not define

Within one node policies are visited by key, so the later key counts as
the more specific one. Every effective rule keeps the locator of the
policy that contributed it.

Example:
    ```python
    effective = effective_policies(topology, PolicyKind.RATE_LIMIT)
    for path_id, rule_set in effective.items():
        for name, rule in rule_set.limits().items():
            print(path_id, name, rule.source)
    ```
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Sequence

from policy_core.policies import Policy
from policy_core.policies.ratelimit import TOP_LEVEL_PREDICATES_RULE
from policy_core.topology.graph import RequestPath, Topology
from policy_core.topology.paths import path_id
from policy_protocols import (
    MergeablePolicyProtocol,
    MergeableRule,
    MergeStrategy,
    PolicyKind,
    PolicyMode,
)

logger = logging.getLogger(__name__)

PolicyPredicate = Callable[[Policy], bool]

RESERVED_RULE_PREFIX = "#"
"""Rule names starting with '#' carry predicates, not enforceable rules."""


@dataclass
class EffectiveRuleSet:
    """
    Merged rules in effect for one request path.

    Attributes:
        path: The request path (gateway class ... route rule)
        path_id: Stable identifier of the path
        rules: Effective rules by name, each with its source locator
        policies: Policies attached along the path, least specific first
        policy: Copy of the most specific policy carrying the merged rules
    """

    path: RequestPath
    path_id: str
    rules: dict[str, MergeableRule] = field(default_factory=dict)
    policies: list[Policy] = field(default_factory=list)
    policy: Policy | None = None

    def limits(self) -> dict[str, MergeableRule]:
        """Named rules other than the top-level predicates."""
        return {
            name: rule for name, rule in self.rules.items() if name != TOP_LEVEL_PREDICATES_RULE
        }

    def top_level_predicates(self) -> list:
        rule = self.rules.get(TOP_LEVEL_PREDICATES_RULE)
        return list(rule.spec) if rule is not None else []

    def empty(self) -> bool:
        if self.policy is None:
            return not self.rules
        return self.policy.empty()

    def sources(self) -> list[str]:
        """Locators of the policies contributing at least one effective rule."""
        return sorted({rule.source for rule in self.rules.values()})


def policies_in_path(
    path: RequestPath, kind: PolicyKind, predicate: PolicyPredicate | None = None
) -> list[Policy]:
    """Policies of one kind along the path, least specific first, by key within a node."""
    result: list[Policy] = []
    for node in path:
        attached = [
            policy
            for policy in node.policies
            if policy.kind == kind.value and (predicate is None or predicate(policy))
        ]
        result.extend(sorted(attached, key=lambda p: p.key))
    return result


def _has_rules(rules: dict[str, MergeableRule]) -> bool:
    return any(not name.startswith(RESERVED_RULE_PREFIX) for name in rules)


def merge_into(
    ancestor: MergeablePolicyProtocol, rules: dict[str, MergeableRule]
) -> dict[str, MergeableRule]:
    """
    Combine an ancestor policy with the rules of more specific policies.

    Args:
        ancestor: The less specific policy; its mode and strategy decide
        rules: Rules accumulated from the more specific policies

    Returns:
        New rule map. Neither input is modified.
    """
    spec = ancestor.merge_strategy()
    ancestor_rules = {
        name: rule.with_source(ancestor.locator) for name, rule in ancestor.rules().items()
    }

    if spec.mode is PolicyMode.OVERRIDES:
        if spec.strategy is MergeStrategy.ATOMIC:
            return ancestor_rules
        return {**rules, **ancestor_rules}

    if spec.strategy is MergeStrategy.MERGE:
        return {**ancestor_rules, **rules}
    if _has_rules(rules):
        return dict(rules)
    return ancestor_rules


def merge_rules(policies: Sequence[MergeablePolicyProtocol]) -> dict[str, MergeableRule]:
    """
    Merge the rules of policies ordered least specific first.

    Returns:
        Effective rule map. Empty when no policy contributes rules.
    """
    if not policies:
        return {}

    rules = dict(policies[-1].rules())
    for ancestor in reversed(policies[:-1]):
        rules = merge_into(ancestor, rules)
    return rules


def effective_policies(
    topology: Topology,
    kind: PolicyKind = PolicyKind.RATE_LIMIT,
    predicate: PolicyPredicate | None = None,
) -> dict[str, EffectiveRuleSet]:
    """
    Compute the effective rule set of every request path.

    Paths without any policy of the kind are left out; paths whose
    policies contribute no rules get an empty rule set.

    Args:
        topology: Resource graph with attached policies
        kind: Policy kind to merge
        predicate: Optional filter on the policies taken into account

    Returns:
        Effective rule sets by path id, in topology path order.
    """
    effective: dict[str, EffectiveRuleSet] = {}
    for path in topology.paths():
        policies = policies_in_path(path, kind, predicate)
        if not policies:
            continue

        rules = merge_rules(policies)
        merged = policies[-1].model_copy(deep=True)
        merged.set_rules(rules)

        pid = path_id(path)
        effective[pid] = EffectiveRuleSet(
            path=path, path_id=pid, rules=rules, policies=policies, policy=merged
        )
        logger.debug(
            f"Effective {kind.value} for {path[-1].locator}: "
            f"{sorted(rules)} from {[p.locator for p in policies]}"
        )
    return effective
