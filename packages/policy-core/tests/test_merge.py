"""Tests for the policy merge resolver."""

from unittest.mock import MagicMock

import pytest

from policy_core.merge import effective_policies, merge_into, merge_rules, policies_in_path
from policy_core.policies import TOP_LEVEL_PREDICATES_RULE, RateLimitPolicy, parse_policy
from policy_core.topology import build_topology
from policy_protocols import (
    MergeablePolicyProtocol,
    MergeableRule,
    MergeSpec,
    MergeStrategy,
    PolicyKind,
    PolicyMode,
)


def _rate(limit):
    return {"rates": [{"limit": limit, "duration": 1, "unit": "minute"}]}


def _rlp(name, target_kind, target, limits, mode=None, strategy="atomic", section=None, when=None):
    ref = {"kind": target_kind, "name": target}
    if section:
        ref["section_name"] = section
    body = {"limits": {k: _rate(v) for k, v in limits.items()}}
    if when:
        body["when"] = when
    data = {"name": name, "target_ref": ref}
    if mode is None:
        data.update(body)
    else:
        data[mode] = {**body, "strategy": strategy}
    return RateLimitPolicy.model_validate(data)


def _effective_for_rule(gateway, route, policies, rule_name="orders"):
    topology = build_topology(gateways=[gateway], routes=[route], policies=policies)
    effective = effective_policies(topology, PolicyKind.RATE_LIMIT)
    for rule_set in effective.values():
        if rule_set.path[-1].name == rule_name:
            return rule_set
    return None


def _limits(rule_set):
    return {
        name: (rule.spec.rates[0].limit, rule.source) for name, rule in rule_set.limits().items()
    }


class TestDefaults:
    """Tests for defaults policies along a path."""

    def test_gateway_defaults_inherited(self, gateway, toystore_route):
        """A route without its own policy inherits gateway defaults."""
        policies = [_rlp("gw", "Gateway", "gw", {"global": 100}, mode="defaults")]
        rule_set = _effective_for_rule(gateway, toystore_route, policies)

        assert _limits(rule_set) == {"global": (100, "ratelimitpolicy:default/gw")}

    def test_route_policy_replaces_atomic_defaults(self, gateway, toystore_route):
        """A more specific policy replaces atomic defaults as a whole."""
        policies = [
            _rlp("gw", "Gateway", "gw", {"global": 100}, mode="defaults"),
            _rlp("route", "HTTPRoute", "toystore", {"orders": 5}),
        ]
        rule_set = _effective_for_rule(gateway, toystore_route, policies)

        assert _limits(rule_set) == {"orders": (5, "ratelimitpolicy:default/route")}

    def test_merge_defaults_combined_per_rule(self, gateway, toystore_route):
        """Merge defaults keep ancestor rules a more specific policy does not name."""
        policies = [
            _rlp("gw", "Gateway", "gw", {"global": 100, "orders": 50}, mode="defaults",
                 strategy="merge"),
            _rlp("route", "HTTPRoute", "toystore", {"orders": 5}, mode="defaults",
                 strategy="merge"),
        ]
        rule_set = _effective_for_rule(gateway, toystore_route, policies)

        assert _limits(rule_set) == {
            "global": (100, "ratelimitpolicy:default/gw"),
            "orders": (5, "ratelimitpolicy:default/route"),
        }

    def test_merge_defaults_fill_atomic_route_policy(self, gateway, toystore_route):
        """Merge defaults add rule names an implicit route policy does not set."""
        policies = [
            _rlp("gw", "Gateway", "gw", {"global": 100, "orders": 50}, mode="defaults",
                 strategy="merge"),
            _rlp("route", "HTTPRoute", "toystore", {"orders": 5}),
        ]
        rule_set = _effective_for_rule(gateway, toystore_route, policies)

        assert sorted(rule_set.limits()) == ["global", "orders"]
        assert _limits(rule_set)["orders"] == (5, "ratelimitpolicy:default/route")

    def test_atomic_defaults_ignore_merge_route_policy(self, gateway, toystore_route):
        """Atomic defaults stay out of a non-empty route policy, whatever its strategy."""
        policies = [
            _rlp("gw", "Gateway", "gw", {"global": 100}, mode="defaults"),
            _rlp("route", "HTTPRoute", "toystore", {"orders": 5}, mode="defaults",
                 strategy="merge"),
        ]
        rule_set = _effective_for_rule(gateway, toystore_route, policies)

        assert sorted(rule_set.limits()) == ["orders"]

    def test_rule_level_policy_most_specific(self, gateway, toystore_route):
        """A route-rule policy beats a route policy for that rule only."""
        policies = [
            _rlp("route", "HTTPRoute", "toystore", {"all": 10}),
            _rlp("rule", "HTTPRoute", "toystore", {"orders": 5}, section="orders"),
        ]
        orders = _effective_for_rule(gateway, toystore_route, policies, "orders")
        toys = _effective_for_rule(gateway, toystore_route, policies, "toys")

        assert set(orders.limits()) == {"orders"}
        assert set(toys.limits()) == {"all"}

    def test_same_level_later_key_wins(self, gateway, toystore_route):
        """Among policies on the same node, the later key wins a rule name."""
        policies = [
            _rlp("b-policy", "HTTPRoute", "toystore", {"orders": 2}, mode="defaults",
                 strategy="merge"),
            _rlp("a-policy", "HTTPRoute", "toystore", {"orders": 1}, mode="defaults",
                 strategy="merge"),
        ]
        rule_set = _effective_for_rule(gateway, toystore_route, policies)

        assert _limits(rule_set) == {"orders": (2, "ratelimitpolicy:default/b-policy")}

    def test_empty_atomic_policy_does_not_replace(self, gateway, toystore_route):
        """An atomic policy without limits leaves the accumulated rules in place."""
        policies = [
            _rlp("gw", "Gateway", "gw", {"global": 100}, mode="defaults"),
            _rlp("route", "HTTPRoute", "toystore", {}),
        ]
        rule_set = _effective_for_rule(gateway, toystore_route, policies)

        assert set(rule_set.limits()) == {"global"}


class TestOverrides:
    """Tests for overrides policies along a path."""

    def test_gateway_override_beats_route_defaults(self, gateway, toystore_route):
        """Gateway overrides win over route-level rules of the same name."""
        policies = [
            _rlp("gw", "Gateway", "gw", {"orders": 1}, mode="overrides"),
            _rlp("route", "HTTPRoute", "toystore", {"orders": 2}, mode="defaults"),
        ]
        rule_set = _effective_for_rule(gateway, toystore_route, policies)

        assert _limits(rule_set) == {"orders": (1, "ratelimitpolicy:default/gw")}

    def test_atomic_override_replaces_everything(self, gateway, toystore_route):
        """An atomic override drops every defaults-derived rule."""
        policies = [
            _rlp("gw", "Gateway", "gw", {"global": 1}, mode="overrides"),
            _rlp("route", "HTTPRoute", "toystore", {"orders": 2, "extra": 3}),
        ]
        rule_set = _effective_for_rule(gateway, toystore_route, policies)

        assert set(rule_set.limits()) == {"global"}

    def test_merge_override_keeps_other_rules(self, gateway, toystore_route):
        """A merge override only replaces the rule names it defines."""
        policies = [
            _rlp("gw", "Gateway", "gw", {"orders": 1}, mode="overrides", strategy="merge"),
            _rlp("route", "HTTPRoute", "toystore", {"orders": 2, "extra": 3}),
        ]
        rule_set = _effective_for_rule(gateway, toystore_route, policies)

        assert _limits(rule_set) == {
            "orders": (1, "ratelimitpolicy:default/gw"),
            "extra": (3, "ratelimitpolicy:default/route"),
        }

    def test_farther_override_wins(self, gateway, toystore_route):
        """Between two merge overrides, the less specific one wins a shared rule name."""
        policies = [
            _rlp("gw", "Gateway", "gw", {"orders": 1, "global": 100}, mode="overrides",
                 strategy="merge"),
            _rlp("route", "HTTPRoute", "toystore", {"orders": 2}, mode="overrides",
                 strategy="merge"),
        ]
        rule_set = _effective_for_rule(gateway, toystore_route, policies)

        assert _limits(rule_set) == {
            "orders": (1, "ratelimitpolicy:default/gw"),
            "global": (100, "ratelimitpolicy:default/gw"),
        }

    def test_merge_override_adds_to_closer_atomic_override(self, gateway, toystore_route):
        """A farther merge override adds its rules to a closer atomic override."""
        policies = [
            _rlp("gw", "Gateway", "gw", {"global": 100}, mode="overrides", strategy="merge"),
            _rlp("route", "HTTPRoute", "toystore", {"orders": 2}, mode="overrides"),
        ]
        rule_set = _effective_for_rule(gateway, toystore_route, policies)

        assert _limits(rule_set) == {
            "global": (100, "ratelimitpolicy:default/gw"),
            "orders": (2, "ratelimitpolicy:default/route"),
        }


class TestTopLevelPredicates:
    """Tests for policy-wide predicates in the rule map."""

    def test_predicates_carried_as_rule(self, gateway, toystore_route):
        """Top-level predicates travel with the policy that defines them."""
        when = [{"selector": "request.host", "operator": "neq", "value": "internal"}]
        policies = [_rlp("route", "HTTPRoute", "toystore", {"orders": 5}, when=when)]
        rule_set = _effective_for_rule(gateway, toystore_route, policies)

        assert TOP_LEVEL_PREDICATES_RULE in rule_set.rules
        assert [w.value for w in rule_set.top_level_predicates()] == ["internal"]
        assert set(rule_set.limits()) == {"orders"}


class TestEffectivePolicies:
    """Tests for effective_policies()."""

    def test_paths_without_policies_left_out(self, gateway, toystore_route):
        """Only paths with at least one policy get a rule set."""
        policies = [_rlp("rule", "HTTPRoute", "toystore", {"orders": 5}, section="orders")]
        topology = build_topology(gateways=[gateway], routes=[toystore_route], policies=policies)
        effective = effective_policies(topology)

        assert [rs.path[-1].name for rs in effective.values()] == ["orders"]

    def test_empty_rule_set(self, gateway, toystore_route):
        """A path whose policies contribute nothing has an empty rule set."""
        policies = [_rlp("route", "HTTPRoute", "toystore", {})]
        rule_set = _effective_for_rule(gateway, toystore_route, policies)

        assert rule_set is not None
        assert rule_set.empty()
        assert rule_set.limits() == {}

    def test_merged_policy_keeps_sources(self, gateway, toystore_route):
        """The materialized policy reports the policy each rule came from."""
        policies = [
            _rlp("gw", "Gateway", "gw", {"global": 100}, mode="defaults", strategy="merge"),
            _rlp("route", "HTTPRoute", "toystore", {"orders": 5}, mode="defaults",
                 strategy="merge"),
        ]
        rule_set = _effective_for_rule(gateway, toystore_route, policies)

        merged_rules = rule_set.policy.rules()
        assert merged_rules["global"].source == "ratelimitpolicy:default/gw"
        assert merged_rules["orders"].source == "ratelimitpolicy:default/route"
        assert rule_set.sources() == [
            "ratelimitpolicy:default/gw",
            "ratelimitpolicy:default/route",
        ]

    def test_input_policies_not_mutated(self, gateway, toystore_route):
        """Merging never changes the input policies."""
        gw_policy = _rlp("gw", "Gateway", "gw", {"global": 100}, mode="defaults",
                         strategy="merge")
        route_policy = _rlp("route", "HTTPRoute", "toystore", {"orders": 5})
        _effective_for_rule(gateway, toystore_route, [gw_policy, route_policy])

        assert set(route_policy.rules()) == {"orders"}
        assert route_policy.rules()["orders"].source == "ratelimitpolicy:default/route"

    def test_deterministic_regardless_of_policy_order(self, gateway, toystore_route):
        """Effective rules do not depend on the order policies are given in."""
        policies = [
            _rlp("gw", "Gateway", "gw", {"global": 100}, mode="defaults", strategy="merge"),
            _rlp("b", "HTTPRoute", "toystore", {"orders": 2}, mode="defaults", strategy="merge"),
            _rlp("a", "HTTPRoute", "toystore", {"orders": 1}, mode="defaults", strategy="merge"),
        ]
        forward = _effective_for_rule(gateway, toystore_route, policies)
        backward = _effective_for_rule(gateway, toystore_route, list(reversed(policies)))

        assert _limits(forward) == _limits(backward)

    def test_other_kinds_ignored(self, gateway, toystore_route):
        """Merging one kind ignores policies of other kinds on the same path."""
        auth = parse_policy(
            {
                "kind": "AuthPolicy",
                "name": "auth",
                "target_ref": {"kind": "HTTPRoute", "name": "toystore"},
                "rules": {"authentication": {"api-key": {"apiKey": {}}}},
            }
        )
        topology = build_topology(gateways=[gateway], routes=[toystore_route], policies=[auth])

        assert effective_policies(topology, PolicyKind.RATE_LIMIT) == {}
        auth_effective = effective_policies(topology, PolicyKind.AUTH)
        assert len(auth_effective) == 2
        rule_set = next(iter(auth_effective.values()))
        assert set(rule_set.rules) == {"authentication#api-key"}
        assert not rule_set.empty()


class TestMergeRules:
    """Tests for merge_rules() and policies_in_path() on their own."""

    def test_no_policies(self):
        assert merge_rules([]) == {}

    def test_policies_in_path_with_predicate(self, gateway, toystore_route):
        """A predicate filters the policies taken into account."""
        policies = [
            _rlp("keep", "Gateway", "gw", {"a": 1}),
            _rlp("drop", "HTTPRoute", "toystore", {"b": 2}),
        ]
        topology = build_topology(gateways=[gateway], routes=[toystore_route], policies=policies)
        path = topology.paths()[0]

        found = policies_in_path(path, PolicyKind.RATE_LIMIT, lambda p: p.name != "drop")
        assert [p.name for p in found] == ["keep"]

    @pytest.mark.parametrize("strategy", ["atomic", "merge"])
    def test_single_policy(self, strategy):
        """A single defaults policy is its own effective rule map."""
        policy = _rlp("only", "Gateway", "gw", {"a": 1}, mode="defaults", strategy=strategy)
        assert set(merge_rules([policy])) == {"a"}

    def test_merge_into_accepts_any_mergeable_policy(self):
        """Ancestor rules are attributed to the ancestor's locator."""
        ancestor = MagicMock(spec=MergeablePolicyProtocol)
        ancestor.locator = "dnspolicy:default/dns"
        ancestor.merge_strategy.return_value = MergeSpec(
            mode=PolicyMode.DEFAULTS, strategy=MergeStrategy.MERGE
        )
        ancestor.rules.return_value = {
            "healthCheck": MergeableRule(spec={"interval": "5m"}),
            "endpoint": MergeableRule(spec={"port": 80}),
        }
        rules = {"endpoint": MergeableRule(spec={"port": 443}, source="dnspolicy:default/near")}

        merged = merge_into(ancestor, rules)

        assert merged["healthCheck"].source == "dnspolicy:default/dns"
        assert merged["endpoint"].spec == {"port": 443}
        assert rules["endpoint"].source == "dnspolicy:default/near"
        assert set(rules) == {"endpoint"}

    def test_predicates_alone_yield_to_atomic_defaults(self):
        """Accumulated predicates without rules count as empty."""
        gateway_policy = _rlp("gw", "Gateway", "gw", {"global": 100}, mode="defaults")
        when = [{"selector": "request.host", "value": "api.toystore.com"}]
        route_policy = _rlp("route", "HTTPRoute", "toystore", {}, when=when)

        merged = merge_rules([gateway_policy, route_policy])

        assert set(merged) == {"global"}
