"""End-to-end tests for the rate limit compiler."""

from policy_core.policies import RateLimitPolicy
from policy_core.ratelimit import compile_snapshot
from policy_core.ratelimit.identifiers import limit_identifier
from policy_core.resources import Gateway, HTTPRoute
from policy_core.snapshot import Snapshot
from policy_protocols import ObjectKey


ORDERS_ID = limit_identifier(ObjectKey("default", "orders"), "orders")


def _exprs(condition):
    return [(e.selector, e.operator, e.value) for e in condition.all_of]


class TestCompileSnapshot:
    """Tests for compile_snapshot()."""

    def test_orders_limit(self, toystore_snapshot, settings):
        """A route rule policy produces one counter and one filter entry."""
        result = compile_snapshot(toystore_snapshot, settings)

        assert [(d.namespace, d.max_value, d.seconds) for d in result.limits] == [
            ("default/toystore", 5, 10)
        ]
        assert result.limits[0].conditions == [f'descriptors[0]["{ORDERS_ID}"] == "1"']
        assert result.limits[0].variables == []

        config = result.filter_configs[ObjectKey("default", "gw")]
        assert config.failure_mode.value == "deny"
        (entry,) = config.policies
        assert entry.domain == "default/toystore"
        assert entry.service == "ratelimit-service"
        assert entry.hostnames == ["api.toystore.com"]
        (rule,) = entry.rules
        assert _exprs(rule.conditions[0]) == [
            ("request.url_path", "eq", "/orders"),
            ("request.method", "eq", "POST"),
        ]
        assert rule.data[0].static.key == ORDERS_ID

    def test_route_defaults_for_post_orders(self, gateway, settings):
        """Atomic route defaults on a POST /orders prefix rule compile end to end."""
        route = HTTPRoute.model_validate(
            {
                "name": "shop",
                "parent_refs": [{"name": "gw"}],
                "rules": [
                    {
                        "matches": [
                            {"path": {"type": "PathPrefix", "value": "/orders"}, "method": "POST"}
                        ]
                    }
                ],
            }
        )
        policy = RateLimitPolicy.model_validate(
            {
                "name": "shop-limits",
                "target_ref": {"kind": "HTTPRoute", "name": "shop"},
                "defaults": {
                    "strategy": "atomic",
                    "limits": {"5rps": {"rates": [{"limit": 5, "duration": 1, "unit": "second"}]}},
                },
            }
        )
        snapshot = Snapshot(gateways=[gateway], routes=[route], policies=[policy])
        result = compile_snapshot(snapshot, settings)

        assert [(d.namespace, d.max_value, d.seconds) for d in result.limits] == [
            ("default/shop", 5, 1)
        ]
        identifier = limit_identifier(ObjectKey("default", "shop-limits"), "5rps")
        (entry,) = result.filter_configs[ObjectKey("default", "gw")].policies
        (rule,) = entry.rules
        assert _exprs(rule.conditions[0]) == [
            ("request.url_path", "startswith", "/orders"),
            ("request.method", "eq", "POST"),
        ]
        assert rule.data[0].static.key == identifier
        assert result.limits[0].conditions == [f'descriptors[0]["{identifier}"] == "1"']

    def test_route_policy_covers_every_rule(self, gateway, toystore_route, settings):
        """A route-level limit yields one filter entry per rule but a single counter."""
        policy = RateLimitPolicy.model_validate(
            {
                "namespace": "default",
                "name": "toystore",
                "target_ref": {"kind": "HTTPRoute", "name": "toystore"},
                "limits": {"global": {"rates": [{"limit": 50, "duration": 1, "unit": "minute"}]}},
            }
        )
        snapshot = Snapshot(gateways=[gateway], routes=[toystore_route], policies=[policy])
        result = compile_snapshot(snapshot, settings)

        assert [(d.max_value, d.seconds) for d in result.limits] == [(50, 60)]
        entries = result.filter_configs[ObjectKey("default", "gw")].policies
        assert len(entries) == 2
        first_exprs = {_exprs(entry.rules[0].conditions[0])[0] for entry in entries}
        assert first_exprs == {
            ("request.url_path", "startswith", "/toy"),
            ("request.url_path", "eq", "/orders"),
        }

    def test_counters_deduplicated_across_listeners(self, toystore_route, orders_policy, settings):
        """Paths through two listeners share the route's counters."""
        gateway = Gateway.model_validate(
            {
                "name": "gw",
                "listeners": [
                    {"name": "wildcard", "hostname": "*.toystore.com"},
                    {"name": "exact", "hostname": "api.toystore.com"},
                ],
            }
        )
        snapshot = Snapshot(gateways=[gateway], routes=[toystore_route], policies=[orders_policy])
        result = compile_snapshot(snapshot, settings)

        assert len(result.limits) == 1
        assert len(result.filter_configs[ObjectKey("default", "gw")].policies) == 2

    def test_gateway_policy_counts_per_route(self, gateway, toystore_route, settings):
        """A gateway limit is counted separately for each route."""
        other_route = HTTPRoute.model_validate(
            {
                "name": "petstore",
                "parent_refs": [{"name": "gw"}],
                "rules": [{"matches": [{"path": {"value": "/pets"}}]}],
            }
        )
        policy = RateLimitPolicy.model_validate(
            {
                "name": "gw",
                "target_ref": {"kind": "Gateway", "name": "gw"},
                "limits": {"global": {"rates": [{"limit": 1000, "duration": 1, "unit": "hour"}]}},
            }
        )
        snapshot = Snapshot(
            gateways=[gateway], routes=[toystore_route, other_route], policies=[policy]
        )
        result = compile_snapshot(snapshot, settings)

        assert sorted(d.namespace for d in result.limits) == ["default/petstore", "default/toystore"]

    def test_limits_domain(self, toystore_snapshot, settings):
        """A configured domain is appended to every namespace."""
        result = compile_snapshot(
            toystore_snapshot, settings.model_copy(update={"limits_domain": "internal"})
        )

        assert [d.namespace for d in result.limits] == ["default/toystore#internal"]
        entry = result.filter_configs[ObjectKey("default", "gw")].policies[0]
        assert entry.domain == "default/toystore#internal"

    def test_top_level_predicates_and_counters(self, toystore_snapshot, settings):
        policy = RateLimitPolicy.model_validate(
            {
                "name": "orders",
                "target_ref": {"kind": "HTTPRoute", "name": "toystore", "section_name": "orders"},
                "when": [{"selector": "auth.identity.group", "operator": "neq", "value": "admin"}],
                "limits": {
                    "orders": {
                        "counters": ["auth.identity.username"],
                        "rates": [{"limit": 5, "duration": 10, "unit": "second"}],
                    }
                },
            }
        )
        snapshot = toystore_snapshot.model_copy(update={"policies": [policy]})
        result = compile_snapshot(snapshot, settings)

        assert result.limits[0].variables == ['descriptors[0]["auth.identity.username"]']
        rule = result.filter_configs[ObjectKey("default", "gw")].policies[0].rules[0]
        assert _exprs(rule.conditions[0])[-1] == ("auth.identity.group", "neq", "admin")
        assert rule.data[1].selector.selector == "auth.identity.username"

    def test_empty_rule_set_compiles_to_nothing(self, gateway, toystore_route, settings):
        """Policies without limits give an empty filter config and no counters."""
        policy = RateLimitPolicy.model_validate(
            {"name": "empty", "target_ref": {"kind": "HTTPRoute", "name": "toystore"}}
        )
        snapshot = Snapshot(gateways=[gateway], routes=[toystore_route], policies=[policy])
        result = compile_snapshot(snapshot, settings)

        assert len(result.effective) == 2
        assert result.limits == []
        assert result.filter_configs[ObjectKey("default", "gw")].policies == []

    def test_every_gateway_gets_a_config(self, gateway, toystore_snapshot, settings):
        idle = gateway.model_copy(update={"name": "idle"})
        snapshot = toystore_snapshot.model_copy(
            update={"gateways": [*toystore_snapshot.gateways, idle]}
        )
        result = compile_snapshot(snapshot, settings)

        assert result.filter_configs[ObjectKey("default", "idle")].policies == []

    def test_unattached_policies_reported(self, toystore_snapshot, settings):
        ghost = RateLimitPolicy.model_validate(
            {"name": "ghost", "target_ref": {"kind": "HTTPRoute", "name": "missing"}}
        )
        snapshot = toystore_snapshot.model_copy(
            update={"policies": [*toystore_snapshot.policies, ghost]}
        )
        result = compile_snapshot(snapshot, settings)

        assert result.unattached == ["ratelimitpolicy:default/ghost"]
        assert len(result.limits) == 1

    def test_deterministic(self, gateway, toystore_route, orders_policy, settings):
        """Input order does not change the compiled artifacts."""
        gateway_policy = RateLimitPolicy.model_validate(
            {
                "name": "gw",
                "target_ref": {"kind": "Gateway", "name": "gw"},
                "defaults": {
                    "strategy": "merge",
                    "limits": {"global": {"rates": [{"limit": 100, "duration": 1, "unit": "minute"}]}},
                },
            }
        )
        forward = Snapshot(
            gateways=[gateway], routes=[toystore_route], policies=[gateway_policy, orders_policy]
        )
        backward = Snapshot(
            gateways=[gateway], routes=[toystore_route], policies=[orders_policy, gateway_policy]
        )
        first = compile_snapshot(forward, settings)
        second = compile_snapshot(backward, settings)

        assert first.index == second.index
        assert [d.model_dump() for d in first.limits] == [d.model_dump() for d in second.limits]
        for key, config in first.filter_configs.items():
            assert second.filter_configs[key].equal_to(config)
