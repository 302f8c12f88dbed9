"""Shared fixtures for policy-core tests."""

import pytest

from policy_core.config import CompilerSettings
from policy_core.policies import RateLimitPolicy
from policy_core.resources import Gateway, HTTPRoute
from policy_core.snapshot import Snapshot


@pytest.fixture
def settings():
    """Default compiler settings, independent of the environment."""
    return CompilerSettings(
        failure_mode="deny",
        identifier_prefix="limit.",
        limiter_service="ratelimit-service",
        limits_domain="",
        counter_format="indexed",
    )


@pytest.fixture
def gateway():
    """Gateway with one wildcard listener."""
    return Gateway.model_validate(
        {
            "namespace": "default",
            "name": "gw",
            "gateway_class_name": "istio",
            "listeners": [{"name": "api", "hostname": "*.toystore.com"}],
        }
    )


@pytest.fixture
def toystore_route():
    """Route with a GET /toy* rule and a POST /orders rule."""
    return HTTPRoute.model_validate(
        {
            "namespace": "default",
            "name": "toystore",
            "hostnames": ["api.toystore.com"],
            "parent_refs": [{"name": "gw"}],
            "rules": [
                {
                    "name": "toys",
                    "matches": [{"path": {"type": "PathPrefix", "value": "/toy"}, "method": "GET"}],
                },
                {
                    "name": "orders",
                    "matches": [{"path": {"type": "Exact", "value": "/orders"}, "method": "POST"}],
                },
            ],
        }
    )


@pytest.fixture
def orders_policy():
    """Route-rule policy limiting POST /orders to 5 per 10 seconds."""
    return RateLimitPolicy.model_validate(
        {
            "namespace": "default",
            "name": "orders",
            "target_ref": {"kind": "HTTPRoute", "name": "toystore", "section_name": "orders"},
            "limits": {
                "orders": {"rates": [{"limit": 5, "duration": 10, "unit": "second"}]},
            },
        }
    )


@pytest.fixture
def toystore_snapshot(gateway, toystore_route, orders_policy):
    """Snapshot of one gateway, one route and a policy on its orders rule."""
    return Snapshot(gateways=[gateway], routes=[toystore_route], policies=[orders_policy])
