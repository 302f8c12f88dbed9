"""Resource graph: building, request paths and hostname semantics."""

from policy_core.topology.graph import (
    GatewayClassNode,
    GatewayNode,
    ListenerNode,
    RequestPath,
    RouteNode,
    RouteRuleNode,
    Targetable,
    Topology,
    build_topology,
    route_attaches_to_listener,
)
from policy_core.topology.hostnames import (
    hostname_subset_of,
    hostnames_from_listener_and_route,
    hostnames_intersect,
)
from policy_core.topology.paths import RequestPathObjects, objects_in_request_path, path_id

__all__ = [
    "GatewayClassNode",
    "GatewayNode",
    "ListenerNode",
    "RequestPath",
    "RequestPathObjects",
    "RouteNode",
    "RouteRuleNode",
    "Targetable",
    "Topology",
    "build_topology",
    "hostname_subset_of",
    "hostnames_from_listener_and_route",
    "hostnames_intersect",
    "objects_in_request_path",
    "path_id",
    "route_attaches_to_listener",
]
