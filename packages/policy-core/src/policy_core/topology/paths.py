"""
Request path validation.

A request path is the chain of resources a request traverses:

    gateway class -> gateway -> listener -> route -> route rule

objects_in_request_path checks each element has the right type and
belongs to the element before it, and returns the typed objects.
"""

import hashlib
from typing import NamedTuple

from policy_core.exceptions import InvalidPathError
from policy_core.topology.graph import (
    GatewayClassNode,
    GatewayNode,
    ListenerNode,
    RequestPath,
    RouteNode,
    RouteRuleNode,
    route_attaches_to_listener,
)

PATH_LENGTH = 5


class RequestPathObjects(NamedTuple):
    gateway_class: GatewayClassNode
    gateway: GatewayNode
    listener: ListenerNode
    route: RouteNode
    rule: RouteRuleNode


def _expect(path: RequestPath, index: int, node_type: type, label: str):
    if index >= len(path):
        raise InvalidPathError(index, f"missing {label}")
    node = path[index]
    if not isinstance(node, node_type):
        raise InvalidPathError(index, f"index {index} is not a {label}")
    return node


def objects_in_request_path(path: RequestPath) -> RequestPathObjects:
    """
    Validate a request path and return its objects.

    Raises:
        InvalidPathError: If the path is empty, an element has the wrong
            type, or an element does not belong to the one before it.
    """
    if not path:
        raise InvalidPathError(-1, "empty path")

    gateway_class = _expect(path, 0, GatewayClassNode, "gateway class")
    gateway = _expect(path, 1, GatewayNode, "gateway")
    if gateway.gateway.gateway_class_name != gateway_class.name:
        raise InvalidPathError(1, "gateway does not belong to the gateway class")

    listener = _expect(path, 2, ListenerNode, "listener")
    if listener.gateway_key != gateway.key or gateway.gateway.listener(listener.name) is None:
        raise InvalidPathError(2, "listener does not belong to the gateway")

    route = _expect(path, 3, RouteNode, "http route")
    if not route_attaches_to_listener(route.route, gateway.key, listener.listener):
        raise InvalidPathError(3, "http route does not belong to the listener")

    rule = _expect(path, 4, RouteRuleNode, "http route rule")
    if rule.route_key != route.key or not 0 <= rule.index < len(route.route.rules):
        raise InvalidPathError(4, "http route rule does not belong to the http route")

    if len(path) > PATH_LENGTH:
        raise InvalidPathError(PATH_LENGTH, "unexpected element after the http route rule")

    return RequestPathObjects(gateway_class, gateway, listener, route, rule)


def path_id(path: RequestPath) -> str:
    """Stable identifier of a path: first 8 bytes of sha256 over its locators."""
    joined = ">".join(node.locator for node in path)
    return hashlib.sha256(joined.encode()).digest()[:8].hex()
