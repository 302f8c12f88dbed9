"""
Resource graph builder.

Builds an index of gateway classes, gateways, listeners, routes and route
rules from a snapshot of resources, links routes to the gateways that
accepted them, and attaches policies to the resources they target.

The graph is a set of dict indices keyed by ObjectKey; every hop from a
node to its parent is a dict lookup. Nodes hold keys, never references to
other nodes, so a Topology can be built, read and dropped without cycles.

Example:
    ```python
    topology = build_topology(gateways=[gw], routes=[route], policies=[rlp])
    for path in topology.paths():
        # [GatewayClassNode, GatewayNode, ListenerNode, RouteNode, RouteRuleNode]
        print(" > ".join(node.locator for node in path))
    ```
"""

import logging
from dataclasses import dataclass, field
from typing import Union

from policy_core.policies import Policy
from policy_core.resources import Gateway, GatewayClass, HTTPRoute, Listener, RouteRule
from policy_core.topology.hostnames import hostnames_intersect
from policy_protocols import ObjectKey, PolicyKind

logger = logging.getLogger(__name__)

GATEWAY_KIND = "Gateway"
HTTPROUTE_KIND = "HTTPRoute"


@dataclass
class GatewayClassNode:
    name: str
    gateway_keys: list[ObjectKey] = field(default_factory=list)
    policies: list[Policy] = field(default_factory=list)

    @property
    def locator(self) -> str:
        return f"gatewayclass:{self.name}"


@dataclass
class GatewayNode:
    gateway: Gateway
    route_keys: list[ObjectKey] = field(default_factory=list)
    policies: list[Policy] = field(default_factory=list)

    @property
    def key(self) -> ObjectKey:
        return self.gateway.key

    @property
    def locator(self) -> str:
        return self.gateway.locator


@dataclass
class ListenerNode:
    gateway_key: ObjectKey
    listener: Listener
    policies: list[Policy] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.listener.name

    @property
    def locator(self) -> str:
        return f"listener:{self.gateway_key}#{self.listener.name}"


@dataclass
class RouteNode:
    route: HTTPRoute
    gateway_keys: list[ObjectKey] = field(default_factory=list)
    policies: list[Policy] = field(default_factory=list)

    @property
    def key(self) -> ObjectKey:
        return self.route.key

    @property
    def locator(self) -> str:
        return self.route.locator


@dataclass
class RouteRuleNode:
    route_key: ObjectKey
    index: int
    name: str
    rule: RouteRule
    policies: list[Policy] = field(default_factory=list)

    @property
    def locator(self) -> str:
        return f"httprouterule:{self.route_key}#{self.name}"


Targetable = Union[GatewayClassNode, GatewayNode, ListenerNode, RouteNode, RouteRuleNode]
RequestPath = list[Targetable]


def route_attaches_to_listener(
    route: HTTPRoute, gateway_key: ObjectKey, listener: Listener
) -> bool:
    """
    Return True if the route accepts traffic from the listener.

    The route needs an accepted parent reference naming the listener's
    gateway, and naming the listener itself when the reference has a
    section. Its hostnames must intersect the listener hostname; a route
    without hostnames, or a listener without one, always matches.
    """
    parented = any(
        ref.gateway_key(route.namespace) == gateway_key
        and (ref.section_name is None or ref.section_name == listener.name)
        for ref in route.accepted_parent_refs()
    )
    if not parented:
        return False
    if not route.hostnames or not listener.hostname:
        return True
    return any(hostnames_intersect(hostname, listener.hostname) for hostname in route.hostnames)


@dataclass
class Topology:
    """
    Indexed resource graph with attached policies.

    Attributes:
        gateway_classes: Class nodes by name
        gateways: Gateway nodes by key (programmed gateways only)
        listeners: Listener nodes by (gateway key, listener name)
        routes: Route nodes by key
        route_rules: Route rule nodes by (route key, rule index)
        unattached_policies: Policies whose target is not in the graph
    """

    gateway_classes: dict[str, GatewayClassNode] = field(default_factory=dict)
    gateways: dict[ObjectKey, GatewayNode] = field(default_factory=dict)
    listeners: dict[tuple[ObjectKey, str], ListenerNode] = field(default_factory=dict)
    routes: dict[ObjectKey, RouteNode] = field(default_factory=dict)
    route_rules: dict[tuple[ObjectKey, int], RouteRuleNode] = field(default_factory=dict)
    unattached_policies: list[Policy] = field(default_factory=list)

    def gateway_class_of(self, gateway_key: ObjectKey) -> GatewayClassNode:
        return self.gateway_classes[self.gateways[gateway_key].gateway.gateway_class_name]

    def listeners_of(self, gateway_key: ObjectKey) -> list[ListenerNode]:
        gateway = self.gateways[gateway_key].gateway
        return [self.listeners[(gateway_key, listener.name)] for listener in gateway.listeners]

    def rules_of(self, route_key: ObjectKey) -> list[RouteRuleNode]:
        route = self.routes[route_key].route
        return [self.route_rules[(route_key, index)] for index in range(len(route.rules))]

    def policies(self, kind: PolicyKind | None = None) -> list[Policy]:
        """Every attached policy, optionally of one kind, sorted by key."""
        nodes: list[Targetable] = [
            *self.gateways.values(),
            *self.listeners.values(),
            *self.routes.values(),
            *self.route_rules.values(),
        ]
        found = {
            (policy.kind, policy.key): policy
            for node in nodes
            for policy in node.policies
            if kind is None or policy.kind == kind.value
        }
        return [found[k] for k in sorted(found)]

    def untargeted_routes(
        self, gateway_key: ObjectKey, kind: PolicyKind | None = None
    ) -> list[ObjectKey]:
        """
        Routes attached to the gateway that no policy targets.

        A route counts as targeted when a policy (of the given kind, if any)
        targets the route itself or one of its rules.
        """

        def targeted(node: Targetable) -> bool:
            return any(kind is None or p.kind == kind.value for p in node.policies)

        result = []
        for route_key in self.gateways[gateway_key].route_keys:
            if targeted(self.routes[route_key]):
                continue
            if any(targeted(rule) for rule in self.rules_of(route_key)):
                continue
            result.append(route_key)
        return result

    def paths(self) -> list[RequestPath]:
        """
        Every valid request path, in deterministic order.

        Paths run gateway class -> gateway -> listener -> route -> route
        rule. Gateways and routes are visited by key, listeners and rules
        in declaration order.
        """
        result: list[RequestPath] = []
        for gateway_key in sorted(self.gateways):
            gateway_node = self.gateways[gateway_key]
            class_node = self.gateway_class_of(gateway_key)
            for listener_node in self.listeners_of(gateway_key):
                for route_key in gateway_node.route_keys:
                    route_node = self.routes[route_key]
                    if not route_attaches_to_listener(
                        route_node.route, gateway_key, listener_node.listener
                    ):
                        continue
                    for rule_node in self.rules_of(route_key):
                        result.append(
                            [class_node, gateway_node, listener_node, route_node, rule_node]
                        )
        return result


def build_topology(
    gateways: list[Gateway],
    routes: list[HTTPRoute],
    policies: list[Policy],
    gateway_classes: list[GatewayClass] | None = None,
) -> Topology:
    """
    Build the resource graph and attach policies.

    Args:
        gateways: Gateways; unprogrammed ones are left out
        routes: HTTP routes; only accepted parent references link them
        policies: Policies of any kind
        gateway_classes: Gateway classes; synthesized from the gateways'
            class names when not given

    Returns:
        Topology with every policy either attached to its target node or
        listed in unattached_policies.
    """
    topology = Topology()

    for gateway_class in gateway_classes or []:
        topology.gateway_classes[gateway_class.name] = GatewayClassNode(name=gateway_class.name)

    for gateway in gateways:
        if not gateway.programmed:
            logger.debug(f"Skipping gateway {gateway.key}: not programmed")
            continue
        class_node = topology.gateway_classes.get(gateway.gateway_class_name)
        if class_node is None:
            if gateway_classes is not None:
                logger.debug(
                    f"Skipping gateway {gateway.key}: unknown gateway class "
                    f"'{gateway.gateway_class_name}'"
                )
                continue
            class_node = GatewayClassNode(name=gateway.gateway_class_name)
            topology.gateway_classes[class_node.name] = class_node
        class_node.gateway_keys.append(gateway.key)
        topology.gateways[gateway.key] = GatewayNode(gateway=gateway)
        for listener in gateway.listeners:
            topology.listeners[(gateway.key, listener.name)] = ListenerNode(
                gateway_key=gateway.key, listener=listener
            )

    for route in sorted(routes, key=lambda r: r.key):
        route_node = RouteNode(route=route)
        topology.routes[route.key] = route_node
        for index in range(len(route.rules)):
            topology.route_rules[(route.key, index)] = RouteRuleNode(
                route_key=route.key,
                index=index,
                name=route.rule_name(index),
                rule=route.rules[index],
            )
        for ref in route.accepted_parent_refs():
            gateway_key = ref.gateway_key(route.namespace)
            gateway_node = topology.gateways.get(gateway_key)
            if gateway_node is None:
                logger.debug(f"Route {route.key} references unknown gateway {gateway_key}")
                continue
            if gateway_key not in route_node.gateway_keys:
                route_node.gateway_keys.append(gateway_key)
            if route.key not in gateway_node.route_keys:
                gateway_node.route_keys.append(route.key)

    for policy in sorted(policies, key=lambda p: (p.kind, p.key)):
        attached = False
        for target in policy.target_refs():
            node = _resolve_target(
                topology, target.kind, target.resolve(policy.namespace), target.section_name
            )
            if node is None:
                continue
            node.policies.append(policy)
            attached = True
        if not attached:
            logger.info(f"Policy {policy.locator} has no target in the topology")
            topology.unattached_policies.append(policy)

    return topology


def _resolve_target(
    topology: Topology, kind: str, key: ObjectKey, section_name: str | None
) -> Targetable | None:
    if kind == GATEWAY_KIND:
        if key not in topology.gateways:
            return None
        if section_name is None:
            return topology.gateways[key]
        return topology.listeners.get((key, section_name))

    if kind == HTTPROUTE_KIND:
        if key not in topology.routes:
            return None
        if section_name is None:
            return topology.routes[key]
        for rule_node in topology.rules_of(key):
            if rule_node.name == section_name:
                return rule_node
        return None

    logger.debug(f"Unsupported target kind '{kind}' for {key}")
    return None
