"""
Gateway API resource models.

This module defines the input resources the graph builder consumes:
- GatewayClass: Class a gateway is an instance of
- Gateway / Listener: Entry points accepting traffic for hostnames
- HTTPRoute / RouteRule / RouteMatch: Routing rules attached to gateways
- ParentRef: Link from a route to a gateway (optionally one listener)

Per project patterns:
- Pydantic BaseModel for validation and serialization
- Field() with descriptions for documentation
- str enum for JSON serialization compatibility

Models are frozen: the compiler reads them and never mutates them, so a
snapshot can be shared between reconciliations.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from policy_protocols import ObjectKey

DEFAULT_NAMESPACE = "default"


class GatewayClass(BaseModel):
    """Class of gateways, identified by name (cluster scoped)."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Gateway class name")


class Listener(BaseModel):
    """
    Entry point of a gateway.

    A listener without a hostname accepts every hostname.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Listener name, unique within the gateway")
    hostname: str | None = Field(
        default=None, description="Hostname or wildcard (*.example.com); None accepts any"
    )
    port: int = Field(default=80, description="Listener port")
    protocol: str = Field(default="HTTP", description="Listener protocol")


class Gateway(BaseModel):
    """
    Gateway instance with its listeners.

    Attributes:
        namespace: Gateway namespace
        name: Gateway name
        gateway_class_name: Name of the GatewayClass it belongs to
        programmed: Whether the gateway is ready; unprogrammed gateways are
            left out of the topology
        listeners: Listeners in declaration order
    """

    model_config = ConfigDict(frozen=True)

    namespace: str = Field(default=DEFAULT_NAMESPACE, description="Gateway namespace")
    name: str = Field(..., description="Gateway name")
    gateway_class_name: str = Field(
        default="default", description="Name of the gateway class"
    )
    programmed: bool = Field(default=True, description="Gateway is ready to serve traffic")
    listeners: list[Listener] = Field(default_factory=list, description="Gateway listeners")

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.namespace, self.name)

    @property
    def locator(self) -> str:
        return f"gateway:{self.key}"

    def listener(self, name: str) -> Listener | None:
        """Return the listener with the given name, or None."""
        for listener in self.listeners:
            if listener.name == name:
                return listener
        return None


class ParentRef(BaseModel):
    """Reference from a route to the gateway (or gateway listener) it attaches to."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Gateway name")
    namespace: str | None = Field(
        default=None, description="Gateway namespace; None means the route's namespace"
    )
    section_name: str | None = Field(
        default=None, description="Listener name; None attaches to every listener"
    )
    accepted: bool = Field(
        default=True, description="Whether the gateway accepted the route for this parent"
    )

    def gateway_key(self, route_namespace: str) -> ObjectKey:
        return ObjectKey(self.namespace or route_namespace, self.name)


class PathMatchType(str, Enum):
    """How a route match compares the request path."""

    EXACT = "Exact"
    PATH_PREFIX = "PathPrefix"
    REGULAR_EXPRESSION = "RegularExpression"


class PathMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: PathMatchType | None = Field(default=None, description="Match type (PathPrefix if unset)")
    value: str | None = Field(default=None, description="Path value (/ if unset)")


class HeaderMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Header name (case-insensitive)")
    value: str = Field(..., description="Exact header value")


class RouteMatch(BaseModel):
    """One alternative of a route rule: every set field must match."""

    model_config = ConfigDict(frozen=True)

    path: PathMatch | None = Field(default=None, description="Request path match")
    method: str | None = Field(default=None, description="HTTP method")
    headers: list[HeaderMatch] = Field(default_factory=list, description="Header matches")


class RouteRule(BaseModel):
    """Rule of an HTTP route: matches any of its alternatives."""

    model_config = ConfigDict(frozen=True)

    name: str | None = Field(default=None, description="Optional rule name (section name)")
    matches: list[RouteMatch] = Field(default_factory=list, description="Match alternatives")


class HTTPRoute(BaseModel):
    """
    HTTP route attached to one or more gateways.

    Attributes:
        namespace: Route namespace
        name: Route name
        hostnames: Hostnames the route serves; empty serves whatever the
            listener accepts
        parent_refs: Gateways (or listeners) the route attaches to
        rules: Routing rules in declaration order
    """

    model_config = ConfigDict(frozen=True)

    namespace: str = Field(default=DEFAULT_NAMESPACE, description="Route namespace")
    name: str = Field(..., description="Route name")
    hostnames: list[str] = Field(default_factory=list, description="Route hostnames")
    parent_refs: list[ParentRef] = Field(default_factory=list, description="Parent gateways")
    rules: list[RouteRule] = Field(default_factory=list, description="Route rules")

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.namespace, self.name)

    @property
    def locator(self) -> str:
        return f"httproute:{self.key}"

    def accepted_parent_refs(self) -> list[ParentRef]:
        """Parent references the gateway accepted. Only these count as links."""
        return [ref for ref in self.parent_refs if ref.accepted]

    def rule_name(self, index: int) -> str:
        """Name of the rule at index; unnamed rules are called rule-<n> (1-based)."""
        name = self.rules[index].name
        return name if name else f"rule-{index + 1}"
