"""
Generic types for policy attachment.

This module defines the small value types shared by every component that
deals with policies attached to gateway resources:

- ObjectKey: namespace/name identity of a resource
- TargetRef: what a policy points at (kind + name, optionally a section)
- PolicyKind: the closed set of policy kinds
- PolicyMode / MergeStrategy / MergeSpec: how a policy combines with others
- MergeableRule: one named rule of a policy, with its provenance

All types use @dataclass and have no third-party dependencies.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

GATEWAY_API_GROUP = "gateway.networking.k8s.io"
"""API group of the gateway resources policies can target."""


@dataclass(frozen=True, order=True)
class ObjectKey:
    """
    Namespace/name identity of a resource.

    Keys are ordered lexicographically (namespace first, then name), which
    gives every index built on them a deterministic iteration order.

    Attributes:
        namespace: Namespace of the resource.
        name: Name of the resource.
    """

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def parse(cls, value: str, default_namespace: str = "default") -> "ObjectKey":
        """
        Parse a "namespace/name" string.

        A value without a slash is taken as a name in default_namespace.

        Raises:
            ValueError: If the name part is empty.
        """
        namespace, sep, name = value.partition("/")
        if not sep:
            namespace, name = default_namespace, value
        if not name:
            raise ValueError(f"invalid object key: '{value}'")
        return cls(namespace=namespace, name=name)


class PolicyKind(str, Enum):
    """Closed set of policy kinds that can be attached to gateway resources."""

    RATE_LIMIT = "RateLimitPolicy"
    AUTH = "AuthPolicy"
    DNS = "DNSPolicy"
    TLS = "TLSPolicy"


class PolicyMode(str, Enum):
    """
    Precedence mode of a policy.

    DEFAULTS apply unless a more specific policy supplies its own rules.
    OVERRIDES apply regardless of more specific policies.
    """

    DEFAULTS = "defaults"
    OVERRIDES = "overrides"


class MergeStrategy(str, Enum):
    """How the rules of a policy combine with the rules already in effect."""

    ATOMIC = "atomic"
    """Replace the whole rule map at once."""

    MERGE = "merge"
    """Combine rule maps one rule name at a time."""


@dataclass(frozen=True)
class MergeSpec:
    """
    Mode and strategy declared by a policy.

    Attributes:
        mode: DEFAULTS or OVERRIDES.
        strategy: ATOMIC or MERGE.
        implicit: True when the policy declared neither a defaults nor an
            overrides wrapper (bare spec, treated as atomic defaults).
    """

    mode: PolicyMode = PolicyMode.DEFAULTS
    strategy: MergeStrategy = MergeStrategy.ATOMIC
    implicit: bool = False


@dataclass(frozen=True)
class TargetRef:
    """
    Reference from a policy to the resource it attaches to.

    Attributes:
        kind: Target kind ("Gateway" or "HTTPRoute").
        name: Target name.
        group: API group of the target.
        namespace: Target namespace. None means the policy's own namespace.
        section_name: Optional section of the target. A listener name for
            gateways, a rule name for routes.
    """

    kind: str
    name: str
    group: str = GATEWAY_API_GROUP
    namespace: str | None = None
    section_name: str | None = None

    def resolve(self, policy_namespace: str) -> ObjectKey:
        """Resolve the target key, defaulting the namespace to the policy's."""
        return ObjectKey(namespace=self.namespace or policy_namespace, name=self.name)


@dataclass
class MergeableRule:
    """
    One named rule of a policy.

    Attributes:
        spec: The rule body (a rate limit, a list of predicates, ...).
        source: Locator of the policy that contributed the rule.
    """

    spec: Any
    source: str = ""

    def with_source(self, source: str) -> "MergeableRule":
        """Return a copy of the rule attributed to another policy."""
        return replace(self, source=source)

