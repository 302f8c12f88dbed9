"""
Common building blocks of attachable policies.

This module defines what every policy kind shares:
- TargetReference: Parsed targetRef of a policy
- WhenCondition / Operator: Predicates on request attributes
- PolicyBase: Identity, target and locator of a policy

Concrete kinds live next to this module and add their own spec fields and
the rules()/set_rules()/empty()/merge_strategy() capability set.
"""

from enum import Enum

from pydantic import BaseModel, Field, PrivateAttr

from policy_core.resources import DEFAULT_NAMESPACE
from policy_protocols import GATEWAY_API_GROUP, MergeableRule, ObjectKey, TargetRef


class Operator(str, Enum):
    """Comparison operators available to predicates and pattern expressions."""

    EQ = "eq"
    NEQ = "neq"
    STARTS_WITH = "startswith"
    ENDS_WITH = "endswith"
    INCL = "incl"
    EXCL = "excl"
    MATCHES = "matches"


class WhenCondition(BaseModel):
    """
    Predicate on a request attribute.

    Example:
        `{"selector": "request.method", "operator": "eq", "value": "GET"}`
    """

    selector: str = Field(..., description="Selector of the request attribute")
    operator: Operator = Field(default=Operator.EQ, description="Comparison operator")
    value: str = Field(..., description="Value to compare with")


class TargetReference(BaseModel):
    """Resource a policy attaches to, as written in the policy."""

    group: str = Field(default=GATEWAY_API_GROUP, description="API group of the target")
    kind: str = Field(..., description="Gateway or HTTPRoute")
    name: str = Field(..., description="Target name")
    namespace: str | None = Field(
        default=None, description="Target namespace; None means the policy's namespace"
    )
    section_name: str | None = Field(
        default=None, description="Listener name (Gateway) or rule name (HTTPRoute)"
    )

    def to_target_ref(self) -> TargetRef:
        return TargetRef(
            kind=self.kind,
            name=self.name,
            group=self.group,
            namespace=self.namespace,
            section_name=self.section_name,
        )


class PolicyBase(BaseModel):
    """
    Identity and target shared by every policy kind.

    Subclasses declare a `kind` literal, which discriminates the Policy
    union, and implement the rule capability set.

    Rules remember which policy contributed them. A policy built by merging
    (see set_rules) reports the contributing policies instead of its own locator.
    """

    namespace: str = Field(default=DEFAULT_NAMESPACE, description="Policy namespace")
    name: str = Field(..., description="Policy name")
    target_ref: TargetReference = Field(..., description="Resource the policy attaches to")

    _rule_sources: dict[str, str] = PrivateAttr(default_factory=dict)

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.namespace, self.name)

    @property
    def locator(self) -> str:
        return f"{self.kind.lower()}:{self.key}"

    def target_refs(self) -> list[TargetRef]:
        return [self.target_ref.to_target_ref()]

    def _rule(self, name: str, spec: object) -> MergeableRule:
        return MergeableRule(spec=spec, source=self._rule_sources.get(name, self.locator))

    def _remember_sources(self, rules: dict[str, MergeableRule]) -> None:
        self._rule_sources = {
            name: rule.source for name, rule in rules.items() if rule.source
        }
