"""
DNSPolicy and TLSPolicy models.

These kinds attach to gateways and listeners and take part in the graph,
but their settings are handed through untouched. Each top-level settings
key is one rule, and a policy always behaves as implicit atomic defaults.
"""

from typing import Any, Literal

from pydantic import Field

from policy_core.policies.base import PolicyBase
from policy_protocols import MergeableRule, MergeSpec


class OpaquePolicy(PolicyBase):
    spec: dict[str, Any] = Field(default_factory=dict, description="Kind-specific settings")

    def merge_strategy(self) -> MergeSpec:
        return MergeSpec(implicit=True)

    def rules(self) -> dict[str, MergeableRule]:
        return {name: self._rule(name, value) for name, value in self.spec.items()}

    def set_rules(self, rules: dict[str, MergeableRule]) -> None:
        self.spec = {name: rule.spec for name, rule in rules.items()}
        self._remember_sources(rules)

    def empty(self) -> bool:
        return not self.spec


class DNSPolicy(OpaquePolicy):
    """DNS policy (load balancing, health checks, providers)."""

    kind: Literal["DNSPolicy"] = "DNSPolicy"


class TLSPolicy(OpaquePolicy):
    """TLS policy (certificate issuer settings)."""

    kind: Literal["TLSPolicy"] = "TLSPolicy"
