"""
RateLimitPolicy model.

A rate limit policy declares named limits, each with optional predicates,
counter qualifiers and one or more rates:

    ```yaml
    kind: RateLimitPolicy
    name: gw-limits
    target_ref: {kind: Gateway, name: gw}
    defaults:
      strategy: merge
      when:
        - {selector: request.host, operator: neq, value: internal.example.com}
      limits:
        per-user:
          counters: [auth.identity.username]
          rates:
            - {limit: 50, duration: 1, unit: minute}
    ```

The policy body is given in exactly one of three forms: under `defaults`, under
`overrides`, or bare (implicit atomic defaults). Top-level `when`
predicates are carried in the rule map under TOP_LEVEL_PREDICATES_RULE so
they merge like any other rule.
"""

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from policy_core.policies.base import PolicyBase, WhenCondition
from policy_protocols import MergeableRule, MergeSpec, MergeStrategy, PolicyMode

TOP_LEVEL_PREDICATES_RULE = "#top-level-predicates#"
"""Rule map key of the policy-wide predicates. '#' never appears in limit names."""


class Rate(BaseModel):
    """Number of hits allowed per duration."""

    limit: int = Field(..., description="Maximum hits in the window")
    duration: int = Field(..., description="Window length in units")
    unit: str = Field(..., description="second, minute, hour or day")


class Limit(BaseModel):
    """
    One named limit of a policy.

    Attributes:
        when: Predicates that must all hold for the limit to apply
        counters: Selectors qualifying the counter (one counter per distinct
            combination of values)
        rates: Rates enforced by the limit
    """

    when: list[WhenCondition] = Field(default_factory=list, description="Limit predicates")
    counters: list[str] = Field(default_factory=list, description="Counter qualifiers")
    rates: list[Rate] = Field(default_factory=list, description="Enforced rates")


class RateLimitSpecProper(BaseModel):
    when: list[WhenCondition] = Field(default_factory=list, description="Policy-wide predicates")
    limits: dict[str, Limit] = Field(default_factory=dict, description="Named limits")


class MergeableRateLimitSpec(RateLimitSpecProper):
    strategy: MergeStrategy = Field(
        default=MergeStrategy.ATOMIC, description="atomic or merge"
    )


class RateLimitPolicy(PolicyBase):
    """Rate limit policy attached to a gateway, listener, route or route rule."""

    kind: Literal["RateLimitPolicy"] = "RateLimitPolicy"
    defaults: MergeableRateLimitSpec | None = Field(
        default=None, description="Rules applied unless a more specific policy sets them"
    )
    overrides: MergeableRateLimitSpec | None = Field(
        default=None, description="Rules applied regardless of more specific policies"
    )
    when: list[WhenCondition] = Field(default_factory=list, description="Implicit defaults predicates")
    limits: dict[str, Limit] = Field(default_factory=dict, description="Implicit defaults limits")

    @model_validator(mode="after")
    def _one_form(self) -> "RateLimitPolicy":
        if self.defaults is not None and self.overrides is not None:
            raise ValueError("defaults and overrides are mutually exclusive")
        if (self.defaults is not None or self.overrides is not None) and (self.when or self.limits):
            raise ValueError("implicit and explicit defaults or overrides are mutually exclusive")
        return self

    def spec_proper(self) -> RateLimitSpecProper:
        """The policy body in effect, whichever wrapper carries it."""
        if self.defaults is not None:
            return self.defaults
        if self.overrides is not None:
            return self.overrides
        return RateLimitSpecProper(when=self.when, limits=self.limits)

    def merge_strategy(self) -> MergeSpec:
        if self.defaults is not None:
            return MergeSpec(mode=PolicyMode.DEFAULTS, strategy=self.defaults.strategy)
        if self.overrides is not None:
            return MergeSpec(mode=PolicyMode.OVERRIDES, strategy=self.overrides.strategy)
        return MergeSpec(implicit=True)

    def rules(self) -> dict[str, MergeableRule]:
        proper = self.spec_proper()
        rules = {name: self._rule(name, limit) for name, limit in proper.limits.items()}
        if proper.when:
            rules[TOP_LEVEL_PREDICATES_RULE] = self._rule(
                TOP_LEVEL_PREDICATES_RULE, list(proper.when)
            )
        return rules

    def set_rules(self, rules: dict[str, MergeableRule]) -> None:
        when: list[WhenCondition] = []
        limits: dict[str, Limit] = {}
        for name, rule in rules.items():
            if name == TOP_LEVEL_PREDICATES_RULE:
                when = list(rule.spec)
            else:
                limits[name] = rule.spec

        if self.defaults is not None:
            self.defaults = MergeableRateLimitSpec(
                when=when, limits=limits, strategy=self.defaults.strategy
            )
        elif self.overrides is not None:
            self.overrides = MergeableRateLimitSpec(
                when=when, limits=limits, strategy=self.overrides.strategy
            )
        else:
            self.when = when
            self.limits = limits
        self._remember_sources(rules)

    def empty(self) -> bool:
        return not self.spec_proper().limits
