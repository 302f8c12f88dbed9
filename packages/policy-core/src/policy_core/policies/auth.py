"""
AuthPolicy model.

Auth policies attach and merge exactly like rate limit policies, but their
rules are never compiled here: the auth service owns their semantics. Rules
are named "<section>#<name>", e.g. "authentication#api-key", so that two
policies defining the same authentication method by name merge per method.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

from policy_core.policies.base import PolicyBase, WhenCondition
from policy_protocols import MergeableRule, MergeSpec, MergeStrategy, PolicyMode

AUTH_SECTIONS = ("authentication", "metadata", "authorization", "response", "callbacks")
WHEN_RULE = "#when#"


class AuthScheme(BaseModel):
    authentication: dict[str, dict[str, Any]] = Field(default_factory=dict)
    metadata: dict[str, dict[str, Any]] = Field(default_factory=dict)
    authorization: dict[str, dict[str, Any]] = Field(default_factory=dict)
    response: dict[str, dict[str, Any]] = Field(default_factory=dict)
    callbacks: dict[str, dict[str, Any]] = Field(default_factory=dict)


class AuthSpecProper(BaseModel):
    when: list[WhenCondition] = Field(default_factory=list, description="Policy-wide predicates")
    rules: AuthScheme = Field(default_factory=AuthScheme, description="Auth scheme")


class MergeableAuthSpec(AuthSpecProper):
    strategy: MergeStrategy = MergeStrategy.ATOMIC


class AuthPolicy(PolicyBase):
    """Auth policy attached to a gateway, listener, route or route rule."""

    kind: Literal["AuthPolicy"] = "AuthPolicy"
    defaults: MergeableAuthSpec | None = None
    overrides: MergeableAuthSpec | None = None
    when: list[WhenCondition] = Field(default_factory=list)
    rules_: AuthScheme = Field(default_factory=AuthScheme, alias="rules")

    model_config = {"populate_by_name": True}

    def spec_proper(self) -> AuthSpecProper:
        if self.defaults is not None:
            return self.defaults
        if self.overrides is not None:
            return self.overrides
        return AuthSpecProper(when=self.when, rules=self.rules_)

    def merge_strategy(self) -> MergeSpec:
        if self.defaults is not None:
            return MergeSpec(mode=PolicyMode.DEFAULTS, strategy=self.defaults.strategy)
        if self.overrides is not None:
            return MergeSpec(mode=PolicyMode.OVERRIDES, strategy=self.overrides.strategy)
        return MergeSpec(implicit=True)

    def rules(self) -> dict[str, MergeableRule]:
        proper = self.spec_proper()
        rules: dict[str, MergeableRule] = {}
        for section in AUTH_SECTIONS:
            for name, body in getattr(proper.rules, section).items():
                rule_name = f"{section}#{name}"
                rules[rule_name] = self._rule(rule_name, body)
        if proper.when:
            rules[WHEN_RULE] = self._rule(WHEN_RULE, list(proper.when))
        return rules

    def set_rules(self, rules: dict[str, MergeableRule]) -> None:
        when: list[WhenCondition] = []
        sections: dict[str, dict[str, Any]] = {section: {} for section in AUTH_SECTIONS}
        for rule_name, rule in rules.items():
            if rule_name == WHEN_RULE:
                when = list(rule.spec)
                continue
            section, _, name = rule_name.partition("#")
            sections[section][name] = rule.spec
        scheme = AuthScheme(**sections)

        if self.defaults is not None:
            self.defaults = MergeableAuthSpec(
                when=when, rules=scheme, strategy=self.defaults.strategy
            )
        elif self.overrides is not None:
            self.overrides = MergeableAuthSpec(
                when=when, rules=scheme, strategy=self.overrides.strategy
            )
        else:
            self.when = when
            self.rules_ = scheme
        self._remember_sources(rules)

    def empty(self) -> bool:
        return not any(name != WHEN_RULE for name in self.rules())
