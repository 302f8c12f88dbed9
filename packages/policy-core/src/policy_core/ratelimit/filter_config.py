"""
Proxy filter configuration.

One FilterConfig is produced per gateway. It lists, per request path with
effective limits, the hostnames to match and the compiled rules to
evaluate, plus the failure mode applied when the limiter is unreachable.

equal_to compares two configurations ignoring the order of policies,
hostnames, rules, condition blocks and expressions, so that a deployed
configuration read back from a sink is not rewritten for an ordering
difference.
"""

import json
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from policy_core.config import FailureMode
from policy_core.exceptions import ArtifactSerializationError
from policy_core.ratelimit.rules import CompiledRule


class FilterPolicy(BaseModel):
    """
    Filter rules of one request path.

    Attributes:
        name: Stable name of the entry (request path id)
        domain: Limiter namespace the descriptors are sent to
        service: Limiter service name
        hostnames: Hostnames the entry applies to; empty applies to all
        rules: Compiled rules, one per effective limit
    """

    name: str = Field(..., description="Entry name")
    domain: str = Field(..., description="Limiter namespace")
    service: str = Field(..., description="Limiter service")
    hostnames: list[str] = Field(default_factory=list, description="Matched hostnames")
    rules: list[CompiledRule] = Field(default_factory=list, description="Compiled rules")


class FilterConfig(BaseModel):
    failure_mode: FailureMode = Field(default=FailureMode.DENY, description="deny or allow")
    policies: list[FilterPolicy] = Field(default_factory=list, description="Filter entries")

    def canonical(self) -> dict[str, Any]:
        """Order-independent representation used for comparison."""
        policies = []
        for policy in self.policies:
            rules = []
            for rule in policy.rules:
                conditions = sorted(
                    json.dumps(sorted(_dumps(expr.model_dump()) for expr in condition.all_of))
                    for condition in rule.conditions
                )
                data = [item.model_dump(exclude_none=True) for item in rule.data]
                rules.append(json.dumps({"conditions": conditions, "data": data}, sort_keys=True))
            policies.append(
                {
                    "name": policy.name,
                    "domain": policy.domain,
                    "service": policy.service,
                    "hostnames": sorted(policy.hostnames),
                    "rules": sorted(rules),
                }
            )
        return {
            "failure_mode": self.failure_mode.value,
            "policies": sorted(policies, key=lambda p: p["name"]),
        }

    def equal_to(self, other: "FilterConfig | None") -> bool:
        if other is None:
            return False
        return self.canonical() == other.canonical()


def _dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True)


def serialize_artifact(name: str, value: Any) -> str:
    """
    Serialize a compiled artifact (model, list of models, or plain data) to JSON.

    Raises:
        ArtifactSerializationError: If the value cannot be encoded.
    """
    try:
        return json.dumps(_to_jsonable(value), indent=2, sort_keys=True)
    except (TypeError, ValueError, ValidationError) as e:
        raise ArtifactSerializationError(name, e) from e


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, dict):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    return value
