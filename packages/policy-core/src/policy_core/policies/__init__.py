"""
Attachable policy kinds.

Policy is a closed union discriminated by `kind`:
- RateLimitPolicy: compiled into limiter counters and filter rules
- AuthPolicy: attached and merged, compiled elsewhere
- DNSPolicy / TLSPolicy: attached, settings passed through

Example:
    ```python
    policy = parse_policy({
        "kind": "RateLimitPolicy",
        "name": "route-limits",
        "target_ref": {"kind": "HTTPRoute", "name": "toystore"},
        "limits": {"orders": {"rates": [{"limit": 5, "duration": 10, "unit": "second"}]}},
    })
    assert isinstance(policy, RateLimitPolicy)
    ```
"""

from typing import Annotated, Any, Union

from pydantic import Field, TypeAdapter

from policy_core.policies.auth import AuthPolicy
from policy_core.policies.base import Operator, PolicyBase, TargetReference, WhenCondition
from policy_core.policies.opaque import DNSPolicy, TLSPolicy
from policy_core.policies.ratelimit import (
    TOP_LEVEL_PREDICATES_RULE,
    Limit,
    Rate,
    RateLimitPolicy,
)

Policy = Annotated[
    Union[RateLimitPolicy, AuthPolicy, DNSPolicy, TLSPolicy],
    Field(discriminator="kind"),
]

_policy_adapter: TypeAdapter[Policy] = TypeAdapter(Policy)


def parse_policy(data: dict[str, Any]) -> Policy:
    """
    Parse a policy document into its concrete kind.

    Raises:
        pydantic.ValidationError: If the kind is unknown or the document
            does not match the kind's schema.
    """
    return _policy_adapter.validate_python(data)


__all__ = [
    "AuthPolicy",
    "DNSPolicy",
    "Limit",
    "Operator",
    "Policy",
    "PolicyBase",
    "Rate",
    "RateLimitPolicy",
    "TLSPolicy",
    "TargetReference",
    "TOP_LEVEL_PREDICATES_RULE",
    "WhenCondition",
    "parse_policy",
]
