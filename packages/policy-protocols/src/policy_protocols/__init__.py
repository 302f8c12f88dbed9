"""
Protocol definitions for the gateway policy operator.

This package provides the generic types and Protocol definitions shared by
the graph builder, the merge resolver and every policy kind. It has zero
dependencies on other packages.

Key protocols:
- MergeablePolicyProtocol: Capability set of an attachable, mergeable policy

Key types:
- ObjectKey: Namespace/name identity of a resource
- TargetRef: Reference from a policy to the resource it attaches to
- MergeableRule: One named rule of a policy, with its source
- PolicyKind, PolicyMode, MergeStrategy, MergeSpec: Policy classification
"""

from policy_protocols.policy import MergeablePolicyProtocol
from policy_protocols.types import (
    GATEWAY_API_GROUP,
    MergeableRule,
    MergeSpec,
    MergeStrategy,
    ObjectKey,
    PolicyKind,
    PolicyMode,
    TargetRef,
)

__all__ = [
    # Protocols
    "MergeablePolicyProtocol",
    # Data types
    "GATEWAY_API_GROUP",
    "MergeableRule",
    "MergeSpec",
    "MergeStrategy",
    "ObjectKey",
    "PolicyKind",
    "PolicyMode",
    "TargetRef",
]
