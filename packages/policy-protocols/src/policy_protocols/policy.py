"""
Mergeable policy protocol definition.

The MergeablePolicyProtocol defines the capability set every attachable
policy kind exposes to the graph builder and the merge resolver. Concrete
kinds (rate limit, auth, DNS, TLS) implement it; nothing downstream needs
to know which kind it is handling until compilation.
"""

from typing import Protocol, runtime_checkable

from policy_protocols.types import MergeableRule, MergeSpec, ObjectKey, TargetRef


@runtime_checkable
class MergeablePolicyProtocol(Protocol):
    """
    Protocol for policies that attach to gateway resources and merge.

    A policy provides:
    - key / locator: identity, used for ordering and provenance
    - target_refs(): the resources it attaches to
    - merge_strategy(): its precedence mode and merge strategy
    - rules() / set_rules(): its named rules as a map
    - empty(): whether it contributes no rules
    """

    @property
    def key(self) -> ObjectKey:
        """Namespace/name of the policy."""
        ...

    @property
    def locator(self) -> str:
        """Globally unique string identifying the policy, e.g. "ratelimitpolicy:ns/name"."""
        ...

    def target_refs(self) -> list[TargetRef]:
        """Resources the policy attaches to."""
        ...

    def merge_strategy(self) -> MergeSpec:
        """Precedence mode and strategy of the policy."""
        ...

    def rules(self) -> dict[str, MergeableRule]:
        """
        Named rules of the policy.

        Returns:
            Map of rule name to MergeableRule. Every rule's source is the
            locator of this policy.
        """
        ...

    def set_rules(self, rules: dict[str, MergeableRule]) -> None:
        """
        Replace the rules of the policy.

        Used to materialize an effective policy from a merged rule map.
        Rules keep the source they carry.
        """
        ...

    def empty(self) -> bool:
        """Return True if the policy contributes no rules."""
        ...
