"""
Limit index.

Groups limiter counter definitions by scope (the route they belong to) and
domain, so that the desired state computed from policies can be compared
with the deployed state read back from the limiter, and only written when
they differ.

Comparison is order-insensitive: two indices are equal when they hold the
same scopes, the same domains per scope, and the same entries per domain
as multisets. Conditions and variables are compared as sorted lists, and a
missing list equals an empty one.

Example:
    ```python
    desired = LimitIndex.from_definitions(result.limits)
    deployed = LimitIndex.from_definitions(await sink.read_limits())
    if limits_changed(desired, deployed):
        await sink.write_limits(desired.to_definitions())
    ```
"""

import logging
from dataclasses import dataclass

from policy_core.ratelimit.identifiers import marshal_namespace, unmarshal_namespace
from policy_core.ratelimit.limits import LimiterCounterDefinition

logger = logging.getLogger(__name__)


@dataclass
class LimitEntry:
    """One counter of a scope/domain, without its namespace."""

    max_value: int
    seconds: int
    conditions: list[str] | None = None
    variables: list[str] | None = None

    def normalized(self) -> tuple[int, int, tuple[str, ...], tuple[str, ...]]:
        return (
            self.max_value,
            self.seconds,
            tuple(sorted(self.conditions or [])),
            tuple(sorted(self.variables or [])),
        )

    def sort_key(self) -> tuple[int, int, tuple[str, ...], tuple[str, ...]]:
        """Max value descending, then seconds descending, then conditions, then variables."""
        max_value, seconds, conditions, variables = self.normalized()
        return (-max_value, -seconds, conditions, variables)


class LimitIndex:
    """Counter entries keyed by scope, then domain."""

    def __init__(self) -> None:
        self._limits: dict[str, dict[str, list[LimitEntry]]] = {}

    def add_limit(self, scope: str, domain: str, entry: LimitEntry) -> None:
        self._limits.setdefault(scope, {}).setdefault(domain, []).append(entry)

    def add_scope_limits(self, scope: str, domain: str, entries: list[LimitEntry]) -> None:
        """Append entries to a scope/domain; an empty list still registers the scope."""
        self._limits.setdefault(scope, {}).setdefault(domain, []).extend(entries)

    def add_from_definition(self, definition: LimiterCounterDefinition) -> bool:
        """
        Add a deployed counter definition.

        Returns:
            False if the definition was skipped because its namespace has
            no scope.
        """
        try:
            scope, domain = unmarshal_namespace(definition.namespace)
        except ValueError as e:
            logger.info(f"Skipping limiter counter: {e}")
            return False
        self.add_limit(
            scope,
            domain,
            LimitEntry(
                max_value=definition.max_value,
                seconds=definition.seconds,
                conditions=definition.conditions,
                variables=definition.variables,
            ),
        )
        return True

    @classmethod
    def from_definitions(
        cls, definitions: list[LimiterCounterDefinition] | None
    ) -> "LimitIndex":
        """Build an index from a list of definitions. None gives an empty index."""
        index = cls()
        for definition in definitions or []:
            index.add_from_definition(definition)
        return index

    def delete_scope(self, scope: str) -> None:
        self._limits.pop(scope, None)

    def scopes(self) -> list[str]:
        return sorted(self._limits)

    def entries(self, scope: str, domain: str = "") -> list[LimitEntry]:
        return list(self._limits.get(scope, {}).get(domain, []))

    def to_definitions(self) -> list[LimiterCounterDefinition]:
        """Flatten into counter definitions, sorted by namespace then entry order."""
        definitions = []
        for scope in sorted(self._limits):
            domains = self._limits[scope]
            for domain in sorted(domains):
                namespace = marshal_namespace(scope, domain)
                for entry in sorted(domains[domain], key=LimitEntry.sort_key):
                    _, _, conditions, variables = entry.normalized()
                    definitions.append(
                        LimiterCounterDefinition(
                            namespace=namespace,
                            max_value=entry.max_value,
                            seconds=entry.seconds,
                            conditions=list(conditions),
                            variables=list(variables),
                        )
                    )
        return definitions

    def _canonical(self) -> dict[str, dict[str, list[tuple]]]:
        return {
            scope: {
                domain: [e.normalized() for e in sorted(entries, key=LimitEntry.sort_key)]
                for domain, entries in domains.items()
            }
            for scope, domains in self._limits.items()
        }

    def equals(self, other: "LimitIndex") -> bool:
        return self._canonical() == other._canonical()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LimitIndex):
            return NotImplemented
        return self.equals(other)

    def __len__(self) -> int:
        return sum(len(entries) for domains in self._limits.values() for entries in domains.values())

    def __repr__(self) -> str:
        return f"LimitIndex(scopes={self.scopes()}, counters={len(self)})"


def limits_changed(desired: LimitIndex, deployed: LimitIndex) -> bool:
    """True when the deployed counters differ from the desired ones."""
    return not desired.equals(deployed)
