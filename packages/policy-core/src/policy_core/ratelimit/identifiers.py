"""
Limit identifiers and limiter namespaces.

A limit identifier names one limit of one policy everywhere it is enforced:
the proxy filter sends it as a descriptor entry and the limiter counter is
activated by it. Identifiers are stable across reconciliations and do not
collide between policies defining limits of the same name.

    limit_identifier(ObjectKey("default", "toystore"), "orders")
    -> "limit.orders__" followed by 8 hex digits

The hash covers "<namespace>/<policy name>/<limit name>", so identifiers of
limits already deployed stay the same across releases.

Limiter namespaces group the counters of one route, optionally within a
domain: "default/toystore" or "default/toystore#internal".
"""

import hashlib
import re

from policy_protocols import ObjectKey

DEFAULT_PREFIX = "limit."
NAMESPACE_DOMAIN_SEPARATOR = "#"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_]")


def sanitize(name: str) -> str:
    """Replace every character outside [A-Za-z0-9_] with an underscore."""
    return _UNSAFE_CHARS.sub("_", name)


def policy_key_from_locator(locator: str) -> ObjectKey:
    """
    Key of the policy a locator names.

    Raises:
        ValueError: If the locator has no kind prefix or no name.
    """
    kind, sep, key = locator.partition(":")
    if not sep or not kind:
        raise ValueError(f"invalid policy locator: '{locator}'")
    return ObjectKey.parse(key)


def limit_identifier(policy_key: ObjectKey, rule_name: str, prefix: str = DEFAULT_PREFIX) -> str:
    """
    Identifier of a named limit of a policy.

    Args:
        policy_key: Key of the policy that defines the limit
        rule_name: Name of the limit within the policy
        prefix: Identifier prefix

    Returns:
        prefix + sanitized name + "__" + first 4 bytes of
        sha256("<namespace>/<policy name>/<name>") as hex.
    """
    digest = hashlib.sha256(f"{policy_key}/{rule_name}".encode()).digest()
    return f"{prefix}{sanitize(rule_name)}__{digest[:4].hex()}"


def marshal_namespace(scope: str, domain: str = "") -> str:
    if not domain:
        return scope
    return f"{scope}{NAMESPACE_DOMAIN_SEPARATOR}{domain}"


def unmarshal_namespace(namespace: str) -> tuple[str, str]:
    """
    Split a limiter namespace into (scope, domain).

    Raises:
        ValueError: If the scope part is empty.
    """
    scope, _, domain = namespace.partition(NAMESPACE_DOMAIN_SEPARATOR)
    if not scope:
        raise ValueError(f"limiter namespace '{namespace}' has no scope")
    return scope, domain


def limits_namespace(route_key: ObjectKey, domain: str = "") -> str:
    """Limiter namespace of the counters of a route."""
    return marshal_namespace(str(route_key), domain)
