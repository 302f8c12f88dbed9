"""
Hostname subset semantics.

Listener and route hostnames may be exact ("api.example.com") or wildcards
("*.example.com", or "*" for everything). A hostname is a subset of another
when every request host it accepts is also accepted by the other.

Examples:
    hostname_subset_of("foo.com", "*.com")      -> True
    hostname_subset_of("*.com", "*")            -> True
    hostname_subset_of("*", "*.com")            -> False
    hostname_subset_of("foo.com", "*.foo.com")  -> False
"""

WILDCARD = "*"


def is_wildcard(hostname: str) -> bool:
    return hostname.startswith("*.")


def hostname_subset_of(hostname: str, superset: str) -> bool:
    """
    Return True if hostname accepts a subset of what superset accepts.

    Args:
        hostname: Candidate subset (exact or wildcard)
        superset: Candidate superset (exact, wildcard, or "*")

    Returns:
        True when the names are equal, when superset is "*" and hostname
        is not empty, or when superset is "*.<suffix>" and hostname ends
        with ".<suffix>".
    """
    if hostname == superset:
        return True
    if superset == WILDCARD:
        return bool(hostname)
    if is_wildcard(superset):
        return hostname.endswith(superset[1:])
    return False


def hostnames_intersect(first: str, second: str) -> bool:
    return hostname_subset_of(first, second) or hostname_subset_of(second, first)


def hostnames_from_listener_and_route(
    listener_hostname: str | None, route_hostnames: list[str]
) -> list[str]:
    """
    Hostnames a route effectively serves through a listener.

    Each route hostname narrower than the listener's is kept as is; a route
    wildcard wider than the listener hostname narrows to the listener
    hostname. A route without hostnames serves whatever the listener
    accepts.

    Returns:
        Deduplicated hostnames in route order. Empty when the listener
        accepts everything and the route declares nothing.
    """
    listener = listener_hostname or WILDCARD
    if not route_hostnames:
        return [] if listener == WILDCARD else [listener]

    result: list[str] = []
    for hostname in route_hostnames:
        if hostname_subset_of(hostname, listener):
            effective = hostname
        elif hostname_subset_of(listener, hostname):
            effective = listener
        else:
            continue
        if effective not in result:
            result.append(effective)
    return result
