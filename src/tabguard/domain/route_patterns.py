"""Route-name glob matching.

Patterns use ``*`` as the only wildcard. It matches zero or more characters,
segment separators included, so ``application.*`` matches
``application.show`` and ``application.edit.notes`` but neither
``applications.index`` nor ``application``. Matching is case-sensitive and a
pattern without ``*`` requires an exact match.
"""

from __future__ import annotations

from collections.abc import Iterable

WILDCARD = "*"


def route_matches(pattern: str, route: str) -> bool:
    """Return ``True`` if *route* matches the glob *pattern*."""
    if WILDCARD not in pattern:
        return pattern == route

    parts = pattern.split(WILDCARD)
    head, tail = parts[0], parts[-1]

    if not route.startswith(head):
        return False
    rest = route[len(head):]
    if len(rest) < len(tail) or not rest.endswith(tail):
        return False

    # Fixed chunks between wildcards must appear in order inside the middle.
    middle = rest[: len(rest) - len(tail)]
    pos = 0
    for chunk in parts[1:-1]:
        if not chunk:
            continue
        found = middle.find(chunk, pos)
        if found < 0:
            return False
        pos = found + len(chunk)
    return True


def matches_any(patterns: Iterable[str], route: str) -> bool:
    """Return ``True`` if *route* matches at least one of *patterns*."""
    return any(route_matches(pattern, route) for pattern in patterns)
