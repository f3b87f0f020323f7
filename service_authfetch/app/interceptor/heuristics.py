"""
Response text heuristics.
"""

from typing import Callable, Iterable


def phrase_matcher(phrases: Iterable[str]) -> Callable[[str], bool]:
    """Build a case-insensitive predicate that matches any of ``phrases``.

    Used to tell a 403 caused by a dead session apart from an ordinary
    permission denial. Backends phrase these differently, so the gateway
    accepts any predicate; this is the default.
    """
    needles = tuple(p.lower() for p in phrases if p)

    def matches(text: str) -> bool:
        haystack = str(text or "").lower()
        return any(needle in haystack for needle in needles)

    return matches
