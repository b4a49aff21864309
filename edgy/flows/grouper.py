"""Grouping of screens into flows by name prefix.

"Login - Error", "Login / Loading" and "Login" all share the prefix
"login". This is a prefix heuristic, not a semantic classifier: screens
without a shared stem never group.
"""

import re

from ..models import Screen

# Space-padded dash variants, slash, ">", "|", ":", or an opening parenthesis
FLOW_DELIMITER = re.compile(r"\s*(?:\s[-–—]\s|\s/\s|\s>\s|\s\|\s|\s:\s|\s?\()")


def extract_flow_prefix(name: str) -> str:
    """Return the lower-cased stem before the first delimiter."""
    match = FLOW_DELIMITER.search(name)
    stem = name[: match.start()] if match else name
    return stem.strip().lower()


def group_by_flow(screens: list[Screen]) -> dict[str, list[Screen]]:
    """Partition screens by flow prefix.

    Screens keep their input order within a group; groups appear in order
    of first appearance.
    """
    groups: dict[str, list[Screen]] = {}
    for screen in screens:
        groups.setdefault(extract_flow_prefix(screen.name), []).append(screen)
    return groups


def get_flow_siblings(screen: Screen, groups: dict[str, list[Screen]]) -> list[Screen]:
    """Return the screen's flow group, or just the screen if it has none."""
    return groups.get(extract_flow_prefix(screen.name), [screen])
