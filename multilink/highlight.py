"""
Selection highlighting for links.

With nothing selected every link is shown normally. Once any node is
selected, links touching a selected node stay active and all others are
muted.
"""

from typing import AbstractSet, Iterable

from .models import Link


def compute_muted(links: Iterable[Link], selection: AbstractSet[str]) -> frozenset[str]:
    """Return the ids of links that touch no selected node."""
    if not selection:
        return frozenset()
    return frozenset(
        link.id for link in links
        if link.source not in selection and link.target not in selection
    )


def neighbors(links: Iterable[Link], node_id: str) -> set[str]:
    """Ids of nodes sharing a link with node_id."""
    found: set[str] = set()
    for link in links:
        if link.source == node_id:
            found.add(link.target)
        elif link.target == node_id:
            found.add(link.source)
    return found


def expand_selection(links: Iterable[Link], selection: AbstractSet[str]) -> set[str]:
    """Selection plus every direct neighbour of a selected node."""
    links = list(links)
    expanded = set(selection)
    for node_id in selection:
        expanded |= neighbors(links, node_id)
    return expanded
