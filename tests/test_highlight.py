from multilink.highlight import compute_muted, expand_selection, neighbors
from multilink.models import Link


LINKS = [
    Link(id="A-B", source="A", target="B"),
    Link(id="B-C", source="B", target="C"),
    Link(id="C-D", source="C", target="D"),
]


def test_empty_selection_mutes_nothing() -> None:
    assert compute_muted(LINKS, set()) == frozenset()
    assert compute_muted([], set()) == frozenset()


def test_single_selection_mutes_links_not_touching_it() -> None:
    assert compute_muted(LINKS, {"A"}) == {"B-C", "C-D"}
    assert compute_muted(LINKS, {"C"}) == {"A-B"}


def test_either_endpoint_keeps_link_active() -> None:
    # B is the target of A-B and the source of B-C
    assert compute_muted(LINKS, {"B"}) == {"C-D"}
    assert compute_muted(LINKS, {"A", "D"}) == {"B-C"}


def test_selection_of_unlinked_node_mutes_everything() -> None:
    assert compute_muted(LINKS, {"Z"}) == {"A-B", "B-C", "C-D"}


def test_neighbors_follow_both_directions() -> None:
    assert neighbors(LINKS, "B") == {"A", "C"}
    assert neighbors(LINKS, "D") == {"C"}
    assert neighbors(LINKS, "Z") == set()


def test_expand_selection_adds_direct_neighbours_only() -> None:
    assert expand_selection(LINKS, {"A"}) == {"A", "B"}
    assert expand_selection(LINKS, {"A", "D"}) == {"A", "B", "C", "D"}
    assert expand_selection(LINKS, set()) == set()
