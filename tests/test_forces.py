import random

import pytest

from multilink.errors import UnknownNodeError
from multilink.forces import CenterForce, CollideForce, LinkForce, ManyBodyForce
from multilink.models import Link, Node


def make_nodes(*positions: tuple[float, float]) -> list[Node]:
    nodes = []
    for i, (x, y) in enumerate(positions):
        node = Node(id=f"n{i}", x=x, y=y)
        node.index = i
        nodes.append(node)
    return nodes


def test_link_force_pulls_toward_rest_length() -> None:
    nodes = make_nodes((0, 0), (200, 0))
    force = LinkForce([Link(id="l", source="n0", target="n1")], distance=60)
    force.initialize(nodes, random.Random(1))
    force(1.0)

    # (200 - 60) / 200 * 200 split evenly between two degree-1 endpoints
    assert nodes[0].vx == pytest.approx(70)
    assert nodes[1].vx == pytest.approx(-70)
    assert nodes[0].vy == pytest.approx(0, abs=1e-6)


def test_link_force_pushes_apart_when_too_close() -> None:
    nodes = make_nodes((0, 0), (30, 0))
    force = LinkForce([Link(id="l", source="n0", target="n1")], distance=60)
    force.initialize(nodes, random.Random(1))
    force(1.0)
    assert nodes[0].vx < 0 < nodes[1].vx


def test_link_force_rejects_unknown_endpoint() -> None:
    nodes = make_nodes((0, 0))
    force = LinkForce([Link(id="l", source="n0", target="ghost")])
    with pytest.raises(UnknownNodeError):
        force.initialize(nodes, random.Random(1))


def test_link_force_resolves_live_nodes() -> None:
    nodes = make_nodes((0, 0), (1, 1))
    force = LinkForce([Link(id="l", source="n1", target="n0")])
    force.initialize(nodes, random.Random(1))
    (source, target), = force.resolved
    assert source is nodes[1]
    assert target is nodes[0]


def test_center_force_moves_mean_to_center() -> None:
    nodes = make_nodes((0, 0), (10, 0), (20, 30))
    force = CenterForce(100, 50)
    force.initialize(nodes, random.Random(1))
    force(1.0)

    assert sum(n.x for n in nodes) / 3 == pytest.approx(100)
    assert sum(n.y for n in nodes) / 3 == pytest.approx(50)
    # Relative layout is preserved
    assert nodes[1].x - nodes[0].x == pytest.approx(10)


def test_many_body_repels_a_pair() -> None:
    nodes = make_nodes((0, 0), (10, 0))
    force = ManyBodyForce(strength=-30)
    force.initialize(nodes, random.Random(1))
    force(1.0)

    # strength * alpha / distance along the separating axis
    assert nodes[0].vx == pytest.approx(-3.0)
    assert nodes[1].vx == pytest.approx(3.0)


def test_many_body_approximation_matches_direct_sum() -> None:
    offsets = [(0, 0), (10, 0), (0, 10), (10, 10)]
    positions = [(x, y) for x, y in offsets] + [(1000 + x, y) for x, y in offsets]
    nodes = make_nodes(*positions)
    force = ManyBodyForce(strength=-300, theta=0.9)
    force.initialize(nodes, random.Random(1))
    force(1.0)

    for node in nodes:
        expected = 0.0
        for other in nodes:
            if other is node:
                continue
            dx = other.x - node.x
            dy = other.y - node.y
            expected += dx * -300 / (dx * dx + dy * dy)
        assert node.vx == pytest.approx(expected, rel=1e-2)


def test_collide_separates_overlapping_pair() -> None:
    nodes = make_nodes((0, 0), (1, 0))
    force = CollideForce(10, strength=1, iterations=1)
    force.initialize(nodes, random.Random(1))
    force(1.0)

    assert nodes[0].vx == pytest.approx(-9.5)
    assert nodes[1].vx == pytest.approx(9.5)


def test_collide_ignores_distant_nodes() -> None:
    nodes = make_nodes((0, 0), (100, 0))
    force = CollideForce(10)
    force.initialize(nodes, random.Random(1))
    force(1.0)
    assert all(n.vx == 0 and n.vy == 0 for n in nodes)


def test_collide_accepts_radius_accessor() -> None:
    nodes = make_nodes((0, 0), (5, 0))
    force = CollideForce(lambda n: 10 if n.id == "n0" else 0, strength=1, iterations=1)
    force.initialize(nodes, random.Random(1))
    force(1.0)
    # Only the zero-radius node moves
    assert nodes[0].vx == pytest.approx(0)
    assert nodes[1].vx == pytest.approx(5)
