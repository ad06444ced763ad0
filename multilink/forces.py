"""
Forces for the layout simulation.

Each force follows the same protocol:
- initialize(nodes, rng) is called when the force is attached to a
  simulation (and again whenever the node list changes)
- calling the force with the current alpha adds to node velocities
  (or, for the centering force, shifts positions directly)

Provides:
- LinkForce: springs along links, keyed by link id and resolved by node id
- ManyBodyForce: pairwise charge, Barnes-Hut approximated via a quadtree
- CenterForce: keeps the layout's mean position on a fixed point
- CollideForce: iterative overlap removal between node circles
"""

import math
import random
from typing import Callable, Iterable, Protocol, Union

from .config import (
    CHARGE_DISTANCE_MIN,
    CHARGE_STRENGTH,
    CHARGE_THETA,
    COLLISION_ITERATIONS,
    COLLISION_STRENGTH,
    LINK_DISTANCE,
)
from .errors import UnknownNodeError
from .models import Link, Node
from .quadtree import Quad, QuadTree


def jiggle(rng: random.Random) -> float:
    """Tiny random offset used to separate exactly coincident points."""
    return (rng.random() - 0.5) * 1e-6


class Force(Protocol):
    def initialize(self, nodes: list[Node], rng: random.Random) -> None: ...

    def __call__(self, alpha: float) -> None: ...


class LinkForce:
    """
    Spring force between linked nodes.

    Strength defaults to 1 / min(degree(source), degree(target)) so hubs are
    not torn apart; the bias splits each correction between the endpoints in
    proportion to their degree.
    """

    def __init__(
        self,
        links: Iterable[Link] = (),
        distance: float = LINK_DISTANCE,
        iterations: int = 1
    ):
        self.links = list(links)
        self.distance = distance
        self.iterations = iterations
        self._nodes: list[Node] = []
        self._resolved: list[tuple[Node, Node]] = []
        self._strengths: list[float] = []
        self._bias: list[float] = []
        self._rng = random.Random()

    def set_links(self, links: Iterable[Link]) -> "LinkForce":
        self.links = list(links)
        self._resolve()
        return self

    def initialize(self, nodes: list[Node], rng: random.Random) -> None:
        self._nodes = nodes
        self._rng = rng
        self._resolve()

    def _resolve(self):
        by_id = {n.id: n for n in self._nodes}
        counts: dict[str, int] = {n.id: 0 for n in self._nodes}
        resolved = []
        for link in self.links:
            source = by_id.get(link.source)
            target = by_id.get(link.target)
            if source is None:
                raise UnknownNodeError(link.source)
            if target is None:
                raise UnknownNodeError(link.target)
            counts[source.id] += 1
            counts[target.id] += 1
            resolved.append((source, target))

        self._resolved = resolved
        self._bias = [
            counts[s.id] / (counts[s.id] + counts[t.id]) for s, t in resolved
        ]
        self._strengths = [
            1 / min(counts[s.id], counts[t.id]) for s, t in resolved
        ]

    @property
    def resolved(self) -> list[tuple[Node, Node]]:
        """Links as (source, target) live node pairs."""
        return list(self._resolved)

    def __call__(self, alpha: float) -> None:
        for _ in range(self.iterations):
            for (source, target), bias, strength in zip(
                self._resolved, self._bias, self._strengths
            ):
                x = target.x + target.vx - source.x - source.vx or jiggle(self._rng)
                y = target.y + target.vy - source.y - source.vy or jiggle(self._rng)
                length = math.sqrt(x * x + y * y)
                length = (length - self.distance) / length * alpha * strength
                x *= length
                y *= length
                target.vx -= x * bias
                target.vy -= y * bias
                source.vx += x * (1 - bias)
                source.vy += y * (1 - bias)


class ManyBodyForce:
    """
    Uniform charge between all node pairs.

    Negative strength repels. Distant groups of nodes are approximated by
    their aggregate charge at their weighted centroid whenever
    cell_width / distance < theta (Barnes-Hut).
    """

    def __init__(
        self,
        strength: float = CHARGE_STRENGTH,
        theta: float = CHARGE_THETA,
        distance_min: float = CHARGE_DISTANCE_MIN,
        distance_max: float = math.inf
    ):
        self.strength = strength
        self.theta2 = theta * theta
        self.distance_min2 = distance_min * distance_min
        self.distance_max2 = distance_max * distance_max
        self._nodes: list[Node] = []
        self._strengths: list[float] = []
        self._rng = random.Random()

    def initialize(self, nodes: list[Node], rng: random.Random) -> None:
        self._nodes = nodes
        self._rng = rng
        self._strengths = [self.strength] * len(nodes)

    def _accumulate(self, quad: Quad, *_):
        if quad.children is not None:
            strength = weight = x = y = 0.0
            for child in quad.children:
                if child is not None and child.value:
                    c = abs(child.value)
                    strength += child.value
                    weight += c
                    x += c * child.x
                    y += c * child.y
            if weight:
                quad.x = x / weight
                quad.y = y / weight
            quad.value = strength
        else:
            _, quad.x, quad.y = quad.points[0]
            quad.value = sum(self._strengths[item.index] for item, _, _ in quad.points)

    def _apply_to(self, node: Node, alpha: float):
        rng = self._rng

        def apply(quad: Quad, x0: float, y0: float, x1: float, y1: float):
            if not quad.value:
                return True

            x = quad.x - node.x
            y = quad.y - node.y
            w = x1 - x0
            dist2 = x * x + y * y

            # Far enough away: treat the whole cell as one body
            if w * w / self.theta2 < dist2:
                if dist2 < self.distance_max2:
                    if x == 0:
                        x = jiggle(rng)
                        dist2 += x * x
                    if y == 0:
                        y = jiggle(rng)
                        dist2 += y * y
                    if dist2 < self.distance_min2:
                        dist2 = math.sqrt(self.distance_min2 * dist2)
                    node.vx += x * quad.value * alpha / dist2
                    node.vy += y * quad.value * alpha / dist2
                return True

            if quad.children is not None or dist2 >= self.distance_max2:
                return False

            if quad.data is not node or len(quad.points) > 1:
                if x == 0:
                    x = jiggle(rng)
                    dist2 += x * x
                if y == 0:
                    y = jiggle(rng)
                    dist2 += y * y
                if dist2 < self.distance_min2:
                    dist2 = math.sqrt(self.distance_min2 * dist2)

            for item, _, _ in quad.points:
                if item is not node:
                    weight = self._strengths[item.index] * alpha / dist2
                    node.vx += x * weight
                    node.vy += y * weight
            return False

        return apply

    def __call__(self, alpha: float) -> None:
        tree = QuadTree(self._nodes, x=lambda n: n.x, y=lambda n: n.y)
        tree.visit_after(self._accumulate)
        for node in self._nodes:
            tree.visit(self._apply_to(node, alpha))


class CenterForce:
    """Translate all nodes so their mean position sits on (x, y)."""

    def __init__(self, x: float = 0.0, y: float = 0.0, strength: float = 1.0):
        self.x = x
        self.y = y
        self.strength = strength
        self._nodes: list[Node] = []

    def initialize(self, nodes: list[Node], rng: random.Random) -> None:
        self._nodes = nodes

    def __call__(self, alpha: float) -> None:
        n = len(self._nodes)
        if not n:
            return
        sx = sum(node.x for node in self._nodes)
        sy = sum(node.y for node in self._nodes)
        sx = (sx / n - self.x) * self.strength
        sy = (sy / n - self.y) * self.strength
        for node in self._nodes:
            node.x -= sx
            node.y -= sy


Radius = Union[float, Callable[[Node], float]]


class CollideForce:
    """
    Push apart nodes whose circles overlap.

    Positions are projected one step ahead (x + vx) and overlaps relaxed
    `iterations` times per tick. Larger nodes move less.
    """

    def __init__(
        self,
        radius: Radius = 1.0,
        strength: float = COLLISION_STRENGTH,
        iterations: int = COLLISION_ITERATIONS
    ):
        self.radius = radius
        self.strength = strength
        self.iterations = iterations
        self._nodes: list[Node] = []
        self._radii: list[float] = []
        self._rng = random.Random()

    def initialize(self, nodes: list[Node], rng: random.Random) -> None:
        self._nodes = nodes
        self._rng = rng
        if callable(self.radius):
            self._radii = [float(self.radius(n)) for n in nodes]
        else:
            self._radii = [float(self.radius)] * len(nodes)

    def _prepare(self, quad: Quad, *_):
        if quad.children is None:
            quad.r = max(self._radii[item.index] for item, _, _ in quad.points)
        else:
            quad.r = max((c.r for c in quad.children if c is not None), default=0.0)

    def _apply_to(self, node: Node):
        ri = self._radii[node.index]
        ri2 = ri * ri
        xi = node.x + node.vx
        yi = node.y + node.vy
        rng = self._rng

        def apply(quad: Quad, x0: float, y0: float, x1: float, y1: float):
            r = ri + quad.r
            if quad.children is None:
                for data, _, _ in quad.points:
                    if data.index <= node.index:
                        continue
                    rj = self._radii[data.index]
                    rsum = ri + rj
                    x = xi - data.x - data.vx
                    y = yi - data.y - data.vy
                    dist2 = x * x + y * y
                    if dist2 < rsum * rsum:
                        if x == 0:
                            x = jiggle(rng)
                            dist2 += x * x
                        if y == 0:
                            y = jiggle(rng)
                            dist2 += y * y
                        dist = math.sqrt(dist2)
                        dist = (rsum - dist) / dist * self.strength
                        x *= dist
                        y *= dist
                        rj2 = rj * rj
                        share = rj2 / (ri2 + rj2) if ri2 + rj2 else 0.5
                        node.vx += x * share
                        node.vy += y * share
                        share = 1 - share
                        data.vx -= x * share
                        data.vy -= y * share
                return False
            return x0 > xi + r or x1 < xi - r or y0 > yi + r or y1 < yi - r

        return apply

    def __call__(self, alpha: float) -> None:
        for _ in range(self.iterations):
            tree = QuadTree(
                self._nodes,
                x=lambda n: n.x + n.vx,
                y=lambda n: n.y + n.vy
            )
            tree.visit_after(self._prepare)
            for node in self._nodes:
                tree.visit(self._apply_to(node))
