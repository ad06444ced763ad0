"""
Point quadtree used to approximate n-body and collision forces.

Each internal quad has up to four children indexed as
0 = top-left, 1 = top-right, 2 = bottom-left, 3 = bottom-right.
Leaves hold one or more coincident points. Forces attach their own
aggregates (`x`, `y`, `value`, `r`) to quads through visit_after().
"""

import math
from typing import Any, Callable, Iterable, Iterator, Optional


class Quad:
    """A quadtree cell: internal when `children` is set, otherwise a leaf."""

    __slots__ = ("children", "points", "x", "y", "value", "r")

    def __init__(self):
        self.children: Optional[list[Optional["Quad"]]] = None
        self.points: list[tuple[Any, float, float]] = []
        # Aggregates filled in by force callbacks
        self.x = 0.0
        self.y = 0.0
        self.value = 0.0
        self.r = 0.0

    @property
    def is_leaf(self) -> bool:
        return self.children is None

    @property
    def data(self) -> Any:
        """First item stored in a leaf, None for internal quads."""
        return self.points[0][0] if self.points else None


# Callback signature: (quad, x0, y0, x1, y1) -> skip children?
VisitCallback = Callable[[Quad, float, float, float, float], Any]


class QuadTree:
    """
    Quadtree over arbitrary items with coordinate accessors.

    Args:
        items: Items to insert
        x: Accessor returning an item's x coordinate
        y: Accessor returning an item's y coordinate
    """

    def __init__(
        self,
        items: Iterable[Any] = (),
        x: Callable[[Any], float] = lambda d: d[0],
        y: Callable[[Any], float] = lambda d: d[1]
    ):
        self._x = x
        self._y = y
        self.root: Optional[Quad] = None
        self.extent = (0.0, 0.0, 0.0, 0.0)
        self._size = 0
        self._build(list(items))

    def __len__(self) -> int:
        return self._size

    def _build(self, items: list[Any]):
        points = []
        for item in items:
            px, py = self._x(item), self._y(item)
            # Unplaced items are left out, as they have no position yet
            if math.isfinite(px) and math.isfinite(py):
                points.append((item, px, py))
        if not points:
            return

        x0 = min(p[1] for p in points)
        y0 = min(p[2] for p in points)
        x1 = max(p[1] for p in points)
        y1 = max(p[2] for p in points)
        # Square cells keep the Barnes-Hut width test meaningful
        size = max(x1 - x0, y1 - y0) or 1.0
        self.extent = (x0, y0, x0 + size, y0 + size)

        for point in points:
            self._insert(point)

    def _insert(self, point: tuple[Any, float, float]):
        self._size += 1
        _, px, py = point

        if self.root is None:
            self.root = Quad()
            self.root.points.append(point)
            return

        node = self.root
        x0, y0, x1, y1 = self.extent

        # Descend to the leaf (or empty slot) that should hold the point
        while node.children is not None:
            xm = (x0 + x1) / 2
            ym = (y0 + y1) / 2
            right = px >= xm
            bottom = py >= ym
            if right:
                x0 = xm
            else:
                x1 = xm
            if bottom:
                y0 = ym
            else:
                y1 = ym
            i = (bottom << 1) | right
            child = node.children[i]
            if child is None:
                leaf = Quad()
                leaf.points.append(point)
                node.children[i] = leaf
                return
            node = child

        _, ex, ey = node.points[0]
        if ex == px and ey == py:
            node.points.append(point)
            return

        # Split the leaf until the new point and the existing ones separate
        existing = node.points
        node.points = []
        while True:
            node.children = [None, None, None, None]
            xm = (x0 + x1) / 2
            ym = (y0 + y1) / 2
            i = ((py >= ym) << 1) | (px >= xm)
            j = ((ey >= ym) << 1) | (ex >= xm)
            if i != j:
                new_leaf = Quad()
                new_leaf.points.append(point)
                old_leaf = Quad()
                old_leaf.points = existing
                node.children[i] = new_leaf
                node.children[j] = old_leaf
                return
            if px >= xm:
                x0 = xm
            else:
                x1 = xm
            if py >= ym:
                y0 = ym
            else:
                y1 = ym
            child = Quad()
            node.children[i] = child
            node = child

    @staticmethod
    def _child_bounds(i: int, x0: float, y0: float, x1: float, y1: float):
        xm = (x0 + x1) / 2
        ym = (y0 + y1) / 2
        if i & 1:
            x0 = xm
        else:
            x1 = xm
        if i & 2:
            y0 = ym
        else:
            y1 = ym
        return x0, y0, x1, y1

    def visit(self, callback: VisitCallback) -> "QuadTree":
        """
        Visit quads in pre-order; a truthy return skips the quad's children.
        """
        if self.root is None:
            return self
        stack = [(self.root, *self.extent)]
        while stack:
            quad, x0, y0, x1, y1 = stack.pop()
            if callback(quad, x0, y0, x1, y1) or quad.children is None:
                continue
            # Push in reverse so children are visited in index order
            for i in range(3, -1, -1):
                child = quad.children[i]
                if child is not None:
                    stack.append((child, *self._child_bounds(i, x0, y0, x1, y1)))
        return self

    def visit_after(self, callback: VisitCallback) -> "QuadTree":
        """Visit quads in post-order (children before their parent)."""
        if self.root is None:
            return self
        stack = [(self.root, *self.extent)]
        order = []
        while stack:
            entry = stack.pop()
            order.append(entry)
            quad, x0, y0, x1, y1 = entry
            if quad.children is not None:
                for i, child in enumerate(quad.children):
                    if child is not None:
                        stack.append((child, *self._child_bounds(i, x0, y0, x1, y1)))
        for quad, x0, y0, x1, y1 in reversed(order):
            callback(quad, x0, y0, x1, y1)
        return self

    def items(self) -> Iterator[Any]:
        """Iterate all stored items."""
        found: list[Any] = []

        def collect(quad: Quad, *_):
            found.extend(p[0] for p in quad.points)

        self.visit(collect)
        return iter(found)
