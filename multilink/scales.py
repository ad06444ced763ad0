"""
Scales mapping data values to visual values.
"""

from typing import Any, Hashable, Optional, Sequence

# Tableau 10
CATEGORY_COLORS = [
    "#4e79a7", "#f28e2c", "#e15759", "#76b7b2", "#59a14f",
    "#edc949", "#af7aa1", "#ff9da7", "#9c755f", "#bab0ab",
]


class LinearScale:
    """Map a continuous domain onto a continuous range."""

    def __init__(
        self,
        domain: tuple[float, float] = (0.0, 1.0),
        range: tuple[float, float] = (0.0, 1.0),
        clamp: bool = False
    ):
        self.domain = domain
        self.range = range
        self.clamp = clamp

    def __call__(self, value: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if d1 == d0:
            # Collapsed domain maps everything to the middle of the range
            return (r0 + r1) / 2
        t = (value - d0) / (d1 - d0)
        if self.clamp:
            t = min(1.0, max(0.0, t))
        return r0 + t * (r1 - r0)


class OrdinalScale:
    """
    Map discrete values onto a cycling list of outputs.

    Unknown values are added to the domain on first use, so the same
    category always gets the same color for the life of the scale.
    """

    def __init__(
        self,
        range: Sequence[Any] = CATEGORY_COLORS,
        domain: Optional[Sequence[Hashable]] = None,
        unknown: Any = None
    ):
        if not range:
            raise ValueError("Ordinal scale needs a non-empty range")
        self.range = list(range)
        self.unknown = unknown
        self._index: dict[Hashable, int] = {}
        for value in domain or []:
            self._index.setdefault(value, len(self._index))

    @property
    def domain(self) -> list[Hashable]:
        return list(self._index)

    def __call__(self, value: Hashable) -> Any:
        if value not in self._index:
            if self.unknown is not None:
                return self.unknown
            self._index[value] = len(self._index)
        return self.range[self._index[value] % len(self.range)]
