"""
Collision radius for node markers.
"""

from typing import Optional

from .config import NESTED_RADIUS_FACTOR, SIMPLE_RADIUS_FACTOR


def compute_radius(
    marker_width: Optional[float],
    marker_height: Optional[float],
    nested_mode: bool
) -> float:
    """
    Compute a node's collision radius from its marker size.

    Nested markers fill their whole box, so the larger side sets the radius.
    Simple markers are drawn centered and get extra room between them.
    Missing or zero dimensions give a radius of 0.
    """
    dims = [d for d in (marker_width, marker_height) if d is not None]
    if not nested_mode:
        dims = [d / 2 for d in dims]
    largest = max(dims, default=0) or 0

    factor = NESTED_RADIUS_FACTOR if nested_mode else SIMPLE_RADIUS_FACTOR
    return largest * factor
