"""
Glyph renderer - composite per-node markers.

Each node marker is split into:
- a bar chart on the left (or across the whole marker when no glyphs are
  requested), one channel per bar field, bar height scaled against the
  field's maximum over the whole network
- up to two capsule glyphs stacked on the right half, colored by mapping
  the node's value through an ordinal color scale

Geometry, for a marker of width W and height H:

    label band 16 | padding 5 | bar area H - 26 | padding 5

Rendering is idempotent: existing `.bar` and `.glyph` children are removed
before drawing.
"""

import math
import xml.etree.ElementTree as ET
from typing import Any, Callable, Iterable, Optional, Sequence

from .config import BAR_FILL_COLOR, BAR_TRACK_COLOR, GLYPH_PADDING, LABEL_BAND
from .models import Network, Node
from .scales import LinearScale
from .scene import fmt, has_class

NodeSelection = Iterable[tuple[Node, ET.Element]]
ColorScale = Callable[[Any], str]

MAX_GLYPHS = 2


def _as_number(value: Any) -> Optional[float]:
    """Parse a data value as a float; None when it is not numeric."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def field_max(network: Network, field: str) -> float:
    """Largest numeric value of a field across the network, 1 when 0 or absent."""
    values = [_as_number(n.value(field)) for n in network.nodes]
    largest = max((v for v in values if v is not None), default=None)
    return largest or 1.0


def clear_glyphs(group: ET.Element) -> None:
    """Remove previously drawn bars and glyphs from a node group."""
    for child in list(group):
        if has_class(child, "bar") or has_class(child, "glyph"):
            group.remove(child)


def bar_channel_width(marker_width: float, bar_count: int, glyph_count: int) -> float:
    """Width of one bar channel; bars give up half the marker to glyphs."""
    if bar_count == 0:
        return 0.0
    available = marker_width if glyph_count == 0 else marker_width / 2
    return available / bar_count


def render(
    node_selection: NodeSelection,
    marker_height: float,
    marker_width: float,
    color_scale: ColorScale,
    bar_fields: Sequence[str],
    glyph_fields: Sequence[Optional[str]],
    network: Network
) -> None:
    """
    Draw bars and glyphs into each node group.

    Args:
        node_selection: (node, group element) pairs to draw into
        marker_height: Marker height
        marker_width: Marker width
        color_scale: Maps a glyph field value to a fill color
        bar_fields: Numeric fields drawn as bars, left to right
        glyph_fields: Categorical fields for the two glyph slots; None leaves a slot empty
        network: Network the bar maxima are taken from
    """
    node_selection = list(node_selection)
    # Slots are positional; an unset first slot leaves its space empty
    glyph_slots = list(glyph_fields[:MAX_GLYPHS])
    glyph_count = sum(1 for f in glyph_slots if f is not None)
    pad = GLYPH_PADDING

    for _, group in node_selection:
        clear_glyphs(group)

    channel = bar_channel_width(marker_width, len(bar_fields), glyph_count)
    bar_width = max(0.0, channel - 2 * pad)
    bar_area = max(0.0, marker_height - LABEL_BAND - 2 * pad)
    bar_bottom = marker_height - pad

    for i, field in enumerate(bar_fields):
        height_scale = LinearScale((0.0, field_max(network, field)), (0.0, bar_area))
        x = pad + i * channel

        for node, group in node_selection:
            # Background track
            ET.SubElement(group, "rect", {
                "class": "bar",
                "width": fmt(bar_width),
                "height": fmt(bar_area),
                "x": fmt(x),
                "y": fmt(LABEL_BAND + pad),
                "fill": BAR_TRACK_COLOR,
            })

            value = _as_number(node.value(field)) or 0.0
            height = max(0.0, height_scale(value))
            ET.SubElement(group, "rect", {
                "class": "bar",
                "data-field": field,
                "width": fmt(bar_width),
                "height": fmt(height),
                "x": fmt(x),
                "y": fmt(bar_bottom - height),
                "fill": BAR_FILL_COLOR,
            })

    glyph_width = max(0.0, marker_width / 2 - 3 * pad)
    glyph_height = max(0.0, marker_height / 2 - 3 * pad)
    rx = max(0.0, (marker_width / 2 - 2 * pad) / 2)
    ry = max(0.0, (marker_height / 2 - 2 * pad) / 2)

    for i, field in enumerate(glyph_slots):
        if field is None:
            continue
        y = LABEL_BAND + pad + i * glyph_height + pad * i
        for node, group in node_selection:
            ET.SubElement(group, "rect", {
                "class": "glyph",
                "data-field": field,
                "width": fmt(glyph_width),
                "height": fmt(glyph_height),
                "x": fmt(marker_width / 2 + pad),
                "y": fmt(y),
                "rx": fmt(rx),
                "ry": fmt(ry),
                "fill": color_scale(node.value(field)),
            })
