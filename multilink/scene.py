"""
SVG scene graph for a laid-out network.

The scene is the rendering host for the layout core: one group per link
and one group per node, kept in network order. The simulation observer
below pushes raw node positions into the scene on every tick; the glyph
renderer draws into the node groups.

Structure:

    <svg>
      <g class="links">  <g class="linkGroup" data-id=...><line/></g> ...
      <g class="nodes">  <g class="nodeGroup" data-id=...><rect class="nodeBox"/><text class="label"/></g> ...
"""

import math
import xml.etree.ElementTree as ET
from typing import Optional

from .config import LABEL_BAND
from .controller import TickObserver
from .models import Dimensions, MarkerSize, Network, Node

SVG_NS = "http://www.w3.org/2000/svg"

Element = ET.Element


def fmt(value: float) -> str:
    """Compact number formatting for SVG attributes."""
    if not math.isfinite(value):
        return "0"
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def has_class(element: Element, name: str) -> bool:
    return name in element.get("class", "").split()


def set_class(element: Element, name: str, enabled: bool) -> None:
    """Add or remove one class name, leaving the others alone."""
    classes = [c for c in element.get("class", "").split() if c != name]
    if enabled:
        classes.append(name)
    element.set("class", " ".join(classes))


class Scene:
    """
    Element tree mirroring a network.

    Args:
        network: The network to draw (nodes are read, never written)
        dimensions: Canvas size
        marker: Node marker size
    """

    def __init__(self, network: Network, dimensions: Dimensions, marker: MarkerSize):
        self.network = network
        self.dimensions = dimensions
        self.marker = marker
        self.root = ET.Element("svg", {
            "xmlns": SVG_NS,
            "width": fmt(dimensions.width),
            "height": fmt(dimensions.height),
            "viewBox": f"0 0 {fmt(dimensions.width)} {fmt(dimensions.height)}",
        })
        self.links_group = ET.SubElement(self.root, "g", {"class": "links"})
        self.nodes_group = ET.SubElement(self.root, "g", {"class": "nodes"})
        self._link_elements: dict[str, Element] = {}
        self._node_elements: dict[str, Element] = {}
        self._build()

    def _build(self):
        for link in self.network.links:
            group = ET.SubElement(self.links_group, "g", {
                "class": "linkGroup",
                "data-id": link.id,
            })
            ET.SubElement(group, "line", {"class": "link"})
            self._link_elements[link.id] = group

        for node in self.network.nodes:
            group = ET.SubElement(self.nodes_group, "g", {
                "class": "nodeGroup",
                "data-id": node.id,
            })
            ET.SubElement(group, "rect", {"class": "nodeBox"})
            label = ET.SubElement(group, "text", {"class": "label"})
            label.text = node.label or node.id
            self._node_elements[node.id] = group

        self.resize_markers(self.marker)
        self.sync_positions()

    # --- Lookup ---

    def node_element(self, node_id: str) -> Optional[Element]:
        return self._node_elements.get(node_id)

    def link_element(self, link_id: str) -> Optional[Element]:
        return self._link_elements.get(link_id)

    def node_selection(self) -> list[tuple[Node, Element]]:
        """(node, group) pairs in network order, for the glyph renderer."""
        return [(n, self._node_elements[n.id]) for n in self.network.nodes]

    # --- Updates ---

    def resize_markers(self, marker: MarkerSize) -> None:
        """Resize each node's background box and re-center its label."""
        self.marker = marker
        for group in self._node_elements.values():
            box = group.find("rect[@class='nodeBox']")
            box.set("width", fmt(marker.width))
            box.set("height", fmt(marker.height))
            box.set("rx", fmt(min(marker.width, marker.height) / 10))
            label = group.find("text[@class='label']")
            label.set("x", fmt(marker.width / 2))
            label.set("y", fmt(LABEL_BAND - 4))
            label.set("text-anchor", "middle")

    def sync_positions(self) -> None:
        """Move node groups and link lines to the nodes' current positions."""
        half_w = self.marker.width / 2
        half_h = self.marker.height / 2
        index = self.network.node_index()

        for node in self.network.nodes:
            group = self._node_elements[node.id]
            group.set("transform", f"translate({fmt(node.x - half_w)},{fmt(node.y - half_h)})")

        for link in self.network.links:
            line = self._link_elements[link.id].find("line")
            source = index[link.source]
            target = index[link.target]
            line.set("x1", fmt(source.x))
            line.set("y1", fmt(source.y))
            line.set("x2", fmt(target.x))
            line.set("y2", fmt(target.y))

    def apply_muted(self, muted: frozenset[str]) -> None:
        """Toggle the `muted` class on every link group."""
        for link_id, group in self._link_elements.items():
            set_class(group, "muted", link_id in muted)

    def to_svg(self) -> str:
        return ET.tostring(self.root, encoding="unicode")


class SceneObserver(TickObserver):
    """Keeps a scene in step with the simulation."""

    def __init__(self, scene: Scene):
        self.scene = scene

    def on_tick(self, network: Network, muted: frozenset[str]) -> None:
        self.scene.sync_positions()
        self.scene.apply_muted(muted)

    def on_end(self, network: Network) -> None:
        self.scene.sync_positions()
