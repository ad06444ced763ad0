"""
Core data models for networks.

These models define the canonical schema for a laid-out network:
- Nodes carrying simulation state (position, velocity, pin) and the
  data attributes that glyph encodings read
- Links connecting nodes by id (source/target naming convention)
- Dimensions of the canvas and of each node marker

Field Naming Convention:
- Links use `source` and `target` (same convention as D3 and Cytoscape)
- For backward compatibility, `from`/`to` are accepted on input and converted
- Node attributes may arrive flat (`{"id": "a", "degree": 3}`); unknown keys
  are folded into `attributes`
"""

import math
import uuid
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator

from .config import DEFAULT_MARKER_HEIGHT, DEFAULT_MARKER_WIDTH


def generate_node_id() -> str:
    """Generate a unique node ID."""
    return f"n{uuid.uuid4().hex[:8]}"


def generate_link_id() -> str:
    """Generate a unique link ID."""
    return f"l{uuid.uuid4().hex[:8]}"


# Node keys that are part of the schema; everything else is a data attribute
_NODE_FIELDS = {
    "id", "label", "x", "y", "vx", "vy", "fx", "fy",
    "saved_x", "saved_y", "index", "attributes",
}

# Legacy camelCase names written by older front ends
_NODE_ALIASES = {"savedX": "saved_x", "savedY": "saved_y"}


class Node(BaseModel):
    """A node in the network, mutated in place by the simulation."""
    id: str = Field(default_factory=generate_node_id)
    label: str = ""
    x: float = math.nan
    y: float = math.nan
    vx: float = 0.0
    vy: float = 0.0
    # Pinned position; when set the simulation holds the node here
    fx: Optional[float] = None
    fy: Optional[float] = None
    # Snapshot taken when the simulation is paused
    saved_x: Optional[float] = None
    saved_y: Optional[float] = None
    index: Optional[int] = None
    attributes: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode='before')
    @classmethod
    def fold_attributes(cls, data: Any) -> Any:
        """Move legacy names and flat data keys into their proper fields."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for legacy, name in _NODE_ALIASES.items():
            if legacy in data and name not in data:
                data[name] = data.pop(legacy)
        extra = {k: data.pop(k) for k in list(data) if k not in _NODE_FIELDS}
        if extra:
            attributes = dict(data.get("attributes") or {})
            attributes.update(extra)
            data["attributes"] = attributes
        # JSON has no NaN; null means "not placed yet"
        for key in ("x", "y"):
            if key in data and data[key] is None:
                data[key] = math.nan
        return data

    @property
    def is_pinned(self) -> bool:
        return self.fx is not None or self.fy is not None

    @property
    def is_placed(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)

    def value(self, field: str, default: Any = None) -> Any:
        """Get a data attribute by name."""
        return self.attributes.get(field, default)

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict (unplaced coordinates become null)."""
        return {
            "id": self.id,
            "label": self.label,
            "x": self.x if math.isfinite(self.x) else None,
            "y": self.y if math.isfinite(self.y) else None,
            "fx": self.fx,
            "fy": self.fy,
            "saved_x": self.saved_x,
            "saved_y": self.saved_y,
            "attributes": self.attributes,
        }


class Link(BaseModel):
    """
    A link connecting two nodes.

    Uses `source` and `target` as canonical field names.
    Accepts `from`/`to` on input, and endpoint objects such as
    `{"id": "a"}`, for backward compatibility.
    """
    id: str = Field(default_factory=generate_link_id)
    source: str  # Source node ID
    target: str  # Target node ID

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert legacy 'from'/'to' fields and endpoint objects to ids."""
        if isinstance(data, dict):
            data = dict(data)
            if 'from' in data and 'source' not in data:
                data['source'] = data.pop('from')
            if 'to' in data and 'target' not in data:
                data['target'] = data.pop('to')
            for key in ('source', 'target'):
                endpoint = data.get(key)
                if isinstance(endpoint, dict):
                    data[key] = endpoint.get('id')
                elif isinstance(endpoint, Node):
                    data[key] = endpoint.id
        return data

    def to_json_dict(self) -> dict:
        return {"id": self.id, "source": self.source, "target": self.target}


class Network(BaseModel):
    """
    Ordered nodes and links.

    Node order does not matter to the physics but fixes the redraw order.
    """
    nodes: list[Node] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict with proper field names."""
        return {
            "nodes": [n.to_json_dict() for n in self.nodes],
            "links": [l.to_json_dict() for l in self.links],
        }

    @classmethod
    def from_json_dict(cls, data: dict) -> "Network":
        """Create a Network from a JSON dict (handles legacy formats)."""
        nodes = [Node(**n) for n in data.get('nodes', [])]
        # Some exports call links "edges"
        raw_links = data.get('links', data.get('edges', []))
        links = [Link(**l) for l in raw_links]
        return cls(nodes=nodes, links=links)

    def node_index(self) -> dict[str, Node]:
        """Map node id -> Node."""
        return {n.id: n for n in self.nodes}

    def get_node(self, node_id: str) -> Optional[Node]:
        """Get a node by ID (O(n) - use node_index() for repeated lookups)."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


class Dimensions(BaseModel):
    """Canvas size the layout is centered in."""
    width: float = Field(gt=0)
    height: float = Field(gt=0)


class MarkerSize(BaseModel):
    """Size of the per-node marker (glyph bounding box)."""
    width: float = Field(default=0, ge=0)
    height: float = Field(default=0, ge=0)


# --- API Request/Response Models ---

class LoadNetworkRequest(BaseModel):
    """Request to bind a network to the session."""
    network: dict
    dimensions: Dimensions
    marker: MarkerSize = Field(
        default_factory=lambda: MarkerSize(width=DEFAULT_MARKER_WIDTH, height=DEFAULT_MARKER_HEIGHT)
    )
    nested: bool = False
    seed: Optional[int] = None


class PinNodeRequest(BaseModel):
    """Drag end: pin a node at a position."""
    x: float
    y: float


class SelectionRequest(BaseModel):
    """Replace the current selection."""
    node_ids: list[str] = Field(default_factory=list)


class DisplayRequest(BaseModel):
    """Update display settings (partial update)."""
    nested: Optional[bool] = None
    marker_width: Optional[float] = Field(default=None, ge=0)
    marker_height: Optional[float] = Field(default=None, ge=0)
    bar_fields: Optional[list[str]] = None
    glyph_fields: Optional[list[Optional[str]]] = Field(default=None, max_length=2)
    select_neighbors: Optional[bool] = None
