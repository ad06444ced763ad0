"""
Multilink layout core - force-directed network layout and node glyphs.

This package provides the layout engine used by the session service and the
MCP tools, so both drive the same simulation, highlighting and rendering.
"""

from .models import (
    # Core models
    Node,
    Link,
    Network,
    Dimensions,
    MarkerSize,
    # Request models (for API)
    LoadNetworkRequest,
    PinNodeRequest,
    SelectionRequest,
    DisplayRequest,
)

from .errors import (
    MultilinkError,
    NetworkValidationError,
    StaleSimulationError,
    PositionOwnershipError,
    UnknownNodeError,
)
from .validation import validate_network, require_valid_network, ValidationIssue, IssueSeverity
from .radius import compute_radius
from .highlight import compute_muted, expand_selection, neighbors
from .controller import (
    SimulationState,
    TickObserver,
    LayoutSimulation,
    configure_collision,
    create_simulation,
    reheat,
    pause,
    release_pins,
    destroy,
    settle_layout,
)
from .scales import LinearScale, OrdinalScale
from .scene import Scene, SceneObserver
from .glyphs import render

__version__ = "0.1.0"

__all__ = [
    # Models
    "Node",
    "Link",
    "Network",
    "Dimensions",
    "MarkerSize",
    # Request models
    "LoadNetworkRequest",
    "PinNodeRequest",
    "SelectionRequest",
    "DisplayRequest",
    # Errors
    "MultilinkError",
    "NetworkValidationError",
    "StaleSimulationError",
    "PositionOwnershipError",
    "UnknownNodeError",
    # Validation
    "validate_network",
    "require_valid_network",
    "ValidationIssue",
    "IssueSeverity",
    # Layout
    "compute_radius",
    "compute_muted",
    "expand_selection",
    "neighbors",
    "SimulationState",
    "TickObserver",
    "LayoutSimulation",
    "configure_collision",
    "create_simulation",
    "reheat",
    "pause",
    "release_pins",
    "destroy",
    "settle_layout",
    # Rendering
    "LinearScale",
    "OrdinalScale",
    "Scene",
    "SceneObserver",
    "render",
]
