"""
Layout Session - state for the interactive layout service.

This module implements:
- Single network session (one network bound at a time)
- Simulation lifecycle delegated to multilink.controller
- Selection, display settings and the SVG scene
- A labeled action log standing in for the provenance store: every
  layout-affecting user action is recorded once, with its new value
- Change/tick callbacks for real-time sync
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol

from ..config import DEFAULT_MARKER_HEIGHT, DEFAULT_MARKER_WIDTH
from ..controller import LayoutSimulation, SimulationState, create_simulation
from ..errors import UnknownNodeError
from ..glyphs import clear_glyphs, render
from ..highlight import expand_selection
from ..models import Dimensions, MarkerSize, Network
from ..scales import OrdinalScale
from ..scene import Scene, SceneObserver
from ..validation import require_valid_network, validate_network

logger = logging.getLogger(__name__)


class ActionRecorder(Protocol):
    """Anything that can record a discrete, labeled user action."""

    def record(self, label: str, value: Any) -> None: ...


@dataclass
class ActionRecord:
    """One recorded user action."""
    label: str
    value: Any
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "value": self.value,
            "timestamp": self.timestamp.isoformat(),
        }


class ActionHistory:
    """In-memory action log, trimmed to the most recent max_history entries."""

    def __init__(self, max_history: int = 100):
        self._records: list[ActionRecord] = []
        self._max_history = max_history

    def record(self, label: str, value: Any) -> None:
        self._records.append(ActionRecord(label=label, value=value))
        if len(self._records) > self._max_history:
            self._records.pop(0)

    def clear(self) -> None:
        self._records.clear()

    def records(self) -> list[ActionRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)


class _SessionObserver(SceneObserver):
    """Scene observer that also fans ticks out to session listeners."""

    def __init__(self, session: "LayoutSession", scene: Scene):
        super().__init__(scene)
        self._session = session

    def on_tick(self, network: Network, muted: frozenset[str]) -> None:
        super().on_tick(network, muted)
        self._session._notify_tick()

    def on_end(self, network: Network) -> None:
        super().on_end(network)
        self._session._notify_change()


class LayoutSession:
    """
    Holds one bound network and everything the view needs around it.

    The session is the caller of the layout core: it pauses the simulation
    before interaction writes, reheats afterwards, and records the action.
    """

    def __init__(self, recorder: Optional[ActionRecorder] = None):
        self._recorder = recorder if recorder is not None else ActionHistory()
        self._network: Optional[Network] = None
        self._simulation: Optional[LayoutSimulation] = None
        self._scene: Optional[Scene] = None
        self._dimensions: Optional[Dimensions] = None
        self._marker = MarkerSize(width=DEFAULT_MARKER_WIDTH, height=DEFAULT_MARKER_HEIGHT)
        self._nested = False
        self._bar_fields: list[str] = []
        self._glyph_fields: list[Optional[str]] = []
        self._select_neighbors = False
        self._selection: set[str] = set()
        self._color_scale = OrdinalScale()
        self._on_change_callbacks: list[Callable] = []
        self._on_tick_callbacks: list[Callable] = []

    # --- Properties ---

    @property
    def network(self) -> Optional[Network]:
        return self._network

    @property
    def simulation(self) -> Optional[LayoutSimulation]:
        return self._simulation

    @property
    def recorder(self) -> ActionRecorder:
        return self._recorder

    @property
    def selection(self) -> frozenset[str]:
        return frozenset(self._selection)

    @property
    def is_running(self) -> bool:
        return self._simulation is not None and self._simulation.is_running

    # --- Callbacks ---

    def on_change(self, callback: Callable):
        """Register a callback for session changes."""
        self._on_change_callbacks.append(callback)

    def on_tick(self, callback: Callable):
        """Register a callback run after every simulation tick."""
        self._on_tick_callbacks.append(callback)

    def _notify_change(self):
        for callback in self._on_change_callbacks:
            callback()

    def _notify_tick(self):
        for callback in self._on_tick_callbacks:
            callback()

    def _record(self, label: str, value: Any):
        logger.info("Action: %s -> %r", label, value)
        self._recorder.record(label, value)

    def _require_simulation(self) -> LayoutSimulation:
        if self._simulation is None:
            raise ValueError("No network loaded")
        return self._simulation

    # --- Network binding ---

    def load_network(
        self,
        data: dict,
        dimensions: Dimensions,
        marker: Optional[MarkerSize] = None,
        nested: bool = False,
        seed: Optional[int] = None
    ) -> Network:
        """
        Bind a network, replacing any current one.

        The network is validated before the current session is touched, so
        a rejected network leaves the previous one running.
        """
        network = Network.from_json_dict(data)
        require_valid_network(network)

        self._teardown()
        self._network = network
        self._dimensions = dimensions
        self._marker = marker or self._marker
        self._nested = nested
        self._selection.clear()
        self._color_scale = OrdinalScale()

        self._scene = Scene(network, dimensions, self._marker)
        self._simulation = create_simulation(
            network, dimensions, self._marker, nested,
            observer=_SessionObserver(self, self._scene),
            selection=lambda: self._selection,
            seed=seed
        )
        self._scene.sync_positions()
        self._draw_glyphs()
        logger.info("Loaded network with %d nodes and %d links",
                    len(network.nodes), len(network.links))
        self._notify_change()
        return network

    def close(self) -> None:
        """Tear down the current network and simulation."""
        self._teardown()
        self._network = None
        self._scene = None
        self._dimensions = None
        self._selection.clear()
        self._notify_change()

    def reset(self) -> None:
        """Close the network and restore default display settings."""
        self.close()
        self._marker = MarkerSize(width=DEFAULT_MARKER_WIDTH, height=DEFAULT_MARKER_HEIGHT)
        self._nested = False
        self._bar_fields = []
        self._glyph_fields = []
        self._select_neighbors = False

    def _teardown(self):
        if self._simulation is not None:
            if self._simulation.state != SimulationState.DESTROYED:
                self._simulation.destroy()
            self._simulation = None

    # --- Simulation control ---

    def step(self, ticks: int = 1) -> int:
        """Advance the simulation; returns ticks run."""
        return self._require_simulation().step(ticks)

    def pause(self) -> None:
        self._require_simulation().pause()
        self._notify_change()

    def reheat(self) -> None:
        self._require_simulation().reheat(self._marker, self._nested)
        self._notify_change()

    def release_pins(self) -> None:
        self._require_simulation().release_pins(self._marker, self._nested)
        self._record("Release Pins", None)
        self._notify_change()

    def pin_node(self, node_id: str, x: float, y: float) -> dict:
        """Drag end: pause, pin the node at (x, y), then let the layout re-settle."""
        simulation = self._require_simulation()
        if simulation.is_running:
            simulation.pause()
        node = simulation.pin_node(node_id, x, y)
        simulation.reheat(self._marker, self._nested)
        self._record("Pin Node", {"id": node_id, "x": x, "y": y})
        self._notify_change()
        return node.to_json_dict()

    def unpin_node(self, node_id: str) -> dict:
        simulation = self._require_simulation()
        if simulation.is_running:
            simulation.pause()
        node = simulation.unpin_node(node_id)
        simulation.reheat(self._marker, self._nested)
        self._record("Unpin Node", {"id": node_id})
        self._notify_change()
        return node.to_json_dict()

    # --- Selection ---

    def set_selection(self, node_ids: list[str]) -> frozenset[str]:
        """Replace the selection; returns the muted link ids."""
        simulation = self._require_simulation()
        index = self._network.node_index()
        for node_id in node_ids:
            if node_id not in index:
                raise UnknownNodeError(node_id)

        new_selection = set(node_ids)
        if self._select_neighbors:
            new_selection = expand_selection(self._network.links, new_selection)

        label = "De-select Node" if new_selection < self._selection else "Select Node"
        self._selection = new_selection
        muted = simulation.refresh_selection()
        self._scene.apply_muted(muted)
        self._record(label, sorted(new_selection))
        self._notify_change()
        return muted

    # --- Display ---

    def update_display(
        self,
        nested: Optional[bool] = None,
        marker_width: Optional[float] = None,
        marker_height: Optional[float] = None,
        bar_fields: Optional[list[str]] = None,
        glyph_fields: Optional[list[Optional[str]]] = None,
        select_neighbors: Optional[bool] = None
    ) -> dict:
        """Update display settings (partial); reheats when marker size or mode change."""
        simulation = self._require_simulation()
        needs_reheat = False

        if nested is not None and nested != self._nested:
            self._nested = nested
            needs_reheat = True
            self._record("Set Display Charts", nested)

        if marker_width is not None or marker_height is not None:
            marker = MarkerSize(
                width=marker_width if marker_width is not None else self._marker.width,
                height=marker_height if marker_height is not None else self._marker.height,
            )
            if marker != self._marker:
                self._marker = marker
                self._scene.resize_markers(marker)
                needs_reheat = True
                self._record("Set Marker Size", marker.model_dump())

        if bar_fields is not None and bar_fields != self._bar_fields:
            self._bar_fields = list(bar_fields)
            self._record("Set Bar Variables", self._bar_fields)

        if glyph_fields is not None and glyph_fields != self._glyph_fields:
            self._glyph_fields = list(glyph_fields)
            self._record("Set Glyph Variables", self._glyph_fields)

        if select_neighbors is not None and select_neighbors != self._select_neighbors:
            self._select_neighbors = select_neighbors
            self._record("Set Select Neighbors", select_neighbors)

        self._draw_glyphs()
        if needs_reheat:
            simulation.reheat(self._marker, self._nested)
        self._notify_change()
        return self.display_state()

    def _draw_glyphs(self):
        if self._scene is None:
            return
        selection = self._scene.node_selection()
        if not self._nested:
            for _, group in selection:
                clear_glyphs(group)
            return
        render(
            selection,
            self._marker.height,
            self._marker.width,
            self._color_scale,
            self._bar_fields,
            self._glyph_fields,
            self._network
        )

    def render_svg(self) -> str:
        if self._scene is None:
            raise ValueError("No network loaded")
        return self._scene.to_svg()

    # --- State ---

    def display_state(self) -> dict:
        return {
            "nested": self._nested,
            "marker": self._marker.model_dump(),
            "bar_fields": list(self._bar_fields),
            "glyph_fields": list(self._glyph_fields),
            "select_neighbors": self._select_neighbors,
        }

    def positions(self) -> list[dict]:
        """Current node positions, in network order."""
        if self._network is None:
            return []
        return [{"id": n.id, "x": n.x, "y": n.y} for n in self._network.nodes]

    def get_state(self) -> dict:
        """Get the full current state for API responses."""
        if self._network is None or self._simulation is None:
            return {
                "network": None,
                "simulation": None,
                "selection": [],
                "muted": [],
                "display": self.display_state(),
            }

        return {
            "network": self._network.to_json_dict(),
            "dimensions": self._dimensions.model_dump(),
            "simulation": {
                "state": self._simulation.state.value,
                "alpha": self._simulation.alpha,
                "alpha_target": self._simulation.alpha_target,
                "ticks": self._simulation.engine.tick_count,
                "collision_radius": self._simulation.radius,
            },
            "selection": sorted(self._selection),
            "muted": sorted(self._simulation.muted),
            "display": self.display_state(),
        }

    def validate(self) -> list:
        if self._network is None:
            raise ValueError("No network loaded")
        return validate_network(self._network)


# Global instance for the application
layout_session = LayoutSession()
