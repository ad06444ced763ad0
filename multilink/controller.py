"""
Simulation controller - lifecycle of the live network layout.

A LayoutSimulation is the handle for one bound network. It moves through

    RUNNING -> PAUSED -> RUNNING -> ... -> IDLE (cooled) / DESTROYED

and is the only writer of node positions while RUNNING. Interaction code
(dragging, pinning) goes through pin_node()/move_node(), which are refused
while the simulation owns positions.

The module-level functions (create_simulation, reheat, pause, release_pins,
destroy) are the operation-style API used by the session service; they
delegate to the handle's methods.
"""

import logging
from enum import Enum
from typing import AbstractSet, Callable, Optional

from .config import (
    ALPHA_MIN,
    ALPHA_TARGET,
    COLLISION_ITERATIONS,
    COLLISION_STRENGTH,
    LINK_DISTANCE,
    REHEAT_ALPHA,
)
from .engine import ForceSimulation
from .errors import PositionOwnershipError, StaleSimulationError, UnknownNodeError
from .forces import CenterForce, CollideForce, LinkForce, ManyBodyForce
from .highlight import compute_muted
from .models import Dimensions, MarkerSize, Network, Node
from .radius import compute_radius
from .validation import require_valid_network

logger = logging.getLogger(__name__)

SelectionProvider = Callable[[], AbstractSet[str]]


class SimulationState(str, Enum):
    """Lifecycle states of a layout simulation."""
    IDLE = "idle"            # cooled down, can be reheated
    RUNNING = "running"
    PAUSED = "paused"
    DESTROYED = "destroyed"  # torn down, handle is stale


class TickObserver:
    """
    Receives simulation events. Subclass and override what you need.

    on_tick runs after every tick with the link ids the current selection
    mutes; on_end runs once the layout has cooled.
    """

    def on_tick(self, network: Network, muted: frozenset[str]) -> None:
        pass

    def on_end(self, network: Network) -> None:
        pass


def configure_collision(
    engine: ForceSimulation,
    marker: MarkerSize,
    nested_mode: bool
) -> float:
    """Install the collision force sized for the current marker; returns the radius."""
    radius = compute_radius(marker.width, marker.height, nested_mode)
    engine.set_force(
        "collision",
        CollideForce(radius, strength=COLLISION_STRENGTH, iterations=COLLISION_ITERATIONS)
    )
    return radius


class LayoutSimulation:
    """
    Live force-directed layout of one network.

    Args:
        network: Validated network; its nodes are mutated in place
        dimensions: Canvas size; the layout is centered in it
        marker: Marker size used for collision radii
        nested_mode: Whether markers are drawn nested (full box)
        observer: Receives tick/end events
        selection: Returns the currently selected node ids
        seed: Seed for the jitter used to separate coincident nodes
    """

    def __init__(
        self,
        network: Network,
        dimensions: Dimensions,
        marker: MarkerSize,
        nested_mode: bool = False,
        observer: Optional[TickObserver] = None,
        selection: Optional[SelectionProvider] = None,
        seed: Optional[int] = None
    ):
        # Reject dangling links before any node is touched
        require_valid_network(network)

        self.network = network
        self.dimensions = dimensions
        self.marker = marker
        self.nested_mode = nested_mode
        self.observer = observer or TickObserver()
        self._selection = selection or frozenset
        self._node_index = network.node_index()
        self._in_tick = False
        self.muted: frozenset[str] = frozenset()

        engine = ForceSimulation(network.nodes, seed=seed)
        engine.set_force("link", LinkForce(network.links, distance=LINK_DISTANCE))
        engine.set_force("charge", ManyBodyForce())
        engine.set_force("center", CenterForce(dimensions.width / 2, dimensions.height / 2))
        self.radius = configure_collision(engine, marker, nested_mode)
        engine.alpha_min = ALPHA_MIN
        engine.alpha_target = ALPHA_TARGET
        engine.on("tick", self._handle_tick)
        engine.on("end", self._handle_end)
        self.engine = engine

        self.refresh_selection()
        engine.restart()
        self.state = SimulationState.RUNNING
        logger.info(
            "Created simulation: %d nodes, %d links, collision radius %.1f",
            len(network.nodes), len(network.links), self.radius
        )

    # --- Engine callbacks ---

    def _handle_tick(self, engine: ForceSimulation):
        self._in_tick = True
        try:
            self.refresh_selection()
            self.observer.on_tick(self.network, self.muted)
        finally:
            self._in_tick = False

    def _handle_end(self, engine: ForceSimulation):
        self.state = SimulationState.IDLE
        logger.info("Layout settled after %d ticks", engine.tick_count)
        self.observer.on_end(self.network)

    # --- Guards ---

    def _check_alive(self):
        if self.state == SimulationState.DESTROYED:
            raise StaleSimulationError("Simulation has been destroyed")

    def _check_writable(self):
        self._check_alive()
        if self._in_tick or self.state == SimulationState.RUNNING:
            raise PositionOwnershipError(
                "Node positions are owned by the running simulation; pause it first"
            )

    def _get_node(self, node_id: str) -> Node:
        node = self._node_index.get(node_id)
        if node is None:
            raise UnknownNodeError(node_id)
        return node

    # --- Properties ---

    @property
    def alpha(self) -> float:
        return self.engine.alpha

    @property
    def alpha_target(self) -> float:
        return self.engine.alpha_target

    @property
    def is_running(self) -> bool:
        return self.state == SimulationState.RUNNING

    # --- Driving ---

    def step(self, ticks: int = 1) -> int:
        """Advance up to `ticks` ticks; returns how many actually ran."""
        self._check_alive()
        count = 0
        while count < ticks and self.state == SimulationState.RUNNING:
            self.engine.step()
            count += 1
        return count

    def run_until_settled(self, max_ticks: int = 10_000) -> int:
        """Tick until the layout cools (or max_ticks); returns ticks run."""
        return self.step(max_ticks)

    def refresh_selection(self) -> frozenset[str]:
        """Recompute the muted link set from the current selection."""
        self.muted = compute_muted(self.network.links, self._selection())
        return self.muted

    # --- Lifecycle ---

    def reheat(
        self,
        marker: Optional[MarkerSize] = None,
        nested_mode: Optional[bool] = None
    ) -> None:
        """
        Resize collision radii and bump alpha to 0.5.

        alpha_target is left alone, so the layout cools down again on the
        existing schedule.
        """
        self._check_alive()
        if marker is not None:
            self.marker = marker
        if nested_mode is not None:
            self.nested_mode = nested_mode
        self.radius = configure_collision(self.engine, self.marker, self.nested_mode)
        self.engine.alpha = REHEAT_ALPHA
        self.engine.restart()
        self.state = SimulationState.RUNNING
        logger.info("Reheated simulation (collision radius %.1f)", self.radius)

    def pause(self) -> None:
        """Stop ticking and snapshot every node's position into saved_x/saved_y."""
        self._check_alive()
        self.engine.stop()
        for node in self.network.nodes:
            node.saved_x = node.x
            node.saved_y = node.y
        self.state = SimulationState.PAUSED
        logger.info("Paused simulation at alpha %.3f", self.engine.alpha)

    def release_pins(
        self,
        marker: Optional[MarkerSize] = None,
        nested_mode: Optional[bool] = None
    ) -> None:
        """Unpin every node and reheat so the whole layout re-settles."""
        self._check_alive()
        released = 0
        for node in self.network.nodes:
            if node.is_pinned:
                released += 1
            node.fx = None
            node.fy = None
        logger.info("Released %d pinned node(s)", released)
        self.reheat(marker, nested_mode)

    def destroy(self) -> None:
        """Stop permanently; any further use of this handle raises."""
        self._check_alive()
        self.engine.stop()
        self.state = SimulationState.DESTROYED
        logger.info("Destroyed simulation")

    # --- Interaction writes ---

    def pin_node(self, node_id: str, x: float, y: float) -> Node:
        """Pin a node at (x, y); the simulation will hold it there."""
        self._check_writable()
        node = self._get_node(node_id)
        node.fx = node.x = x
        node.fy = node.y = y
        node.vx = node.vy = 0.0
        logger.debug("Pinned %s at (%.1f, %.1f)", node_id, x, y)
        return node

    def unpin_node(self, node_id: str) -> Node:
        """Let a single node move freely again (position unchanged)."""
        self._check_writable()
        node = self._get_node(node_id)
        node.fx = None
        node.fy = None
        return node

    def move_node(self, node_id: str, x: float, y: float) -> Node:
        """Move a node without pinning it."""
        self._check_writable()
        node = self._get_node(node_id)
        node.x = x
        node.y = y
        node.vx = node.vy = 0.0
        return node


# --- Operation-style API ---

def _check_bound(network: Network, handle: LayoutSimulation):
    if network is not handle.network:
        raise ValueError("Network is not bound to this simulation")


def create_simulation(
    network: Network,
    dimensions: Dimensions,
    marker: MarkerSize,
    nested_mode: bool = False,
    observer: Optional[TickObserver] = None,
    selection: Optional[SelectionProvider] = None,
    seed: Optional[int] = None
) -> LayoutSimulation:
    """Validate the network and start a running layout simulation."""
    return LayoutSimulation(
        network, dimensions, marker, nested_mode,
        observer=observer, selection=selection, seed=seed
    )


def reheat(handle: LayoutSimulation, marker: MarkerSize, nested_mode: bool) -> None:
    handle.reheat(marker, nested_mode)


def pause(network: Network, handle: LayoutSimulation) -> None:
    _check_bound(network, handle)
    handle.pause()


def release_pins(
    network: Network,
    handle: LayoutSimulation,
    marker: MarkerSize,
    nested_mode: bool
) -> None:
    _check_bound(network, handle)
    handle.release_pins(marker, nested_mode)


def destroy(handle: LayoutSimulation) -> None:
    handle.destroy()


def settle_layout(
    network: Network,
    dimensions: Dimensions,
    marker: Optional[MarkerSize] = None,
    nested_mode: bool = False,
    max_ticks: int = 1000,
    seed: Optional[int] = None
) -> Network:
    """
    Run a layout to completion without a host loop.

    Returns the same network (nodes modified in-place).
    """
    handle = create_simulation(
        network, dimensions, marker or MarkerSize(), nested_mode, seed=seed
    )
    try:
        handle.run_until_settled(max_ticks)
    finally:
        handle.destroy()
    return network
