"""
Alpha-cooled force simulation.

The simulation does not own a timer: the host calls step() once per frame
(an asyncio task in the session service, a plain loop in tests). Each step
runs one tick, notifies "tick" listeners, and stops the simulation once
alpha has cooled below alpha_min, notifying "end" listeners.
"""

import logging
import math
import random
from typing import Callable, Optional

from .config import (
    ALPHA_DECAY,
    INITIAL_ALPHA,
    INITIAL_ANGLE,
    INITIAL_RADIUS,
    VELOCITY_DECAY,
)
from .forces import Force
from .models import Node

logger = logging.getLogger(__name__)

Listener = Callable[["ForceSimulation"], None]


class ForceSimulation:
    """
    Velocity Verlet style integrator over a set of named forces.

    Nodes are mutated in place: x, y, vx, vy and index are written here;
    fx, fy are only read (a pinned node is held at its pin each tick).
    """

    EVENTS = ("tick", "end")

    def __init__(self, nodes: list[Node], seed: Optional[int] = None):
        self.nodes = nodes
        self.alpha = INITIAL_ALPHA
        self.alpha_min = 0.001
        self.alpha_decay = ALPHA_DECAY
        self.alpha_target = 0.0
        self.velocity_decay = VELOCITY_DECAY
        self.rng = random.Random(seed)
        self.running = False
        self.tick_count = 0
        self._forces: dict[str, Force] = {}
        self._listeners: dict[str, list[Listener]] = {e: [] for e in self.EVENTS}
        self._initialize_nodes()

    def _initialize_nodes(self):
        """Assign indexes and place unplaced nodes on a phyllotaxis spiral."""
        for i, node in enumerate(self.nodes):
            node.index = i
            if node.fx is not None:
                node.x = node.fx
            if node.fy is not None:
                node.y = node.fy
            if not (math.isfinite(node.x) and math.isfinite(node.y)):
                radius = INITIAL_RADIUS * math.sqrt(0.5 + i)
                angle = i * INITIAL_ANGLE
                node.x = radius * math.cos(angle)
                node.y = radius * math.sin(angle)
            if not (math.isfinite(node.vx) and math.isfinite(node.vy)):
                node.vx = node.vy = 0.0

    # --- Forces ---

    def set_force(self, name: str, force: Force) -> "ForceSimulation":
        """Attach (or replace) a named force."""
        force.initialize(self.nodes, self.rng)
        self._forces[name] = force
        return self

    def get_force(self, name: str) -> Optional[Force]:
        return self._forces.get(name)

    def remove_force(self, name: str) -> bool:
        return self._forces.pop(name, None) is not None

    @property
    def force_names(self) -> list[str]:
        return list(self._forces)

    # --- Events ---

    def on(self, event: str, listener: Listener) -> "ForceSimulation":
        """Register a listener for "tick" or "end"."""
        if event not in self._listeners:
            raise ValueError(f"Unknown simulation event: {event}")
        self._listeners[event].append(listener)
        return self

    def _emit(self, event: str):
        for listener in self._listeners[event]:
            listener(self)

    # --- Running ---

    def restart(self) -> "ForceSimulation":
        self.running = True
        return self

    def stop(self) -> "ForceSimulation":
        self.running = False
        return self

    def tick(self, iterations: int = 1) -> "ForceSimulation":
        """Advance the physics without notifying listeners."""
        for _ in range(iterations):
            self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay

            for force in self._forces.values():
                force(self.alpha)

            for node in self.nodes:
                if node.fx is None:
                    node.vx *= self.velocity_decay
                    node.x += node.vx
                else:
                    node.x = node.fx
                    node.vx = 0.0
                if node.fy is None:
                    node.vy *= self.velocity_decay
                    node.y += node.vy
                else:
                    node.y = node.fy
                    node.vy = 0.0
            self.tick_count += 1
        return self

    def step(self) -> bool:
        """
        Run one frame: tick, notify, and stop once cooled.

        Returns False when the simulation was not running.
        """
        if not self.running:
            return False
        self.tick()
        self._emit("tick")
        if self.alpha < self.alpha_min:
            self.running = False
            logger.debug("Simulation cooled after %d ticks (alpha=%.4f)", self.tick_count, self.alpha)
            self._emit("end")
        return True

