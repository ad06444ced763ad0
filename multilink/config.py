"""
Layout constants and runtime settings.

Physics constants are fixed module-level values shared by the controller
and the forces. Service settings come from the environment so the session
server and the MCP tools can be pointed at each other without code edits.
"""

import math
import os

from pydantic import BaseModel, Field


# Force parameters
LINK_DISTANCE = 60.0
CHARGE_STRENGTH = -300.0
CHARGE_THETA = 0.9
CHARGE_DISTANCE_MIN = 1.0
COLLISION_STRENGTH = 0.7
COLLISION_ITERATIONS = 10

# Cooling schedule
INITIAL_ALPHA = 1.0
ALPHA_MIN = 0.025
ALPHA_TARGET = 0.02
ALPHA_DECAY = 1 - math.pow(0.001, 1 / 300)
VELOCITY_DECAY = 0.6
REHEAT_ALPHA = 0.5

# Radius model
NESTED_RADIUS_FACTOR = 0.8
SIMPLE_RADIUS_FACTOR = 1.5

# Initial phyllotaxis placement
INITIAL_RADIUS = 10.0
INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))

# Glyph geometry
LABEL_BAND = 16
GLYPH_PADDING = 5
BAR_TRACK_COLOR = "#FFFFFF"
BAR_FILL_COLOR = "#82b1ff"

# Default marker and canvas
DEFAULT_MARKER_WIDTH = 100.0
DEFAULT_MARKER_HEIGHT = 100.0
DEFAULT_WIDTH = 800.0
DEFAULT_HEIGHT = 600.0


class Settings(BaseModel):
    """Service settings, overridable through MULTILINK_* environment variables."""
    host: str = "127.0.0.1"
    port: int = 8766
    tick_interval: float = Field(default=1 / 60, gt=0)
    log_level: str = "INFO"
    api_base: str = "http://127.0.0.1:8766/api"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment, falling back to defaults."""
        values = {}
        env_map = {
            "host": "MULTILINK_HOST",
            "port": "MULTILINK_PORT",
            "tick_interval": "MULTILINK_TICK_INTERVAL",
            "log_level": "MULTILINK_LOG_LEVEL",
            "api_base": "MULTILINK_API_BASE",
        }
        for field_name, env_name in env_map.items():
            if env_name in os.environ:
                values[field_name] = os.environ[env_name]
        return cls(**values)
