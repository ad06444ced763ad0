#!/usr/bin/env python3
"""
Multilink Layout MCP Server

Provides MCP tools for AI agents to drive the layout service.
All changes are immediately reflected in connected views via WebSocket updates.
"""

import json
from typing import Optional

import httpx
from mcp.server.fastmcp import FastMCP

from .config import (
    DEFAULT_HEIGHT,
    DEFAULT_MARKER_HEIGHT,
    DEFAULT_MARKER_WIDTH,
    DEFAULT_WIDTH,
    Settings,
)
from .errors import MultilinkError

# Create MCP server
mcp = FastMCP("multilink-layout")


class ApiError(MultilinkError):
    """The layout service answered with an error status."""


# --- HTTP Client Helper ---

def _client_factory() -> httpx.Client:
    return httpx.Client(timeout=30.0)


def api_request(method: str, endpoint: str, **kwargs) -> dict | str:
    """Make a request to the layout service."""
    url = f"{Settings.from_env().api_base}{endpoint}"
    with _client_factory() as client:
        if method == "GET":
            response = client.get(url, params=kwargs.get("params"))
        elif method == "POST":
            response = client.post(url, json=kwargs.get("json"), params=kwargs.get("params"))
        elif method == "PATCH":
            response = client.patch(url, json=kwargs.get("json"))
        elif method == "DELETE":
            response = client.delete(url)
        else:
            raise ValueError(f"Unknown method: {method}")

        if response.status_code >= 400:
            try:
                error = response.json().get("detail", "Unknown error")
            except ValueError:
                error = response.text
            raise ApiError(f"API error ({response.status_code}): {error}")

        if response.headers.get("content-type", "").startswith("image/svg"):
            return response.text
        return response.json()


# ============================================================================
# NETWORK TOOLS
# ============================================================================

@mcp.tool()
def layout_load_network(
    network_json: str,
    width: float = DEFAULT_WIDTH,
    height: float = DEFAULT_HEIGHT,
    marker_width: float = DEFAULT_MARKER_WIDTH,
    marker_height: float = DEFAULT_MARKER_HEIGHT,
    nested: bool = False
) -> str:
    """
    Bind a network to the layout service and start laying it out.

    Args:
        network_json: JSON object with "nodes" and "links" arrays
        width: Canvas width
        height: Canvas height
        marker_width: Node marker width
        marker_height: Node marker height
        nested: Draw nested glyph markers (bars + glyphs) instead of plain markers

    Returns node/link counts and the simulation state.
    """
    result = api_request("POST", "/network", json={
        "network": json.loads(network_json),
        "dimensions": {"width": width, "height": height},
        "marker": {"width": marker_width, "height": marker_height},
        "nested": nested,
    })
    return json.dumps(result, indent=2)


@mcp.tool()
def layout_get_state() -> str:
    """
    Get the full session state: node positions, simulation state,
    selection, muted links and display settings.
    """
    result = api_request("GET", "/network")
    return json.dumps(result, indent=2)


@mcp.tool()
def layout_validate() -> str:
    """Check the bound network for structural issues."""
    result = api_request("GET", "/network/validate")
    return json.dumps(result, indent=2)


# ============================================================================
# SIMULATION TOOLS
# ============================================================================

@mcp.tool()
def layout_step(ticks: int = 1) -> str:
    """
    Advance the simulation by up to `ticks` ticks.

    Stops early once the layout has settled.
    """
    result = api_request("POST", "/simulation/step", params={"ticks": ticks})
    return json.dumps(result, indent=2)


@mcp.tool()
def layout_pause() -> str:
    """Pause the layout, keeping node positions."""
    result = api_request("POST", "/simulation/pause")
    return json.dumps(result, indent=2)


@mcp.tool()
def layout_reheat() -> str:
    """Give the layout a burst of energy so it re-settles."""
    result = api_request("POST", "/simulation/reheat")
    return json.dumps(result, indent=2)


@mcp.tool()
def layout_release_pins() -> str:
    """Unpin every node and let the whole layout re-settle freely."""
    result = api_request("POST", "/simulation/release")
    return json.dumps(result, indent=2)


# ============================================================================
# INTERACTION TOOLS
# ============================================================================

@mcp.tool()
def layout_pin_node(node_id: str, x: float, y: float) -> str:
    """
    Pin a node at a position, as if the user dragged it there.

    Args:
        node_id: ID of the node to pin
        x: Canvas X coordinate
        y: Canvas Y coordinate
    """
    result = api_request("POST", f"/nodes/{node_id}/pin", json={"x": x, "y": y})
    return json.dumps(result, indent=2)


@mcp.tool()
def layout_unpin_node(node_id: str) -> str:
    """Release a single pinned node."""
    result = api_request("DELETE", f"/nodes/{node_id}/pin")
    return json.dumps(result, indent=2)


@mcp.tool()
def layout_select_nodes(node_ids: list[str]) -> str:
    """
    Replace the selection. Links not touching a selected node are muted.

    Args:
        node_ids: IDs of the nodes to select (empty list clears the selection)
    """
    result = api_request("POST", "/selection", json={"node_ids": node_ids})
    return json.dumps(result, indent=2)


@mcp.tool()
def layout_set_display(
    nested: Optional[bool] = None,
    marker_width: Optional[float] = None,
    marker_height: Optional[float] = None,
    bar_fields: Optional[list[str]] = None,
    glyph_fields: Optional[list[Optional[str]]] = None,
    select_neighbors: Optional[bool] = None
) -> str:
    """
    Change display settings. Only provided fields are updated.

    Args:
        nested: Draw nested glyph markers
        marker_width: Node marker width
        marker_height: Node marker height
        bar_fields: Numeric node attributes drawn as bars
        glyph_fields: Categorical node attributes drawn as glyphs (max 2)
        select_neighbors: Selecting a node also selects its neighbours
    """
    updates = {
        "nested": nested,
        "marker_width": marker_width,
        "marker_height": marker_height,
        "bar_fields": bar_fields,
        "glyph_fields": glyph_fields,
        "select_neighbors": select_neighbors,
    }
    updates = {k: v for k, v in updates.items() if v is not None}
    result = api_request("PATCH", "/display", json=updates)
    return json.dumps(result, indent=2)


@mcp.tool()
def layout_render_svg() -> str:
    """Render the current layout as an SVG document."""
    return api_request("GET", "/render")


@mcp.tool()
def layout_history() -> str:
    """List the user actions recorded so far."""
    result = api_request("GET", "/history")
    return json.dumps(result, indent=2)


# ============================================================================
# MAIN
# ============================================================================

def main():
    mcp.run()


if __name__ == "__main__":
    main()
