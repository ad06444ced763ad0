"""
Multilink Layout Service - FastAPI Application

This is the main entry point for the interactive layout service.
It provides:
- REST API for binding a network, driving and interacting with the layout
  (pause/reheat/release, pin, selection, display settings)
- SVG rendering of the current scene
- WebSocket endpoint streaming node positions while the layout moves
- A background ticker acting as the host animation loop
"""
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from ..config import Settings
from ..controller import SimulationState
from ..errors import NetworkValidationError, UnknownNodeError
from ..logging_config import setup_logging
from ..models import DisplayRequest, LoadNetworkRequest, PinNodeRequest, SelectionRequest
from ..validation import validation_summary
from .session import layout_session
from .websocket_manager import ws_manager

logger = logging.getLogger(__name__)

settings = Settings.from_env()


# --- Async change notification ---
# Bridge between sync session callbacks and async WebSocket broadcasts

_change_event = asyncio.Event()


def on_session_change():
    """Callback for session changes - sets event for async handler."""
    _change_event.set()


async def change_broadcaster():
    """Background task that broadcasts changes to WebSocket clients."""
    while True:
        await _change_event.wait()
        _change_event.clear()
        await ws_manager.notify_session_updated()


async def simulation_ticker(interval: float):
    """Host animation loop: one tick per frame while the layout is running."""
    while True:
        await asyncio.sleep(interval)
        if not layout_session.is_running:
            continue
        try:
            layout_session.step(1)
        except Exception:
            logger.exception("Simulation tick failed; pausing")
            layout_session.pause()
            continue
        await publish_frame()


async def publish_frame():
    """Send the current positions, and a settled notice once cooled."""
    simulation = layout_session.simulation
    if simulation is None:
        return
    await ws_manager.notify_positions(
        layout_session.positions(), sorted(simulation.muted), simulation.state.value
    )
    if simulation.state == SimulationState.IDLE:
        await ws_manager.notify_settled(simulation.engine.tick_count)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup/shutdown tasks."""
    setup_logging(settings.log_level)
    layout_session.on_change(on_session_change)

    tasks = [
        asyncio.create_task(change_broadcaster()),
        asyncio.create_task(simulation_ticker(settings.tick_interval)),
    ]
    logger.info("Layout service started (tick interval %.3fs)", settings.tick_interval)

    yield

    for task in tasks:
        task.cancel()
    for task in tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass


# --- FastAPI App ---

app = FastAPI(
    title="Multilink Layout API",
    description="Interactive force-directed network layout with node glyphs",
    version="0.1.0",
    lifespan=lifespan
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Health Check ---

@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "connections": ws_manager.connection_count}


# --- Network ---

@app.post("/api/network")
async def load_network(request: LoadNetworkRequest):
    """Bind a network and start laying it out."""
    try:
        network = layout_session.load_network(
            request.network,
            request.dimensions,
            marker=request.marker,
            nested=request.nested,
            seed=request.seed
        )
    except NetworkValidationError as e:
        raise HTTPException(
            status_code=400,
            detail={"message": str(e), "issues": [i.to_dict() for i in e.issues]}
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "success": True,
        "nodes": len(network.nodes),
        "links": len(network.links),
        "state": layout_session.get_state()["simulation"],
    }


@app.get("/api/network")
async def get_network():
    """Get the current session state."""
    return layout_session.get_state()


@app.delete("/api/network")
async def close_network():
    """Unbind the network and destroy its simulation."""
    layout_session.close()
    return {"success": True}


@app.get("/api/network/validate")
async def validate_current_network():
    """Validate the bound network for structural issues."""
    try:
        issues = layout_session.validate()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "success": True,
        "issues": [i.to_dict() for i in issues],
        "summary": validation_summary(issues),
    }


# --- Simulation ---

@app.post("/api/simulation/step")
async def step_simulation(ticks: int = Query(default=1, ge=1, le=10_000)):
    """Advance the simulation manually (headless hosts, tests)."""
    try:
        ran = layout_session.step(ticks)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"success": True, "ticks": ran, "state": layout_session.get_state()["simulation"]}


@app.post("/api/simulation/pause")
async def pause_simulation():
    """Stop ticking and snapshot positions."""
    try:
        layout_session.pause()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"success": True, "state": layout_session.get_state()["simulation"]}


@app.post("/api/simulation/reheat")
async def reheat_simulation():
    """Re-energize the layout after a reconfiguration."""
    try:
        layout_session.reheat()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"success": True, "state": layout_session.get_state()["simulation"]}


@app.post("/api/simulation/release")
async def release_pins():
    """Unpin every node and let the layout re-settle."""
    try:
        layout_session.release_pins()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"success": True, "state": layout_session.get_state()["simulation"]}


# --- Interaction ---

@app.post("/api/nodes/{node_id}/pin")
async def pin_node(node_id: str, request: PinNodeRequest):
    """Pin a node where it was dropped."""
    try:
        node = layout_session.pin_node(node_id, request.x, request.y)
    except UnknownNodeError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"success": True, "node": node}


@app.delete("/api/nodes/{node_id}/pin")
async def unpin_node(node_id: str):
    """Release a single pinned node."""
    try:
        node = layout_session.unpin_node(node_id)
    except UnknownNodeError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"success": True, "node": node}


@app.post("/api/selection")
async def set_selection(request: SelectionRequest):
    """Replace the selection; returns the links it mutes."""
    try:
        muted = layout_session.set_selection(request.node_ids)
    except UnknownNodeError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "success": True,
        "selection": sorted(layout_session.selection),
        "muted": sorted(muted),
    }


@app.get("/api/muted")
async def get_muted():
    """Links muted by the current selection."""
    return {"muted": layout_session.get_state()["muted"]}


@app.patch("/api/display")
async def update_display(request: DisplayRequest):
    """Update display settings (partial update)."""
    try:
        display = layout_session.update_display(
            nested=request.nested,
            marker_width=request.marker_width,
            marker_height=request.marker_height,
            bar_fields=request.bar_fields,
            glyph_fields=request.glyph_fields,
            select_neighbors=request.select_neighbors
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"success": True, "display": display}


# --- Rendering & History ---

@app.get("/api/render")
async def render_scene():
    """The current scene as an SVG document."""
    try:
        svg = layout_session.render_svg()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return Response(content=svg, media_type="image/svg+xml")


@app.get("/api/history")
async def get_history():
    """Recorded user actions, oldest first."""
    recorder = layout_session.recorder
    records = recorder.records() if hasattr(recorder, "records") else []
    return {"success": True, "actions": [r.to_dict() for r in records]}


# --- WebSocket ---

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Stream position updates and change notices to a view."""
    await ws_manager.connect(websocket, snapshot=layout_session.get_state())
    try:
        while True:
            # Clients only listen; drain anything they send
            await websocket.receive_text()
    except WebSocketDisconnect:
        await ws_manager.disconnect(websocket)


# --- Run with uvicorn ---

def main():
    import uvicorn
    setup_logging(settings.log_level)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
