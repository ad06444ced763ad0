"""
Interactive layout service: FastAPI app, session state and WebSocket fan-out.
"""

from .session import ActionHistory, ActionRecord, LayoutSession, layout_session

__all__ = ["ActionHistory", "ActionRecord", "LayoutSession", "layout_session"]
