"""
Full round through the session: bind, settle, select, pin, draw glyphs.
"""

import math
import xml.etree.ElementTree as ET

from multilink.models import Dimensions, MarkerSize
from multilink.server.session import ActionHistory, LayoutSession

from .conftest import make_network_dict


def test_layout_session_round_trip() -> None:
    history = ActionHistory()
    session = LayoutSession(recorder=history)
    ticks = []
    session.on_tick(lambda: ticks.append(1))

    session.load_network(
        make_network_dict(),
        Dimensions(width=800, height=600),
        MarkerSize(width=80, height=60),
        nested=True,
        seed=11,
    )
    session.update_display(bar_fields=["count"], glyph_fields=["kind"])

    ran = session.step(1000)
    assert ran == len(ticks)
    assert session.get_state()["simulation"]["state"] == "idle"

    muted = session.set_selection(["A"])
    assert muted == {"B-C"}

    session.pin_node("C", 700.0, 500.0)
    session.step(1000)
    c = session.network.get_node("C")
    assert (c.x, c.y) == (700.0, 500.0)

    # Settled nodes keep clear of each other's markers
    a, b = session.network.get_node("A"), session.network.get_node("B")
    assert math.hypot(a.x - b.x, a.y - b.y) > 40

    svg = ET.fromstring(session.render_svg())
    groups = {g.get("data-id"): g for g in svg.iter() if g.get("data-id")}
    assert "muted" in groups["B-C"].get("class")
    assert "muted" not in groups["A-B"].get("class")

    bars = [el for el in groups["C"] if el.get("class") == "bar" and el.get("data-field")]
    # C holds the largest count, so its bar fills the bar area
    assert float(bars[0].get("height")) == 60 - 26

    assert [r.label for r in history.records()] == [
        "Set Bar Variables", "Set Glyph Variables", "Select Node", "Pin Node"
    ]

    session.close()
    assert session.network is None
