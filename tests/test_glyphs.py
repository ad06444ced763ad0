import math
import xml.etree.ElementTree as ET

import pytest

from multilink.glyphs import bar_channel_width, field_max, render
from multilink.models import Network
from multilink.scales import OrdinalScale


def make_selection(network: Network) -> list[tuple]:
    return [(n, ET.Element("g", {"class": "nodeGroup"})) for n in network.nodes]


def value_bars(group: ET.Element) -> list[ET.Element]:
    return [el for el in group if el.get("class") == "bar" and el.get("data-field")]


def track_bars(group: ET.Element) -> list[ET.Element]:
    return [el for el in group if el.get("class") == "bar" and not el.get("data-field")]


def glyphs(group: ET.Element) -> list[ET.Element]:
    return [el for el in group if el.get("class") == "glyph"]


def test_bar_height_is_proportional_to_field_max(network: Network) -> None:
    selection = make_selection(network)
    render(selection, 100, 100, OrdinalScale(), ["count"], [], network)

    # 100 - label band 16 - padding 5 - padding 5
    available = 74
    heights = {
        node.id: float(value_bars(group)[0].get("height"))
        for node, group in selection
    }
    assert heights["C"] == pytest.approx(available, abs=0.01)
    assert heights["B"] == pytest.approx(available * 2 / 3, abs=0.01)
    assert heights["A"] == pytest.approx(available / 3, abs=0.01)

    # Bars grow up from the bottom padding
    for node, group in selection:
        bar = value_bars(group)[0]
        assert float(bar.get("y")) + float(bar.get("height")) == pytest.approx(95, abs=0.02)


def test_all_zero_values_render_zero_height() -> None:
    network = Network.from_json_dict({
        "nodes": [{"id": "a", "v": 0}, {"id": "b", "v": 0}],
        "links": [],
    })
    selection = make_selection(network)
    render(selection, 80, 60, OrdinalScale(), ["v"], [], network)

    for _, group in selection:
        height = float(value_bars(group)[0].get("height"))
        assert height == 0
        assert not math.isnan(height)


def test_field_max_falls_back_to_one() -> None:
    network = Network.from_json_dict({
        "nodes": [{"id": "a", "v": "n/a"}, {"id": "b"}],
        "links": [],
    })
    assert field_max(network, "v") == 1.0
    assert field_max(network, "missing") == 1.0


def test_numeric_strings_count_toward_max() -> None:
    network = Network.from_json_dict({
        "nodes": [{"id": "a", "v": "4"}, {"id": "b", "v": 2}],
        "links": [],
    })
    assert field_max(network, "v") == 4.0


def test_redraw_does_not_accumulate(network: Network) -> None:
    selection = make_selection(network)
    for _ in range(3):
        render(selection, 100, 100, OrdinalScale(), ["count"], ["kind"], network)

    for _, group in selection:
        assert len(track_bars(group)) == 1
        assert len(value_bars(group)) == 1
        assert len(glyphs(group)) == 1


def test_redraw_keeps_other_children(network: Network) -> None:
    selection = make_selection(network)
    for _, group in selection:
        ET.SubElement(group, "rect", {"class": "nodeBox"})

    render(selection, 100, 100, OrdinalScale(), ["count"], [], network)
    render(selection, 100, 100, OrdinalScale(), [], [], network)

    for _, group in selection:
        assert [el.get("class") for el in group] == ["nodeBox"]


def test_bars_take_full_width_without_glyphs(network: Network) -> None:
    network.nodes[0].attributes["other"] = 5
    selection = make_selection(network)
    render(selection, 100, 100, OrdinalScale(), ["count", "other"], [], network)

    _, group = selection[0]
    first, second = value_bars(group)
    assert float(first.get("width")) == pytest.approx(40)
    assert float(first.get("x")) == pytest.approx(5)
    assert float(second.get("x")) == pytest.approx(55)


def test_bars_cede_half_width_to_glyphs(network: Network) -> None:
    selection = make_selection(network)
    render(selection, 100, 100, OrdinalScale(), ["count", "count"], ["kind"], network)

    _, group = selection[0]
    first, second = value_bars(group)
    assert float(first.get("width")) == pytest.approx(15)
    assert float(second.get("x")) == pytest.approx(30)


def test_channel_width() -> None:
    assert bar_channel_width(120, 3, 0) == pytest.approx(40)
    assert bar_channel_width(120, 3, 2) == pytest.approx(20)
    assert bar_channel_width(120, 0, 2) == 0


def test_glyph_slots_stack_on_right_half(network: Network) -> None:
    network.nodes[0].attributes["group"] = "g1"
    selection = make_selection(network)
    render(selection, 100, 100, OrdinalScale(), [], ["kind", "group"], network)

    _, group = selection[0]
    top, bottom = glyphs(group)
    assert float(top.get("x")) == pytest.approx(55)
    assert float(top.get("width")) == pytest.approx(35)
    assert float(top.get("height")) == pytest.approx(35)
    assert float(top.get("y")) == pytest.approx(21)
    assert float(bottom.get("y")) == pytest.approx(61)
    assert float(top.get("rx")) == pytest.approx(20)
    assert float(top.get("ry")) == pytest.approx(20)


def test_missing_glyph_slots_are_omitted(network: Network) -> None:
    selection = make_selection(network)
    render(selection, 100, 100, OrdinalScale(), ["count"], ["kind"], network)
    for _, group in selection:
        assert len(glyphs(group)) == 1

    render(selection, 100, 100, OrdinalScale(), ["count"], [], network)
    for _, group in selection:
        assert glyphs(group) == []


def test_glyph_fill_comes_from_color_scale(network: Network) -> None:
    scale = OrdinalScale(range=["red", "blue"])
    selection = make_selection(network)
    render(selection, 100, 100, scale, [], ["kind"], network)

    fills = {node.id: glyphs(group)[0].get("fill") for node, group in selection}
    # A and C share kind "x"
    assert fills["A"] == fills["C"] == "red"
    assert fills["B"] == "blue"


def test_unset_first_glyph_slot_keeps_second_in_place(network: Network) -> None:
    selection = make_selection(network)
    render(selection, 100, 100, OrdinalScale(), ["count"], [None, "kind"], network)

    for _, group in selection:
        only, = glyphs(group)
        assert only.get("data-field") == "kind"
        assert float(only.get("y")) == pytest.approx(61)
        # The occupied slot still takes the right half from the bars
        assert float(value_bars(group)[0].get("width")) == pytest.approx(40)
