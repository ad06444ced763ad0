import math

import pytest

from multilink.controller import (
    SimulationState,
    TickObserver,
    create_simulation,
    destroy,
    pause,
    reheat,
    release_pins,
    settle_layout,
)
from multilink.errors import (
    NetworkValidationError,
    PositionOwnershipError,
    StaleSimulationError,
    UnknownNodeError,
)
from multilink.models import MarkerSize, Network

from .conftest import make_network_dict


class RecordingObserver(TickObserver):
    def __init__(self):
        self.ticks: list[frozenset[str]] = []
        self.ended = 0

    def on_tick(self, network, muted):
        self.ticks.append(muted)

    def on_end(self, network):
        self.ended += 1


def test_new_simulation_is_running(network, dimensions, marker) -> None:
    handle = create_simulation(network, dimensions, marker, seed=1)
    assert handle.state == SimulationState.RUNNING
    assert handle.alpha == 1
    assert handle.alpha_target == pytest.approx(0.02)
    assert all(node.is_placed for node in network.nodes)


def test_layout_cools_and_stops(network, dimensions, marker) -> None:
    observer = RecordingObserver()
    handle = create_simulation(network, dimensions, marker, observer=observer, seed=1)
    ticks = handle.run_until_settled()

    # alpha_target 0.02 against alpha_min 0.025 settles in roughly 230 ticks
    assert 200 < ticks < 260
    assert handle.state == SimulationState.IDLE
    assert handle.alpha < 0.025
    assert len(observer.ticks) == ticks
    assert observer.ended == 1
    assert handle.step(5) == 0


def test_settled_layout_is_centered(network, dimensions, marker) -> None:
    settle_layout(network, dimensions, marker, seed=3)
    mean_x = sum(n.x for n in network.nodes) / len(network.nodes)
    mean_y = sum(n.y for n in network.nodes) / len(network.nodes)
    assert mean_x == pytest.approx(400, abs=25)
    assert mean_y == pytest.approx(300, abs=25)


def test_linked_nodes_settle_apart_but_near(network, dimensions, marker) -> None:
    settle_layout(network, dimensions, marker, seed=3)
    a, b = network.nodes[0], network.nodes[1]
    distance = math.hypot(a.x - b.x, a.y - b.y)
    # Collision radius 30 keeps them apart; link and charge keep them in range
    assert 50 < distance < 400


def test_pause_snapshots_positions(network, dimensions, marker) -> None:
    handle = create_simulation(network, dimensions, marker, seed=1)
    handle.step(10)
    pause(network, handle)

    assert handle.state == SimulationState.PAUSED
    for node in network.nodes:
        assert node.saved_x == node.x
        assert node.saved_y == node.y
    assert handle.step(3) == 0


def test_pause_rejects_unbound_network(network, dimensions, marker) -> None:
    handle = create_simulation(network, dimensions, marker, seed=1)
    other = Network.from_json_dict(make_network_dict())
    with pytest.raises(ValueError):
        pause(other, handle)
    with pytest.raises(ValueError):
        release_pins(other, handle, marker, False)


def test_pin_refused_while_running(network, dimensions, marker) -> None:
    handle = create_simulation(network, dimensions, marker, seed=1)
    with pytest.raises(PositionOwnershipError):
        handle.pin_node("A", 10, 10)
    with pytest.raises(PositionOwnershipError):
        handle.move_node("A", 10, 10)


def test_pin_refused_from_tick_callback(network, dimensions, marker) -> None:
    errors = []

    class PinningObserver(TickObserver):
        def on_tick(self, network, muted):
            try:
                handle.pin_node("A", 0, 0)
            except PositionOwnershipError as e:
                errors.append(e)

    handle = create_simulation(network, dimensions, marker, observer=PinningObserver(), seed=1)
    handle.step()
    assert len(errors) == 1


def test_pinned_node_holds_through_reheat(network, dimensions, marker) -> None:
    handle = create_simulation(network, dimensions, marker, seed=1)
    handle.step(20)
    handle.pause()
    handle.pin_node("A", 123.0, 45.0)

    reheat(handle, marker, False)
    handle.step(50)

    a = network.get_node("A")
    assert (a.x, a.y) == (123.0, 45.0)
    assert a.is_pinned


def test_unknown_node_pin(network, dimensions, marker) -> None:
    handle = create_simulation(network, dimensions, marker, seed=1)
    handle.pause()
    with pytest.raises(UnknownNodeError):
        handle.pin_node("Z", 0, 0)


def test_release_pins_unpins_everything_and_reheats(network, dimensions, marker) -> None:
    handle = create_simulation(network, dimensions, marker, seed=1)
    handle.run_until_settled()
    handle.pause()
    handle.pin_node("A", 0, 0)
    handle.pin_node("C", 500, 500)

    release_pins(network, handle, marker, False)

    assert not any(node.is_pinned for node in network.nodes)
    assert handle.state == SimulationState.RUNNING
    assert handle.alpha == pytest.approx(0.5)


def test_release_pins_keeps_last_position(network, dimensions, marker) -> None:
    handle = create_simulation(network, dimensions, marker, seed=1)
    handle.step(10)
    pause(network, handle)
    handle.pin_node("A", 5.0, 6.0)

    release_pins(network, handle, marker, False)

    a = network.get_node("A")
    assert (a.x, a.y) == (5.0, 6.0)
    assert a.fx is None
    assert a.fy is None


def test_reheat_keeps_target_and_resizes_collision(network, dimensions, marker) -> None:
    handle = create_simulation(network, dimensions, marker, seed=1)
    assert handle.radius == pytest.approx(30)
    handle.run_until_settled()

    reheat(handle, MarkerSize(width=100, height=50), True)

    assert handle.state == SimulationState.RUNNING
    assert handle.alpha == pytest.approx(0.5)
    assert handle.alpha_target == pytest.approx(0.02)
    assert handle.radius == pytest.approx(80)
    assert handle.engine.get_force("collision").radius == pytest.approx(80)


def test_selection_mutes_links_on_tick(network, dimensions, marker) -> None:
    observer = RecordingObserver()
    selected = {"A"}
    handle = create_simulation(
        network, dimensions, marker,
        observer=observer, selection=lambda: selected, seed=1
    )
    handle.step()
    assert observer.ticks[-1] == {"B-C"}

    selected.clear()
    handle.step()
    assert observer.ticks[-1] == frozenset()


def test_destroyed_handle_is_stale(network, dimensions, marker) -> None:
    handle = create_simulation(network, dimensions, marker, seed=1)
    destroy(handle)
    assert handle.state == SimulationState.DESTROYED

    with pytest.raises(StaleSimulationError):
        handle.step()
    with pytest.raises(StaleSimulationError):
        reheat(handle, marker, False)
    with pytest.raises(StaleSimulationError):
        pause(network, handle)
    with pytest.raises(StaleSimulationError):
        destroy(handle)


def test_dangling_link_fails_before_touching_nodes(dimensions, marker) -> None:
    data = make_network_dict()
    data["links"].append({"id": "C-Z", "source": "C", "target": "Z"})
    network = Network.from_json_dict(data)

    with pytest.raises(NetworkValidationError) as exc_info:
        create_simulation(network, dimensions, marker)

    assert "Z" in str(exc_info.value)
    assert all(node.index is None for node in network.nodes)
    assert not any(node.is_placed for node in network.nodes)


def test_existing_positions_are_kept_as_start(dimensions, marker) -> None:
    data = make_network_dict()
    data["nodes"][0].update(x=11.0, y=22.0)
    network = Network.from_json_dict(data)
    create_simulation(network, dimensions, marker, seed=1)
    a = network.get_node("A")
    assert (a.x, a.y) == (11.0, 22.0)


def test_empty_network_settles(dimensions, marker) -> None:
    network = Network()
    handle = create_simulation(network, dimensions, marker)
    assert handle.run_until_settled() > 0
    assert handle.state == SimulationState.IDLE
