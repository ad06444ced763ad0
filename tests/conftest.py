"""
Pytest configuration and shared fixtures.
"""

import pytest

from multilink.models import Dimensions, MarkerSize, Network


def make_network_dict() -> dict:
    """Three nodes in a chain: A - B - C."""
    return {
        "nodes": [
            {"id": "A", "label": "Alpha", "count": 10, "kind": "x"},
            {"id": "B", "label": "Beta", "count": 20, "kind": "y"},
            {"id": "C", "label": "Gamma", "count": 30, "kind": "x"},
        ],
        "links": [
            {"id": "A-B", "source": "A", "target": "B"},
            {"id": "B-C", "source": "B", "target": "C"},
        ],
    }


@pytest.fixture
def network_dict() -> dict:
    return make_network_dict()


@pytest.fixture
def network() -> Network:
    return Network.from_json_dict(make_network_dict())


@pytest.fixture
def dimensions() -> Dimensions:
    return Dimensions(width=800, height=600)


@pytest.fixture
def marker() -> MarkerSize:
    return MarkerSize(width=40, height=20)
