import numpy as np
import pytest

from hybrid_planner.maps.voronoi_diagram import DynamicVoronoi
from hybrid_planner.messaging.topic_bus import TopicBus


def _two_walls(width=10, height=10):
    obstacles = np.zeros((width, height), dtype=bool)
    obstacles[0, :] = True
    obstacles[width - 1, :] = True
    return obstacles


def test_ridge_between_two_walls():
    voronoi = DynamicVoronoi()
    voronoi.initialize_map(10, 10, _two_walls())
    voronoi.update()

    assert voronoi.is_voronoi(4, 5) and voronoi.is_voronoi(5, 5)
    assert not voronoi.is_voronoi(2, 5)
    assert not voronoi.is_voronoi(0, 5)  # obstacles are never on the diagram
    assert voronoi.get_distance(2, 5) == pytest.approx(2.0)
    assert voronoi.get_distance(0, 5) == 0.0


def test_open_map_has_unbounded_clearance():
    voronoi = DynamicVoronoi()
    voronoi.initialize_map(4, 3, np.zeros((4, 3), dtype=bool))
    voronoi.update()
    assert voronoi.get_distance(1, 1) == float('inf')
    assert not voronoi.is_voronoi(1, 1)


def test_shape_mismatch_is_rejected():
    with pytest.raises(ValueError):
        DynamicVoronoi().initialize_map(3, 4, np.zeros((4, 3), dtype=bool))


def test_visualize_publishes_diagram():
    bus = TopicBus()
    received = []
    bus.subscribe('/voronoi', received.append)
    voronoi = DynamicVoronoi(bus.advertise('/voronoi'))

    voronoi.visualize()  # nothing computed yet
    assert received == []

    voronoi.initialize_map(10, 10, _two_walls())
    voronoi.update()
    voronoi.visualize()
    assert len(received) == 1
    assert received[0]['voronoi'].shape == (10, 10)
    assert received[0]['distance'][5, 5] == pytest.approx(4.0)
