import math

import numpy as np
import pytest

from planner_doubles import RecordingVoronoi, make_grid
from hybrid_planner.maps.map_data_structure import OccupancyGrid, build_binary_obstacle_grid
from hybrid_planner.maps.map_ingestor import MapIngestor
from hybrid_planner.maps.transform_provider import StaticTransformProvider
from hybrid_planner.planning.session.planning_session import PlanningSession, Pose, PoseValidator
from hybrid_planner.planning.state_search.configuration_space import ConfigurationSpace


class RecordingConfigurationSpace(ConfigurationSpace):
    def __init__(self):
        super().__init__()
        self.updates = []

    def update_grid(self, obstacles, cell_size=1.0):
        self.updates.append((obstacles.copy(), cell_size))
        super().update_grid(obstacles, cell_size)


def _ingestor(manual=True, transform_provider=None):
    cspace = RecordingConfigurationSpace()
    voronoi = RecordingVoronoi()
    ingestor = MapIngestor(cspace, voronoi, PoseValidator(manual=manual),
                           transform_provider=transform_provider, manual=manual)
    return ingestor, cspace, voronoi


def test_binary_grid_is_indexed_x_then_y():
    grid = OccupancyGrid(3, 2, 1.0, data=[0, 0, 100,
                                          -1, 0, 0])
    obstacles = build_binary_obstacle_grid(grid)
    assert obstacles.shape == (3, 2)
    assert obstacles.dtype == bool
    assert obstacles[2, 0]
    assert obstacles[0, 1]  # unknown (-1) counts as occupied
    assert obstacles.sum() == 2


def test_grid_rejects_wrong_data_length():
    with pytest.raises(ValueError):
        OccupancyGrid(3, 3, 1.0, data=[0] * 8)


def test_set_map_caches_grid_and_feeds_collaborators():
    ingestor, cspace, voronoi = _ingestor()
    grid = make_grid(width=5, height=4, cell_size=0.5, occupied=[(1, 2)])

    session = ingestor.set_map(PlanningSession(), grid)

    assert session.grid is grid
    assert len(cspace.updates) == 1
    obstacles, cell_size = cspace.updates[0]
    assert cell_size == 0.5
    assert obstacles[1, 2] and obstacles.sum() == 1
    assert [call[0] for call in voronoi.calls] == ['initialize_map', 'update', 'visualize']
    assert voronoi.calls[0][1:3] == (5, 4)
    np.testing.assert_array_equal(voronoi.calls[0][3], obstacles)


def test_new_map_replaces_previous_one():
    ingestor, _, _ = _ingestor()
    first = make_grid()
    second = make_grid(width=20)
    session = ingestor.set_map(PlanningSession(), first)
    session = ingestor.set_map(session, second)
    assert session.grid is second


def test_manual_mode_ignores_transform():
    provider = StaticTransformProvider()
    provider.set_transform('map', 'base_link', Pose(2, 2))
    ingestor, _, _ = _ingestor(manual=True, transform_provider=provider)
    triggered = []
    session = ingestor.set_map(PlanningSession(), make_grid(), trigger=triggered.append)
    assert not session.valid_start
    assert triggered == []


def test_autonomous_mode_derives_start_and_triggers():
    provider = StaticTransformProvider()
    provider.set_transform('/map', '/base_link', Pose(2, 3, math.pi))
    ingestor, _, _ = _ingestor(manual=False, transform_provider=provider)
    triggered = []

    session = ingestor.set_map(PlanningSession(), make_grid(), trigger=triggered.append)

    assert session.valid_start
    assert session.start == Pose(2, 3, math.pi)
    assert triggered == [session]


def test_autonomous_mode_out_of_bounds_vehicle_invalidates_start_but_still_triggers():
    provider = StaticTransformProvider()
    provider.set_transform('map', 'base_link', Pose(2, 3))
    ingestor, _, _ = _ingestor(manual=False, transform_provider=provider)
    session = ingestor.set_map(PlanningSession(), make_grid())
    assert session.valid_start

    provider.set_transform('map', 'base_link', Pose(-5, 3))
    triggered = []
    session = ingestor.set_map(session, make_grid(), trigger=triggered.append)

    assert not session.valid_start
    assert triggered == [session]


def test_autonomous_mode_without_transform_skips_silently():
    ingestor, _, _ = _ingestor(manual=False, transform_provider=StaticTransformProvider())
    triggered = []
    session = ingestor.set_map(PlanningSession(), make_grid(), trigger=triggered.append)
    assert session.grid is not None
    assert not session.valid_start
    assert triggered == []


def test_static_transform_provider_clear():
    provider = StaticTransformProvider()
    provider.set_transform('map', 'base_link', Pose(1, 1))
    provider.set_transform('map', 'odom', Pose(0, 0))
    provider.clear('/map', 'base_link')
    assert not provider.can_transform('map', 'base_link')
    assert provider.can_transform('map', 'odom')
    with pytest.raises(LookupError):
        provider.lookup('map', 'base_link')
    provider.clear()
    assert not provider.can_transform('map', 'odom')
