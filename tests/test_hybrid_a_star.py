import math

import numpy as np
import pytest

from planner_doubles import make_grid
from hybrid_planner.maps.map_data_structure import build_binary_obstacle_grid
from hybrid_planner.planning.path_processing.path_exporter import SearchVisualization
from hybrid_planner.planning.state_search.algorithms.hybrid_a_star_planner import HybridAStarSearch
from hybrid_planner.planning.state_search.configuration_space import ConfigurationSpace
from hybrid_planner.planning.state_search.heuristic_functions import (
    calculate_heuristic,
    dubins_path_length,
)
from hybrid_planner.planning.state_search.lookup_tables import LookupTableBuilder
from hybrid_planner.planning.state_search.node_types import Node2D, Node3D, NodeBuffers

HEADINGS = 72


def _cspace(grid):
    cspace = ConfigurationSpace(LookupTableBuilder({'headings': HEADINGS}))
    cspace.update_grid(build_binary_obstacle_grid(grid), grid.cell_size)
    return cspace


def _search(grid, start, goal, config=None, visualization=None):
    cspace = _cspace(grid)
    engine = HybridAStarSearch(dict({'headings': HEADINGS}, **(config or {})))
    with NodeBuffers(grid.width, grid.height, HEADINGS) as buffers:
        result = engine.search(start, goal, buffers.nodes3d, buffers.nodes2d,
                               grid.width, grid.height, cspace, visualization=visualization)
        closed = int(np.count_nonzero(buffers.nodes3d['closed']))
    return result, closed


def _chain(node):
    chain = []
    while node is not None:
        chain.append(node)
        node = node.parent
    return chain


def test_straight_corridor_reaches_goal():
    grid = make_grid(width=12, height=12)
    start = Node3D(2.5, 5.5, 0.0)
    goal = Node3D(8.5, 5.5, 0.0)
    visualization = SearchVisualization()

    result, closed = _search(grid, start, goal, visualization=visualization)

    assert result is not None
    assert math.hypot(result.x - goal.x, result.y - goal.y) <= 1.0
    chain = _chain(result)
    assert chain[-1] is start
    assert all(abs(node.y - 5.5) < 1e-9 for node in chain)
    assert closed > 0
    assert visualization.nodes3d and visualization.nodes2d


def test_wall_between_start_and_goal_has_no_solution():
    grid = make_grid(width=12, height=12, occupied=[(6, y) for y in range(12)])
    result, _ = _search(grid, Node3D(2.5, 5.5, 0.0), Node3D(9.5, 5.5, 0.0))
    assert result is None


def test_blocked_start_has_no_solution():
    grid = make_grid(width=12, height=12, occupied=[(2, 5)])
    result, closed = _search(grid, Node3D(2.5, 5.5, 0.0), Node3D(8.5, 5.5, 0.0))
    assert result is None
    assert closed == 0


def test_iteration_limit_stops_search():
    grid = make_grid(width=12, height=12)
    visualization = SearchVisualization()
    result, _ = _search(grid, Node3D(2.5, 5.5, 0.0), Node3D(8.5, 5.5, math.pi),
                        config={"iterations": 3}, visualization=visualization)
    assert result is None
    assert len(visualization.nodes3d) == 3


def test_step_cost_penalties():
    engine = HybridAStarSearch()
    root = Node3D(0, 0, 0)
    forward = Node3D(1, 0, 0, parent=root, prim=0)
    step = engine.dx[0]
    assert engine._step_cost(root, 0) == pytest.approx(step)
    assert engine._step_cost(root, 1) == pytest.approx(step * 1.05)
    assert engine._step_cost(root, 3) == pytest.approx(step * 2.0)
    assert engine._step_cost(forward, 4) == pytest.approx(step * 1.05 * 2.0 * 2.0)


def test_primitives_follow_heading():
    engine = HybridAStarSearch()
    node = Node3D(5.0, 5.0, math.pi / 2)
    ahead = engine._create_successor(node, 0)
    behind = engine._create_successor(node, 3)
    assert (ahead.x, ahead.y) == pytest.approx((5.0, 5.0 + engine.dx[0]))
    assert (behind.x, behind.y) == pytest.approx((5.0, 5.0 - engine.dx[0]))
    left = engine._create_successor(node, 2)
    assert left.t == pytest.approx(math.pi / 2 + engine.primitive_angle)
    assert left.x < 5.0
    assert ahead.reverse is False and behind.reverse is True


def test_dubins_straight_line_length():
    assert dubins_path_length((0.0, 0.0, 0.0), (10.0, 0.0, 0.0), 6.0) == pytest.approx(10.0)


@pytest.mark.parametrize("goal", [(-5.0, 0.0, 0.0), (3.0, 4.0, math.pi), (0.0, 8.0, math.pi / 2)])
def test_dubins_length_is_at_least_euclidean(goal):
    assert dubins_path_length((0.0, 0.0, 0.0), goal, 6.0) >= math.hypot(goal[0], goal[1]) - 1e-9


def test_calculate_heuristic_types():
    a, b = Node3D(0, 0, 0), Node3D(3, 4, 0)
    assert calculate_heuristic(a, b) == pytest.approx(5.0)
    assert calculate_heuristic(a, b, "dubins", 1.0) >= 5.0
    assert calculate_heuristic(a, b, "unknown") == pytest.approx(5.0)


def test_dubins_lookup_matches_direct_computation():
    builder = LookupTableBuilder({'headings': 8, 'dubins_width': 3, 'min_turning_radius': 2.0})
    lookup = builder.build_dubins_lookup()
    assert builder.build_dubins_lookup() is lookup

    assert lookup.distance(Node3D(5, 5, 0), Node3D(7, 5, 0)) == pytest.approx(2.0)
    # the table is expressed in the start's frame
    assert lookup.distance(Node3D(5, 5, math.pi / 2), Node3D(5, 7, math.pi / 2)) == pytest.approx(2.0)
    expected = dubins_path_length((0, 0, 0), (1, 2, math.pi / 4), 2.0)
    assert lookup.distance(Node3D(0, 0, 0), Node3D(1, 2, math.pi / 4)) == pytest.approx(expected)
    assert lookup.distance(Node3D(0, 0, 0), Node3D(20, 0, 0)) is None


def test_collision_lookup_per_heading_bin():
    builder = LookupTableBuilder({'headings': 4, 'vehicle': {'length': 4.0, 'width': 2.0}})
    lookups = builder.build_collision_lookup(1.0)
    assert len(lookups) == 4
    assert builder.build_collision_lookup(1.0) is lookups
    for offsets in lookups:
        assert offsets.ndim == 2 and offsets.shape[1] == 2
        assert [0, 0] in offsets.tolist()
    finer = builder.build_collision_lookup(0.5)
    assert len(finer[0]) > len(lookups[0])


def test_configuration_space_checks():
    cspace = ConfigurationSpace(headings=8)
    assert cspace.is_traversable(Node2D(1, 1)) is False  # no grid yet

    grid = make_grid(width=10, height=10, occupied=[(3, 3)])
    cspace.update_grid(build_binary_obstacle_grid(grid))
    assert cspace.is_traversable(Node2D(1, 1))
    assert not cspace.is_traversable(Node2D(3, 3))
    assert not cspace.is_traversable(Node2D(10, 0))
    assert cspace.is_traversable(Node3D(7.5, 7.5, 0.0))
    assert not cspace.is_traversable(Node3D(3.5, 3.5, 0.0))
    # footprint sticks out of the grid
    assert not cspace.is_traversable(Node3D(0.2, 5.5, 0.0))


def test_node_buffers_are_scoped():
    with NodeBuffers(4, 3, 8) as buffers:
        assert buffers.allocated
        assert buffers.nodes3d.size == 4 * 3 * 8
        assert buffers.nodes2d.size == 4 * 3
        assert not buffers.nodes3d['open'].any()
        assert not buffers.nodes3d['g'].any()
    assert not buffers.allocated
    assert buffers.nodes3d is None and buffers.nodes2d is None


def test_node_buffers_released_on_error():
    with pytest.raises(RuntimeError):
        with NodeBuffers(2, 2, 2) as buffers:
            raise RuntimeError("search failed")
    assert not buffers.allocated


def test_node_index_layout():
    node = Node3D(2.7, 1.2, math.pi)
    assert node.heading_bin(8) == 4
    assert node.index(5, 4, 8) == 4 * 5 * 4 + 1 * 5 + 2
    assert Node2D(2, 1).index(5) == 7
