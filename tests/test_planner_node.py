import copy
import math
import os

import pytest

from planner_doubles import LANE_TOPIC, START_TOPIC, StubSearchEngine
from hybrid_planner.main_planner_node import PlannerNode, main, replay_scenario
from hybrid_planner.maps.transform_provider import StaticTransformProvider
from hybrid_planner.messaging.topic_bus import TopicBus
from hybrid_planner.planning.session.planning_session import Pose
from hybrid_planner.utils.config_reader import DEFAULT_CONFIG_PATH, ConfigReader, load_yaml_file
from hybrid_planner.utils.coordinate_transformer import quaternion_from_yaw

DEMO_SCENARIO = os.path.join(os.path.dirname(DEFAULT_CONFIG_PATH), "demo_scenario.yaml")


@pytest.fixture
def config():
    return copy.deepcopy(ConfigReader().load_config())


def _map_msg(width=10, height=10):
    return {'header': {'frame_id': 'map'},
            'info': {'width': width, 'height': height, 'resolution': 1.0,
                     'origin': {'position': {'x': 0.0, 'y': 0.0}}},
            'data': [0] * (width * height)}


def _goal_msg(x, y, yaw):
    return {'pose': {'position': {'x': x, 'y': y}, 'orientation': quaternion_from_yaw(yaw)}}


def _start_msg(x, y, yaw):
    return {'pose': {'pose': {'position': {'x': x, 'y': y}, 'orientation': quaternion_from_yaw(yaw)},
                     'covariance': [0.0] * 36}}


def test_manual_mode_round_trip_over_the_bus(config, scenario_a_chain):
    bus = TopicBus()
    lanes, echoes = [], []
    bus.subscribe(LANE_TOPIC, lanes.append)
    bus.subscribe(START_TOPIC, echoes.append)
    engine = StubSearchEngine(scenario_a_chain)
    node = PlannerNode(config, bus=bus, search_engine=engine)

    bus.publish('/map', _map_msg())
    bus.publish('/astar/initialpose', _start_msg(1.0, 1.0, 0.0))
    bus.publish('/move_base_simple/goal', _goal_msg(8.0, 8.0, math.pi / 2))
    assert lanes == []
    assert node.spin_once() == 3

    assert len(lanes) == 1
    assert [(wp.x, wp.y) for wp in lanes[0].lanes[0].waypoints] == [(1.0, 1.0), (8.0, 8.0)]
    assert len(echoes) == 1 and echoes[0].pose == Pose(1.0, 1.0, 0.0)
    assert engine.calls[-1]['nodes3d_size'] == 10 * 10 * 72


def test_autonomous_map_topic_is_ignored_in_manual_mode(config):
    bus = TopicBus()
    node = PlannerNode(config, bus=bus, search_engine=StubSearchEngine())
    bus.publish('/occ_map', _map_msg())
    assert node.spin_once() == 0
    assert node.orchestrator.session.grid is None


def test_malformed_messages_are_dropped(config):
    bus = TopicBus()
    node = PlannerNode(config, bus=bus, search_engine=StubSearchEngine())
    bus.publish('/map', {'info': {}})
    bus.publish('/move_base_simple/goal', {'pose': None})
    assert node.spin_once() == 0


def test_malformed_goal_does_not_discard_pending_goal(config, scenario_a_chain):
    bus = TopicBus()
    lanes = []
    bus.subscribe(LANE_TOPIC, lanes.append)
    node = PlannerNode(config, bus=bus, search_engine=StubSearchEngine(scenario_a_chain))

    bus.publish('/map', _map_msg())
    bus.publish('/astar/initialpose', _start_msg(1.0, 1.0, 0.0))
    bus.publish('/move_base_simple/goal', _goal_msg(8.0, 8.0, math.pi / 2))
    bus.publish('/move_base_simple/goal', {'pose': {'position': {'y': 8.0}}})
    node.spin_once()

    assert node.orchestrator.session.valid_goal
    assert len(lanes) == 1


def test_autonomous_mode_plans_from_vehicle_pose(config, scenario_a_chain):
    config['planner']['manual'] = False
    bus = TopicBus()
    lanes = []
    bus.subscribe(LANE_TOPIC, lanes.append)
    provider = StaticTransformProvider()
    provider.set_transform('map', 'base_link', Pose(1.0, 1.0, 0.0))
    engine = StubSearchEngine(scenario_a_chain)
    node = PlannerNode(config, bus=bus, transform_provider=provider, search_engine=engine)

    # the goal is validated against a map, so one has to arrive first
    bus.publish('/occ_map', _map_msg())
    bus.publish('/move_base_simple/goal', _goal_msg(8.0, 8.0, math.pi / 2))
    node.spin_once()
    assert lanes == []
    assert node.orchestrator.session.valid_start and node.orchestrator.session.valid_goal

    bus.publish('/occ_map', _map_msg())
    node.spin_once()
    assert len(lanes) == 1
    assert engine.calls[-1]['start'] == pytest.approx((1.0, 1.0, 0.0))


def test_demo_scenario_with_hybrid_a_star(config):
    node = PlannerNode(config)
    replay_scenario(node, load_yaml_file(DEMO_SCENARIO), config['topics'])

    lanes = node.orchestrator.last_lanes
    assert lanes is not None
    waypoints = lanes.lanes[0].waypoints
    assert len(waypoints) > 2
    assert (waypoints[0].x, waypoints[0].y) == pytest.approx((6.5, 10.5))
    assert math.hypot(waypoints[-1].x - 32.5, waypoints[-1].y - 10.5) <= 1.0
    assert all(abs(wp.yaw) < 0.3 for wp in waypoints)
    assert node.bus.latest(LANE_TOPIC) is lanes


def test_main_replays_scenario():
    assert main(['--scenario', DEMO_SCENARIO]) == 0


def test_main_without_scenario_is_idle():
    assert main([]) == 0


def test_main_with_missing_config_fails(tmp_path):
    assert main(['--config', str(tmp_path / 'missing.yaml')]) == 1
