# main_planner_node.py

import argparse
import logging
import math

from hybrid_planner.maps.map_ingestor import MapIngestor
from hybrid_planner.maps.transform_provider import StaticTransformProvider
from hybrid_planner.maps.voronoi_diagram import DynamicVoronoi
from hybrid_planner.messaging.event_dispatcher import EVENT_GOAL, EVENT_MAP, EVENT_START, EventDispatcher
from hybrid_planner.messaging.message_parser import MessageParser
from hybrid_planner.messaging.topic_bus import TopicBus
from hybrid_planner.planning.orchestration.planning_orchestrator import PlanningOrchestrator
from hybrid_planner.planning.path_processing.path_exporter import PathExporter, SearchVisualization
from hybrid_planner.planning.path_processing.path_smoother import PathSmoother
from hybrid_planner.planning.session.planning_session import Pose, PoseValidator
from hybrid_planner.planning.state_search.algorithms.hybrid_a_star_planner import HybridAStarSearch
from hybrid_planner.planning.state_search.configuration_space import ConfigurationSpace
from hybrid_planner.planning.state_search.lookup_tables import LookupTableBuilder
from hybrid_planner.utils.config_reader import ConfigReader, load_yaml_file

logger = logging.getLogger(__name__)


class PlannerNode:
    """
    Wires the planner together on a topic bus: subscribes to map, start and
    goal topics, feeds them through the event dispatcher into the
    orchestrator and publishes the start echo and the latched lanes.
    """
    def __init__(self, config, bus=None, transform_provider=None, search_engine=None, smoother=None):
        """
        Args:
            config (dict): Full planner configuration (see config/planner_config.yaml).
            bus (TopicBus, optional): Transport; a private bus is created if omitted.
            transform_provider (TransformProvider, optional): Vehicle pose source for autonomous mode.
            search_engine (optional): Replaces the default HybridAStarSearch.
            smoother (optional): Replaces the default PathSmoother.
        """
        self.config = config
        planner_cfg = dict(config.get('planner', {}))
        topics = config.get('topics', {})
        vehicle_cfg = config.get('vehicle', {})
        search_cfg = dict(config.get('search', {}))
        search_cfg.setdefault('headings', planner_cfg.get('headings', 72))

        self.manual = planner_cfg.get('manual', True)
        self.frame_id = planner_cfg.get('frame_id', 'map')
        self.bus = bus if bus is not None else TopicBus()
        self.transform_provider = transform_provider if transform_provider is not None else StaticTransformProvider()
        self.parser = MessageParser()
        self.dispatcher = EventDispatcher()

        # _________________
        # TOPICS TO PUBLISH
        self.start_publisher = self.bus.advertise(topics.get('start_echo', '/move_base_simple/start'))
        self.lane_publisher = self.bus.advertise(topics.get('lanes', '/based/lane_waypoints_raw'), latch=True)
        voronoi_publisher = self.bus.advertise(topics.get('voronoi', '/voronoi'))
        nodes_publisher = self.bus.advertise(topics.get('search_nodes', '/visualizeNodes3DPoses'))

        # _____________
        # COLLABORATORS
        self.lookup_builder = LookupTableBuilder({**search_cfg, 'vehicle': vehicle_cfg})
        if planner_cfg.get('warm_up_lookups', False):
            self.lookup_builder.warm_up(dubins=planner_cfg.get('dubins_lookup', False))
        self.configuration_space = ConfigurationSpace(self.lookup_builder)
        self.voronoi = DynamicVoronoi(voronoi_publisher)
        self.search_engine = search_engine if search_engine is not None else HybridAStarSearch(search_cfg)
        self.smoother = smoother if smoother is not None else PathSmoother(config.get('smoother', {}),
                                                                           self.configuration_space)
        self.validator = PoseValidator(manual=self.manual, start_publisher=self.start_publisher,
                                       frame_id=self.frame_id)
        self.map_ingestor = MapIngestor(self.configuration_space, self.voronoi, self.validator,
                                        transform_provider=self.transform_provider, manual=self.manual,
                                        map_frame=self.frame_id,
                                        base_frame=planner_cfg.get('base_frame_id', 'base_link'))
        self.orchestrator = PlanningOrchestrator(
            self.search_engine, self.configuration_space, self.smoother, self.validator, self.map_ingestor,
            lookup_builder=self.lookup_builder,
            path_exporter=PathExporter(self.bus, topics, self.frame_id, vehicle_cfg),
            visualization=SearchVisualization(nodes_publisher),
            lane_publisher=self.lane_publisher,
            config=planner_cfg)

        self.dispatcher.register(EVENT_MAP, self.orchestrator.handle_map)
        self.dispatcher.register(EVENT_START, self.orchestrator.handle_start)
        self.dispatcher.register(EVENT_GOAL, self.orchestrator.handle_goal)

        # ___________________
        # TOPICS TO SUBSCRIBE
        map_topic = topics.get('map_manual', '/map') if self.manual else topics.get('map_autonomous', '/occ_map')
        self.bus.subscribe(map_topic, self.on_map)
        self.bus.subscribe(topics.get('goal', '/move_base_simple/goal'), self.on_goal)
        self.bus.subscribe(topics.get('start', '/astar/initialpose'), self.on_start)

        logger.info(f"PlannerNode initialized ({'manual' if self.manual else 'autonomous'} mode, "
                    f"map topic {map_topic}).")

    def on_map(self, msg):
        self.dispatcher.post(EVENT_MAP, self.parser.parse_occupancy_grid(msg))

    def on_goal(self, msg):
        self.dispatcher.post(EVENT_GOAL, self.parser.parse_pose_stamped(msg))

    def on_start(self, msg):
        self.dispatcher.post(EVENT_START, self.parser.parse_pose_with_covariance(msg))

    def spin_once(self):
        """Processes all queued events on the calling thread."""
        return self.dispatcher.dispatch_pending()


def replay_scenario(node, scenario, topics):
    """
    Publishes the messages of a scenario document on the node's bus and
    processes them. Keys: 'vehicle_pose' ({'x', 'y', 'heading'}), 'map', 'goal', 'start'.
    """
    vehicle_pose = scenario.get('vehicle_pose')
    if vehicle_pose is not None:
        node.transform_provider.set_transform(node.frame_id, node.map_ingestor.base_frame,
                                              Pose(vehicle_pose['x'], vehicle_pose['y'],
                                                   vehicle_pose.get('heading', 0.0)))
    if 'map' in scenario:
        map_topic = topics.get('map_manual', '/map') if node.manual else topics.get('map_autonomous', '/occ_map')
        node.bus.publish(map_topic, scenario['map'])
        node.spin_once()
    if 'goal' in scenario:
        node.bus.publish(topics.get('goal', '/move_base_simple/goal'), scenario['goal'])
        node.spin_once()
    if 'start' in scenario:
        node.bus.publish(topics.get('start', '/astar/initialpose'), scenario['start'])
        node.spin_once()
    if not node.manual and 'map' in scenario:
        # with the goal known, a map refresh triggers planning from the vehicle pose
        node.bus.publish(topics.get('map_autonomous', '/occ_map'), scenario['map'])
        node.spin_once()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Hybrid A* lane planner")
    parser.add_argument("--config", default=None, help="Path to the planner YAML configuration")
    parser.add_argument("--scenario", default=None, help="YAML file with map/start/goal messages to replay")
    args = parser.parse_args(argv)

    config = ConfigReader(args.config).load_config()
    if config is None:
        logging.basicConfig(level=logging.INFO)
        logger.error("Failed to load configuration. Exiting.")
        return 1

    logging_cfg = config.get('logging', {})
    logging.basicConfig(level=getattr(logging, str(logging_cfg.get('level', 'INFO')).upper(), logging.INFO),
                        format=logging_cfg.get('format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    logger.info("Starting Hybrid A* lane planner...")

    node = PlannerNode(config)
    topics = config.get('topics', {})
    node.bus.subscribe(topics.get('lanes', '/based/lane_waypoints_raw'), _log_lanes)

    if args.scenario is None:
        logger.info("No scenario given, planner is idle.")
        return 0

    scenario = load_yaml_file(args.scenario)
    if not isinstance(scenario, dict):
        logger.error(f"Scenario {args.scenario} could not be loaded.")
        return 1

    replay_scenario(node, scenario, topics)
    if node.orchestrator.last_lanes is None:
        logger.warning("Scenario finished without a published lane.")
        return 2
    return 0


def _log_lanes(lanes):
    for lane in lanes.lanes:
        for i, wp in enumerate(lane.waypoints):
            logger.info(f"waypoint {i}: x={wp.x:.2f} y={wp.y:.2f} yaw={math.degrees(wp.yaw):.1f}deg "
                        f"v={wp.speed:.2f}m/s")


if __name__ == '__main__':
    raise SystemExit(main())
