# planning/orchestration/planning_orchestrator.py

import enum
import logging
import time

from hybrid_planner.planning.path_processing.path_synthesizer import PathSynthesizer
from hybrid_planner.planning.session.planning_session import PlanningSession
from hybrid_planner.planning.state_search.node_types import Node3D, NodeBuffers
from hybrid_planner.planning.waypoints.waypoint_builder import WaypointBuilder
from hybrid_planner.utils.coordinate_transformer import CoordinateTransformer

logger = logging.getLogger(__name__)


class PlannerState(enum.Enum):
    AWAITING_INPUTS = "awaiting_inputs"
    READY = "ready"
    PLANNING = "planning"


class PlanningOrchestrator:
    """
    Owns the planning session and decides when to plan.

    Inbound events update the session through the map ingestor and the pose
    validator; whenever a pose is accepted in manual mode, or a map arrives
    with a usable vehicle transform in autonomous mode, plan() runs the
    search, traces the result and publishes the resulting lane.
    """
    def __init__(self, search_engine, configuration_space, smoother, validator, map_ingestor,
                 lookup_builder=None, path_exporter=None, visualization=None,
                 lane_publisher=None, config=None):
        """
        Initializes the PlanningOrchestrator.

        Args:
            search_engine: Provides search(start, goal, nodes3d, nodes2d, width, height,
                           configuration_space, dubins_lookup, visualization).
            configuration_space (ConfigurationSpace): Passed through to the search.
            smoother: Provides trace_path(node) and get_path().
            validator (PoseValidator): Start/goal validation.
            map_ingestor (MapIngestor): Map handling.
            lookup_builder (LookupTableBuilder, optional): Source of the Dubins lookup.
            path_exporter (PathExporter, optional): Publishes the raw path for observers.
            visualization (SearchVisualization, optional): Collects expanded nodes.
            lane_publisher (Publisher, optional): Latched lane collection output.
            config (dict, optional): The 'planner' configuration section.
                                     Expected keys: 'headings', 'dubins_lookup' plus the
                                     waypoint keys understood by WaypointBuilder.
        """
        self.config = config if config is not None else {}
        self.headings = self.config.get('headings', 72)
        self.use_dubins_lookup = self.config.get('dubins_lookup', False)

        self.search_engine = search_engine
        self.configuration_space = configuration_space
        self.validator = validator
        self.map_ingestor = map_ingestor
        self.lookup_builder = lookup_builder
        self.path_exporter = path_exporter
        self.visualization = visualization
        self.lane_publisher = lane_publisher
        self.path_synthesizer = PathSynthesizer(smoother)
        self.waypoint_builder = WaypointBuilder(self.config)

        self._session = PlanningSession()
        self._planning = False
        self.last_lanes = None
        self.plan_count = 0

        logger.info("PlanningOrchestrator initialized.")

    @property
    def session(self):
        return self._session

    @property
    def state(self):
        if self._planning:
            return PlannerState.PLANNING
        if self._session.valid_start and self._session.valid_goal:
            return PlannerState.READY
        return PlannerState.AWAITING_INPUTS

    # --- event handlers ---

    def handle_map(self, grid):
        self._session = self.map_ingestor.set_map(self._session, grid, trigger=self.trigger)

    def handle_start(self, pose):
        self._session = self.validator.set_start(self._session, pose, trigger=self.trigger)

    def handle_goal(self, pose):
        self._session = self.validator.set_goal(self._session, pose, trigger=self.trigger)

    def trigger(self, session):
        """Adopts the given session and re-evaluates whether to plan."""
        self._session = session
        return self.plan()

    # --- planning ---

    def plan(self):
        """
        Plans from the cached start to the cached goal if both are valid.

        Returns:
            LaneCollection or None: The published lanes, or None when planning was
                                    skipped, failed, or found no path.
        """
        session = self._session
        if not session.is_ready:
            logger.info("missing goal or start")
            return None

        self._planning = True
        try:
            return self._run_cycle(session)
        finally:
            self._planning = False

    def _run_cycle(self, session):
        grid = session.grid
        transformer = CoordinateTransformer.from_grid(grid)

        goal = Node3D(*transformer.world_to_grid(session.goal.x, session.goal.y, session.goal.heading))
        start = Node3D(*transformer.world_to_grid(session.start.x, session.start.y, session.start.heading))
        logger.info(f"goal: {goal.x:.3f}, {goal.y:.3f}")
        logger.info(f"start: {start.x:.3f}, {start.y:.3f}")

        if self.visualization is not None:
            self.visualization.clear()
        if self.path_exporter is not None:
            self.path_exporter.clear()

        start_time = time.time()
        try:
            with NodeBuffers(grid.width, grid.height, self.headings) as buffers:
                dubins_lookup = None
                if self.use_dubins_lookup and self.lookup_builder is not None:
                    dubins_lookup = self.lookup_builder.build_dubins_lookup()

                solution = self.search_engine.search(start, goal, buffers.nodes3d, buffers.nodes2d,
                                                     grid.width, grid.height, self.configuration_space,
                                                     dubins_lookup, self.visualization)
        except MemoryError:
            logger.error(f"Could not allocate node buffers for a "
                         f"{grid.width}x{grid.height}x{self.headings} search.")
            return None
        except Exception as e:
            logger.exception(f"Search failed: {e}")
            return None
        logger.debug(f"Search took {(time.time() - start_time) * 1000:.1f} ms.")

        try:
            poses = self.path_synthesizer.trace(solution, transformer)
            if self.path_exporter is not None:
                self.path_exporter.update_path(poses)
                self.path_exporter.publish_path()
                self.path_exporter.publish_path_nodes()
                self.path_exporter.publish_path_vehicles()

            lanes = self.waypoint_builder.build(poses)
        except Exception as e:
            logger.exception(f"Could not turn the search result into a lane: {e}")
            return None

        if lanes.is_empty:
            logger.warning("No path found, nothing published.")
            return None

        self.last_lanes = lanes
        self.plan_count += 1
        if self.lane_publisher is not None:
            self.lane_publisher.publish(lanes)
        logger.info(f"Published lane with {len(lanes.lanes[0])} waypoints.")
        return lanes
