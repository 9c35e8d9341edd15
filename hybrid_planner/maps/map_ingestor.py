# maps/map_ingestor.py

import logging

from hybrid_planner.planning.session.planning_session import PlanningSession, Pose
from .map_data_structure import build_binary_obstacle_grid

logger = logging.getLogger(__name__)


class MapIngestor:
    """
    Handles incoming occupancy maps: caches them in the session, feeds the
    binary obstacle grid to the collision and Voronoi collaborators and, in
    autonomous mode, derives the start pose from the vehicle transform.
    """
    def __init__(self, configuration_space, voronoi, validator, transform_provider=None,
                 manual=True, map_frame="map", base_frame="base_link"):
        """
        Args:
            configuration_space: Provides update_grid(obstacles, cell_size).
            voronoi: Provides initialize_map(width, height, obstacles), update(), visualize().
            validator (PoseValidator): Bounds check for the transform-derived start.
            transform_provider (TransformProvider, optional): Source of the vehicle pose.
            manual (bool): In manual mode starts only come from explicit start events.
            map_frame (str): Frame the map is expressed in.
            base_frame (str): The vehicle's body frame.
        """
        self.configuration_space = configuration_space
        self.voronoi = voronoi
        self.validator = validator
        self.transform_provider = transform_provider
        self.manual = manual
        self.map_frame = map_frame
        self.base_frame = base_frame

    def set_map(self, session: PlanningSession, grid, trigger=None) -> PlanningSession:
        """
        Ingests a new map.

        Args:
            session (PlanningSession): The current session.
            grid (OccupancyGrid): The new map, replacing any previous one.
            trigger (callable, optional): Invoked with the updated session after a
                                          transform-derived start was evaluated.

        Returns:
            PlanningSession: The updated session.
        """
        logger.info(f"I am seeing the map... {grid}")
        session = session.with_grid(grid)

        obstacles = build_binary_obstacle_grid(grid)
        self.configuration_space.update_grid(obstacles, grid.cell_size)
        self.voronoi.initialize_map(grid.width, grid.height, obstacles)
        self.voronoi.update()
        self.voronoi.visualize()
        # the collaborators own the obstacle grid from here on
        del obstacles

        if self.manual or self.transform_provider is None:
            return session

        if not self.transform_provider.can_transform(self.map_frame, self.base_frame):
            logger.debug(f"No transform {self.base_frame} -> {self.map_frame} yet, skipping start update.")
            return session

        vehicle_pose = self.transform_provider.lookup(self.map_frame, self.base_frame)
        start = Pose(vehicle_pose.x, vehicle_pose.y, vehicle_pose.heading)
        valid = self.validator.validate(start, grid)
        if not valid:
            logger.warning(f"Vehicle pose {start} lies outside the map, start invalidated.")
        session = session.with_start(start, valid=valid)

        if trigger is not None:
            trigger(session)
        return session
