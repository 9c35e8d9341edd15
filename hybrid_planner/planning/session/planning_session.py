# planning/session/planning_session.py

import logging
import math
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from hybrid_planner.maps.map_data_structure import OccupancyGrid
from hybrid_planner.utils.coordinate_transformer import normalize_heading, quaternion_from_yaw

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pose:
    """World-frame pose. The heading is normalized to [0, 2*pi) on construction."""
    x: float
    y: float
    heading: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, 'x', float(self.x))
        object.__setattr__(self, 'y', float(self.y))
        object.__setattr__(self, 'heading', normalize_heading(float(self.heading)))

    def __repr__(self):
        return f"Pose(x={self.x:.3f}, y={self.y:.3f}, t={math.degrees(self.heading):.1f}deg)"


@dataclass(frozen=True)
class StampedPose:
    """A pose tagged with a frame and a timestamp, as echoed for observers."""
    pose: Pose
    frame_id: str = "map"
    stamp: float = field(default_factory=time.time)

    @property
    def orientation(self):
        return quaternion_from_yaw(self.pose.heading)


@dataclass(frozen=True)
class PlanningSession:
    """
    Everything the planner knows about the current request: the latest map,
    the cached start and goal poses and whether each passed validation.

    Sessions are values; every update returns a new session.
    """
    grid: Optional[OccupancyGrid] = None
    start: Optional[Pose] = None
    goal: Optional[Pose] = None
    valid_start: bool = False
    valid_goal: bool = False

    @property
    def is_ready(self):
        return self.valid_start and self.valid_goal and self.grid is not None

    def with_grid(self, grid):
        return replace(self, grid=grid)

    def with_start(self, pose, valid=True):
        if valid:
            return replace(self, start=pose, valid_start=True)
        return replace(self, valid_start=False)

    def with_goal(self, pose, valid=True):
        if valid:
            return replace(self, goal=pose, valid_goal=True)
        return replace(self, valid_goal=False)


def pose_in_bounds(pose, grid):
    """
    True iff the pose lies inside the grid's world extent (bounds inclusive).
    """
    dx = pose.x - grid.origin_x
    dy = pose.y - grid.origin_y
    return 0.0 <= dx <= grid.world_width and 0.0 <= dy <= grid.world_height


class PoseValidator:
    """
    Checks incoming start and goal poses against the current grid and folds
    accepted poses into the planning session.

    Rejections are never errors: the pose is logged and the session is
    returned unchanged, which simply withholds planning.
    """
    def __init__(self, manual=True, start_publisher=None, frame_id="map"):
        """
        Args:
            manual (bool): In manual mode an accepted pose immediately triggers planning.
            start_publisher (Publisher, optional): Where accepted starts are echoed.
            frame_id (str): Frame used for the start echo.
        """
        self.manual = manual
        self.start_publisher = start_publisher
        self.frame_id = frame_id

    def validate(self, pose, grid):
        """
        Args:
            pose (Pose): World-frame pose.
            grid (OccupancyGrid or None): The current map.

        Returns:
            bool: Whether the pose lies inside the grid.
        """
        if grid is None:
            logger.warning(f"No map received yet, cannot validate {pose}.")
            return False
        return pose_in_bounds(pose, grid)

    def set_start(self, session: PlanningSession, pose: Pose,
                  trigger: Optional[Callable[[PlanningSession], object]] = None) -> PlanningSession:
        """
        Validates and caches a new start pose.

        Args:
            session (PlanningSession): The current session.
            pose (Pose): Proposed start.
            trigger (callable, optional): Invoked with the updated session in manual mode.

        Returns:
            PlanningSession: The updated session (unchanged on rejection).
        """
        logger.info(f"I am seeing a new start x:{pose.x:.3f} y:{pose.y:.3f} "
                    f"t:{math.degrees(pose.heading):.2f}")

        if not self.validate(pose, session.grid):
            logger.warning(f"invalid start x:{pose.x:.3f} y:{pose.y:.3f} "
                           f"t:{math.degrees(pose.heading):.2f}")
            return session

        session = session.with_start(pose)

        if self.manual and trigger is not None:
            trigger(session)

        # echo the accepted start for visualization tooling
        if self.start_publisher is not None:
            self.start_publisher.publish(StampedPose(pose=pose, frame_id=self.frame_id))

        return session

    def set_goal(self, session: PlanningSession, pose: Pose,
                 trigger: Optional[Callable[[PlanningSession], object]] = None) -> PlanningSession:
        """
        Validates and caches a new goal pose. Same contract as set_start, without the echo.
        """
        logger.info(f"I am seeing a new goal x:{pose.x:.3f} y:{pose.y:.3f} "
                    f"t:{math.degrees(pose.heading):.2f}")

        if not self.validate(pose, session.grid):
            logger.warning(f"invalid goal x:{pose.x:.3f} y:{pose.y:.3f} "
                           f"t:{math.degrees(pose.heading):.2f}")
            return session

        session = session.with_goal(pose)

        if self.manual and trigger is not None:
            trigger(session)

        return session
