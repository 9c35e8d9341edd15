# planning/waypoints/waypoint_builder.py

import logging
import time

from hybrid_planner.utils.geometry_utils import bearing, kmph_to_mps
from .lane_data_structure import WAYPOINT_Z_SENTINEL, Lane, LaneCollection, Waypoint, WaypointState

logger = logging.getLogger(__name__)


class WaypointBuilder:
    """
    Converts a traced world-frame path into a lane of drive targets for the
    trajectory follower.
    """
    def __init__(self, config=None, clock=time.time):
        """
        Args:
            config (dict, optional): Expected keys: 'cruise_speed_kmph', 'waypoint_z_sentinel', 'frame_id'.
            clock (callable): Returns the timestamp stamped on built lanes.
        """
        self.config = config if config is not None else {}
        self.cruise_speed = kmph_to_mps(self.config.get('cruise_speed_kmph', 10.0))
        self.z_sentinel = self.config.get('waypoint_z_sentinel', WAYPOINT_Z_SENTINEL)
        self.frame_id = self.config.get('frame_id', 'map')
        self.clock = clock

    def build(self, poses):
        """
        Args:
            poses (list): World-frame Pose sequence in trace order (goal first, start last).

        Returns:
            LaneCollection: One lane whose waypoints run from start to goal. The lane
                            is empty when poses is empty.
        """
        waypoints = [
            Waypoint(x=pose.x, y=pose.y, z=self.z_sentinel, speed=self.cruise_speed,
                     change_flag=0, state=WaypointState())
            for pose in poses
        ]
        # traced goal -> start, published start -> goal
        waypoints.reverse()

        if len(waypoints) == 1:
            waypoints[0].yaw = poses[0].heading
        elif waypoints:
            for current, following in zip(waypoints, waypoints[1:]):
                current.yaw = bearing(current, following)
            waypoints[-1].yaw = waypoints[-2].yaw
        else:
            logger.info("No poses to convert, building an empty lane.")

        lane = Lane(waypoints=waypoints, frame_id=self.frame_id, stamp=self.clock())
        return LaneCollection(lanes=[lane])
