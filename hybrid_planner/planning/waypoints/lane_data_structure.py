# planning/waypoints/lane_data_structure.py

import time
from dataclasses import dataclass, field
from typing import List

from hybrid_planner.utils.coordinate_transformer import quaternion_from_yaw

# Marker z consumed by the downstream safety waypoint check, not a real height
WAYPOINT_Z_SENTINEL = -3893.38


@dataclass
class WaypointState:
    """Reserved behaviour flags; all neutral for planned waypoints."""
    steering_state: int = 0
    accel_state: int = 0
    stop_state: int = 0
    event_state: int = 0


@dataclass
class Waypoint:
    x: float
    y: float
    z: float = WAYPOINT_Z_SENTINEL
    yaw: float = 0.0
    speed: float = 0.0  # forward speed, m/s
    change_flag: int = 0
    state: WaypointState = field(default_factory=WaypointState)

    @property
    def orientation(self):
        return quaternion_from_yaw(self.yaw)


@dataclass
class Lane:
    waypoints: List[Waypoint] = field(default_factory=list)
    frame_id: str = "map"
    stamp: float = field(default_factory=time.time)

    def __len__(self):
        return len(self.waypoints)


@dataclass
class LaneCollection:
    lanes: List[Lane] = field(default_factory=list)

    @property
    def is_empty(self):
        return all(len(lane) == 0 for lane in self.lanes)
