# messaging/message_parser.py

import logging

from hybrid_planner.maps.map_data_structure import OccupancyGrid
from hybrid_planner.planning.session.planning_session import Pose
from hybrid_planner.utils.coordinate_transformer import yaw_from_quaternion

logger = logging.getLogger(__name__)


class MessageParser:
    """
    Parses inbound messages (plain dictionaries shaped like the ROS
    nav_msgs/geometry_msgs types) into the planner's own types.

    Malformed messages are logged and reported as None; they never raise.
    """
    def parse_occupancy_grid(self, msg):
        """
        Args:
            msg (dict): {'info': {'width', 'height', 'resolution',
                                  'origin': {'position': {'x', 'y'}}},
                         'data': [...], 'header': {'frame_id'} (optional)}

        Returns:
            OccupancyGrid or None
        """
        if not isinstance(msg, dict):
            logger.warning(f"Skipping invalid map message format: {type(msg).__name__}")
            return None
        try:
            info = msg['info']
            position = info.get('origin', {}).get('position', {})
            frame_id = msg.get('header', {}).get('frame_id', 'map')
            return OccupancyGrid(width=info['width'], height=info['height'],
                                 cell_size=info.get('resolution', 1.0),
                                 origin_x=position.get('x', 0.0), origin_y=position.get('y', 0.0),
                                 data=msg.get('data'), frame_id=frame_id)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed map message: {e}")
            return None

    def parse_pose_stamped(self, msg):
        """
        Args:
            msg (dict): {'pose': {'position': {'x', 'y'}, 'orientation': {'x', 'y', 'z', 'w'}}}

        Returns:
            Pose or None
        """
        if not isinstance(msg, dict) or not isinstance(msg.get('pose'), dict):
            logger.warning(f"Skipping invalid pose message: {msg}")
            return None
        return self._parse_pose(msg['pose'])

    def parse_pose_with_covariance(self, msg):
        """
        Args:
            msg (dict): {'pose': {'pose': {...}, 'covariance': [...]}}; the covariance is ignored.

        Returns:
            Pose or None
        """
        if not isinstance(msg, dict) or not isinstance(msg.get('pose'), dict):
            logger.warning(f"Skipping invalid initial pose message: {msg}")
            return None
        inner = msg['pose'].get('pose')
        if not isinstance(inner, dict):
            logger.warning(f"Initial pose message carries no pose: {msg}")
            return None
        return self._parse_pose(inner)

    def _parse_pose(self, pose):
        try:
            position = pose['position']
            orientation = pose.get('orientation', {'x': 0.0, 'y': 0.0, 'z': 0.0, 'w': 1.0})
            heading = yaw_from_quaternion(orientation.get('x', 0.0), orientation.get('y', 0.0),
                                          orientation.get('z', 0.0), orientation.get('w', 1.0))
            return Pose(position['x'], position['y'], heading)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed pose: {e}")
            return None
