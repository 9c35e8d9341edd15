# utils/geometry_utils.py

import logging
import math
import numpy as np

logger = logging.getLogger(__name__)


def kmph_to_mps(velocity_kmph):
    """Converts a speed in km/h to m/s."""
    return (velocity_kmph * 1000.0) / (60.0 * 60.0)


def bearing(from_point, to_point):
    """
    Heading (radians, atan2 convention) of the segment from one point to another.
    0 is +X, pi/2 is +Y.
    """
    x1, y1 = _xy(from_point)
    x2, y2 = _xy(to_point)
    return math.atan2(y2 - y1, x2 - x1)


def rotate_point_2d(point_x, point_y, angle_rad, origin_x=0, origin_y=0):
    """
    Rotates a 2D point (point_x, point_y) around an origin (origin_x, origin_y) by an angle in radians.
    Returns the rotated point as a numpy array [new_x, new_y].
    """
    # Translate point so origin is at (0,0)
    translated_x = point_x - origin_x
    translated_y = point_y - origin_y

    rotated_x = translated_x * math.cos(angle_rad) - translated_y * math.sin(angle_rad)
    rotated_y = translated_x * math.sin(angle_rad) + translated_y * math.cos(angle_rad)

    return np.array([rotated_x + origin_x, rotated_y + origin_y])


def _xy(point):
    if hasattr(point, 'x') and hasattr(point, 'y'):
        return point.x, point.y
    return point[0], point[1]
