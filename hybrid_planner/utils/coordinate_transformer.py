# utils/coordinate_transformer.py

import logging
import math
import numpy as np

logger = logging.getLogger(__name__)

TWO_PI = 2.0 * math.pi


def world_to_grid(pos, origin, cell_size):
    """
    Converts a world-frame coordinate (metres) into continuous grid-cell units.

    Works on scalars as well as numpy arrays.
    """
    return (pos - origin) / cell_size


def grid_to_world(cell, origin, cell_size):
    """Converts continuous grid-cell units back into a world-frame coordinate."""
    return origin + cell * cell_size


def normalize_heading(theta):
    """
    Maps an angle in radians into [0, 2*pi).

    Args:
        theta (float): Angle in radians, any range.

    Returns:
        float: The equivalent angle in [0, 2*pi).
    """
    theta = math.fmod(theta, TWO_PI)
    if theta < 0.0:
        theta += TWO_PI
    # fmod of a tiny negative value can round up to exactly 2*pi
    if theta >= TWO_PI:
        theta = 0.0
    return theta


def yaw_from_quaternion(x, y, z, w):
    """
    Extracts the yaw (rotation about z) of a quaternion.

    Returns:
        float: Yaw in radians in (-pi, pi].
    """
    siny_cosp = 2.0 * (w * z + x * y)
    cosy_cosp = 1.0 - 2.0 * (y * y + z * z)
    return math.atan2(siny_cosp, cosy_cosp)


def quaternion_from_yaw(yaw):
    """
    Builds a planar rotation quaternion from a yaw angle.

    Returns:
        dict: {'x', 'y', 'z', 'w'} components.
    """
    half = 0.5 * yaw
    return {'x': 0.0, 'y': 0.0, 'z': math.sin(half), 'w': math.cos(half)}


class CoordinateTransformer:
    """
    Handles coordinate transformations between the world (map) frame and
    the continuous grid-cell frame used by the search engine:
    - World frame: metres, relative to the map frame origin.
    - Grid frame: cell units, relative to the occupancy grid origin.
    Headings are shared between both frames and kept in [0, 2*pi).
    """
    def __init__(self, origin_x=0.0, origin_y=0.0, cell_size=1.0):
        """
        Initializes the CoordinateTransformer.

        Args:
            origin_x (float): World x of the grid origin.
            origin_y (float): World y of the grid origin.
            cell_size (float): World units per grid cell.
        """
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self.origin_x = origin_x
        self.origin_y = origin_y
        self.cell_size = cell_size

    @classmethod
    def from_grid(cls, grid):
        """Builds a transformer matching an OccupancyGrid's origin and resolution."""
        return cls(grid.origin_x, grid.origin_y, grid.cell_size)

    def world_to_grid(self, x, y, heading=0.0):
        """
        Converts a world pose into grid units.

        Returns:
            tuple: (grid_x, grid_y, heading) with the heading normalized.
        """
        return (world_to_grid(x, self.origin_x, self.cell_size),
                world_to_grid(y, self.origin_y, self.cell_size),
                normalize_heading(heading))

    def grid_to_world(self, x, y, heading=0.0):
        """
        Converts a grid pose into world units.

        Returns:
            tuple: (world_x, world_y, heading) with the heading normalized.
        """
        return (grid_to_world(x, self.origin_x, self.cell_size),
                grid_to_world(y, self.origin_y, self.cell_size),
                normalize_heading(heading))

    def grid_points_to_world(self, points):
        """
        Vectorised conversion of an (N, 2) or (N, 3) array of grid points.

        Returns:
            numpy.ndarray: A new array with x/y converted, any heading column untouched.
        """
        world = np.array(points, dtype=float, copy=True)
        if world.size == 0:
            return world
        world[:, 0] = grid_to_world(world[:, 0], self.origin_x, self.cell_size)
        world[:, 1] = grid_to_world(world[:, 1], self.origin_y, self.cell_size)
        return world

    def __repr__(self):
        return (f"CoordinateTransformer(origin=({self.origin_x:.2f}, {self.origin_y:.2f}), "
                f"cell_size={self.cell_size})")
