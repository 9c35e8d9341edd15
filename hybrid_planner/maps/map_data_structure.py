# maps/map_data_structure.py

import logging
import numpy as np

logger = logging.getLogger(__name__)


class OccupancyGrid:
    """
    A received occupancy map.

    Cells are stored row-major (index = y * width + x); any non-zero value
    marks the cell as occupied. Instances are treated as immutable and are
    replaced wholesale whenever a new map arrives.
    """
    def __init__(self, width, height, cell_size, origin_x=0.0, origin_y=0.0, data=None, frame_id="map"):
        """
        Args:
            width (int): Number of cells along x.
            height (int): Number of cells along y.
            cell_size (float): World units per cell.
            origin_x (float): World x of cell (0, 0).
            origin_y (float): World y of cell (0, 0).
            data (sequence, optional): width * height occupancy values. Defaults to all free.
            frame_id (str): Frame the origin is expressed in.
        """
        width = int(width)
        height = int(height)
        if width <= 0 or height <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {width}x{height}")
        if cell_size <= 0:
            raise ValueError(f"Grid cell size must be positive, got {cell_size}")

        if data is None:
            cells = np.zeros(width * height, dtype=np.int8)
        else:
            cells = np.asarray(data, dtype=np.int8).reshape(-1)
        if cells.size != width * height:
            raise ValueError(f"Grid data has {cells.size} cells, expected {width * height}")
        cells.setflags(write=False)

        self.width = width
        self.height = height
        self.cell_size = float(cell_size)
        self.origin_x = float(origin_x)
        self.origin_y = float(origin_y)
        self.data = cells
        self.frame_id = frame_id

    @property
    def world_width(self):
        """Extent of the grid along x in world units."""
        return self.width * self.cell_size

    @property
    def world_height(self):
        """Extent of the grid along y in world units."""
        return self.height * self.cell_size

    def __repr__(self):
        return (f"OccupancyGrid({self.width}x{self.height}, cell_size={self.cell_size}, "
                f"origin=({self.origin_x:.2f}, {self.origin_y:.2f}), "
                f"occupied={int(np.count_nonzero(self.data))})")


def build_binary_obstacle_grid(grid):
    """
    Converts an occupancy grid into a boolean obstacle array.

    Args:
        grid (OccupancyGrid): The source map.

    Returns:
        numpy.ndarray: bool array of shape (width, height), indexed [x, y],
                       True where the occupancy value is non-zero.
    """
    # Row-major data reshapes to [y, x]; transpose to the [x, y] layout consumers index with
    obstacles = grid.data.reshape(grid.height, grid.width).T != 0
    return np.ascontiguousarray(obstacles)
