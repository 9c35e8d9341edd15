# planning/state_search/configuration_space.py

import logging
import numpy as np

from .lookup_tables import LookupTableBuilder
from .node_types import Node3D

logger = logging.getLogger(__name__)


class ConfigurationSpace:
    """
    Collision representation consumed by the search: the binary obstacle
    grid plus the vehicle footprint per heading bin.
    """
    def __init__(self, lookup_builder=None, headings=72):
        """
        Args:
            lookup_builder (LookupTableBuilder, optional): Source of the footprint tables.
            headings (int): Number of heading bins of the footprint table.
        """
        self.lookup_builder = lookup_builder if lookup_builder is not None else LookupTableBuilder({'headings': headings})
        self.headings = self.lookup_builder.headings
        self.obstacles = None
        self.width = 0
        self.height = 0
        self._footprints = None
        logger.info("ConfigurationSpace initialized.")

    def update_grid(self, obstacles, cell_size=1.0):
        """
        Replaces the obstacle grid.

        Args:
            obstacles (numpy.ndarray): bool array of shape (width, height), True where occupied.
            cell_size (float): World units per cell of the new grid.
        """
        self.obstacles = np.asarray(obstacles, dtype=bool)
        self.width, self.height = self.obstacles.shape
        self._footprints = self.lookup_builder.build_collision_lookup(cell_size)
        logger.debug(f"Configuration space updated: {self.width}x{self.height}, "
                     f"{int(np.count_nonzero(self.obstacles))} occupied cells.")

    def is_cell_free(self, x, y):
        """True if integer cell (x, y) is on the grid and not occupied."""
        if self.obstacles is None:
            return False
        return 0 <= x < self.width and 0 <= y < self.height and not self.obstacles[x, y]

    def is_traversable(self, node):
        """
        Checks a search node against the grid.

        Node2D instances are checked as a single cell; Node3D instances with
        the full vehicle footprint of their heading bin.
        """
        if self.obstacles is None:
            logger.warning("ConfigurationSpace queried before any grid was received.")
            return False

        cx = int(node.x)
        cy = int(node.y)
        if not isinstance(node, Node3D):
            return self.is_cell_free(cx, cy)

        if not node.is_on_grid(self.width, self.height):
            return False
        offsets = self._footprints[node.heading_bin(self.headings)]
        xs = cx + offsets[:, 0]
        ys = cy + offsets[:, 1]
        if xs.min() < 0 or ys.min() < 0 or xs.max() >= self.width or ys.max() >= self.height:
            return False
        return not self.obstacles[xs, ys].any()
