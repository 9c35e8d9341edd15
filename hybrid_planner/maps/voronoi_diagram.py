# maps/voronoi_diagram.py

import logging
import numpy as np
from scipy import ndimage as ndi

logger = logging.getLogger(__name__)

# 8-connectivity so diagonal obstacle cells form a single component
_CONNECTIVITY = np.ones((3, 3), dtype=bool)


class DynamicVoronoi:
    """
    Obstacle clearance map and generalized Voronoi diagram over a binary
    obstacle grid.

    The clearance of a free cell is its Euclidean distance (in cells) to the
    nearest obstacle. A free cell lies on the Voronoi diagram when a neighbour
    is closest to a different obstacle component, i.e. it sits on a ridge
    equidistant to two obstacles.
    """
    def __init__(self, publisher=None):
        """
        Args:
            publisher (Publisher, optional): Receives the diagram when visualize() is called.
        """
        self.publisher = publisher
        self.width = 0
        self.height = 0
        self._obstacles = None
        self._distance = None
        self._voronoi = None
        logger.info("DynamicVoronoi initialized.")

    def initialize_map(self, width, height, obstacles):
        """
        Takes over a binary obstacle grid of shape (width, height).
        """
        obstacles = np.asarray(obstacles, dtype=bool)
        if obstacles.shape != (width, height):
            raise ValueError(f"Obstacle grid shape {obstacles.shape} does not match {width}x{height}")
        self.width = width
        self.height = height
        self._obstacles = obstacles
        self._distance = None
        self._voronoi = None

    def update(self):
        """Recomputes the clearance map and the Voronoi cells."""
        if self._obstacles is None:
            logger.warning("DynamicVoronoi.update called before initialize_map.")
            return

        free = ~self._obstacles
        if not self._obstacles.any():
            # Without obstacles every cell has unbounded clearance and no ridge exists
            self._distance = np.full(self._obstacles.shape, np.inf)
            self._voronoi = np.zeros(self._obstacles.shape, dtype=bool)
            return

        labels, num_components = ndi.label(self._obstacles, structure=_CONNECTIVITY)
        distance, indices = ndi.distance_transform_edt(free, return_indices=True)
        nearest = labels[indices[0], indices[1]]

        voronoi = np.zeros(self._obstacles.shape, dtype=bool)
        ridge_x = nearest[1:, :] != nearest[:-1, :]
        voronoi[1:, :] |= ridge_x
        voronoi[:-1, :] |= ridge_x
        ridge_y = nearest[:, 1:] != nearest[:, :-1]
        voronoi[:, 1:] |= ridge_y
        voronoi[:, :-1] |= ridge_y
        voronoi &= free

        self._distance = distance
        self._voronoi = voronoi
        logger.debug(f"Voronoi diagram updated: {num_components} obstacle components, "
                     f"{int(np.count_nonzero(voronoi))} Voronoi cells.")

    def visualize(self):
        """Publishes the current diagram, if a publisher is attached."""
        if self._voronoi is None:
            return
        if self.publisher is not None:
            self.publisher.publish({'distance': self._distance, 'voronoi': self._voronoi})

    def get_distance(self, x, y):
        """Clearance of cell (x, y) in cells; inf before the first update."""
        if self._distance is None:
            return float('inf')
        return float(self._distance[x, y])

    def is_voronoi(self, x, y):
        if self._voronoi is None:
            return False
        return bool(self._voronoi[x, y])
