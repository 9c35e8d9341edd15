# planning/state_search/lookup_tables.py

import logging
import math
import time
import numpy as np

from hybrid_planner.utils.coordinate_transformer import TWO_PI, normalize_heading
from hybrid_planner.utils.geometry_utils import rotate_point_2d
from .heuristic_functions import dubins_path_length

logger = logging.getLogger(__name__)


class DubinsLookup:
    """
    Precomputed Dubins path lengths for goals within a square window around
    the start, expressed in the start's own frame.

    table[k, i, j] is the length from (0, 0, 0) to (i - window, j - window, k * delta).
    """
    def __init__(self, table, window, headings):
        self.table = table
        self.window = window
        self.headings = headings

    def distance(self, start, goal):
        """
        Looks up the Dubins length between two nodes (x, y, t attributes).

        Returns:
            float or None: The tabulated length, or None if the goal lies outside the window.
        """
        dx, dy = rotate_point_2d(goal.x - start.x, goal.y - start.y, -start.t)
        i = int(round(dx)) + self.window
        j = int(round(dy)) + self.window
        size = 2 * self.window + 1
        if not (0 <= i < size and 0 <= j < size):
            return None
        delta = TWO_PI / self.headings
        k = int(round(normalize_heading(goal.t - start.t) / delta)) % self.headings
        return float(self.table[k, i, j])


class LookupTableBuilder:
    """
    Builds the precomputed tables used by the search: a Dubins distance table
    (heuristic) and the per-heading vehicle footprint (collision checking).

    Tables are built lazily on first request and cached afterwards, so the
    builder can be injected anywhere and optionally warmed up at startup.
    """
    def __init__(self, config=None):
        """
        Args:
            config (dict, optional): Expected keys: 'headings', 'min_turning_radius',
                                     'dubins_width', 'vehicle' ({'length', 'width', 'bloating'}).
        """
        self.config = config if config is not None else {}
        self.headings = self.config.get('headings', 72)
        self.min_turning_radius = self.config.get('min_turning_radius', 6.0)
        self.dubins_width = self.config.get('dubins_width', 15)
        vehicle = self.config.get('vehicle', {})
        self.vehicle_length = vehicle.get('length', 2.65)
        self.vehicle_width = vehicle.get('width', 1.75)
        self.bloating = vehicle.get('bloating', 0.0)

        self._dubins_lookup = None
        self._collision_lookups = {}  # cell_size -> list of offset arrays
        logger.info(f"LookupTableBuilder initialized ({self.headings} headings).")

    def build_dubins_lookup(self):
        """
        Returns:
            DubinsLookup: The cached table, computed on first call.
        """
        if self._dubins_lookup is not None:
            return self._dubins_lookup

        start_time = time.time()
        window = self.dubins_width
        size = 2 * window + 1
        delta = TWO_PI / self.headings
        table = np.zeros((self.headings, size, size), dtype=np.float64)
        for k in range(self.headings):
            goal_t = k * delta
            for i in range(size):
                for j in range(size):
                    table[k, i, j] = dubins_path_length((0.0, 0.0, 0.0),
                                                        (i - window, j - window, goal_t),
                                                        self.min_turning_radius)

        self._dubins_lookup = DubinsLookup(table, window, self.headings)
        logger.info(f"Dubins lookup built: {table.size} entries in {time.time() - start_time:.2f} sec.")
        return self._dubins_lookup

    def build_collision_lookup(self, cell_size=1.0):
        """
        Rasterizes the vehicle rectangle (centred on the pose) for every heading bin.

        Args:
            cell_size (float): World units per cell; vehicle dimensions are in world units.

        Returns:
            list: One (N, 2) int array of (dx, dy) cell offsets per heading bin.
        """
        if cell_size in self._collision_lookups:
            return self._collision_lookups[cell_size]

        half_length = (self.vehicle_length / 2.0 + self.bloating) / cell_size
        half_width = (self.vehicle_width / 2.0 + self.bloating) / cell_size
        # sample the rectangle densely enough that no covered cell is skipped
        step = 0.25
        xs = np.arange(-half_length, half_length + 1e-9, step)
        ys = np.arange(-half_width, half_width + 1e-9, step)
        if xs[-1] < half_length:
            xs = np.append(xs, half_length)
        if ys[-1] < half_width:
            ys = np.append(ys, half_width)
        grid_x, grid_y = np.meshgrid(xs, ys, indexing='ij')
        samples = np.stack([grid_x.ravel(), grid_y.ravel()], axis=1)

        lookups = []
        delta = TWO_PI / self.headings
        for k in range(self.headings):
            # the footprint of a bin is taken at the bin centre
            yaw = (k + 0.5) * delta
            cos_t, sin_t = math.cos(yaw), math.sin(yaw)
            rx = samples[:, 0] * cos_t - samples[:, 1] * sin_t
            ry = samples[:, 0] * sin_t + samples[:, 1] * cos_t
            offsets = np.unique(np.stack([np.floor(rx), np.floor(ry)], axis=1).astype(np.int64), axis=0)
            lookups.append(offsets)

        self._collision_lookups[cell_size] = lookups
        logger.debug(f"Collision lookup built for cell size {cell_size}.")
        return lookups

    def warm_up(self, dubins=True, cell_size=1.0):
        """Precomputes the tables, e.g. at node startup."""
        if dubins:
            self.build_dubins_lookup()
        self.build_collision_lookup(cell_size)
