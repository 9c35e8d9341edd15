# planning/state_search/node_types.py

import logging
import math
import numpy as np

from hybrid_planner.utils.coordinate_transformer import TWO_PI, normalize_heading

logger = logging.getLogger(__name__)

# Per-cell bookkeeping kept in the search buffers. A zeroed record means "unvisited".
NODE3D_DTYPE = np.dtype([('g', np.float64), ('open', np.bool_), ('closed', np.bool_)])
NODE2D_DTYPE = np.dtype([('g', np.float64), ('open', np.bool_), ('closed', np.bool_)])


class Node3D:
    """
    A search state in grid units: continuous position (x, y), heading t in
    [0, 2*pi), accumulated cost g, heuristic h, the motion primitive that
    produced it and a link to its predecessor.
    """
    def __init__(self, x, y, t, g=0.0, h=0.0, parent=None, prim=0):
        self.x = x
        self.y = y
        self.t = normalize_heading(t)
        self.g = g
        self.h = h
        self.parent = parent
        self.prim = prim  # 0-2 forward (straight, right, left), 3-5 reverse

    @property
    def f(self):
        return self.g + self.h

    @property
    def reverse(self):
        return self.prim > 2

    def is_on_grid(self, width, height):
        return 0 <= self.x < width and 0 <= self.y < height

    def heading_bin(self, headings):
        return int(self.t / (TWO_PI / headings)) % headings

    def index(self, width, height, headings):
        """Flat index into a (headings, height, width) buffer."""
        return self.heading_bin(headings) * width * height + int(self.y) * width + int(self.x)

    def __lt__(self, other):
        return self.f < other.f

    def __repr__(self):
        return (f"Node3D(x={self.x:.2f}, y={self.y:.2f}, t={math.degrees(self.t):.1f}deg, "
                f"g={self.g:.2f}, h={self.h:.2f}, prim={self.prim})")


class Node2D:
    """A grid cell used by the holonomic cost-to-go search."""
    def __init__(self, x, y, g=0.0, parent=None):
        self.x = x
        self.y = y
        self.g = g
        self.parent = parent

    def index(self, width):
        return self.y * width + self.x

    def is_on_grid(self, width, height):
        return 0 <= self.x < width and 0 <= self.y < height

    def __repr__(self):
        return f"Node2D(x={self.x}, y={self.y}, g={self.g:.2f})"


class NodeBuffers:
    """
    Scoped search buffers for one planning cycle.

    Use as a context manager: the zero-initialized 3-D (width * height *
    headings) and 2-D (width * height) buffers exist only inside the with
    block and are dropped on every exit path, exceptions included.
    Allocation happens in __enter__ so a MemoryError surfaces there.
    """
    def __init__(self, width, height, headings):
        self.width = width
        self.height = height
        self.headings = headings
        self.nodes3d = None
        self.nodes2d = None

    def __enter__(self):
        length = self.width * self.height * self.headings
        self.nodes3d = np.zeros(length, dtype=NODE3D_DTYPE)
        self.nodes2d = np.zeros(self.width * self.height, dtype=NODE2D_DTYPE)
        logger.debug(f"Allocated node buffers: 3D={length}, 2D={self.width * self.height}.")
        return self

    def __exit__(self, exc_type, exc_value, tb):
        self.release()
        return False

    def release(self):
        self.nodes3d = None
        self.nodes2d = None
        logger.debug("Released node buffers.")

    @property
    def allocated(self):
        return self.nodes3d is not None and self.nodes2d is not None
