# planning/path_processing/path_smoother.py

import logging
import numpy as np

from hybrid_planner.planning.state_search.node_types import Node3D

logger = logging.getLogger(__name__)


class PathSmoother:
    """
    Turns a search result into a node sequence: walks the parent chain of the
    terminal node and optionally smooths the resulting polyline.

    The traced path keeps the chain order, i.e. the terminal (goal) node first
    and the chain root (start) last.
    """
    def __init__(self, config=None, configuration_space=None):
        """
        Initializes the PathSmoother.

        Args:
            config (dict, optional): Configuration for the smoother.
                                     Expected keys: 'method' ('none' or 'gradient'),
                                     'weight_data', 'weight_smoothness', 'iterations', 'tolerance'.
            configuration_space (ConfigurationSpace, optional): Used to reject smoothing
                                     steps that would move a node into an obstacle.
        """
        self.config = config if config is not None else {}
        self.smoothing_method = self.config.get('method', 'none')
        self.weight_data = self.config.get('weight_data', 0.1)
        self.weight_smoothness = self.config.get('weight_smoothness', 0.3)
        self.iterations = self.config.get('iterations', 200)
        self.tolerance = self.config.get('tolerance', 1e-4)
        self.configuration_space = configuration_space
        self._path = []
        logger.info(f"PathSmoother initialized with method: {self.smoothing_method}.")

    def trace_path(self, node):
        """
        Collects the chain ending at node, terminal first.

        Args:
            node (Node3D or None): Terminal search node. None clears the path.
        """
        path = []
        current = node
        while current is not None:
            path.append(Node3D(current.x, current.y, current.t, current.g, current.h, prim=current.prim))
            current = current.parent
        self._path = path
        logger.debug(f"Traced path with {len(path)} nodes.")

    def get_path(self):
        """
        Returns:
            list: The traced (and, if configured, smoothed) Node3D sequence in grid units.
        """
        if self.smoothing_method == 'none' or len(self._path) < 3:
            return list(self._path)
        if self.smoothing_method == 'gradient':
            return self._smooth_with_gradient(self._path)
        logger.warning(f"Unknown smoothing method: {self.smoothing_method}. Returning traced path.")
        return list(self._path)

    def _smooth_with_gradient(self, path):
        """
        Gradient-descent smoothing that pulls every interior node towards the
        midpoint of its neighbours while keeping it close to its original
        position. End points stay fixed; cusps (direction changes) are kept.
        """
        original = np.array([[n.x, n.y] for n in path], dtype=float)
        smoothed = original.copy()
        fixed = np.zeros(len(path), dtype=bool)
        fixed[0] = fixed[-1] = True
        for i in range(1, len(path) - 1):
            if path[i].reverse != path[i + 1].reverse:
                fixed[i] = True

        for iteration in range(self.iterations):
            change = 0.0
            for i in range(1, len(path) - 1):
                if fixed[i]:
                    continue
                previous = smoothed[i].copy()
                correction = (self.weight_data * (original[i] - smoothed[i]) +
                              self.weight_smoothness * (smoothed[i - 1] + smoothed[i + 1] - 2.0 * smoothed[i]))
                candidate = smoothed[i] + correction
                if self.configuration_space is not None and not self.configuration_space.is_traversable(
                        Node3D(candidate[0], candidate[1], path[i].t)):
                    continue
                smoothed[i] = candidate
                change += float(np.abs(candidate - previous).sum())
            if change < self.tolerance:
                logger.debug(f"Path smoothing converged after {iteration + 1} iterations.")
                break

        return [Node3D(smoothed[i, 0], smoothed[i, 1], n.t, n.g, n.h, prim=n.prim) for i, n in enumerate(path)]
