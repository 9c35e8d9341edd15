# planning/path_processing/path_synthesizer.py

import logging

from hybrid_planner.planning.session.planning_session import Pose
from hybrid_planner.utils.coordinate_transformer import CoordinateTransformer

logger = logging.getLogger(__name__)


class PathSynthesizer:
    """
    Converts a search result into world-frame poses.

    Chain walking and smoothing are delegated to the smoother; this class
    only maps the grid-frame result back into the map frame. The order of
    the smoother's output is kept (goal first, search start last).
    """
    def __init__(self, smoother):
        """
        Args:
            smoother: Object providing trace_path(node) and get_path().
        """
        self.smoother = smoother

    def trace(self, terminal_node, transformer: CoordinateTransformer):
        """
        Args:
            terminal_node (Node3D or None): Result of the search; None means no solution.
            transformer (CoordinateTransformer): Grid <-> world mapping of the searched grid.

        Returns:
            list: World-frame Pose sequence, empty when there is no solution.
        """
        if terminal_node is None:
            logger.info("No solution from the search, path is empty.")
            return []

        self.smoother.trace_path(terminal_node)
        nodes = self.smoother.get_path()
        world = transformer.grid_points_to_world([(node.x, node.y, node.t) for node in nodes])
        poses = [Pose(x, y, heading) for x, y, heading in world]
        for pose in poses:
            logger.debug(f"(x,y) = {pose.x:.3f}, {pose.y:.3f}")
        return poses
