# planning/state_search/algorithms/hybrid_a_star_planner.py

import logging
import heapq # For the priority queue (open set)
import itertools
import math
import time

from hybrid_planner.utils.coordinate_transformer import normalize_heading
from ..heuristic_functions import calculate_heuristic
from ..node_types import Node2D, Node3D

logger = logging.getLogger(__name__)

# 8-connected moves of the holonomic cost-to-go search
_MOVES_2D = [(-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1)]


class HybridAStarSearch:
    """
    Implements the Hybrid A* search over grid-frame states (x, y, heading).

    Nodes are expanded with six motion primitives (straight, right, left,
    each forward and in reverse) shaped by the minimum turning radius.
    Closed/open bookkeeping lives in the caller-provided 3-D buffer; the
    2-D buffer receives an obstacle-aware holonomic cost-to-go that is
    combined with a non-holonomic distance into the heuristic.
    """
    def __init__(self, config=None):
        """
        Initializes the HybridAStarSearch.

        Args:
            config (dict, optional): Configuration dictionary for the search.
                                     Expected keys: 'headings', 'iterations', 'reverse',
                                     'min_turning_radius', 'primitive_angle',
                                     'penalty_turning', 'penalty_reversing', 'penalty_cod',
                                     'tie_breaker', 'goal_tolerance' ({'xy', 'yaw'}), 'heuristic_type'.
        """
        self.config = config if config is not None else {}
        self.headings = self.config.get('headings', 72)
        self.iterations = self.config.get('iterations', 30000)
        self.reverse_enabled = self.config.get('reverse', True)
        self.min_turning_radius = self.config.get('min_turning_radius', 6.0)
        self.primitive_angle = self.config.get('primitive_angle', 0.1178097)
        self.penalty_turning = self.config.get('penalty_turning', 1.05)
        self.penalty_reversing = self.config.get('penalty_reversing', 2.0)
        self.penalty_cod = self.config.get('penalty_cod', 2.0)
        self.tie_breaker = self.config.get('tie_breaker', 0.01)
        self.heuristic_type = self.config.get('heuristic_type', 'euclidean')
        tolerance = self.config.get('goal_tolerance', {})
        self.goal_tolerance_xy = tolerance.get('xy', 1.0)
        self.goal_tolerance_yaw = tolerance.get('yaw', 0.2)

        # Primitive displacements in the node's own frame (cells, radians)
        r = self.min_turning_radius
        step = r * self.primitive_angle
        self.dx = [step, r * math.sin(self.primitive_angle), r * math.sin(self.primitive_angle)]
        self.dy = [0.0, -r * (1.0 - math.cos(self.primitive_angle)), r * (1.0 - math.cos(self.primitive_angle))]
        self.dt = [0.0, -self.primitive_angle, self.primitive_angle]

        logger.info(f"HybridAStarSearch initialized ({self.headings} headings, r={r}).")

    def search(self, start, goal, nodes3d, nodes2d, width, height, configuration_space,
               dubins_lookup=None, visualization=None):
        """
        Finds a kinematically feasible node chain from start to goal.

        Args:
            start (Node3D): Start state in grid units.
            goal (Node3D): Goal state in grid units.
            nodes3d (numpy.ndarray): Zeroed buffer of width * height * headings records.
            nodes2d (numpy.ndarray): Zeroed buffer of width * height records.
            width (int): Grid width in cells.
            height (int): Grid height in cells.
            configuration_space (ConfigurationSpace): Collision checks.
            dubins_lookup (DubinsLookup, optional): Precomputed non-holonomic distances.
            visualization (SearchVisualization, optional): Receives expanded nodes.

        Returns:
            Node3D or None: The terminal node whose parent chain leads back to start,
                            or None if no solution was found.
        """
        start_time = time.time()

        if not configuration_space.is_traversable(start):
            logger.warning(f"Start {start} is not traversable.")
            return None
        if not configuration_space.is_traversable(goal):
            logger.warning(f"Goal {goal} is not traversable.")
            return None

        if not self._compute_cost_to_go(goal, start, nodes2d, width, height, configuration_space, visualization):
            logger.warning("Goal is not reachable from the start on the 2D grid.")
            return None

        counter = itertools.count()  # tie order for equal f costs
        start.g = 0.0
        start.h = self._heuristic(start, goal, nodes2d, width, dubins_lookup)
        start.parent = None
        start_index = start.index(width, height, self.headings)
        nodes3d['open'][start_index] = True
        nodes3d['g'][start_index] = start.g
        open_set = [(start.f, next(counter), start)]

        iterations = 0
        while open_set:
            _, _, current = heapq.heappop(open_set)
            current_index = current.index(width, height, self.headings)

            if nodes3d['closed'][current_index]:
                continue  # stale entry superseded by a cheaper one

            nodes3d['open'][current_index] = False
            nodes3d['closed'][current_index] = True
            iterations += 1

            if visualization is not None:
                visualization.publish_node3d(current)

            if self._is_goal(current, goal):
                logger.info(f"Hybrid A* search successful in {iterations} iterations. "
                            f"Time: {time.time() - start_time:.2f} sec")
                return current

            if iterations >= self.iterations:
                break

            for prim in range(6 if self.reverse_enabled else 3):
                successor = self._create_successor(current, prim)

                if not successor.is_on_grid(width, height) or not configuration_space.is_traversable(successor):
                    continue

                successor_index = successor.index(width, height, self.headings)
                same_cell = successor_index == current_index
                if nodes3d['closed'][successor_index] and not same_cell:
                    continue

                successor.g = current.g + self._step_cost(current, prim)
                successor.h = self._heuristic(successor, goal, nodes2d, width, dubins_lookup)

                if same_cell:
                    # a step inside the expanded cell is kept only if it does not raise f,
                    # and then replaces the expanded node in the chain
                    if successor.f > current.f + self.tie_breaker:
                        continue
                    if current.parent is not None:
                        successor.parent = current.parent
                elif nodes3d['open'][successor_index] and successor.g + self.tie_breaker >= nodes3d['g'][successor_index]:
                    continue

                nodes3d['open'][successor_index] = True
                nodes3d['closed'][successor_index] = False
                nodes3d['g'][successor_index] = successor.g
                heapq.heappush(open_set, (successor.f, next(counter), successor))

        logger.warning(f"Hybrid A* search failed to find a path after {iterations} iterations.")
        return None

    def _create_successor(self, node, prim):
        """Applies motion primitive prim to node."""
        cos_t, sin_t = math.cos(node.t), math.sin(node.t)
        if prim < 3:
            x = node.x + self.dx[prim] * cos_t - self.dy[prim] * sin_t
            y = node.y + self.dx[prim] * sin_t + self.dy[prim] * cos_t
            t = node.t + self.dt[prim]
        else:
            i = prim - 3
            x = node.x - self.dx[i] * cos_t - self.dy[i] * sin_t
            y = node.y - self.dx[i] * sin_t + self.dy[i] * cos_t
            t = node.t - self.dt[i]
        return Node3D(x, y, normalize_heading(t), parent=node, prim=prim)

    def _step_cost(self, predecessor, prim):
        """Cost of applying prim after predecessor, penalizing turns, reversing and direction changes."""
        cost = self.dx[0]
        if prim % 3 != 0:
            cost *= self.penalty_turning
        if prim > 2:
            cost *= self.penalty_reversing
        # change of direction; the start node has no direction yet
        if predecessor.parent is not None and (prim > 2) != predecessor.reverse:
            cost *= self.penalty_cod
        return cost

    def _heuristic(self, node, goal, nodes2d, width, dubins_lookup):
        """max of the non-holonomic distance and the holonomic cost-to-go."""
        non_holonomic = None
        if dubins_lookup is not None and not self.reverse_enabled:
            # Dubins lengths ignore reversing and overestimate when it is allowed
            non_holonomic = dubins_lookup.distance(node, goal)
        if non_holonomic is None:
            non_holonomic = calculate_heuristic(node, goal, self.heuristic_type, self.min_turning_radius)

        record = nodes2d[int(node.y) * width + int(node.x)]
        holonomic = record['g'] if record['closed'] else float('inf')
        # cost-to-go is measured between cell corners, take off one diagonal
        holonomic = max(0.0, holonomic - math.sqrt(2.0))
        return max(non_holonomic, holonomic)

    def _compute_cost_to_go(self, goal, start, nodes2d, width, height, configuration_space, visualization):
        """
        Dijkstra from the goal cell over free cells, storing costs in nodes2d.

        Returns:
            bool: Whether the start cell was reached.
        """
        source = Node2D(int(goal.x), int(goal.y))
        source_index = source.index(width)
        nodes2d['g'][source_index] = 0.0
        nodes2d['open'][source_index] = True
        counter = itertools.count()
        open_set = [(0.0, next(counter), source)]

        while open_set:
            g, _, current = heapq.heappop(open_set)
            current_index = current.index(width)
            if nodes2d['closed'][current_index]:
                continue
            nodes2d['closed'][current_index] = True
            nodes2d['open'][current_index] = False
            if visualization is not None:
                visualization.publish_node2d(current)

            for mx, my in _MOVES_2D:
                neighbour = Node2D(current.x + mx, current.y + my, parent=current)
                if not neighbour.is_on_grid(width, height) or not configuration_space.is_traversable(neighbour):
                    continue
                neighbour_index = neighbour.index(width)
                if nodes2d['closed'][neighbour_index]:
                    continue
                neighbour.g = g + (math.sqrt(2.0) if mx and my else 1.0)
                if not nodes2d['open'][neighbour_index] or neighbour.g < nodes2d['g'][neighbour_index]:
                    nodes2d['open'][neighbour_index] = True
                    nodes2d['g'][neighbour_index] = neighbour.g
                    heapq.heappush(open_set, (neighbour.g, next(counter), neighbour))

        return bool(nodes2d[int(start.y) * width + int(start.x)]['closed'])

    def _is_goal(self, node, goal):
        """Checks if the node is within the goal tolerance."""
        dist_to_goal = math.hypot(node.x - goal.x, node.y - goal.y)
        yaw_diff = abs(math.atan2(math.sin(node.t - goal.t), math.cos(node.t - goal.t)))
        return dist_to_goal <= self.goal_tolerance_xy and yaw_diff <= self.goal_tolerance_yaw
