# planning/state_search/heuristic_functions.py

import logging
import math

from hybrid_planner.utils.coordinate_transformer import TWO_PI

logger = logging.getLogger(__name__)


def _mod2pi(theta):
    return theta - TWO_PI * math.floor(theta / TWO_PI)


def euclidean_distance_heuristic(current_state, goal_state):
    """
    Calculates the Euclidean distance in 2D (x, y) as a heuristic.
    This is admissible but not very informative for non-holonomic robots.
    """
    return math.hypot(current_state.x - goal_state.x, current_state.y - goal_state.y)


def _dubins_words(alpha, beta, d):
    """
    Yields the normalized (t, p, q) segment lengths of every feasible Dubins
    word for a unit turning radius.
    """
    sa, sb = math.sin(alpha), math.sin(beta)
    ca, cb = math.cos(alpha), math.cos(beta)
    c_ab = math.cos(alpha - beta)

    # LSL
    p_sq = 2 + d * d - 2 * c_ab + 2 * d * (sa - sb)
    if p_sq >= 0:
        tmp = math.atan2(cb - ca, d + sa - sb)
        yield _mod2pi(-alpha + tmp), math.sqrt(p_sq), _mod2pi(beta - tmp)

    # RSR
    p_sq = 2 + d * d - 2 * c_ab + 2 * d * (sb - sa)
    if p_sq >= 0:
        tmp = math.atan2(ca - cb, d - sa + sb)
        yield _mod2pi(alpha - tmp), math.sqrt(p_sq), _mod2pi(-beta + tmp)

    # LSR
    p_sq = -2 + d * d + 2 * c_ab + 2 * d * (sa + sb)
    if p_sq >= 0:
        p = math.sqrt(p_sq)
        tmp = math.atan2(-ca - cb, d + sa + sb) - math.atan2(-2.0, p)
        yield _mod2pi(-alpha + tmp), p, _mod2pi(-_mod2pi(beta) + tmp)

    # RSL
    p_sq = -2 + d * d + 2 * c_ab - 2 * d * (sa + sb)
    if p_sq >= 0:
        p = math.sqrt(p_sq)
        tmp = math.atan2(ca + cb, d - sa - sb) - math.atan2(2.0, p)
        yield _mod2pi(alpha - tmp), p, _mod2pi(beta - tmp)

    # RLR
    tmp = (6.0 - d * d + 2 * c_ab + 2 * d * (sa - sb)) / 8.0
    if abs(tmp) <= 1.0:
        p = _mod2pi(TWO_PI - math.acos(tmp))
        t = _mod2pi(alpha - math.atan2(ca - cb, d - sa + sb) + p / 2.0)
        yield t, p, _mod2pi(alpha - beta - t + p)

    # LRL
    tmp = (6.0 - d * d + 2 * c_ab + 2 * d * (sb - sa)) / 8.0
    if abs(tmp) <= 1.0:
        p = _mod2pi(TWO_PI - math.acos(tmp))
        t = _mod2pi(-alpha - math.atan2(ca - cb, d + sa - sb) + p / 2.0)
        yield t, p, _mod2pi(_mod2pi(beta) - alpha - t + p)


def dubins_path_length(start, goal, turning_radius):
    """
    Length of the shortest Dubins path (forward-only, curvature-bounded)
    between two poses.

    Args:
        start (tuple): (x, y, yaw) of the start pose.
        goal (tuple): (x, y, yaw) of the goal pose.
        turning_radius (float): Minimum turning radius, same units as x/y.

    Returns:
        float: The path length.
    """
    dx = goal[0] - start[0]
    dy = goal[1] - start[1]
    d = math.hypot(dx, dy) / turning_radius
    theta = _mod2pi(math.atan2(dy, dx))
    alpha = _mod2pi(start[2] - theta)
    beta = _mod2pi(goal[2] - theta)

    best = min((t + p + q for t, p, q in _dubins_words(alpha, beta, d)), default=None)
    if best is None:
        # Unreachable in theory; fall back to the straight-line bound
        logger.warning("No feasible Dubins word found, using Euclidean distance.")
        return math.hypot(dx, dy)
    return best * turning_radius


def calculate_heuristic(current_state, goal_state, heuristic_type="euclidean", turning_radius=6.0):
    """
    Wrapper function to calculate the heuristic based on the specified type.
    States need x, y and t attributes.
    """
    if heuristic_type == "euclidean":
        return euclidean_distance_heuristic(current_state, goal_state)
    elif heuristic_type == "dubins":
        return dubins_path_length((current_state.x, current_state.y, current_state.t),
                                  (goal_state.x, goal_state.y, goal_state.t),
                                  turning_radius)
    else:
        logger.warning(f"Unknown heuristic type: {heuristic_type}. Using Euclidean.")
        return euclidean_distance_heuristic(current_state, goal_state)
