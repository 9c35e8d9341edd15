# maps/transform_provider.py

import logging
import threading

logger = logging.getLogger(__name__)


class TransformProvider:
    """
    Interface for looking up the pose of one frame in another
    (e.g. the vehicle's base_link in the map frame).
    """
    def can_transform(self, target_frame, source_frame):
        """Returns True if lookup(target_frame, source_frame) would currently succeed."""
        raise NotImplementedError

    def lookup(self, target_frame, source_frame):
        """
        Returns:
            Pose: The pose of source_frame expressed in target_frame.
        """
        raise NotImplementedError


class StaticTransformProvider(TransformProvider):
    """
    Transform provider fed explicitly, typically from a localization callback.
    Only direct (target, source) pairs are known; no chaining is attempted.
    """
    def __init__(self):
        self._transforms = {}
        self._lock = threading.Lock()
        logger.info("StaticTransformProvider initialized.")

    def set_transform(self, target_frame, source_frame, pose):
        with self._lock:
            self._transforms[(_strip(target_frame), _strip(source_frame))] = pose
        logger.debug(f"Transform {source_frame} -> {target_frame} set to {pose}.")

    def clear(self, target_frame=None, source_frame=None):
        """Forgets one transform, or all of them when called without arguments."""
        with self._lock:
            if target_frame is None and source_frame is None:
                self._transforms.clear()
            else:
                self._transforms.pop((_strip(target_frame), _strip(source_frame)), None)

    def can_transform(self, target_frame, source_frame):
        with self._lock:
            return (_strip(target_frame), _strip(source_frame)) in self._transforms

    def lookup(self, target_frame, source_frame):
        key = (_strip(target_frame), _strip(source_frame))
        with self._lock:
            if key not in self._transforms:
                raise LookupError(f"No transform from {source_frame} to {target_frame}")
            return self._transforms[key]


def _strip(frame_id):
    # "/map" and "map" name the same frame
    return frame_id.lstrip('/') if frame_id else frame_id
