# planning/path_processing/path_exporter.py

import logging
import time

logger = logging.getLogger(__name__)


class PathExporter:
    """
    Publishes a planned world-frame path for observers: the path itself, its
    nodes, and the vehicle footprint at every node.
    """
    def __init__(self, bus=None, topics=None, frame_id="map", vehicle=None):
        """
        Args:
            bus (TopicBus, optional): Where to publish. Without a bus nothing is published.
            topics (dict, optional): Keys 'path', 'path_nodes', 'path_vehicles'.
            frame_id (str): Frame of the published poses.
            vehicle (dict, optional): {'length', 'width'} of the footprint markers.
        """
        topics = topics if topics is not None else {}
        vehicle = vehicle if vehicle is not None else {}
        self.frame_id = frame_id
        self.vehicle_length = vehicle.get('length', 2.65)
        self.vehicle_width = vehicle.get('width', 1.75)
        self.path = []
        self._path_publisher = None
        self._nodes_publisher = None
        self._vehicles_publisher = None
        if bus is not None:
            self._path_publisher = bus.advertise(topics.get('path', '/path'))
            self._nodes_publisher = bus.advertise(topics.get('path_nodes', '/pathNodes'))
            self._vehicles_publisher = bus.advertise(topics.get('path_vehicles', '/pathVehicle'))

    def clear(self):
        self.path = []

    def update_path(self, poses):
        """Replaces the stored path with a world-frame Pose sequence."""
        self.path = list(poses)
        logger.debug(f"PathExporter holds {len(self.path)} poses.")

    def publish_path(self):
        if self._path_publisher is not None:
            self._path_publisher.publish({'frame_id': self.frame_id, 'stamp': time.time(),
                                          'poses': list(self.path)})

    def publish_path_nodes(self):
        if self._nodes_publisher is not None:
            self._nodes_publisher.publish([(pose.x, pose.y) for pose in self.path])

    def publish_path_vehicles(self):
        if self._vehicles_publisher is not None:
            self._vehicles_publisher.publish([
                {'x': pose.x, 'y': pose.y, 'heading': pose.heading,
                 'length': self.vehicle_length, 'width': self.vehicle_width}
                for pose in self.path])


class SearchVisualization:
    """Collects the nodes expanded during one search, for debugging and display."""
    def __init__(self, publisher=None):
        self.publisher = publisher
        self.nodes3d = []
        self.nodes2d = []

    def clear(self):
        self.nodes3d = []
        self.nodes2d = []

    def publish_node3d(self, node):
        self.nodes3d.append((node.x, node.y, node.t))
        if self.publisher is not None:
            self.publisher.publish(node)

    def publish_node2d(self, node):
        self.nodes2d.append((node.x, node.y))
