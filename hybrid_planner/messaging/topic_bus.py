# messaging/topic_bus.py

import logging
import threading

logger = logging.getLogger(__name__)


class Publisher:
    """
    Handle returned by TopicBus.advertise. Publishing delivers the message
    synchronously to every subscriber of the topic.
    """
    def __init__(self, bus, topic, latch=False):
        self._bus = bus
        self.topic = topic
        self.latch = latch

    def publish(self, message):
        self._bus.publish(self.topic, message)

    def __repr__(self):
        return f"Publisher(topic={self.topic}, latch={self.latch})"


class TopicBus:
    """
    Minimal in-process publish/subscribe bus.

    Topics advertised with latch=True remember their last message and replay
    it to subscribers that join later, so late consumers still receive the
    most recent result.
    """
    def __init__(self):
        self._subscribers = {}  # topic -> list of callbacks
        self._latched_topics = set()
        self._latched_messages = {}  # topic -> last message
        self._lock = threading.Lock()
        logger.info("TopicBus initialized.")

    def advertise(self, topic, latch=False):
        """
        Declares a topic this process publishes on.

        Args:
            topic (str): Topic name.
            latch (bool): Whether the last message is retained for late subscribers.

        Returns:
            Publisher: A handle for publishing on the topic.
        """
        with self._lock:
            if latch:
                self._latched_topics.add(topic)
            self._subscribers.setdefault(topic, [])
        logger.debug(f"Advertised topic {topic} (latch={latch}).")
        return Publisher(self, topic, latch)

    def subscribe(self, topic, callback):
        """
        Registers a callback for a topic. If the topic is latched and already
        carries a message, the callback receives it immediately.
        """
        with self._lock:
            self._subscribers.setdefault(topic, []).append(callback)
            latched = self._latched_messages.get(topic)
        logger.debug(f"Subscribed {getattr(callback, '__name__', callback)} to {topic}.")
        if latched is not None:
            callback(latched)

    def publish(self, topic, message):
        with self._lock:
            if topic in self._latched_topics:
                self._latched_messages[topic] = message
            callbacks = list(self._subscribers.get(topic, []))
        logger.debug(f"Publishing on {topic} to {len(callbacks)} subscriber(s).")
        for callback in callbacks:
            callback(message)

    def latest(self, topic):
        """Returns the retained message of a latched topic, or None."""
        with self._lock:
            return self._latched_messages.get(topic)
