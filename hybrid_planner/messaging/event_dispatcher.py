# messaging/event_dispatcher.py

import collections
import logging
import threading

logger = logging.getLogger(__name__)

EVENT_MAP = 'map'
EVENT_START = 'start'
EVENT_GOAL = 'goal'


class EventDispatcher:
    """
    Single-threaded dispatch loop for inbound planner events.

    Producers post (event_type, payload) pairs from any thread; the owner
    drains the queue on its own thread, so handlers (and any planning they
    trigger) never run concurrently. Per event type only the latest pending
    payload is kept: posting a new map while an older map is still queued
    replaces it, which bounds the backlog when events arrive faster than
    plans complete.
    """
    def __init__(self):
        self._handlers = {}
        self._pending = collections.OrderedDict()  # event_type -> payload, in arrival order
        self._lock = threading.Lock()
        self.dropped = 0
        logger.info("EventDispatcher initialized.")

    def register(self, event_type, handler):
        """Sets the handler invoked with the payload of each dispatched event_type."""
        self._handlers[event_type] = handler

    def post(self, event_type, payload):
        """
        Queues an event. A still-pending event of the same type is superseded.
        A None payload (an unparseable message) is dropped and never displaces
        a pending event.
        """
        if event_type not in self._handlers:
            logger.warning(f"No handler registered for event type '{event_type}', dropping it.")
            return
        if payload is None:
            logger.debug(f"Dropping '{event_type}' event without payload.")
            return
        with self._lock:
            if event_type in self._pending:
                self.dropped += 1
                del self._pending[event_type]
                logger.debug(f"Superseded pending '{event_type}' event.")
            self._pending[event_type] = payload

    def pending(self):
        with self._lock:
            return len(self._pending)

    def dispatch_pending(self):
        """
        Runs handlers for everything queued so far, in arrival order.

        Returns:
            int: Number of events dispatched.
        """
        dispatched = 0
        while True:
            with self._lock:
                if not self._pending:
                    break
                event_type, payload = self._pending.popitem(last=False)
            self._handlers[event_type](payload)
            dispatched += 1
        return dispatched
