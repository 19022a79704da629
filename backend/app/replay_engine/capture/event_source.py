"""
Event Source

Inbound capability that pushes raw interaction events to one subscriber.
The engine never initiates observation; it only subscribes while a capture
controller is attached.
"""

import logging
import queue
import threading
from typing import Any, Callable, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)

RawEventHandler = Callable[[Mapping[str, Any]], None]


class EventSource(Protocol):
    def subscribe(self, handler: RawEventHandler) -> None:
        ...

    def unsubscribe(self) -> None:
        ...


class QueueEventSource:
    """
    Background event stream backed by a queue.

    Observers publish raw events from any thread; a worker thread delivers
    them in arrival order to the subscribed handler.
    """

    _STOP = object()

    def __init__(self, name: str = "event-source"):
        self.name = name
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._handler: Optional[RawEventHandler] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def is_subscribed(self) -> bool:
        return self._handler is not None

    def subscribe(self, handler: RawEventHandler) -> None:
        with self._lock:
            if self._handler is not None:
                raise RuntimeError(f"{self.name} already has a subscriber")
            self._handler = handler
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()
        logger.debug(f"{self.name}: subscriber attached")

    def unsubscribe(self) -> None:
        with self._lock:
            thread = self._thread
            self._handler = None
            self._thread = None
        if thread is not None:
            self._queue.put(self._STOP)
            thread.join(timeout=5)
        logger.debug(f"{self.name}: subscriber detached")

    def publish(self, raw_event: Mapping[str, Any]):
        """Queue a raw event for delivery"""
        self._queue.put(raw_event)

    def join(self):
        """Block until every queued event has been delivered"""
        self._queue.join()

    def _run(self):
        while True:
            item = self._queue.get()
            try:
                if item is self._STOP:
                    return
                handler = self._handler
                if handler is None:
                    continue
                try:
                    handler(item)
                except Exception as e:
                    logger.error(f"{self.name}: handler failed: {e}", exc_info=True)
            finally:
                self._queue.task_done()
