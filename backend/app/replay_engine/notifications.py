"""
Notifications

One-way outbound channel for lifecycle and progress events. Delivery is
fire-and-forget: a failing sink never affects capture or replay.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    """Event kinds emitted by the engine"""
    SERVICE_CONNECTED = "service_connected"
    RECORDING_STARTED = "recording_started"
    RECORDING_STOPPED = "recording_stopped"
    RECORDING_PAUSED = "recording_paused"
    ACTION_RECORDED = "action_recorded"
    RECORDING_SAVED = "recording_saved"
    RECORDING_SAVE_ERROR = "recording_save_error"
    RECORDING_LOADED = "recording_loaded"
    RECORDING_LOAD_ERROR = "recording_load_error"
    EXECUTION_STARTED = "recording_execution_started"
    EXECUTION_PROGRESS = "recording_execution_progress"
    EXECUTION_COMPLETED = "recording_execution_completed"


class NotificationSink(Protocol):
    def emit(self, kind: str, payload: Dict[str, Any]) -> None:
        ...


class LoggingNotificationSink:
    """Writes every notification to the log"""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    def emit(self, kind: str, payload: Dict[str, Any]) -> None:
        logger.log(self.level, f"[{kind}] {payload}")


class CallbackNotificationSink:
    """Forwards notifications to a callable"""

    def __init__(self, callback: Callable[[str, Dict[str, Any]], None]):
        self._callback = callback

    def emit(self, kind: str, payload: Dict[str, Any]) -> None:
        self._callback(kind, payload)


class CompositeNotificationSink:
    """Fans a notification out to several sinks"""

    def __init__(self, sinks: Optional[Iterable[NotificationSink]] = None):
        self._sinks: List[NotificationSink] = list(sinks or [])

    def add(self, sink: NotificationSink):
        self._sinks.append(sink)

    def remove(self, sink: NotificationSink):
        if sink in self._sinks:
            self._sinks.remove(sink)

    def emit(self, kind: str, payload: Dict[str, Any]) -> None:
        for sink in list(self._sinks):
            try:
                sink.emit(kind, payload)
            except Exception as e:
                logger.warning(f"Notification sink {sink!r} failed for {kind}: {e}")


class Notifier:
    """Guards a sink so that delivery errors are logged and swallowed"""

    def __init__(self, sink: Optional[NotificationSink] = None):
        self.sink = sink

    def notify(self, kind: NotificationKind, **payload: Any):
        if self.sink is None:
            return
        try:
            self.sink.emit(kind.value, payload)
        except Exception as e:
            logger.warning(f"Failed to deliver {kind.value} notification: {e}")
