"""
Unit tests for notification sinks and the queue event source.
"""

import logging
import threading
import pytest
from pathlib import Path
from unittest.mock import Mock
import sys

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "app"))

from replay_engine.capture.event_source import QueueEventSource
from replay_engine.notifications import (
    CallbackNotificationSink,
    CompositeNotificationSink,
    LoggingNotificationSink,
    NotificationKind,
    Notifier,
)


class TestNotifier:
    """Test fire-and-forget delivery."""

    def test_payload_delivered(self, notifications):
        notifier = Notifier(CallbackNotificationSink(notifications))

        notifier.notify(NotificationKind.ACTION_RECORDED, actionType="click", actionsCount=2)

        assert notifications.events == [("action_recorded", {"actionType": "click", "actionsCount": 2})]

    def test_without_sink(self):
        Notifier().notify(NotificationKind.RECORDING_STARTED, timestamp=1)

    def test_sink_errors_swallowed(self, caplog):
        sink = Mock()
        sink.emit.side_effect = RuntimeError("gone")

        Notifier(sink).notify(NotificationKind.RECORDING_STOPPED, actionsCount=1)

        assert "recording_stopped" in caplog.text

    def test_execution_kinds(self):
        assert NotificationKind.EXECUTION_STARTED.value == "recording_execution_started"
        assert NotificationKind.EXECUTION_PROGRESS.value == "recording_execution_progress"
        assert NotificationKind.EXECUTION_COMPLETED.value == "recording_execution_completed"


class TestCompositeSink:
    """Test fan-out to several sinks."""

    def test_fan_out_survives_failing_sink(self, notifications):
        failing = Mock()
        failing.emit.side_effect = RuntimeError("closed")
        composite = CompositeNotificationSink([failing, CallbackNotificationSink(notifications)])

        composite.emit("recording_started", {"timestamp": 1})

        assert notifications.events == [("recording_started", {"timestamp": 1})]

    def test_add_and_remove(self, notifications):
        sink = CallbackNotificationSink(notifications)
        composite = CompositeNotificationSink()

        composite.add(sink)
        composite.emit("a", {})
        composite.remove(sink)
        composite.emit("b", {})

        assert notifications.kinds() == ["a"]

    def test_logging_sink(self, caplog):
        with caplog.at_level(logging.INFO):
            LoggingNotificationSink().emit("recording_saved", {"filename": "x.json"})

        assert "[recording_saved]" in caplog.text


class TestQueueEventSource:
    """Test background delivery of raw events."""

    def test_delivers_in_order(self):
        received = []
        source = QueueEventSource()
        source.subscribe(received.append)

        for i in range(20):
            source.publish({"n": i})
        source.join()
        source.unsubscribe()

        assert [e["n"] for e in received] == list(range(20))

    def test_delivers_on_worker_thread(self):
        threads = []
        source = QueueEventSource("worker")
        source.subscribe(lambda raw: threads.append(threading.current_thread().name))

        source.publish({})
        source.join()
        source.unsubscribe()

        assert threads == ["worker"]

    def test_handler_error_does_not_stop_delivery(self):
        received = []

        def handler(raw):
            if raw.get("fail"):
                raise ValueError("bad event")
            received.append(raw)

        source = QueueEventSource()
        source.subscribe(handler)
        source.publish({"fail": True})
        source.publish({"ok": 1})
        source.join()
        source.unsubscribe()

        assert received == [{"ok": 1}]

    def test_one_subscriber(self):
        source = QueueEventSource()
        source.subscribe(lambda raw: None)

        with pytest.raises(RuntimeError):
            source.subscribe(lambda raw: None)

        source.unsubscribe()
        assert source.is_subscribed is False

    def test_unsubscribe_without_subscriber(self):
        QueueEventSource().unsubscribe()
