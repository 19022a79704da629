"""
Recording Service

Wires configuration, capture, persistence and replay into one object with
an explicit connect/shutdown lifecycle. This is what the control API talks
to; nothing in the engine relies on process-wide singletons.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .capture.controller import CaptureController, DeviceProvider
from .capture.event_mapper import EventMapper, LabelResolver, WidgetIntrospector
from .capture.event_source import EventSource, QueueEventSource
from .capture.exclusion import ExclusionConfig, ExclusionPolicy
from .config import EngineConfig
from .errors import EngineError, ReplayBusyError, ValidationError
from .models.actions import Action
from .models.recording import Recording
from .notifications import (
    CompositeNotificationSink,
    LoggingNotificationSink,
    NotificationKind,
    NotificationSink,
    Notifier,
)
from .replay.actuator import Actuator, AdbActuator, LoggingActuator
from .replay.scheduler import ReplayReport, ReplayScheduler
from .replay.timer import CancellableTimer
from .storage.serializer import SessionSerializer

logger = logging.getLogger(__name__)


def create_actuator(config: EngineConfig) -> Actuator:
    """Build the actuator named by the configuration"""
    if config.actuator == "log":
        return LoggingActuator()
    if config.actuator == "adb":
        return AdbActuator(
            serial=config.adb_serial,
            screen_width=config.screen_width,
            screen_height=config.screen_height,
        )
    raise ValidationError(f"Unknown actuator: {config.actuator}")


class RecordingService:
    """
    Facade over the capture & replay engine.

    Features:
    - One capture controller fed by an event source and by direct pushes
    - One replay at a time, run as an asyncio task
    - Lifecycle notifications fanned out to every registered sink
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        actuator: Optional[Actuator] = None,
        sink: Optional[NotificationSink] = None,
        event_source: Optional[EventSource] = None,
        introspector: Optional[WidgetIntrospector] = None,
        label_resolver: Optional[LabelResolver] = None,
        device_provider: Optional[DeviceProvider] = None,
        timer: Optional[CancellableTimer] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time
    ):
        self.config = config or EngineConfig()

        self.sinks = CompositeNotificationSink([LoggingNotificationSink(logging.DEBUG)])
        if sink is not None:
            self.sinks.add(sink)
        self.notifier = Notifier(self.sinks)

        self.policy = ExclusionPolicy(ExclusionConfig.from_engine_config(self.config))
        self.serializer = SessionSerializer(self.config.recordings_dir, clock=wall_clock)
        self.controller = CaptureController(
            policy=self.policy,
            mapper=EventMapper(introspector, label_resolver),
            serializer=self.serializer,
            notifier=self.notifier,
            device_provider=device_provider,
            clock=clock,
            wall_clock=wall_clock,
        )

        self.actuator = actuator if actuator is not None else create_actuator(self.config)
        self.scheduler = ReplayScheduler(self.actuator, self.notifier, timer)

        self.event_source = event_source if event_source is not None else QueueEventSource("recorder-events")
        self._wall_clock = wall_clock
        self._connected = False
        self._replay_task: Optional[asyncio.Task] = None

    # ==================== Lifecycle ====================

    @property
    def is_connected(self) -> bool:
        return self._connected

    def connect(self):
        """Attach the event source and announce the service"""
        if self._connected:
            return
        self.controller.attach(self.event_source)
        self._connected = True
        logger.info("Recording service connected")
        self.notifier.notify(
            NotificationKind.SERVICE_CONNECTED,
            timestamp=int(self._wall_clock() * 1000),
        )

    def shutdown(self):
        """Cancel any replay, finish an active recording and detach"""
        self.cancel_execution()
        if self.controller.status().is_recording:
            self.controller.stop()
        if self._connected:
            self.controller.detach()
            self._connected = False
        logger.info("Recording service shut down")

    # ==================== Capture ====================

    def start_recording(self):
        self.controller.start()

    def stop_recording(self) -> Optional[str]:
        return self.controller.stop()

    def pause_resume_recording(self):
        self.controller.pause_resume()

    def record_action(self, raw_event: Mapping[str, Any]) -> Optional[Action]:
        """Ingest one raw event synchronously"""
        return self.controller.ingest(raw_event)

    def publish_event(self, raw_event: Mapping[str, Any]):
        """Queue a raw event on the background event source"""
        publish = getattr(self.event_source, "publish", None)
        if publish is None:
            raise ValidationError("The configured event source does not accept pushed events")
        publish(raw_event)

    def current_actions(self) -> Sequence[Action]:
        return self.controller.actions()

    # ==================== Persistence ====================

    def save_recording(self, filename: Optional[str] = None) -> Optional[str]:
        return self.controller.save(filename)

    def load_recording(self, filename: str) -> Recording:
        """
        Load a stored recording.

        The capture buffer is never touched by a load.

        Raises:
            NotFoundError, StorageIOError, ValidationError
        """
        try:
            recording = self.serializer.load(filename)
        except EngineError as e:
            logger.error(f"Failed to load recording {filename}: {e}")
            self.notifier.notify(NotificationKind.RECORDING_LOAD_ERROR, filename=filename, error=str(e))
            raise

        self.notifier.notify(
            NotificationKind.RECORDING_LOADED,
            filename=filename,
            actionsCount=len(recording.actions),
        )
        return recording

    def list_recordings(self) -> List[str]:
        return self.serializer.list_recordings()

    def delete_recording(self, filename: str) -> bool:
        return self.serializer.delete(filename)

    # ==================== Replay ====================

    @property
    def is_executing(self) -> bool:
        task = self._replay_task
        return self.scheduler.is_running or (task is not None and not task.done())

    def start_execution(self, filename: Optional[str] = None) -> "asyncio.Task[ReplayReport]":
        """
        Schedule a replay on the running event loop.

        Args:
            filename: Stored recording to replay; None replays the current buffer

        Raises:
            ReplayBusyError: if a replay is already running
            NotFoundError, StorageIOError, ValidationError: if loading fails
        """
        if self.is_executing:
            raise ReplayBusyError("A replay is already running")

        if filename:
            actions = list(self.load_recording(filename).actions)
        else:
            actions = list(self.controller.actions())

        self._replay_task = asyncio.get_running_loop().create_task(
            self.scheduler.execute_recording(actions)
        )
        return self._replay_task

    async def execute_recording(self, filename: Optional[str] = None) -> ReplayReport:
        """Replay a stored recording (or the current buffer) and wait for it"""
        return await self.start_execution(filename)

    def cancel_execution(self) -> bool:
        """Request cancellation of the running replay; False if none is running"""
        if not self.is_executing:
            return False
        if self.scheduler.is_running:
            self.scheduler.cancel()
        elif self._replay_task is not None:
            # scheduled but not yet started
            self._replay_task.cancel()
        return True

    # ==================== Status / Admin ====================

    def status(self) -> Dict[str, Any]:
        data = self.controller.status().to_dict()
        data["isExecuting"] = self.is_executing
        return data

    def set_exclude_own_app(self, exclude: bool):
        self.controller.set_exclude_own_app(exclude)

    def add_excluded_package(self, identity: str):
        self.controller.add_excluded(identity)

    def remove_excluded_package(self, identity: str):
        self.controller.remove_excluded(identity)
