"""
Capture Controller

Owns the recording state machine and the in-memory action buffer.

State machine:
    Idle -> Recording <-> Paused -> Idle

Control operations and the background event stream may call in from
different threads; one re-entrant lock is the single-writer critical
section around the buffer, the state and the clock origin.
"""

import logging
import platform
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..errors import StorageIOError, ValidationError
from ..models.actions import (
    Action,
    AppLaunchAction,
    SessionEndAction,
    SessionPauseAction,
    SessionStartAction,
)
from ..notifications import NotificationKind, Notifier
from ..storage.serializer import SessionSerializer
from .event_mapper import EventMapper, source_identity
from .event_source import EventSource
from .exclusion import ExclusionPolicy

logger = logging.getLogger(__name__)

DeviceProvider = Callable[[], Dict[str, Any]]


class RecordingState(Enum):
    """States of the capture state machine"""
    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"


@dataclass
class CaptureStatus:
    """Read-only snapshot of the controller"""
    is_recording: bool
    is_paused: bool
    action_count: int
    exclude_own_app: bool
    excluded_packages: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isRecording": self.is_recording,
            "isPaused": self.is_paused,
            "actionCount": self.action_count,
            "excludeOwnApp": self.exclude_own_app,
            "excludedPackages": list(self.excluded_packages),
        }


def default_device_descriptor() -> Dict[str, Any]:
    """Describe the host the engine runs on"""
    return {
        "system": platform.system(),
        "release": platform.release(),
        "machine": platform.machine(),
        "node": platform.node(),
        "python": platform.python_version(),
    }


class CaptureController:
    """
    Records raw interaction events as timestamped actions.

    Features:
    - Relative millisecond timestamps from a monotonic origin
    - Source exclusion before mapping
    - Per-event fault isolation: a malformed event is dropped, never raised
    - Auto-persist on stop
    """

    def __init__(
        self,
        policy: Optional[ExclusionPolicy] = None,
        mapper: Optional[EventMapper] = None,
        serializer: Optional[SessionSerializer] = None,
        notifier: Optional[Notifier] = None,
        device_provider: Optional[DeviceProvider] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time
    ):
        """
        Initialize the capture controller.

        Args:
            policy: ExclusionPolicy deciding which sources are ignored
            mapper: EventMapper turning raw events into actions
            serializer: SessionSerializer used for auto-persist on stop
            notifier: Notifier for lifecycle events
            device_provider: Returns the device descriptor stored with a session
            clock: Monotonic clock in seconds for relative timestamps
            wall_clock: Wall clock in seconds for epoch metadata
        """
        self.policy = policy or ExclusionPolicy()
        self.mapper = mapper or EventMapper()
        self.serializer = serializer
        self.notifier = notifier or Notifier()
        self.device_provider = device_provider or default_device_descriptor

        self._clock = clock
        self._wall_clock = wall_clock
        self._lock = threading.RLock()

        # Session state
        self._state = RecordingState.IDLE
        self._buffer: List[Action] = []
        self._origin: float = 0.0
        self._device: Optional[Dict[str, Any]] = None
        self._last_target: Optional[str] = None

        self._source: Optional[EventSource] = None

    # ==================== Event Source ====================

    def attach(self, source: EventSource):
        """Subscribe this controller to an event source"""
        with self._lock:
            if self._source is not None:
                raise RuntimeError("An event source is already attached")
            self._source = source
        source.subscribe(self.ingest)
        logger.info("Event source attached")

    def detach(self):
        """Unsubscribe from the attached event source, if any"""
        with self._lock:
            source = self._source
            self._source = None
        if source is not None:
            source.unsubscribe()
            logger.info("Event source detached")

    # ==================== State ====================

    @property
    def state(self) -> RecordingState:
        return self._state

    def _relative_ms(self) -> int:
        return max(0, round((self._clock() - self._origin) * 1000))

    def _epoch_ms(self) -> int:
        return round(self._wall_clock() * 1000)

    def _resolve_device(self) -> Dict[str, Any]:
        try:
            return dict(self.device_provider() or {})
        except Exception as e:
            logger.warning(f"Device descriptor unavailable: {e}")
            return {}

    # ==================== Control Operations ====================

    def start(self):
        """Start a new session, discarding any previous buffer"""
        device = self._resolve_device()

        with self._lock:
            self._origin = self._clock()
            start_time = self._epoch_ms()
            self._device = device
            self._last_target = None
            self._buffer = [
                SessionStartAction(
                    timestamp=0,
                    description="Recording session started",
                    metadata={"startTime": start_time, "device": device},
                )
            ]
            self._state = RecordingState.RECORDING

        logger.info("Recording started")
        self.notifier.notify(NotificationKind.RECORDING_STARTED, timestamp=start_time)

    def stop(self) -> Optional[str]:
        """
        Finish the session and persist it.

        Returns:
            The saved filename, or None when idle or when saving failed
        """
        with self._lock:
            if self._state is RecordingState.IDLE:
                return None

            duration = self._relative_ms()
            self._buffer.append(
                SessionEndAction(
                    timestamp=duration,
                    description="Recording session ended",
                    metadata={
                        "endTime": self._epoch_ms(),
                        "totalActions": len(self._buffer),
                        "duration": duration,
                    },
                )
            )
            self._state = RecordingState.IDLE
            snapshot = tuple(self._buffer)
            device = self._device

        logger.info(f"Recording stopped, {len(snapshot)} actions captured")

        filename = self._persist(snapshot, device)
        self.notifier.notify(
            NotificationKind.RECORDING_STOPPED,
            actionsCount=len(snapshot),
            filename=filename,
        )
        return filename

    def pause_resume(self):
        """Toggle pause; a no-op while idle"""
        with self._lock:
            if self._state is RecordingState.IDLE:
                return

            paused = self._state is RecordingState.RECORDING
            self._buffer.append(
                SessionPauseAction(
                    timestamp=self._relative_ms(),
                    description="Recording paused" if paused else "Recording resumed",
                    metadata={"paused": paused},
                )
            )
            self._state = RecordingState.PAUSED if paused else RecordingState.RECORDING

        logger.info("Recording paused" if paused else "Recording resumed")
        self.notifier.notify(NotificationKind.RECORDING_PAUSED, isPaused=paused)

    def ingest(self, raw_event: Mapping[str, Any]) -> Optional[Action]:
        """
        Record one raw event.

        Ignored unless recording and not paused. Excluded sources and
        malformed events are dropped; this method never raises.

        Returns:
            The recorded action, or None if nothing was recorded
        """
        try:
            with self._lock:
                if self._state is not RecordingState.RECORDING:
                    return None

                if not isinstance(raw_event, Mapping):
                    raise ValidationError(f"Raw event must be a mapping, got {type(raw_event).__name__}")

                identity = source_identity(raw_event)
                if self.policy.should_exclude(identity):
                    logger.debug(f"Ignored event from excluded source: {identity}")
                    return None

                action = self.mapper.map(raw_event, self._relative_ms())
                if action is None:
                    return None

                if isinstance(action, AppLaunchAction):
                    if action.target_identity == self._last_target:
                        return None
                    self._last_target = action.target_identity

                self._buffer.append(action)
                count = len(self._buffer)
        except ValidationError as e:
            logger.warning(f"Dropped malformed event: {e}")
            return None
        except Exception as e:
            logger.error(f"Error recording event: {e}", exc_info=True)
            return None

        logger.debug(f"Recorded action #{count}: {action.type} - {action.description}")
        self.notifier.notify(
            NotificationKind.ACTION_RECORDED,
            actionType=action.type,
            actionsCount=count,
            sourceIdentity=action.source_identity,
            description=action.description,
        )
        return action

    # ==================== Persistence ====================

    def save(self, filename: Optional[str] = None) -> Optional[str]:
        """
        Persist the current buffer.

        Returns:
            The saved filename, or None if the buffer is empty or saving failed
        """
        with self._lock:
            snapshot = tuple(self._buffer)
            device = self._device

        if not snapshot:
            logger.warning("Nothing to save, buffer is empty")
            return None
        return self._persist(snapshot, device, filename)

    def _persist(
        self,
        actions: Tuple[Action, ...],
        device: Optional[Dict[str, Any]],
        filename: Optional[str] = None
    ) -> Optional[str]:
        if self.serializer is None:
            logger.warning("No serializer configured, recording not saved")
            return None

        if device is None:
            device = self._resolve_device()

        try:
            saved = self.serializer.persist(actions, device, filename)
        except (StorageIOError, ValidationError) as e:
            logger.error(f"Failed to save recording: {e}")
            self.notifier.notify(NotificationKind.RECORDING_SAVE_ERROR, filename=filename, error=str(e))
            return None

        self.notifier.notify(
            NotificationKind.RECORDING_SAVED,
            filename=saved,
            path=str(self.serializer.path_for(saved)),
            actionsCount=len(actions),
        )
        return saved

    # ==================== Queries ====================

    def actions(self) -> Tuple[Action, ...]:
        """Immutable snapshot of the buffer"""
        with self._lock:
            return tuple(self._buffer)

    def status(self) -> CaptureStatus:
        with self._lock:
            return CaptureStatus(
                is_recording=self._state is not RecordingState.IDLE,
                is_paused=self._state is RecordingState.PAUSED,
                action_count=len(self._buffer),
                exclude_own_app=self.policy.exclude_self,
                excluded_packages=self.policy.excluded(),
            )

    # ==================== Exclusion Admin ====================

    def set_exclude_own_app(self, exclude: bool):
        self.policy.set_exclude_self(exclude)

    def add_excluded(self, identity: str):
        self.policy.add(identity)

    def remove_excluded(self, identity: str):
        self.policy.remove(identity)
