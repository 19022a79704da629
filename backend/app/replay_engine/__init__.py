"""
Replay Engine

Action capture & replay: records user interactions as timestamped
semantic actions, persists them and replays them through an actuator
with the original timing.

Components:
- models: Action variants and the Recording document
- capture: Exclusion policy, event mapping and the capture controller
- storage: JSON session serializer
- replay: Cancellable timer, actuators and the replay scheduler
- service: RecordingService facade used by the control API
"""

from .capture import CaptureController, EventMapper, ExclusionConfig, ExclusionPolicy, QueueEventSource
from .config import EngineConfig
from .errors import (
    ActuatorError,
    EngineError,
    NotFoundError,
    ReplayBusyError,
    StorageIOError,
    ValidationError,
)
from .models import Action, ActionType, Recording, parse_action
from .notifications import NotificationKind, Notifier
from .replay import AdbActuator, CancellableTimer, LoggingActuator, ReplayReport, ReplayScheduler
from .service import RecordingService, create_actuator
from .storage import SessionSerializer

__version__ = "1.0.0"

__all__ = [
    "CaptureController",
    "EventMapper",
    "ExclusionConfig",
    "ExclusionPolicy",
    "QueueEventSource",
    "EngineConfig",
    "ActuatorError",
    "EngineError",
    "NotFoundError",
    "ReplayBusyError",
    "StorageIOError",
    "ValidationError",
    "Action",
    "ActionType",
    "Recording",
    "parse_action",
    "NotificationKind",
    "Notifier",
    "AdbActuator",
    "CancellableTimer",
    "LoggingActuator",
    "ReplayReport",
    "ReplayScheduler",
    "RecordingService",
    "create_actuator",
    "SessionSerializer",
]
