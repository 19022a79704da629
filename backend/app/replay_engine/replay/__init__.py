"""
Replay Module

Timing-faithful dispatch of recorded actions through an Actuator.
"""

from .actuator import Actuator, ActuatorCall, AdbActuator, LoggingActuator, escape_adb_text
from .scheduler import (
    DEFAULT_SWIPE_DURATION_MS,
    ReplayReport,
    ReplayScheduler,
    ReplayState,
    StepResult,
    StepStatus,
)
from .timer import CancellableTimer

__all__ = [
    "Actuator",
    "ActuatorCall",
    "AdbActuator",
    "LoggingActuator",
    "escape_adb_text",
    "DEFAULT_SWIPE_DURATION_MS",
    "ReplayReport",
    "ReplayScheduler",
    "ReplayState",
    "StepResult",
    "StepStatus",
    "CancellableTimer",
]
