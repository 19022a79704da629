"""
Replay Scheduler

Dispatches an action sequence through an Actuator while preserving the
recorded inter-action timing.

Algorithm:
    lastTimestamp = 0
    for each action: wait (timestamp - lastTimestamp) ms, dispatch,
    notify progress, lastTimestamp = timestamp

A failed step is logged and the run moves on to the next action. The
timer wait is the only suspension point besides the actuator calls, and a
cancel request interrupts it.
"""

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from ..errors import ActuatorError, ReplayBusyError
from ..models.actions import (
    Action,
    AppLaunchAction,
    ClickAction,
    InputAction,
    LongClickAction,
    ScrollAction,
    ScrollDirection,
    SwipeAction,
    WaitAction,
    is_session_marker,
)
from ..notifications import NotificationKind, Notifier
from .actuator import Actuator
from .timer import CancellableTimer

logger = logging.getLogger(__name__)

DEFAULT_SWIPE_DURATION_MS = 300


class ReplayState(Enum):
    """Lifecycle of a replay run"""
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class StepStatus(Enum):
    """Outcome of one replay step"""
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class StepResult:
    """Result of replaying one action"""
    index: int
    action_type: str
    status: StepStatus
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "index": self.index,
            "actionType": self.action_type,
            "status": self.status.value,
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class ReplayReport:
    """Summary of a replay run"""
    total: int
    state: ReplayState
    steps: List[StepResult] = field(default_factory=list)
    duration_ms: int = 0

    def count(self, status: StepStatus) -> int:
        return sum(1 for step in self.steps if step.status is status)

    @property
    def succeeded(self) -> int:
        return self.count(StepStatus.SUCCESS)

    @property
    def failed(self) -> int:
        return self.count(StepStatus.FAILED)

    @property
    def cancelled(self) -> bool:
        return self.state is ReplayState.CANCELLED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "state": self.state.value,
            "succeeded": self.succeeded,
            "skipped": self.count(StepStatus.SKIPPED),
            "failed": self.failed,
            "durationMs": self.duration_ms,
            "steps": [step.to_dict() for step in self.steps],
        }


class ReplayScheduler:
    """
    Sequential, timing-faithful dispatcher.

    One run at a time; runs on the asyncio loop so that its waits never
    block capture or control operations.
    """

    def __init__(
        self,
        actuator: Actuator,
        notifier: Optional[Notifier] = None,
        timer: Optional[CancellableTimer] = None
    ):
        """
        Initialize the replay scheduler.

        Args:
            actuator: Target of every dispatched action
            notifier: Notifier for started/progress/completed events
            timer: Cancellable timer used for the inter-action waits
        """
        self.actuator = actuator
        self.notifier = notifier or Notifier()
        self.timer = timer or CancellableTimer()
        self._state = ReplayState.NOT_STARTED

    @property
    def state(self) -> ReplayState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is ReplayState.RUNNING

    def cancel(self):
        """Stop the current run before its next dispatch"""
        if not self.is_running:
            return
        logger.info("Replay cancellation requested")
        self.timer.cancel()

    # ==================== Execution ====================

    async def execute_recording(self, actions: Sequence[Action]) -> ReplayReport:
        """
        Replay actions in order.

        Args:
            actions: Actions with non-decreasing relative timestamps

        Returns:
            ReplayReport with one StepResult per action

        Raises:
            ReplayBusyError: if a run is already in progress
        """
        if self.is_running:
            raise ReplayBusyError("A replay is already running")

        actions = list(actions)
        total = len(actions)
        report = ReplayReport(total=total, state=ReplayState.RUNNING)

        self.timer.reset()
        self._state = ReplayState.RUNNING
        started = time.monotonic()

        logger.info(f"Replay started: {total} actions")
        self.notifier.notify(NotificationKind.EXECUTION_STARTED, actionsCount=total)

        cancelled = False
        try:
            last_timestamp = 0
            for index, action in enumerate(actions):
                wait = max(0, action.timestamp - last_timestamp)
                if await self.timer.wait(wait):
                    cancelled = True
                    break

                step = await self._run_step(index, action)
                report.steps.append(step)
                if step.status is StepStatus.CANCELLED:
                    cancelled = True
                    break

                self.notifier.notify(
                    NotificationKind.EXECUTION_PROGRESS,
                    index=index,
                    total=total,
                    actionType=action.type,
                    description=action.description,
                )
                last_timestamp = action.timestamp

            for index in range(len(report.steps), total):
                report.steps.append(StepResult(index, actions[index].type, StepStatus.CANCELLED))
        except asyncio.CancelledError:
            self._state = ReplayState.CANCELLED
            logger.info("Replay task cancelled")
            raise
        finally:
            report.duration_ms = int((time.monotonic() - started) * 1000)

        report.state = ReplayState.CANCELLED if cancelled else ReplayState.COMPLETED
        self._state = report.state

        if cancelled:
            logger.info(f"Replay cancelled after {report.succeeded} successful steps")
            self.notifier.notify(NotificationKind.EXECUTION_COMPLETED, actionsCount=total, cancelled=True)
        else:
            logger.info(f"Replay completed: {report.succeeded} succeeded, {report.failed} failed")
            self.notifier.notify(NotificationKind.EXECUTION_COMPLETED, actionsCount=total)
        return report

    async def _run_step(self, index: int, action: Action) -> StepResult:
        if is_session_marker(action):
            return StepResult(index, action.type, StepStatus.SKIPPED)

        if isinstance(action, WaitAction):
            if await self.timer.wait(action.duration_ms):
                return StepResult(index, action.type, StepStatus.CANCELLED)
            return StepResult(index, action.type, StepStatus.SUCCESS)

        try:
            await self._dispatch(action)
        except ActuatorError as e:
            logger.warning(f"Step {index + 1} ({action.type}) failed: {e}")
            return StepResult(index, action.type, StepStatus.FAILED, error=str(e))

        logger.debug(f"Step {index + 1}: {action.describe()}")
        return StepResult(index, action.type, StepStatus.SUCCESS)

    # ==================== Dispatch ====================

    async def _dispatch(self, action: Action):
        """Make the single actuator call for an action"""
        if isinstance(action, AppLaunchAction):
            await self._call("open", action.target_identity)

        elif isinstance(action, (ClickAction, LongClickAction)):
            bounds = action.bounds
            if bounds is None:
                raise ActuatorError(f"{action.type} has no widget bounds")
            method = "click" if isinstance(action, ClickAction) else "long_click"
            await self._call(method, bounds.center_x, bounds.center_y)

        elif isinstance(action, InputAction):
            if not action.text:
                raise ActuatorError("input has no text")
            await self._call("set_text", action.text)

        elif isinstance(action, ScrollAction):
            await self._call("scroll", action.direction or ScrollDirection.UNKNOWN)

        elif isinstance(action, SwipeAction):
            if action.end_x is None or action.end_y is None:
                raise ActuatorError("swipe has no end coordinates")
            duration = action.duration_ms if action.duration_ms is not None else DEFAULT_SWIPE_DURATION_MS
            await self._call("swipe", action.start_x, action.start_y, action.end_x, action.end_y, duration)

        else:
            raise ActuatorError(f"No dispatch rule for action type {action.type}")

    async def _call(self, method: str, *args: Any):
        try:
            result = getattr(self.actuator, method)(*args)
            if inspect.isawaitable(result):
                await result
        except ActuatorError:
            raise
        except Exception as e:
            raise ActuatorError(f"{method} failed: {e}") from e
