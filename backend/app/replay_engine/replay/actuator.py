"""
Actuator

Outbound capability that performs synthetic input. The replay scheduler
makes exactly one actuator call per dispatched action; any call may fail,
and the scheduler decides what a failure means.

Implementations:
- LoggingActuator: dry run, logs and records every call
- AdbActuator: drives an Android device through `adb shell`
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol, Tuple

from ..errors import ActuatorError
from ..models.actions import ScrollDirection

logger = logging.getLogger(__name__)


class Actuator(Protocol):
    """Methods may be plain or async; the scheduler awaits awaitable results"""

    def open(self, identity: str) -> Any:
        ...

    def click(self, x: int, y: int) -> Any:
        ...

    def long_click(self, x: int, y: int) -> Any:
        ...

    def set_text(self, text: str) -> Any:
        ...

    def scroll(self, direction: ScrollDirection) -> Any:
        ...

    def swipe(self, x1: int, y1: int, x2: int, y2: int, duration_ms: int) -> Any:
        ...


@dataclass
class ActuatorCall:
    """One call received by a LoggingActuator"""
    method: str
    args: Tuple[Any, ...] = field(default_factory=tuple)


class LoggingActuator:
    """Dry-run actuator"""

    def __init__(self):
        self.calls: List[ActuatorCall] = []

    def _record(self, method: str, *args: Any):
        self.calls.append(ActuatorCall(method, args))
        logger.info(f"[dry-run] {method}{args}")

    def open(self, identity: str):
        self._record("open", identity)

    def click(self, x: int, y: int):
        self._record("click", x, y)

    def long_click(self, x: int, y: int):
        self._record("long_click", x, y)

    def set_text(self, text: str):
        self._record("set_text", text)

    def scroll(self, direction: ScrollDirection):
        self._record("scroll", ScrollDirection(direction).value)

    def swipe(self, x1: int, y1: int, x2: int, y2: int, duration_ms: int):
        self._record("swipe", x1, y1, x2, y2, duration_ms)


# Characters `adb shell input text` needs escaped
_ADB_TEXT_SPECIALS = set("\\\"'`$&|;<>()[]{}*?!~#")


def escape_adb_text(text: str) -> str:
    """Escape text for `input text`: spaces become %s, shell specials get a backslash"""
    escaped = []
    for ch in text:
        if ch == " ":
            escaped.append("%s")
        elif ch in _ADB_TEXT_SPECIALS:
            escaped.append("\\" + ch)
        else:
            escaped.append(ch)
    return "".join(escaped)


class AdbActuator:
    """
    Actuator backed by the Android Debug Bridge.

    Each call runs one `adb shell` command as an asyncio subprocess. A
    non-zero exit, a timeout or a missing adb binary raise ActuatorError.
    """

    LONG_CLICK_MS = 1000
    SCROLL_DISTANCE = 500
    SCROLL_DURATION_MS = 300

    def __init__(
        self,
        serial: Optional[str] = None,
        adb_path: str = "adb",
        screen_width: int = 1080,
        screen_height: int = 1920,
        timeout: float = 10.0
    ):
        """
        Initialize the adb actuator.

        Args:
            serial: Device serial passed as `-s`; None uses the only attached device
            adb_path: adb executable
            screen_width: Screen width in px, used to synthesise scrolls
            screen_height: Screen height in px, used to synthesise scrolls
            timeout: Seconds allowed per adb command
        """
        self.serial = serial
        self.adb_path = adb_path
        self.screen_width = screen_width
        self.screen_height = screen_height
        self.timeout = timeout

    def _command(self, *args: str) -> List[str]:
        cmd = [self.adb_path]
        if self.serial:
            cmd += ["-s", self.serial]
        return cmd + ["shell", *args]

    async def _shell(self, *args: Any) -> str:
        cmd = self._command(*(str(a) for a in args))
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ActuatorError(f"Cannot run {self.adb_path}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise ActuatorError(f"adb command timed out after {self.timeout}s: {' '.join(cmd)}")

        if proc.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise ActuatorError(f"adb exited with {proc.returncode}: {message}")

        return stdout.decode("utf-8", errors="replace")

    # ==================== Actuator Calls ====================

    async def open(self, identity: str):
        output = await self._shell(
            "monkey", "-p", identity, "-c", "android.intent.category.LAUNCHER", "1"
        )
        if "No activities found" in output:
            raise ActuatorError(f"No launchable activity for {identity}")

    async def click(self, x: int, y: int):
        await self._shell("input", "tap", x, y)

    async def long_click(self, x: int, y: int):
        # a swipe that stays in place is a press-and-hold
        await self._shell("input", "swipe", x, y, x, y, self.LONG_CLICK_MS)

    async def set_text(self, text: str):
        await self._shell("input", "text", escape_adb_text(text))

    async def scroll(self, direction: ScrollDirection):
        x1, y1, x2, y2 = self.scroll_vector(direction)
        await self.swipe(x1, y1, x2, y2, self.SCROLL_DURATION_MS)

    async def swipe(self, x1: int, y1: int, x2: int, y2: int, duration_ms: int):
        await self._shell("input", "swipe", x1, y1, x2, y2, duration_ms)

    def scroll_vector(self, direction: ScrollDirection) -> Tuple[int, int, int, int]:
        """Swipe endpoints around the screen centre for a scroll direction"""
        cx = self.screen_width // 2
        cy = self.screen_height // 2
        d = self.SCROLL_DISTANCE

        direction = ScrollDirection(direction)
        if direction is ScrollDirection.UP:
            return cx, cy + d, cx, cy - d
        if direction is ScrollDirection.LEFT:
            return cx + d, cy, cx - d, cy
        if direction is ScrollDirection.RIGHT:
            return cx - d, cy, cx + d, cy
        # down and unknown
        return cx, cy - d, cx, cy + d
