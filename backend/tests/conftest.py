"""
Pytest configuration and shared fixtures for the replay engine tests.
"""

import pytest
import sys
from pathlib import Path
from unittest.mock import Mock, AsyncMock
from typing import Dict, Any, List, Tuple

# Add backend app to path
sys.path.insert(0, str(Path(__file__).parent.parent / "app"))

from replay_engine.capture.controller import CaptureController
from replay_engine.capture.exclusion import ExclusionConfig, ExclusionPolicy
from replay_engine.notifications import CallbackNotificationSink, Notifier
from replay_engine.storage.serializer import SessionSerializer


# ==================== Clock Fixtures ====================

class FakeClock:
    """Manually advanced clock returning seconds"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: int):
        self.now += ms / 1000


class FakeTimer:
    """Stand-in for CancellableTimer that records waits instead of sleeping"""

    def __init__(self):
        self.waits: List[int] = []
        self.cancelled = False
        self.cancel_after: int = -1  # cancel when this many waits have happened

    def cancel(self):
        self.cancelled = True

    def reset(self):
        self.cancelled = False

    async def wait(self, ms: int) -> bool:
        if self.cancelled:
            return True
        self.waits.append(ms)
        if len(self.waits) == self.cancel_after:
            self.cancelled = True
        return self.cancelled


@pytest.fixture
def mono_clock():
    """Monotonic clock for relative timestamps."""
    return FakeClock(start=500.0)


@pytest.fixture
def wall_clock():
    """Wall clock fixed at 2024-01-15 10:30:00 UTC."""
    return FakeClock(start=1705314600.0)


@pytest.fixture
def fake_timer():
    return FakeTimer()


# ==================== Notification Fixtures ====================

class NotificationRecorder:
    """Collects (kind, payload) pairs"""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def __call__(self, kind: str, payload: Dict[str, Any]):
        self.events.append((kind, payload))

    def kinds(self) -> List[str]:
        return [kind for kind, _ in self.events]

    def of(self, kind: str) -> List[Dict[str, Any]]:
        return [payload for k, payload in self.events if k == kind]


@pytest.fixture
def notifications():
    return NotificationRecorder()


@pytest.fixture
def notifier(notifications):
    return Notifier(CallbackNotificationSink(notifications))


# ==================== Actuator Fixture ====================

@pytest.fixture
def mock_actuator():
    """Create a mock actuator with async methods."""
    actuator = Mock()
    actuator.open = AsyncMock(return_value=None)
    actuator.click = AsyncMock(return_value=None)
    actuator.long_click = AsyncMock(return_value=None)
    actuator.set_text = AsyncMock(return_value=None)
    actuator.scroll = AsyncMock(return_value=None)
    actuator.swipe = AsyncMock(return_value=None)
    return actuator


# ==================== Engine Fixtures ====================

@pytest.fixture
def recordings_dir(tmp_path):
    """Create a temporary recordings directory for tests."""
    data_dir = tmp_path / "data" / "recordings"
    data_dir.mkdir(parents=True)
    return data_dir


@pytest.fixture
def serializer(recordings_dir, wall_clock):
    return SessionSerializer(str(recordings_dir), clock=wall_clock)


@pytest.fixture
def policy():
    return ExclusionPolicy(ExclusionConfig(own_identity="com.example.recorder"))


@pytest.fixture
def device():
    return {"manufacturer": "Google", "model": "Pixel 7", "sdk": 34}


@pytest.fixture
def controller(policy, serializer, notifier, device, mono_clock, wall_clock):
    return CaptureController(
        policy=policy,
        serializer=serializer,
        notifier=notifier,
        device_provider=lambda: dict(device),
        clock=mono_clock,
        wall_clock=wall_clock,
    )


# ==================== Sample Data Fixtures ====================

@pytest.fixture
def click_event() -> Dict[str, Any]:
    """A raw click on a login button."""
    return {
        "eventKind": "view_clicked",
        "sourceIdentity": "com.example.shop",
        "widget": {
            "className": "android.widget.Button",
            "text": "Login",
            "resourceId": "com.example.shop:id/login",
            "bounds": {"left": 100, "top": 200, "right": 300, "bottom": 260},
            "isClickable": True,
        },
    }


@pytest.fixture
def input_event() -> Dict[str, Any]:
    """A raw text change in a username field."""
    return {
        "eventKind": "view_text_changed",
        "sourceIdentity": "com.example.shop",
        "text": ["hi"],
        "widget": {
            "className": "android.widget.EditText",
            "resourceId": "com.example.shop:id/username",
            "isEditable": True,
        },
    }
