"""
Engine Configuration

Settings for capture, persistence and replay. Values come from the
environment (a `.env` file is loaded by the server entry point).
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

# Packages treated as system UI; matched by prefix or substring
DEFAULT_SYSTEM_PREFIXES = [
    "com.android.systemui",
    "android",
    "com.android.system",
    "com.android.settings",
    "com.android.launcher",
    "com.android.inputmethod",
    "com.android.",
    "com.google.android.",
]


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str) -> Optional[List[str]]:
    value = os.getenv(name)
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class EngineConfig:
    """Configuration for the capture & replay engine"""
    recordings_dir: str = "data/recordings"

    # Exclusion
    own_identity: str = "replay_engine"
    exclude_own_app: bool = True
    skip_unidentified: bool = True
    excluded_packages: List[str] = field(default_factory=list)
    system_prefixes: List[str] = field(default_factory=lambda: list(DEFAULT_SYSTEM_PREFIXES))

    # Replay
    actuator: str = "log"  # log, adb
    adb_serial: Optional[str] = None
    screen_width: int = 1080
    screen_height: int = 1920

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a config from environment variables, falling back to defaults"""
        config = cls()

        config.recordings_dir = os.getenv("RECORDINGS_DIR", config.recordings_dir)
        config.own_identity = os.getenv("OWN_IDENTITY", config.own_identity)
        config.exclude_own_app = _env_bool("EXCLUDE_OWN_APP", config.exclude_own_app)
        config.skip_unidentified = _env_bool("SKIP_UNIDENTIFIED", config.skip_unidentified)

        excluded = _env_list("EXCLUDED_PACKAGES")
        if excluded is not None:
            config.excluded_packages = excluded

        prefixes = _env_list("SYSTEM_PREFIXES")
        if prefixes is not None:
            config.system_prefixes = prefixes

        config.actuator = os.getenv("ACTUATOR", config.actuator).strip().lower()
        config.adb_serial = os.getenv("ADB_SERIAL") or None
        config.screen_width = int(os.getenv("SCREEN_WIDTH", config.screen_width))
        config.screen_height = int(os.getenv("SCREEN_HEIGHT", config.screen_height))
        config.log_level = os.getenv("LOG_LEVEL", config.log_level).upper()

        return config
