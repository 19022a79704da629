"""
Engine Errors

Error taxonomy shared by capture, persistence and replay.

Recovery policy:
- ValidationError on ingest: drop the single event, keep recording
- NotFoundError / StorageIOError on load or save: abort that operation only
- ActuatorError during replay: log and continue with the next action
"""


class EngineError(Exception):
    """Base class for all engine errors"""


class ValidationError(EngineError):
    """A raw event or persisted document could not be interpreted"""


class NotFoundError(EngineError):
    """A requested recording does not exist"""

    def __init__(self, filename: str):
        super().__init__(f"Recording not found: {filename}")
        self.filename = filename


class StorageIOError(EngineError, OSError):
    """Reading or writing a recording failed"""


class ActuatorError(EngineError):
    """A replay step could not be dispatched"""


class ReplayBusyError(EngineError):
    """A replay is already running"""
