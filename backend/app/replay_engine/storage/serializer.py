"""
Session Serializer

Persists recordings as JSON documents and loads them back.

Round-trip law: load(persist(actions)).actions == actions, element for
element, in order and field values.
"""

import json
import logging
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticSerializationError

from ..errors import NotFoundError, StorageIOError, ValidationError
from ..models.actions import Action
from ..models.recording import FORMAT_VERSION, Recording

logger = logging.getLogger(__name__)

FILENAME_PREFIX = "recording_"
FILENAME_SUFFIX = ".json"


class SessionSerializer:
    """
    File-based storage for recordings.

    Features:
    - Timestamp-derived names when none is given
    - Atomic writes (temp file + replace)
    - Tolerant reads: unknown fields ignored, absent optionals stay absent
    """

    def __init__(
        self,
        recordings_dir: str = "data/recordings",
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize the serializer.

        Args:
            recordings_dir: Directory holding recording documents
            clock: Wall clock in seconds, used for createdAt and generated names
        """
        self.recordings_dir = Path(recordings_dir)
        self._clock = clock

    # ==================== Naming ====================

    def path_for(self, filename: str) -> Path:
        """Resolve a recording name to its path inside the recordings directory"""
        if not filename or not filename.strip():
            raise ValidationError("Recording filename is empty")

        name = filename.strip()
        if "/" in name or "\\" in name or name in (".", "..") or ".." in name:
            raise ValidationError(f"Invalid recording filename: {filename}")

        if not name.endswith(FILENAME_SUFFIX):
            name += FILENAME_SUFFIX
        return self.recordings_dir / name

    def _generate_filename(self) -> str:
        stamp = datetime.fromtimestamp(self._clock()).strftime("%Y%m%d_%H%M%S")
        candidate = f"{FILENAME_PREFIX}{stamp}{FILENAME_SUFFIX}"
        counter = 1
        while (self.recordings_dir / candidate).exists():
            candidate = f"{FILENAME_PREFIX}{stamp}_{counter}{FILENAME_SUFFIX}"
            counter += 1
        return candidate

    # ==================== Persist / Load ====================

    def persist(
        self,
        actions: Sequence[Action],
        device: Optional[Dict[str, Any]] = None,
        filename: Optional[str] = None
    ) -> str:
        """
        Write a recording document.

        Args:
            actions: Ordered actions to store
            device: Opaque device descriptor
            filename: Target name; generated from the current time when omitted

        Returns:
            The resolved filename

        Raises:
            ValidationError: if the filename is not a plain name or the document
                cannot be serialized
            StorageIOError: if the document cannot be written
        """
        try:
            self.recordings_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(f"Cannot create recordings directory {self.recordings_dir}: {e}") from e

        path = self.path_for(filename) if filename else self.recordings_dir / self._generate_filename()

        recording = Recording(
            version=FORMAT_VERSION,
            created_at=int(self._clock() * 1000),
            device=dict(device or {}),
            total_actions=len(actions),
            actions=list(actions),
        )
        try:
            document = recording.to_document()
        except (PydanticSerializationError, TypeError, ValueError) as e:
            raise ValidationError(f"Recording {path.name} cannot be serialized: {e}") from e

        tmp_path = path.with_name(path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            try:
                tmp_path.unlink()
            except OSError:
                pass
            raise StorageIOError(f"Failed to write recording {path.name}: {e}") from e

        logger.info(f"Saved recording to {path} ({len(actions)} actions)")
        return path.name

    def load(self, filename: str) -> Recording:
        """
        Read a recording document into a fresh, independent Recording.

        Raises:
            NotFoundError: if the recording does not exist
            StorageIOError: if the file cannot be read
            ValidationError: if the document cannot be interpreted
        """
        path = self.path_for(filename)
        if not path.exists():
            raise NotFoundError(path.name)

        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()
        except OSError as e:
            raise StorageIOError(f"Failed to read recording {path.name}: {e}") from e

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Recording {path.name} is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ValidationError(f"Recording {path.name} must be a JSON object")
        if not isinstance(data.get("actions"), list):
            raise ValidationError(f"Recording {path.name} has no actions list")

        try:
            recording = Recording.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Recording {path.name} is malformed: {e}") from e

        logger.info(f"Loaded recording {path.name} ({recording.total_actions} actions)")
        return recording

    # ==================== Listing ====================

    def list_recordings(self) -> List[str]:
        """Names of all stored recordings, sorted"""
        if not self.recordings_dir.exists():
            return []
        try:
            return sorted(p.name for p in self.recordings_dir.glob(f"*{FILENAME_SUFFIX}") if p.is_file())
        except OSError as e:
            raise StorageIOError(f"Failed to list recordings: {e}") from e

    def delete(self, filename: str) -> bool:
        """Delete a recording; returns False if it did not exist"""
        path = self.path_for(filename)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise StorageIOError(f"Failed to delete recording {path.name}: {e}") from e
        logger.info(f"Deleted recording: {path.name}")
        return True
