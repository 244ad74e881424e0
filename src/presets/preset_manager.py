"""
Preset manager - durable snapshot of the preset forest.

Reads and writes the whole forest as one JSON document. Writes are atomic:
temp file in the destination directory, then os.replace.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import List, Optional

from src.config import PRESETS_FILENAME
from src.utils.app_paths import get_presets_dir
from src.utils.logger import logger
from .preset_schema import (
    Entry,
    PresetValidationError,
    entries_from_document,
    entries_to_document,
)


class PresetError(Exception):
    """Raised when preset operations fail."""
    pass


class PresetPersistenceError(PresetError):
    """Snapshot could not be loaded or saved."""
    pass


class PresetImportError(PresetError):
    """A preset document could not be imported. Nothing was merged."""
    pass


class PresetExportError(PresetError):
    """A preset document could not be written."""
    pass


class ForestInvariantError(PresetError):
    """The in-memory forest broke a structural invariant (a bug, not user error)."""
    pass


def write_json_atomic(dest_path: Path, data) -> None:
    """
    Write JSON to dest_path atomically.

    1. Serialize via json.dumps(indent=2)
    2. Write temp file in dirname(dest_path)
    3. Commit using os.replace(temp, dest_path)

    Raises:
        OSError: If the write fails (temp file is cleaned up)
    """
    write_bytes_atomic(dest_path, json.dumps(data, indent=2).encode("utf-8"))


def write_bytes_atomic(dest_path: Path, payload: bytes) -> None:
    """Byte-level counterpart of write_json_atomic."""
    dest_path = Path(dest_path)
    dest_path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(
        suffix='.tmp',
        prefix='.preset_',
        dir=dest_path.parent
    )
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(payload)
        os.replace(temp_path, dest_path)
    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


class PresetManager:
    """
    Durable store for the preset forest.

    Usage:
        manager = PresetManager()

        entries = manager.load_snapshot()
        ...
        manager.save_snapshot(store.root_entries())
    """

    def __init__(self, presets_dir: Optional[Path] = None):
        self.presets_dir = Path(presets_dir) if presets_dir else get_presets_dir()
        self.presets_dir.mkdir(parents=True, exist_ok=True)

    @property
    def snapshot_path(self) -> Path:
        return self.presets_dir / PRESETS_FILENAME

    def load_snapshot(self) -> List[Entry]:
        """
        Load the forest from disk.

        Returns:
            Entries in stored order; empty list if no snapshot exists yet

        Raises:
            PresetPersistenceError: If the file is unreadable, not JSON, or invalid
        """
        path = self.snapshot_path
        if not path.exists():
            logger.info(f"No preset snapshot at {path}, starting empty", component="sync")
            return []

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise PresetPersistenceError(f"Invalid JSON in preset snapshot: {e}")
        except OSError as e:
            raise PresetPersistenceError(f"Failed to read preset snapshot: {e}")

        try:
            entries = entries_from_document(data)
        except PresetValidationError as e:
            raise PresetPersistenceError(str(e))

        logger.sync(f"Loaded {len(entries)} root entries", details=str(path))
        return entries

    def save_snapshot(self, entries: List[Entry]) -> None:
        """
        Write the forest to disk atomically.

        Raises:
            PresetPersistenceError: If the write fails or a value cannot be encoded as JSON
        """
        try:
            write_json_atomic(self.snapshot_path, entries_to_document(entries))
        except (OSError, TypeError, ValueError) as e:
            raise PresetPersistenceError(f"Failed to write preset snapshot: {e}")
        logger.sync(f"Saved {len(entries)} root entries", details=str(self.snapshot_path))
