"""
Import/export of portable preset documents.

Exported files carry the same tagged entry shape as the snapshot, wrapped in
a versioned document:

    {"version": 1, "exported": "...Z", "presets": [{"preset": {...}}, {"folder": {...}}]}

Previews are never written. Imports always get fresh ids, so a file can be
imported any number of times, and root names are made unique against what
the library already holds.
"""

import json
from pathlib import Path
from typing import List, Optional, Protocol, Union

from src.config import EXPORT_ALL_BASENAME, PRESET_FILE_EXTENSION
from src.utils.logger import logger
from .preset_manager import (
    ForestInvariantError,
    PresetExportError,
    PresetImportError,
    write_bytes_atomic,
)
from .preset_schema import (
    Entry,
    PresetValidationError,
    entries_from_document,
    entries_to_document,
)
from .preset_utils import sanitize_filename, unique_name, utc_timestamp

PathLike = Union[str, Path]


class FileIO(Protocol):
    """Byte-level file collaborator."""

    def write_bytes(self, path: PathLike, data: bytes) -> None:
        ...

    def read_bytes(self, path: PathLike) -> bytes:
        ...


class LocalFileIO:
    """Local filesystem; writes are atomic (temp file + os.replace)."""

    def write_bytes(self, path: PathLike, data: bytes) -> None:
        write_bytes_atomic(Path(path), data)

    def read_bytes(self, path: PathLike) -> bytes:
        return Path(path).read_bytes()


def default_export_filename(entries: List[Entry]) -> str:
    """
    Suggested file name for an export.

    A single entry exports under its own name, several under EXPORT_ALL_BASENAME.
    """
    if len(entries) == 1:
        base = sanitize_filename(entries[0].name) or EXPORT_ALL_BASENAME
    else:
        base = EXPORT_ALL_BASENAME
    return f"{base}.{PRESET_FILE_EXTENSION}"


class PresetCodec:
    """
    Reads and writes preset documents through a FileIO collaborator.

    Usage:
        codec = PresetCodec()
        codec.export_entries([folder, preset], "/tmp/mine.lpreset")
        imported = codec.import_into(store, "/tmp/theirs.lpreset")
    """

    def __init__(self, file_io: Optional[FileIO] = None):
        self.file_io = file_io or LocalFileIO()

    def export_entries(self, entries: List[Entry], destination: PathLike) -> None:
        """
        Write entries (folders with all their children) to destination.

        Raises:
            PresetExportError: If the entries cannot be encoded or the file
                cannot be written
        """
        document = entries_to_document(entries, exported=utc_timestamp())
        try:
            payload = json.dumps(document, indent=2).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise PresetExportError(f"Cannot encode presets for export: {e}")
        try:
            self.file_io.write_bytes(destination, payload)
        except OSError as e:
            raise PresetExportError(f"Failed to export presets to {destination}: {e}")
        logger.info(f"Exported {len(entries)} entries", component="codec",
                    details=str(destination))

    def read_document(self, source: PathLike) -> List[Entry]:
        """
        Parse and validate a document. Every entry gets a new id; adjustments
        are filtered to the whitelist.

        Raises:
            PresetImportError: If the file is unreadable or malformed
        """
        try:
            raw = self.file_io.read_bytes(source)
        except OSError as e:
            raise PresetImportError(f"Failed to read {source}: {e}")

        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise PresetImportError(f"Invalid preset file {source}: {e}")

        try:
            return entries_from_document(data, remint_ids=True)
        except PresetValidationError as e:
            raise PresetImportError(str(e))

    def import_into(self, store, source: PathLike) -> List[Entry]:
        """
        Append the entries of a document to the end of the store's root.

        Root names clashing with existing root names (or with each other)
        become "Name (1)", "Name (2)", ... Nothing is appended on failure.

        Returns:
            The appended entries

        Raises:
            PresetImportError: If the document is malformed or cannot be merged
        """
        entries = self.read_document(source)

        taken = [e.name for e in store.root_entries()]
        for entry in entries:
            entry.name = unique_name(entry.name, taken)
            taken.append(entry.name)

        try:
            store.append_entries(entries)
        except ForestInvariantError as e:
            raise PresetImportError(f"Cannot merge {source}: {e}")

        logger.info(f"Imported {len(entries)} entries", component="codec",
                    details=str(source))
        return entries
