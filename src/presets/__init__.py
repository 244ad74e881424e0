"""
Presets module - library of saved adjustment presets.
"""

from .preset_schema import (
    Entry,
    Folder,
    Preset,
    PresetValidationError,
    check_forest,
    entries_from_document,
    entries_to_document,
    filter_adjustments,
    validate_document,
)

from .preset_manager import (
    ForestInvariantError,
    PresetError,
    PresetExportError,
    PresetImportError,
    PresetManager,
    PresetPersistenceError,
)

from .preset_store import PresetStore
from .drag_resolver import DropAction, DropKind, handle_drag_end, resolve_drop
from .persistence import PersistenceSync
from .preview_queue import PreviewQueue, PreviewRenderer
from .codec import FileIO, LocalFileIO, PresetCodec, default_export_filename

__all__ = [
    "Entry",
    "Folder",
    "Preset",
    "PresetValidationError",
    "check_forest",
    "entries_from_document",
    "entries_to_document",
    "filter_adjustments",
    "validate_document",
    "ForestInvariantError",
    "PresetError",
    "PresetExportError",
    "PresetImportError",
    "PresetManager",
    "PresetPersistenceError",
    "PresetStore",
    "DropAction",
    "DropKind",
    "handle_drag_end",
    "resolve_drop",
    "PersistenceSync",
    "PreviewQueue",
    "PreviewRenderer",
    "FileIO",
    "LocalFileIO",
    "PresetCodec",
    "default_export_filename",
]
