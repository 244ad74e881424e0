"""
PresetController - wires the preset library together for the presets panel.

Owns the store, the snapshot backend, the debounced sync, the preview queue
and the import/export codec, and translates store events into preview work:

    preset created / duplicated   -> render it first
    preset overwritten            -> drop its preview, render it first
    preset moved into open folder -> render that folder
    items deleted                 -> forget previews and folder state
    entries imported              -> render the imported root presets

Presets are only rendered while the panel is shown, a source image is ready,
and the preset is visible (at the root or in an expanded folder).
"""
from __future__ import annotations

import copy
from pathlib import Path
from typing import List, Optional

from PyQt5.QtCore import QObject, pyqtSignal
from PyQt5.QtWidgets import QFileDialog, QMessageBox

from src.config import PERSIST_DEBOUNCE_MS, PRESET_FILE_EXTENSION, PREVIEW_RENDER_TIMEOUT_MS
from src.presets import (
    Folder,
    PersistenceSync,
    PresetCodec,
    PresetError,
    PresetManager,
    PresetStore,
    PreviewQueue,
    default_export_filename,
    handle_drag_end,
)
from src.utils.logger import logger


class PresetController(QObject):
    """Presets panel backend."""

    folder_expanded = pyqtSignal(str)
    folder_collapsed = pyqtSignal(str)
    preset_applied = pyqtSignal(str, object)  # preset id, merged adjustments

    def __init__(self, renderer, backend=None, codec: Optional[PresetCodec] = None,
                 debounce_ms: int = PERSIST_DEBOUNCE_MS,
                 preview_timeout_ms: int = PREVIEW_RENDER_TIMEOUT_MS,
                 base_adjustments: Optional[dict] = None,
                 parent: Optional[QObject] = None):
        super().__init__(parent)
        self.backend = backend if backend is not None else PresetManager()
        self.store = PresetStore(backend=self.backend, parent=self)
        self.sync = PersistenceSync(self.store, self.backend, debounce_ms=debounce_ms, parent=self)
        self.previews = PreviewQueue(
            self.store, renderer,
            timeout_ms=preview_timeout_ms,
            base_adjustments=base_adjustments,
            is_visible=self.is_preset_visible,
            parent=self,
        )
        self.codec = codec or PresetCodec()

        self.expanded_folders = set()
        self._panel_visible = False
        self._started = False

        self.store.presets_loaded.connect(self._on_presets_loaded)
        self.store.preset_created.connect(self._on_preset_created)
        self.store.preset_updated.connect(self._on_preset_updated)
        self.store.preset_moved.connect(self._on_preset_moved)
        self.store.items_deleted.connect(self._on_items_deleted)
        self.store.entries_imported.connect(self._on_entries_imported)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> bool:
        """Load the library. Returns False if the snapshot could not be read."""
        if self._started:
            return True
        self._started = True
        return self.sync.load()

    def shutdown(self):
        """Write any pending change, then stop timers and the preview queue."""
        if not self.sync.flush():
            logger.warning("Presets not saved on shutdown", component="sync")
        self.sync.stop()
        self.previews.stop()

    # =========================================================================
    # VISIBILITY
    # =========================================================================

    @property
    def panel_visible(self) -> bool:
        return self._panel_visible

    def set_panel_visible(self, visible: bool):
        self._panel_visible = visible
        if visible:
            self._request_visible_previews()

    def set_source_ready(self, ready: bool):
        """A source image finished loading (or was closed)."""
        self.previews.set_source_ready(ready)
        if ready:
            self._request_visible_previews()

    def source_image_changed(self):
        """Every preview was rendered against the old image."""
        self.previews.clear_cache()
        self._request_visible_previews()

    def is_preset_visible(self, preset_id: str) -> bool:
        if not self._panel_visible:
            return False
        located = self.store.locate(preset_id)
        if located is None:
            return False
        parent_id = located[1]
        return parent_id is None or parent_id in self.expanded_folders

    def toggle_folder(self, folder_id: str) -> bool:
        """Returns the folder's new expanded state."""
        if folder_id in self.expanded_folders:
            self.expanded_folders.discard(folder_id)
            self.folder_collapsed.emit(folder_id)
            return False
        return self.expand_folder(folder_id)

    def expand_folder(self, folder_id: str) -> bool:
        if not isinstance(self.store.find(folder_id), Folder):
            return False
        if folder_id not in self.expanded_folders:
            self.expanded_folders.add(folder_id)
            self.folder_expanded.emit(folder_id)
        self._request_folder_previews(folder_id)
        return True

    def _request_visible_previews(self):
        if not self._panel_visible:
            return
        self.previews.enqueue([p.id for p in self.store.root_presets()])
        for folder_id in list(self.expanded_folders):
            self._request_folder_previews(folder_id)

    def _request_folder_previews(self, folder_id: str):
        if not self._panel_visible:
            return
        self.previews.enqueue([p.id for p in self.store.folder_children(folder_id)])

    # =========================================================================
    # STORE EVENTS
    # =========================================================================

    def _on_presets_loaded(self):
        known = set(self.store.all_ids())
        self.expanded_folders &= known
        self._request_visible_previews()

    def _on_preset_created(self, preset_id: str):
        if self.is_preset_visible(preset_id):
            self.previews.enqueue([preset_id], priority=True)

    def _on_preset_updated(self, preset_id: str):
        self.previews.invalidate(preset_id)
        if self.is_preset_visible(preset_id):
            self.previews.enqueue([preset_id], priority=True)

    def _on_preset_moved(self, preset_id: str, folder_id):
        if folder_id is None:
            if self._panel_visible:
                self.previews.enqueue([preset_id])
        elif folder_id in self.expanded_folders:
            self._request_folder_previews(folder_id)

    def _on_items_deleted(self, ids: list):
        self.previews.discard(ids)
        self.expanded_folders.difference_update(ids)

    def _on_entries_imported(self, ids: list):
        if not self._panel_visible:
            return
        self.previews.enqueue([i for i in ids if self.store.find_preset(i) is not None])

    # =========================================================================
    # LIBRARY OPERATIONS
    # =========================================================================

    def set_working_adjustments(self, adjustments: dict):
        self.store.set_working_adjustments(adjustments)

    def save_current_as_preset(self, name: str, folder_id: Optional[str] = None,
                               adjustments: Optional[dict] = None):
        """Save the working adjustments (or the given ones) as a new preset."""
        preset = self.store.add_preset(name, adjustments, folder_id=folder_id)
        if preset is not None:
            logger.info(f"Preset saved: {preset.name}", component="store")
        return preset

    def add_folder(self, name: str):
        return self.store.add_folder(name)

    def rename_item(self, entry_id: str, new_name: str) -> bool:
        return self.store.rename_item(entry_id, new_name)

    def overwrite_preset(self, preset_id: str, adjustments: Optional[dict] = None):
        return self.store.update_preset(preset_id, adjustments)

    def duplicate_preset(self, preset_id: str):
        return self.store.duplicate(preset_id)

    def delete_item(self, entry_id: str) -> bool:
        return self.store.delete_item(entry_id)

    def sort_alphabetically(self):
        self.store.sort_alphabetically()

    def handle_drag_end(self, active_id: str, over_id: Optional[str]):
        return handle_drag_end(self.store, active_id, over_id, on_expand=self.expand_folder)

    def apply_preset(self, preset_id: str) -> Optional[dict]:
        """
        Lay the preset's adjustments over the working state. Keys the preset
        does not carry keep their current values.

        Returns:
            The merged adjustments, or None for an unknown preset
        """
        preset = self.store.find_preset(preset_id)
        if preset is None:
            return None
        merged = dict(self.store.working_adjustments)
        merged.update(copy.deepcopy(preset.adjustments))
        self.store.set_working_adjustments(merged)
        self.preset_applied.emit(preset_id, merged)
        return merged

    # =========================================================================
    # IMPORT / EXPORT
    # =========================================================================

    def import_presets(self, path) -> list:
        """
        Raises:
            PresetImportError: If the file cannot be imported (library unchanged)
        """
        return self.codec.import_into(self.store, path)

    def export_items(self, ids: List[str], path) -> list:
        """
        Export the given entries in library order. Unknown ids are skipped,
        as are presets whose folder is selected too.

        Raises:
            PresetExportError: If the file cannot be written
        """
        entries = self._selected_entries(ids)
        self.codec.export_entries(entries, path)
        return entries

    def export_all(self, path) -> list:
        entries = self.store.root_entries()
        self.codec.export_entries(entries, path)
        return entries

    def _selected_entries(self, ids: List[str]) -> list:
        # A selected folder already carries all of its children
        wanted = set(ids)
        selected = []
        for entry in self.store.root_entries():
            if entry.id in wanted:
                selected.append(entry)
            elif isinstance(entry, Folder):
                selected.extend(c for c in entry.children if c.id in wanted)
        return selected

    def _file_filter(self) -> str:
        return f"Preset Files (*.{PRESET_FILE_EXTENSION});;JSON Files (*.json)"

    def prompt_import(self, parent=None):
        """Ask for a file and import it. Returns the imported entries or None."""
        filepath, _ = QFileDialog.getOpenFileName(
            parent,
            "Import Presets",
            str(Path.home()),
            self._file_filter(),
        )
        if not filepath:
            return None

        try:
            return self.import_presets(filepath)
        except PresetError as e:
            logger.error(f"Failed to import presets: {e}", component="codec")
            QMessageBox.warning(parent, "Error", f"Failed to import presets:\n{e}")
            return None

    def prompt_export(self, parent=None, ids: Optional[List[str]] = None):
        """
        Ask for a destination and export. With no ids the whole library is
        exported. Returns the written path or None.
        """
        if ids:
            entries = self._selected_entries(ids)
        else:
            entries = self.store.root_entries()
        if not entries:
            return None

        default_path = Path.home() / default_export_filename(entries)
        filepath, _ = QFileDialog.getSaveFileName(
            parent,
            "Export Presets",
            str(default_path),
            self._file_filter(),
        )
        if not filepath:
            return None
        if not filepath.endswith(f".{PRESET_FILE_EXTENSION}") and not filepath.endswith(".json"):
            filepath += f".{PRESET_FILE_EXTENSION}"

        try:
            self.codec.export_entries(entries, filepath)
        except PresetError as e:
            logger.error(f"Failed to export presets: {e}", component="codec")
            QMessageBox.warning(parent, "Error", f"Failed to export presets:\n{e}")
            return None
        return filepath
