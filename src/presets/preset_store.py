"""
Central in-memory preset store.

Owns the preset forest: an ordered root list of Presets and Folders, where a
Folder holds an ordered list of Presets. All mutation goes through this class;
every successful mutation emits presets_changed, which drives persistence.

Unknown ids are never errors. The UI can race a stale reference against a
delete, so every mutation that cannot resolve its ids is a silent no-op.

Usage:
    store = PresetStore(backend=PresetManager())
    store.load()

    store.set_working_adjustments(editor.adjustments())
    folder = store.add_folder("Portraits")
    warm = store.add_preset("Warm", folder_id=folder.id)

    store.presets_changed.connect(sync.schedule)
"""

import copy
from typing import Iterator, List, Optional, Tuple

from PyQt5.QtCore import QObject, pyqtSignal

from src.config import DUPLICATE_SUFFIX
from src.utils.logger import logger
from .preset_manager import ForestInvariantError, PresetError
from .preset_schema import (
    Entry,
    Folder,
    Preset,
    check_forest,
    filter_adjustments,
)
from .preset_utils import natural_sort_key, new_id


def _index_of(container: list, entry_id: Optional[str]) -> int:
    """Position of entry_id in container, -1 if absent."""
    if entry_id is None:
        return -1
    for i, entry in enumerate(container):
        if entry.id == entry_id:
            return i
    return -1


def _is_blank(name) -> bool:
    return not isinstance(name, str) or not name.strip()


class PresetStore(QObject):
    """
    Canonical in-memory preset forest.

    Signals:
        presets_changed: after every successful mutation (not after load)
        presets_loaded: after load()/replace_all(), success or not
        load_failed: load() could not read the snapshot (message)
        preset_created: new preset id (add or duplicate)
        preset_updated: preset id whose adjustments were overwritten
        preset_moved: preset id, target folder id (None = root)
        items_deleted: every removed id, folder children included
        entries_imported: root ids appended by append_entries()
    """

    presets_changed = pyqtSignal()
    presets_loaded = pyqtSignal()
    load_failed = pyqtSignal(str)
    preset_created = pyqtSignal(str)
    preset_updated = pyqtSignal(str)
    preset_moved = pyqtSignal(str, object)
    items_deleted = pyqtSignal(list)
    entries_imported = pyqtSignal(list)

    def __init__(self, backend=None, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._backend = backend
        self._entries: List[Entry] = []
        self._working_adjustments: dict = {}

    # ── Loading ──────────────────────────────────────────────────────────

    def load(self, backend=None) -> bool:
        """
        Replace the forest with the backend's snapshot.

        On failure the forest starts empty, the error is logged and
        load_failed is emitted. Never raises for I/O problems.

        Returns:
            True if the snapshot was loaded
        """
        backend = backend or self._backend
        if backend is None:
            raise ValueError("PresetStore.load() needs a snapshot backend")

        entries, error = self._read_snapshot(backend)

        if error is not None:
            logger.error("Failed to load presets", component="store", details=error)
            self._entries = []
            self.load_failed.emit(error)
            self.presets_loaded.emit()
            return False

        logger.store(f"Loaded forest with {len(entries)} root entries")
        self.replace_all(entries)
        return True

    @staticmethod
    def _read_snapshot(backend) -> Tuple[List[Entry], Optional[str]]:
        try:
            entries = list(backend.load_snapshot())
            problems = check_forest(entries)
            if problems:
                raise ForestInvariantError("; ".join(problems))
        except PresetError as e:
            return [], str(e)
        return entries, None

    def replace_all(self, entries: List[Entry]) -> None:
        """
        Swap in a complete forest without scheduling a write.

        Raises:
            ForestInvariantError: If entries break an invariant
        """
        problems = check_forest(entries)
        if problems:
            raise ForestInvariantError("; ".join(problems))
        self._entries = list(entries)
        self.presets_loaded.emit()

    # ── Working adjustments ──────────────────────────────────────────────

    @property
    def working_adjustments(self) -> dict:
        return self._working_adjustments

    def set_working_adjustments(self, adjustments: Optional[dict]) -> None:
        """Current editor state; default source for add_preset/update_preset."""
        self._working_adjustments = dict(adjustments or {})

    # ── Read accessors ───────────────────────────────────────────────────
    # Returned entries are the live objects; treat them as read-only.

    def root_entries(self) -> List[Entry]:
        return list(self._entries)

    def folder_children(self, folder_id: str) -> List[Preset]:
        folder = self.find(folder_id)
        if isinstance(folder, Folder):
            return list(folder.children)
        return []

    def root_presets(self) -> List[Preset]:
        return [e for e in self._entries if isinstance(e, Preset)]

    def folders(self) -> List[Folder]:
        return [e for e in self._entries if isinstance(e, Folder)]

    def iter_presets(self) -> Iterator[Preset]:
        """Every preset, root and nested, in display order."""
        for entry in self._entries:
            if isinstance(entry, Folder):
                yield from entry.children
            else:
                yield entry

    def all_ids(self) -> List[str]:
        ids = []
        for entry in self._entries:
            ids.append(entry.id)
            if isinstance(entry, Folder):
                ids.extend(child.id for child in entry.children)
        return ids

    def __len__(self) -> int:
        """Number of root entries."""
        return len(self._entries)

    @property
    def is_empty(self) -> bool:
        return not self._entries

    def locate(self, entry_id: Optional[str]) -> Optional[Tuple[Entry, Optional[str]]]:
        """
        Find an entry and its container.

        Returns:
            (entry, parent_folder_id) where parent_folder_id is None for root
            entries, or None if the id is unknown
        """
        if entry_id is None:
            return None
        for entry in self._entries:
            if entry.id == entry_id:
                return entry, None
            if isinstance(entry, Folder):
                for child in entry.children:
                    if child.id == entry_id:
                        return child, entry.id
        return None

    def find(self, entry_id: Optional[str]) -> Optional[Entry]:
        located = self.locate(entry_id)
        return located[0] if located else None

    def find_preset(self, entry_id: Optional[str]) -> Optional[Preset]:
        entry = self.find(entry_id)
        return entry if isinstance(entry, Preset) else None

    def _container(self, folder_id: Optional[str]) -> Optional[list]:
        """Root list for None, a folder's children list, or None if unknown."""
        if folder_id is None:
            return self._entries
        for entry in self._entries:
            if isinstance(entry, Folder) and entry.id == folder_id:
                return entry.children
        return None

    def _containers(self) -> Iterator[list]:
        yield self._entries
        for entry in self._entries:
            if isinstance(entry, Folder):
                yield entry.children

    def _commit(self) -> None:
        """Check invariants and announce the mutation."""
        problems = check_forest(self._entries)
        if problems:
            raise ForestInvariantError("; ".join(problems))
        self.presets_changed.emit()

    # ── Mutations ────────────────────────────────────────────────────────

    def add_preset(self, name: str, adjustments_source: Optional[dict] = None,
                   folder_id: Optional[str] = None) -> Optional[Preset]:
        """
        Save adjustments as a new preset.

        Args:
            name: Display name
            adjustments_source: Full adjustment state; only whitelisted keys are
                kept. Defaults to the working adjustments.
            folder_id: Folder to append to; root if None

        Returns:
            The created Preset, or None if the name is blank or the folder
            is unknown
        """
        if _is_blank(name):
            logger.store("add_preset ignored: blank name")
            return None

        container = self._container(folder_id)
        if container is None:
            logger.store("add_preset ignored: unknown folder", details=folder_id)
            return None

        source = self._working_adjustments if adjustments_source is None else adjustments_source
        preset = Preset(id=new_id(), name=name, adjustments=filter_adjustments(source))
        container.append(preset)

        self._commit()
        self.preset_created.emit(preset.id)
        return preset

    def add_folder(self, name: str) -> Optional[Folder]:
        """
        Create an empty folder ahead of the first root-level preset, so folders
        stay grouped before loose presets.
        """
        if _is_blank(name):
            logger.store("add_folder ignored: blank name")
            return None

        folder = Folder(id=new_id(), name=name)
        first_preset = next(
            (i for i, e in enumerate(self._entries) if isinstance(e, Preset)), -1
        )
        if first_preset == -1:
            self._entries.append(folder)
        else:
            self._entries.insert(first_preset, folder)

        self._commit()
        return folder

    def rename_item(self, entry_id: str, new_name: str) -> bool:
        entry = self.find(entry_id)
        if entry is None or _is_blank(new_name):
            return False
        entry.name = new_name
        self._commit()
        return True

    def delete_item(self, entry_id: str) -> bool:
        """Remove a preset or a folder together with all of its children."""
        located = self.locate(entry_id)
        if located is None:
            return False
        entry, parent_id = located

        container = self._container(parent_id)
        container.pop(_index_of(container, entry_id))

        removed = [entry.id]
        if isinstance(entry, Folder):
            removed.extend(child.id for child in entry.children)

        self._commit()
        self.items_deleted.emit(removed)
        return True

    def duplicate(self, preset_id: str) -> Optional[Preset]:
        """Copy a preset right after itself, in the same container."""
        located = self.locate(preset_id)
        if located is None or not isinstance(located[0], Preset):
            return None
        source, parent_id = located

        twin = Preset(
            id=new_id(),
            name=f"{source.name}{DUPLICATE_SUFFIX}",
            adjustments=copy.deepcopy(source.adjustments),
        )
        container = self._container(parent_id)
        container.insert(_index_of(container, preset_id) + 1, twin)

        self._commit()
        self.preset_created.emit(twin.id)
        return twin

    def update_preset(self, preset_id: str,
                      adjustments_source: Optional[dict] = None) -> Optional[Preset]:
        """Overwrite a preset's adjustments with the working state, in place."""
        preset = self.find_preset(preset_id)
        if preset is None:
            return None

        source = self._working_adjustments if adjustments_source is None else adjustments_source
        preset.adjustments = filter_adjustments(source)

        self._commit()
        self.preset_updated.emit(preset.id)
        return preset

    def move_to_folder(self, preset_id: str, target_folder_id: Optional[str] = None,
                       before_id: Optional[str] = None) -> bool:
        """
        Relocate a preset into a folder, or to the root when target_folder_id
        is None. Inserted before before_id when it resolves in the target,
        appended otherwise. Folders cannot be moved into folders.
        """
        located = self.locate(preset_id)
        if located is None or isinstance(located[0], Folder):
            return False
        entry, source_id = located

        target = self._container(target_folder_id)
        if target is None:
            return False

        if before_id == preset_id:
            before_id = None
        if source_id == target_folder_id and _index_of(target, before_id) == -1:
            return False

        source = self._container(source_id)
        source.pop(_index_of(source, preset_id))

        before_index = _index_of(target, before_id)
        if before_index == -1:
            target.append(entry)
        else:
            target.insert(before_index, entry)

        self._commit()
        self.preset_moved.emit(preset_id, target_folder_id)
        return True

    def reorder_within_container(self, active_id: str, over_id: str) -> bool:
        """
        Array move: take active out of its index and reinsert it at over's
        index. Only entries between the two positions shift. Both ids must
        live in the same container.
        """
        for container in self._containers():
            src = _index_of(container, active_id)
            dst = _index_of(container, over_id)
            if src == -1 or dst == -1:
                continue
            if src == dst:
                return False
            container.insert(dst, container.pop(src))
            self._commit()
            return True
        return False

    def sort_alphabetically(self) -> None:
        """
        Folders first then loose presets at the root, each group in natural
        name order; every folder's children sorted the same way.
        """
        def by_name(entry):
            return natural_sort_key(entry.name)

        for folder in self.folders():
            folder.children.sort(key=by_name)

        folders = sorted(self.folders(), key=by_name)
        presets = sorted(self.root_presets(), key=by_name)
        self._entries[:] = folders + presets

        self._commit()

    def append_entries(self, entries: List[Entry]) -> List[Entry]:
        """
        Append prebuilt entries to the end of the root, keeping their order.
        All-or-nothing: nothing is appended if the result would break an
        invariant.

        Raises:
            ForestInvariantError: If entries clash with the forest
        """
        entries = list(entries)
        if not entries:
            return []

        problems = check_forest(self._entries + entries)
        if problems:
            raise ForestInvariantError("; ".join(problems))

        self._entries.extend(entries)
        self.presets_changed.emit()
        self.entries_imported.emit([e.id for e in entries])
        return entries
