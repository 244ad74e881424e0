"""
Debounced persistence of the preset forest.

Every store mutation restarts a single-shot timer. When the timer fires, the
forest is read as it is at that moment and written through the backend, so
a burst of edits yields one write holding the final state.
"""

from typing import Optional

from PyQt5.QtCore import QObject, QTimer, pyqtSignal

from src.config import PERSIST_DEBOUNCE_MS
from src.utils.logger import logger
from .preset_manager import PresetError


class PersistenceSync(QObject):
    """
    Keeps the durable snapshot eventually consistent with a PresetStore.

    Signals:
        saved: a snapshot write succeeded
        save_failed: a write failed (message); retried on the next mutation
        load_failed: the startup load failed (message); forest starts empty
    """

    saved = pyqtSignal()
    save_failed = pyqtSignal(str)
    load_failed = pyqtSignal(str)

    def __init__(self, store, backend, debounce_ms: int = PERSIST_DEBOUNCE_MS,
                 parent: Optional[QObject] = None):
        super().__init__(parent)
        self._store = store
        self._backend = backend
        self._loaded = False
        self.write_count = 0

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(debounce_ms)
        self._timer.timeout.connect(self._write)

        self._store.presets_changed.connect(self.schedule)
        self._store.load_failed.connect(self.load_failed)

    @property
    def debounce_ms(self) -> int:
        return self._timer.interval()

    @property
    def is_pending(self) -> bool:
        return self._timer.isActive()

    def load(self) -> bool:
        """Load the snapshot into the store. Only the first call does anything."""
        if self._loaded:
            return True
        self._loaded = True
        return self._store.load(self._backend)

    def schedule(self) -> None:
        """Start or restart the debounce window."""
        self._timer.start()

    def flush(self) -> bool:
        """
        Write immediately if a write is pending.

        Returns:
            False only if a pending write failed
        """
        if not self._timer.isActive():
            return True
        self._timer.stop()
        return self._write()

    def stop(self) -> None:
        """Cancel a pending write (teardown)."""
        self._timer.stop()

    def _write(self) -> bool:
        entries = self._store.root_entries()
        try:
            self._backend.save_snapshot(entries)
        except PresetError as e:
            logger.error("Failed to save presets", component="sync", details=str(e))
            self.save_failed.emit(str(e))
            return False

        self.write_count += 1
        self.saved.emit()
        return True
