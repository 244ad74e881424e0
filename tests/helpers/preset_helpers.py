"""
Test doubles for the preset library collaborators.

MemoryBackend  - snapshot backend kept in memory, can be told to fail
FakeRenderer   - preview renderer returning "preview:<exposure>", can fail
GatedRenderer  - FakeRenderer that blocks until released (in-flight tests)
"""
import threading

from src.presets import PresetPersistenceError
from src.presets.preset_schema import entry_to_dict


class MemoryBackend:

    def __init__(self, entries=None, load_error=None):
        self.entries = list(entries or [])
        self.load_error = load_error
        self.fail_save = False
        self.snapshots = []

    def load_snapshot(self):
        if self.load_error:
            raise PresetPersistenceError(self.load_error)
        return list(self.entries)

    def save_snapshot(self, entries):
        if self.fail_save:
            raise PresetPersistenceError("disk full")
        self.snapshots.append([entry_to_dict(e) for e in entries])

    @property
    def last_snapshot(self):
        return self.snapshots[-1] if self.snapshots else None


class FakeRenderer:

    def __init__(self, fail_exposures=()):
        self.fail_exposures = set(fail_exposures)
        self.calls = []
        self._lock = threading.Lock()

    def request_preview(self, adjustments):
        with self._lock:
            self.calls.append(dict(adjustments))
        exposure = adjustments.get("exposure")
        if exposure in self.fail_exposures:
            raise RuntimeError(f"cannot render exposure {exposure}")
        return f"preview:{exposure}"

    @property
    def exposures(self):
        with self._lock:
            return [c.get("exposure") for c in self.calls]


class GatedRenderer(FakeRenderer):
    """Blocks every render until release() (or the safety timeout)."""

    def __init__(self, fail_exposures=(), max_wait=5.0):
        super().__init__(fail_exposures)
        self.gate = threading.Event()
        self.max_wait = max_wait

    def request_preview(self, adjustments):
        self.gate.wait(self.max_wait)
        return super().request_preview(adjustments)

    def release(self):
        self.gate.set()
