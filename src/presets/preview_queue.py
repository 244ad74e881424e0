"""
Preview queue - lazy, deduplicated preset thumbnails.

One global FIFO, one render in flight. The render collaborator runs on a
worker thread; its result comes back to the Qt thread through a queued
signal, so all queue state is only ever touched on the Qt thread. A render
that outlives timeout_ms is abandoned, not killed: its thread may still be
inside the renderer while the next item renders.

Enqueue triggers (wired by PresetController):
- preset panel shown with a render-ready source image -> root presets
- folder expanded for the first time / preset moved into it -> its children
- preset created, duplicated or overwritten -> that preset, at the front
"""

from collections import deque
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol
import copy
import threading

from PyQt5.QtCore import QObject, QTimer, pyqtSignal

from src.config import PREVIEW_RENDER_TIMEOUT_MS
from src.utils.logger import logger


class PreviewRenderer(Protocol):
    """Render collaborator. May block; may raise."""

    def request_preview(self, adjustments: dict) -> Any:
        ...


class PreviewQueue(QObject):
    """
    Single-consumer preview pipeline.

    Signals:
        preview_ready: preset id, preview handle (None if the render failed)
        queue_idle: the last queued item finished
    """

    preview_ready = pyqtSignal(str, object)
    queue_idle = pyqtSignal()

    # ticket, preset id, handle, error message ("" on success)
    _render_finished = pyqtSignal(int, str, object, str)

    def __init__(self, store, renderer: PreviewRenderer,
                 timeout_ms: int = PREVIEW_RENDER_TIMEOUT_MS,
                 base_adjustments: Optional[dict] = None,
                 is_visible: Optional[Callable[[str], bool]] = None,
                 parent: Optional[QObject] = None):
        """
        Args:
            store: PresetStore the ids refer to
            renderer: Render collaborator
            timeout_ms: Give up on a single render after this long; 0 = never
            base_adjustments: Defaults merged under each preset's adjustments,
                so keys a preset does not carry render at their neutral value
            is_visible: Checked when an item is dequeued; items no longer
                visible (e.g. folder collapsed) are skipped
        """
        super().__init__(parent)
        self._store = store
        self._renderer = renderer
        self._timeout_ms = timeout_ms
        self._base_adjustments = dict(base_adjustments or {})
        self._is_visible = is_visible

        self._pending: deque = deque()
        self._in_flight: Optional[str] = None
        self._ticket = 0
        self._stale: set = set()
        self._cache: Dict[str, Any] = {}
        self._source_ready = False
        self._busy = False

        self._timeout_timer = QTimer(self)
        self._timeout_timer.setSingleShot(True)
        self._timeout_timer.timeout.connect(self._on_render_timeout)

        self._render_finished.connect(self._on_render_finished)

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def source_ready(self) -> bool:
        return self._source_ready

    @property
    def in_flight(self) -> Optional[str]:
        return self._in_flight

    @property
    def is_generating(self) -> bool:
        return self._in_flight is not None or bool(self._pending)

    def pending_ids(self) -> List[str]:
        return list(self._pending)

    def get_preview(self, preset_id: str) -> Any:
        """Cached preview handle; None if missing or failed."""
        return self._cache.get(preset_id)

    def has_preview(self, preset_id: str) -> bool:
        """True only for a successful, still valid preview."""
        return self._cache.get(preset_id) is not None

    def has_result(self, preset_id: str) -> bool:
        """True if a render finished for this id, failed or not."""
        return preset_id in self._cache

    # =========================================================================
    # CONTROL
    # =========================================================================

    def set_source_ready(self, ready: bool) -> None:
        """
        Whether a source image is available to render against. While not
        ready nothing is enqueued and pending items are dropped; previews
        already cached stay valid.
        """
        self._source_ready = ready
        if ready:
            self._pump()
        else:
            self._pending.clear()

    def enqueue(self, preset_ids: Iterable[str], priority: bool = False) -> int:
        """
        Queue presets for rendering.

        Ids with a valid preview, already queued or in flight are skipped.
        With priority, ids go to the front (an already queued id is moved
        there) so a fresh save does not wait behind a long backlog.

        Returns:
            Number of ids newly queued
        """
        if not self._source_ready:
            return 0
        if isinstance(preset_ids, str):
            preset_ids = [preset_ids]

        added = []
        for preset_id in preset_ids:
            if self.has_preview(preset_id) or preset_id == self._in_flight:
                continue
            if preset_id in added:
                continue
            if preset_id in self._pending:
                if priority:
                    self._pending.remove(preset_id)
                    added.append(preset_id)
                continue
            added.append(preset_id)

        if priority:
            self._pending.extendleft(reversed(added))
        else:
            self._pending.extend(added)

        if added:
            logger.preview(f"Queued {len(added)} preview(s)", details=f"priority={priority}")
        self._pump()
        return len(added)

    def invalidate(self, preset_id: str) -> None:
        """Evict a preview so the next enqueue renders it again."""
        self._cache.pop(preset_id, None)
        if preset_id == self._in_flight:
            self._stale.add(preset_id)

    def discard(self, preset_ids: Iterable[str]) -> None:
        """Forget deleted presets: cache, queue and in-flight result."""
        for preset_id in preset_ids:
            self._cache.pop(preset_id, None)
            if preset_id in self._pending:
                self._pending.remove(preset_id)
            if preset_id == self._in_flight:
                self._stale.add(preset_id)

    def clear_cache(self) -> None:
        """Drop every preview, e.g. when the source image changes."""
        self._cache.clear()
        if self._in_flight is not None:
            self._stale.add(self._in_flight)

    def stop(self) -> None:
        """Teardown: stop draining and ignore the in-flight result."""
        self._source_ready = False
        self._pending.clear()
        self._timeout_timer.stop()
        self._ticket += 1
        self._in_flight = None
        self._stale.clear()
        self._busy = False

    # =========================================================================
    # CONSUMER
    # =========================================================================

    def _pump(self) -> None:
        while self._in_flight is None and self._source_ready and self._pending:
            preset_id = self._pending.popleft()
            preset = self._store.find_preset(preset_id)
            if preset is None or self.has_preview(preset_id):
                continue
            if self._is_visible is not None and not self._is_visible(preset_id):
                continue
            self._start(preset)

        if self._in_flight is None and self._busy:
            self._busy = False
            self.queue_idle.emit()

    def _start(self, preset) -> None:
        self._ticket += 1
        self._in_flight = preset.id
        self._busy = True

        adjustments = copy.deepcopy(self._base_adjustments)
        adjustments.update(copy.deepcopy(preset.adjustments))

        worker = threading.Thread(
            target=self._render,
            args=(self._ticket, preset.id, adjustments),
            name=f"preview-{preset.id[:8]}",
            daemon=True,
        )
        worker.start()
        if self._timeout_ms > 0:
            self._timeout_timer.start(self._timeout_ms)

    def _render(self, ticket: int, preset_id: str, adjustments: dict) -> None:
        """Worker thread body."""
        try:
            handle = self._renderer.request_preview(adjustments)
        except Exception as e:
            self._render_finished.emit(ticket, preset_id, None, str(e) or type(e).__name__)
            return
        self._render_finished.emit(ticket, preset_id, handle, "")

    def _on_render_finished(self, ticket: int, preset_id: str, handle, error: str) -> None:
        if ticket != self._ticket or preset_id != self._in_flight:
            logger.preview("Ignoring late preview result", details=preset_id)
            return
        self._timeout_timer.stop()
        self._complete(preset_id, handle, error)

    def _on_render_timeout(self) -> None:
        """
        Give up on the in-flight render and move on.

        The worker thread cannot be interrupted, so it keeps running inside
        the renderer while the next item starts; the renderer must tolerate
        overlapping calls. Bumping the ticket makes its eventual result a
        no-op in _on_render_finished.
        """
        preset_id = self._in_flight
        if preset_id is None:
            return
        self._ticket += 1
        self._complete(preset_id, None, f"timed out after {self._timeout_ms} ms")

    def _complete(self, preset_id: str, handle, error: str) -> None:
        self._in_flight = None

        if preset_id in self._stale:
            self._stale.discard(preset_id)
            if self._store.find_preset(preset_id) is not None:
                self._pending.appendleft(preset_id)
        elif error:
            logger.warning("Preview render failed", component="preview",
                           details=f"{preset_id}: {error}")
            self._cache[preset_id] = None
            self.preview_ready.emit(preset_id, None)
        else:
            self._cache[preset_id] = handle
            self.preview_ready.emit(preset_id, handle)

        self._pump()
