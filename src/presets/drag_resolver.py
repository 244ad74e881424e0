"""
Drag-and-drop relocation.

Turns the end of a drag gesture (active id, drop target id) into at most one
PresetStore call. The gesture state itself is transient and never stored.

Decision table, given the container (root or folder) each id lives in:

    no drop target, active nested        -> move_to_folder(active, None)
    no drop target, active at root       -> nothing
    active == over                       -> nothing
    over is a folder, not active's own   -> move_to_folder(active, over), expand over
    over is a preset, same container     -> reorder_within_container(active, over)
    over is a preset, other container    -> move_to_folder(active, over's container, before=over)

A dragged folder can only be reordered among root entries.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Optional

from src.utils.logger import logger
from .preset_schema import Folder


class DropKind(Enum):
    MOVE = auto()
    REORDER = auto()


@dataclass(frozen=True)
class DropAction:
    """A single store call decided from a drag gesture."""
    kind: DropKind
    active_id: str
    target_folder_id: Optional[str] = None  # MOVE: destination, None = root
    before_id: Optional[str] = None         # MOVE: insert position
    over_id: Optional[str] = None           # REORDER: position to take
    expand_folder_id: Optional[str] = None  # Folder the UI should open

    def apply(self, store) -> bool:
        if self.kind is DropKind.MOVE:
            return store.move_to_folder(self.active_id, self.target_folder_id, self.before_id)
        return store.reorder_within_container(self.active_id, self.over_id)


def resolve_drop(store, active_id: str, over_id: Optional[str]) -> Optional[DropAction]:
    """
    Decide what a finished drag should do. Reads the store, never mutates it.

    Args:
        store: PresetStore (only locate() is used)
        active_id: Dragged entry
        over_id: Entry under the pointer at drop time, None if dropped
            outside every droppable region

    Returns:
        DropAction, or None when the gesture changes nothing
    """
    active = store.locate(active_id)
    if active is None:
        return None
    active_entry, active_parent = active

    if over_id is None:
        if active_parent is not None:
            return DropAction(DropKind.MOVE, active_id, target_folder_id=None)
        return None

    if active_id == over_id:
        return None

    over = store.locate(over_id)
    if over is None:
        return None
    over_entry, over_parent = over

    if isinstance(active_entry, Folder):
        if over_parent is None:
            return DropAction(DropKind.REORDER, active_id, over_id=over_id)
        return None

    if isinstance(over_entry, Folder):
        if over_id == active_parent:
            return None
        return DropAction(
            DropKind.MOVE, active_id,
            target_folder_id=over_id,
            expand_folder_id=over_id,
        )

    if over_parent == active_parent:
        return DropAction(DropKind.REORDER, active_id, over_id=over_id)

    return DropAction(
        DropKind.MOVE, active_id,
        target_folder_id=over_parent,
        before_id=over_id,
        expand_folder_id=over_parent,
    )


def handle_drag_end(store, active_id: str, over_id: Optional[str],
                    on_expand: Optional[Callable[[str], None]] = None) -> Optional[DropAction]:
    """
    Resolve and apply a drag gesture.

    Args:
        on_expand: Called with a folder id the presentation layer should open

    Returns:
        The applied DropAction, or None if nothing happened
    """
    action = resolve_drop(store, active_id, over_id)
    if action is None:
        logger.debug(f"Drop of {active_id} on {over_id}: no-op", component="dnd")
        return None

    logger.debug(f"Drop of {active_id} on {over_id}: {action.kind.name}", component="dnd")
    action.apply(store)
    if action.expand_folder_id and on_expand is not None:
        on_expand(action.expand_folder_id)
    return action
