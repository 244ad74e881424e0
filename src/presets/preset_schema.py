"""
Preset schema definition and validation.

Two-level forest:
    root: [Preset | Folder, ...]
    Folder.children: [Preset, ...]   (folders never nest)

Serialized entry shape, shared by the snapshot file and exported documents:
    {"preset": {"id": ..., "name": ..., "adjustments": {...}}}
    {"folder": {"id": ..., "name": ..., "children": [{"id", "name", "adjustments"}, ...]}}

A document wraps the entry list:
    {"version": 1, "presets": [...]}
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union
import copy

from src.config import COPYABLE_ADJUSTMENT_KEYS, PRESET_DOCUMENT_VERSION
from src.utils.logger import logger
from .preset_utils import new_id

PRESET_KEY = "preset"
FOLDER_KEY = "folder"


class PresetValidationError(Exception):
    """Raised when preset data fails validation."""
    pass


def filter_adjustments(source: Optional[dict]) -> dict:
    """
    Copy the whitelisted keys of an adjustment state.

    Values are deep-copied so the preset never aliases the editor's live state.
    Keys outside COPYABLE_ADJUSTMENT_KEYS are dropped.
    """
    if not source:
        return {}
    return {
        key: copy.deepcopy(source[key])
        for key in COPYABLE_ADJUSTMENT_KEYS
        if key in source
    }


@dataclass
class Preset:
    id: str
    name: str
    adjustments: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "adjustments": copy.deepcopy(self.adjustments),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Preset":
        return cls(
            id=data.get("id") or new_id(),
            name=data["name"],
            adjustments=filter_adjustments(data.get("adjustments", {})),
        )


@dataclass
class Folder:
    id: str
    name: str
    children: List[Preset] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "children": [child.to_dict() for child in self.children],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Folder":
        return cls(
            id=data.get("id") or new_id(),
            name=data["name"],
            children=[Preset.from_dict(c) for c in _flatten_children(data.get("children", []))],
        )


Entry = Union[Preset, Folder]


def entry_to_dict(entry: Entry) -> dict:
    """Wrap an entry in its tag."""
    if isinstance(entry, Folder):
        return {FOLDER_KEY: entry.to_dict()}
    return {PRESET_KEY: entry.to_dict()}


def entries_to_document(entries: List[Entry], **metadata) -> dict:
    """Serialize entries into a versioned document dict."""
    document = {"version": PRESET_DOCUMENT_VERSION}
    document.update(metadata)
    document["presets"] = [entry_to_dict(e) for e in entries]
    return document


def _unwrap_child(child: dict) -> tuple:
    """Return (tag, payload) for a folder child, which may be bare or tagged."""
    if FOLDER_KEY in child:
        return FOLDER_KEY, child[FOLDER_KEY]
    if PRESET_KEY in child:
        return PRESET_KEY, child[PRESET_KEY]
    return PRESET_KEY, child


def _flatten_children(children: list) -> List[dict]:
    """
    Bare preset dicts for a folder's children.

    A folder found inside a folder cannot be represented; its presets are
    hoisted into the enclosing folder at the nested folder's position.
    """
    flat = []
    for child in children:
        tag, payload = _unwrap_child(child)
        if tag == FOLDER_KEY:
            logger.warning(
                f"Flattening nested folder '{payload.get('name', '?')}'",
                component="codec",
            )
            flat.extend(_flatten_children(payload.get("children", [])))
        else:
            flat.append(payload)
    return flat


# =============================================================================
# VALIDATION
# =============================================================================

def _document_entries(data) -> Optional[list]:
    """Entry list of a document, accepting the legacy bare-list form."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("presets"), list):
        return data["presets"]
    return None


def _validate_preset_payload(payload, prefix: str) -> tuple:
    """Validate a single preset body."""
    errors = []
    warnings = []

    if not isinstance(payload, dict):
        return [f"{prefix}: expected object, got {type(payload).__name__}"], []

    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append(f"{prefix}.name must be a non-empty string")

    entry_id = payload.get("id")
    if entry_id is not None and not isinstance(entry_id, str):
        errors.append(f"{prefix}.id must be a string")
    elif not entry_id:
        warnings.append(f"{prefix}: missing id, a new one will be assigned")

    adjustments = payload.get("adjustments", {})
    if not isinstance(adjustments, dict):
        errors.append(f"{prefix}.adjustments must be an object")
    else:
        dropped = sorted(set(adjustments) - set(COPYABLE_ADJUSTMENT_KEYS))
        if dropped:
            warnings.append(f"{prefix}: dropping non-copyable keys {dropped}")

    return errors, warnings


def _validate_folder_payload(payload, prefix: str) -> tuple:
    """Validate a folder body and its children."""
    errors = []
    warnings = []

    if not isinstance(payload, dict):
        return [f"{prefix}: expected object, got {type(payload).__name__}"], []

    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append(f"{prefix}.name must be a non-empty string")

    entry_id = payload.get("id")
    if entry_id is not None and not isinstance(entry_id, str):
        errors.append(f"{prefix}.id must be a string")

    children = payload.get("children", [])
    if not isinstance(children, list):
        errors.append(f"{prefix}.children must be a list")
        return errors, warnings

    for i, child in enumerate(children):
        child_prefix = f"{prefix}.children[{i}]"
        if not isinstance(child, dict):
            errors.append(f"{child_prefix}: expected object, got {type(child).__name__}")
            continue
        tag, child_payload = _unwrap_child(child)
        if tag == FOLDER_KEY:
            warnings.append(f"{child_prefix}: nested folder will be flattened")
            e, w = _validate_folder_payload(child_payload, child_prefix)
        else:
            e, w = _validate_preset_payload(child_payload, child_prefix)
        errors.extend(e)
        warnings.extend(w)

    return errors, warnings


def validate_document(data, strict: bool = False) -> tuple:
    """
    Validate a preset document (snapshot or exported file).

    Args:
        data: Parsed JSON, either {"version", "presets": [...]} or a bare list
        strict: If True, raise PresetValidationError on any error

    Returns:
        (is_valid, errors_and_warnings)
    """
    errors = []
    warnings = []

    entries = _document_entries(data)
    if entries is None:
        errors.append("document must be a list or an object with a 'presets' list")
    else:
        if isinstance(data, dict):
            version = data.get("version", 1)
            if not isinstance(version, int) or isinstance(version, bool):
                errors.append(f"version must be an integer, got {version!r}")
            elif version > PRESET_DOCUMENT_VERSION:
                warnings.append(
                    f"Document version {version} is newer than supported {PRESET_DOCUMENT_VERSION}"
                )

        for i, entry in enumerate(entries):
            prefix = f"presets[{i}]"
            if not isinstance(entry, dict):
                errors.append(f"{prefix}: expected object, got {type(entry).__name__}")
                continue
            tags = [k for k in (PRESET_KEY, FOLDER_KEY) if k in entry]
            if len(tags) != 1:
                errors.append(f"{prefix}: must have exactly one of 'preset' or 'folder'")
                continue
            if tags[0] == FOLDER_KEY:
                e, w = _validate_folder_payload(entry[FOLDER_KEY], f"{prefix}.folder")
            else:
                e, w = _validate_preset_payload(entry[PRESET_KEY], f"{prefix}.preset")
            errors.extend(e)
            warnings.extend(w)

    is_valid = len(errors) == 0

    if strict and not is_valid:
        raise PresetValidationError(f"Invalid preset document: {'; '.join(errors)}")

    return is_valid, errors + warnings


def entries_from_document(data, remint_ids: bool = False) -> List[Entry]:
    """
    Build entries from a parsed document.

    Args:
        data: Parsed JSON document
        remint_ids: If True, every entry gets a fresh id regardless of the
            document. Otherwise only missing or duplicate ids are replaced.

    Raises:
        PresetValidationError: If the document is malformed
    """
    validate_document(data, strict=True)

    entries: List[Entry] = []
    for raw in _document_entries(data):
        if FOLDER_KEY in raw:
            entries.append(Folder.from_dict(raw[FOLDER_KEY]))
        else:
            entries.append(Preset.from_dict(raw[PRESET_KEY]))

    seen = set()

    def _claim(entry):
        if remint_ids or entry.id in seen:
            entry.id = new_id()
        seen.add(entry.id)

    for entry in entries:
        _claim(entry)
        if isinstance(entry, Folder):
            for child in entry.children:
                _claim(child)

    return entries


def check_forest(entries: List[Entry]) -> List[str]:
    """
    Structural problems in a forest: duplicate ids, folders inside folders,
    foreign objects. Empty list means the forest is sound.
    """
    problems = []
    seen = set()

    def _see(entry_id, where):
        if entry_id in seen:
            problems.append(f"duplicate id {entry_id!r} at {where}")
        seen.add(entry_id)

    for i, entry in enumerate(entries):
        if isinstance(entry, Folder):
            _see(entry.id, f"root[{i}]")
            for j, child in enumerate(entry.children):
                if not isinstance(child, Preset):
                    problems.append(
                        f"root[{i}].children[{j}] is {type(child).__name__}, expected Preset"
                    )
                    continue
                _see(child.id, f"root[{i}].children[{j}]")
        elif isinstance(entry, Preset):
            _see(entry.id, f"root[{i}]")
        else:
            problems.append(f"root[{i}] is {type(entry).__name__}, expected Preset or Folder")

    return problems
