"""
Preset utilities.

Contains:
- new_id: opaque id minting
- natural_sort_key: case-insensitive, numeric-aware name ordering
- unique_name: "Name (n)" de-duplication used by import
- sanitize_filename: filesystem-safe export names
- utc_timestamp: ISO 8601 stamps for exported documents
"""

from datetime import datetime, timezone
from typing import Iterable
import re
import unicodedata
import uuid


_DIGITS = re.compile(r'(\d+)')
_INVALID_FILENAME_CHARS = '<>:"/\\|?*'


def new_id() -> str:
    """Mint a fresh, globally unique entry id."""
    return str(uuid.uuid4())


def _fold(text: str) -> str:
    """Case- and accent-insensitive form of text."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.casefold()


def natural_sort_key(name: str) -> tuple:
    """
    Sort key comparing names the way a person reads them.

    "Film 2" < "Film 10", "apple" == "Apple", "é" == "e".
    re.split with a capture group always yields text at even positions and
    digit runs at odd positions, so keys of different names stay comparable.
    """
    parts = _DIGITS.split(_fold(name))
    key = []
    for i, part in enumerate(parts):
        key.append(int(part) if i % 2 else part)
    return tuple(key)


def unique_name(name: str, taken: Iterable[str]) -> str:
    """
    Return name, or "name (n)" with the smallest n >= 1 not in taken.
    """
    taken = set(taken)
    if name not in taken:
        return name
    counter = 1
    candidate = f"{name} ({counter})"
    while candidate in taken:
        counter += 1
        candidate = f"{name} ({counter})"
    return candidate


def sanitize_filename(name: str) -> str:
    """Remove invalid filename characters."""
    result = name
    for char in _INVALID_FILENAME_CHARS:
        result = result.replace(char, "_")
    return result.strip()


def utc_timestamp() -> str:
    """Current UTC time as ISO 8601 with ms precision, e.g. 2025-01-23T12:34:56.789Z"""
    dt = datetime.now(timezone.utc)
    return dt.strftime('%Y-%m-%dT%H:%M:%S.') + f'{dt.microsecond // 1000:03d}Z'
