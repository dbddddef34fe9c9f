"""Edit and remove parsed entries during the review pass, before commit."""

from __future__ import annotations

from dataclasses import fields, replace
from typing import TypeVar

from . import ParsedConfigEntry, ParsedLogEntry
from .config_files import detect_type

Entry = TypeVar("Entry", ParsedLogEntry, ParsedConfigEntry)


def remove_entry(entries: list[Entry], entry_id: str) -> list[Entry]:
    """Return the entries without ``entry_id``. Order of the rest is preserved."""
    return [e for e in entries if e.id != entry_id]


def update_entry(entries: list[Entry], entry_id: str, *, is_new: bool = True, **changes: str) -> list[Entry]:
    """Return the entries with ``changes`` applied to ``entry_id``.

    Changing the path of a config entry re-runs type detection while the
    entry is new, unless ``type`` is given explicitly.
    """
    updated = []
    for entry in entries:
        if entry.id != entry_id:
            updated.append(entry)
            continue
        editable = {f.name for f in fields(entry)} - {"id"}
        unknown = set(changes) - editable
        if unknown:
            raise ValueError(f"Cannot edit field(s) {sorted(unknown)} of {type(entry).__name__}")
        entry = replace(entry, **changes)
        if isinstance(entry, ParsedConfigEntry) and "path" in changes and "type" not in changes:
            entry = retag(entry, entry.path, is_new)
        updated.append(entry)
    return updated


def retag(entry: ParsedConfigEntry, path: str, is_new: bool) -> ParsedConfigEntry:
    """Set the path; re-detect the type only for entries that are not saved yet."""
    if not is_new:
        return replace(entry, path=path)
    return replace(entry, path=path, type=detect_type(path))
