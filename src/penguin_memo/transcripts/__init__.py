"""Parsers for pasted terminal transcripts."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field


def new_entry_id() -> str:
    """Short id for an entry that only lives during one review pass."""
    return uuid.uuid4().hex[:9]


@dataclass
class ParsedLogEntry:
    """One command and its captured output, before commit."""

    command: str
    output: str = ""
    user: str = ""
    directory: str = ""
    id: str = field(default_factory=new_entry_id)

    @property
    def edit_target(self) -> str | None:
        """Filename opened by an editor command (vi, nano, ...), if any."""
        from .lines import detect_editor

        invocation = detect_editor(self.command)
        return invocation.target_filename if invocation else None


@dataclass
class ParsedConfigEntry:
    """One config file body captured from a `cat`, before commit."""

    path: str
    content: str = ""
    type: str = "other"
    id: str = field(default_factory=new_entry_id)
