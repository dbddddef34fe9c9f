"""Split pasted terminal history into command/output entries."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from . import ParsedLogEntry
from .lines import (
    COMMON_COMMANDS,
    ContextMatch,
    ContinuationMatch,
    PromptMatch,
    accepted_directory,
    classify_line,
    clean_command,
    is_heuristic_command,
)

_LOGGER = logging.getLogger(__name__)

PARSE_MODES = ("auto", "lines")


@dataclass(frozen=True)
class LogScanState:
    """Scan state between two lines. ``command`` is "" when nothing is pending."""

    command: str = ""
    output_lines: tuple[str, ...] = ()
    user: str = ""
    directory: str = ""
    # user/directory of the pending command, frozen when it started
    command_user: str = ""
    command_directory: str = ""
    # pending command came from a prompt line, which delimits it: no backslash joining
    from_prompt: bool = False


def parse_command_log(
    raw: str,
    mode: str = "auto",
    verbs: frozenset[str] = COMMON_COMMANDS,
) -> list[ParsedLogEntry]:
    """Parse a transcript into log entries, in document order.

    Args:
        raw: The full pasted transcript.
        mode: ``"auto"`` recognizes bare commands by an allow-list of verbs and
            captures output; ``"lines"`` treats every non-prompt line as a command.
        verbs: Allow-list used by ``"auto"`` mode.

    Returns:
        List of entries, possibly empty. Malformed input never raises.
    """
    if mode not in PARSE_MODES:
        raise ValueError(f"Unknown parse mode: {mode!r}. Use 'auto' or 'lines'.")

    entries: list[ParsedLogEntry] = []
    state = LogScanState()
    # "\n" only: form feeds and U+2028 inside a body are content.
    lines = raw.split("\n")

    for line in lines:
        state, emitted = step_command_log(state, line, mode, verbs)
        if emitted:
            entries.append(emitted)

    last = flush_command(state)
    if last:
        entries.append(last)

    _LOGGER.debug("parse_command_log: %d line(s) -> %d entr(ies), mode=%s", len(lines), len(entries), mode)
    return entries


def step_command_log(
    state: LogScanState,
    line: str,
    mode: str = "auto",
    verbs: frozenset[str] = COMMON_COMMANDS,
) -> tuple[LogScanState, ParsedLogEntry | None]:
    """Advance the scan by one line. Returns the new state and a finished entry, if any."""
    match = classify_line(line)

    if isinstance(match, PromptMatch):
        user = match.user if match.user is not None else state.user
        directory = accepted_directory(match.directory) if match.directory is not None else state.directory
        return _start_command(state, match.command, user, directory, from_prompt=True)

    if isinstance(match, ContextMatch):
        if match.user is None:
            return state, None
        return replace(state, user=match.user, directory=accepted_directory(match.directory)), None

    if isinstance(match, ContinuationMatch):
        return _start_command(state, match.command, state.user, state.directory)

    text = match.text
    if mode == "lines":
        if not text.strip():
            return state, None
        return _start_command(state, text, state.user, state.directory)

    # auto mode
    if state.command.endswith("\\") and not state.from_prompt:
        joined = state.command[:-1].rstrip() + " " + text.strip()
        return replace(state, command=joined.strip()), None

    if is_heuristic_command(text, verbs):
        return _start_command(state, text, state.user, state.directory)

    if state.command:
        return replace(state, output_lines=state.output_lines + (text,)), None

    # transcript noise before the first command
    return state, None


def flush_command(state: LogScanState) -> ParsedLogEntry | None:
    """Turn the pending command into an entry, or None if nothing is pending."""
    command = clean_command(state.command)
    if not command:
        return None
    return ParsedLogEntry(
        command=command,
        output=_join_output(state.output_lines),
        user=state.command_user,
        directory=state.command_directory,
    )


def _start_command(
    state: LogScanState, command: str, user: str, directory: str, from_prompt: bool = False
) -> tuple[LogScanState, ParsedLogEntry | None]:
    emitted = flush_command(state)
    new_state = LogScanState(
        command=command.strip(),
        output_lines=(),
        user=user,
        directory=directory,
        command_user=user,
        command_directory=directory,
        from_prompt=from_prompt,
    )
    return new_state, emitted


def _join_output(lines: tuple[str, ...]) -> str:
    """Join output lines, dropping leading blank lines and trailing whitespace."""
    start = 0
    while start < len(lines) and not lines[start].strip():
        start += 1
    return "\n".join(lines[start:]).rstrip()
