"""Extract config file dumps (`pwd` + `cat <file>`) from pasted terminal history."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from . import ParsedConfigEntry
from .lines import ContextMatch, ContinuationMatch, PromptMatch, classify_line

_LOGGER = logging.getLogger(__name__)

# (needle, kind, type) checked in order, first match wins. kind is "in" or "suffix".
TYPE_RULES: tuple[tuple[str, str, str], ...] = (
    ("nginx", "in", "nginx"),
    ("apache", "in", "apache"),
    ("httpd", "in", "apache"),
    ("cron", "in", "cron"),
    ("crontab", "suffix", "cron"),
    ("systemd", "in", "systemd"),
    (".service", "suffix", "systemd"),
    ("docker", "in", "docker"),
    ("dockerfile", "suffix", "docker"),
    (".yml", "suffix", "yaml"),
    (".yaml", "suffix", "yaml"),
    (".json", "suffix", "json"),
    (".env", "suffix", "env"),
    (".sh", "suffix", "shell"),
    (".py", "suffix", "python"),
    (".js", "suffix", "js"),
    (".ts", "suffix", "js"),
    (".sql", "suffix", "sql"),
    ("ssh_config", "in", "ssh"),
    ("sshd_config", "in", "ssh"),
)


@dataclass(frozen=True)
class ConfigScanState:
    directory: str = ""
    current_file: str | None = None
    content_lines: tuple[str, ...] = ()
    expecting_pwd_output: bool = False


def detect_type(path: str) -> str:
    """Infer a config category from a file path, e.g. ``/etc/nginx/nginx.conf`` -> ``nginx``."""
    lower = path.lower()
    for needle, kind, file_type in TYPE_RULES:
        if kind == "in" and needle in lower:
            return file_type
        if kind == "suffix" and lower.endswith(needle):
            return file_type
    return "other"


def resolve_path(file: str, directory: str) -> str:
    """Join a relative file to the known working directory. Best effort.

    Absolute paths, and relative paths with no directory context, are returned as-is.
    """
    if file.startswith("/") or not directory:
        return file
    return f"{directory.rstrip('/')}/{file}"


def parse_config_transcript(raw: str) -> list[ParsedConfigEntry]:
    """Parse a transcript into one entry per `cat`-ed file body, in document order."""
    entries: list[ParsedConfigEntry] = []
    state = ConfigScanState()
    # "\n" only: form feeds and U+2028 inside a body are content.
    lines = raw.split("\n")

    for line in lines:
        state, emitted = step_config(state, line)
        if emitted:
            entries.append(emitted)

    last = flush_file(state)
    if last:
        entries.append(last)

    _LOGGER.debug("parse_config_transcript: %d line(s) -> %d file(s)", len(lines), len(entries))
    return entries


def step_config(
    state: ConfigScanState, line: str
) -> tuple[ConfigScanState, ParsedConfigEntry | None]:
    """Advance the scan by one line. Returns the new state and a finished entry, if any."""
    match = classify_line(line)
    trimmed = line.strip()

    if isinstance(match, PromptMatch):
        state = _with_prompt_directory(state, match.directory)
        return _handle_command(state, match.command)

    if isinstance(match, ContextMatch):
        emitted = flush_file(state)
        return _with_prompt_directory(_cleared(state), match.directory), emitted

    if isinstance(match, ContinuationMatch):
        return _handle_command(state, match.command)

    if trimmed == "pwd" or trimmed.startswith("cat "):
        return _handle_command(state, trimmed)

    if state.expecting_pwd_output:
        directory = trimmed if trimmed.startswith("/") else state.directory
        return replace(state, directory=directory, expecting_pwd_output=False), None

    if state.current_file is not None:
        return replace(state, content_lines=state.content_lines + (line.rstrip("\r"),)), None

    return state, None


def flush_file(state: ConfigScanState) -> ParsedConfigEntry | None:
    """Turn the in-progress file capture into an entry, or None if there is none."""
    content = "\n".join(state.content_lines).strip()
    if not state.current_file or not content:
        return None
    path = resolve_path(state.current_file, state.directory)
    return ParsedConfigEntry(path=path, content=content, type=detect_type(path))


def _handle_command(
    state: ConfigScanState, command: str
) -> tuple[ConfigScanState, ParsedConfigEntry | None]:
    emitted = flush_file(state)
    state = _cleared(state)

    if command == "pwd":
        return replace(state, expecting_pwd_output=True), emitted

    if command.startswith("cat "):
        args = command.split()
        if len(args) >= 2:
            return replace(state, current_file=args[1]), emitted
        return state, emitted

    return state, emitted


def _cleared(state: ConfigScanState) -> ConfigScanState:
    return replace(state, current_file=None, content_lines=(), expecting_pwd_output=False)


def _with_prompt_directory(state: ConfigScanState, directory: str | None) -> ConfigScanState:
    # Only absolute prompt directories are usable for resolving relative `cat` targets.
    if directory and directory.startswith("/"):
        return replace(state, directory=directory)
    return state
