"""Line classification shared by the command-log and config-file parsers.

Every transcript line is classified into one of four shapes, checked in this
order:

    PromptMatch        [user@host dir]$ cmd   /   user@host:dir# cmd   /   $ cmd
    ContextMatch       [user@host dir][branch]   (command follows on a later line)
    ContinuationMatch  > cmd
    OutputLine         anything else

Recognizing bare command verbs (``ls -la`` with no prompt) is a separate
predicate, since only the command-log parser uses it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# Group 1: user, group 2: directory, group 3: command (optional)
STANDARD_PROMPT_RE = re.compile(
    r"^\[?([A-Za-z0-9_\-]+)@[A-Za-z0-9_.\-]+(?:\s+|:)([^\]$#]+)\]?[$#](?:\s+(.*))?$"
)
# `$` only: a bare `#` would also match comment lines inside config files.
BARE_PROMPT_RE = re.compile(r"^\$(?:\s+(.*))?$")
CONTEXT_LINE_RE = re.compile(
    r"^\[([A-Za-z0-9_\-]+)@[A-Za-z0-9_.\-]+\s+([^\]]+)\](?:\[[^\]]*\])?\s*$"
)
CONTINUATION_RE = re.compile(r"^>\s+(.*)$")

EDITOR_RE = re.compile(r"^(?:sudo\s+)?(vi|vim|nano|emacs|gedit)(?=\s|$)(.*)$")

HOME_PLACEHOLDER = "~"
INTERRUPT_MARKER = "^C"

COMMON_COMMANDS = frozenset({
    # privilege / navigation / files
    "sudo", "su", "cd", "ls", "ll", "la", "pwd", "cp", "mv", "rm", "mkdir",
    "rmdir", "touch", "ln", "cat", "less", "more", "head", "tail", "grep",
    "egrep", "find", "locate", "which", "whereis", "chmod", "chown", "chgrp",
    "stat", "diff", "sed", "awk", "sort", "uniq", "wc", "xargs", "tee",
    # system
    "df", "du", "free", "top", "htop", "ps", "kill", "killall", "pkill",
    "uptime", "uname", "whoami", "id", "who", "w", "hostname", "date", "echo",
    "printf", "export", "env", "source", "history", "clear", "mount",
    "umount", "crontab",
    # services
    "systemctl", "service", "journalctl", "nginx", "apachectl",
    "firewall-cmd", "ufw", "iptables", "certbot",
    # containers / dev tooling
    "docker", "docker-compose", "kubectl", "helm", "git", "npm", "npx",
    "yarn", "pnpm", "node", "python", "python3", "pip", "pip3", "make",
    "composer", "php",
    # network
    "curl", "wget", "ssh", "scp", "rsync", "ping", "traceroute", "netstat",
    "ss", "ip", "ifconfig", "dig", "nslookup", "openssl",
    # archives
    "tar", "zip", "unzip", "gzip", "gunzip",
    # packages
    "apt", "apt-get", "yum", "dnf", "rpm", "dpkg", "snap", "brew",
    # editors
    "vi", "vim", "nano", "emacs",
    # users
    "useradd", "usermod", "userdel", "passwd", "groupadd",
    # databases
    "mysql", "psql", "redis-cli",
})


@dataclass(frozen=True)
class PromptMatch:
    """A prompt line carrying a command.

    ``user`` and ``directory`` are None when the prompt does not show them
    (a bare ``$ cmd`` prompt).
    """

    command: str
    user: str | None = None
    directory: str | None = None


@dataclass(frozen=True)
class ContextMatch:
    """A prompt line with identity/directory but no command text."""

    user: str | None = None
    directory: str | None = None


@dataclass(frozen=True)
class ContinuationMatch:
    """A `> cmd` line from a two-line prompt."""

    command: str


@dataclass(frozen=True)
class OutputLine:
    text: str


LineMatch = PromptMatch | ContextMatch | ContinuationMatch | OutputLine


@dataclass(frozen=True)
class EditorInvocation:
    """An editor command, e.g. ``sudo vim /etc/hosts``."""

    editor: str
    target_filename: str | None = None


def classify_line(line: str) -> LineMatch:
    """Classify one transcript line. Never raises."""
    text = line.rstrip("\r")

    match = STANDARD_PROMPT_RE.match(text)
    if match:
        user, directory, command = match.group(1), match.group(2).strip(), (match.group(3) or "").strip()
        if command:
            return PromptMatch(command=command, user=user, directory=directory)
        return ContextMatch(user=user, directory=directory)

    match = BARE_PROMPT_RE.match(text)
    if match:
        command = (match.group(1) or "").strip()
        if command:
            return PromptMatch(command=command)
        return ContextMatch()

    match = CONTEXT_LINE_RE.match(text)
    if match:
        return ContextMatch(user=match.group(1), directory=match.group(2).strip())

    match = CONTINUATION_RE.match(text)
    if match and match.group(1).strip():
        return ContinuationMatch(command=match.group(1).strip())

    return OutputLine(text=text)


def is_heuristic_command(line: str, verbs: frozenset[str] = COMMON_COMMANDS) -> bool:
    """True if the trimmed line is ``verb`` or starts with ``verb `` for an allow-listed verb."""
    head, _, _ = line.strip().partition(" ")
    return bool(head) and head in verbs


def accepted_directory(directory: str | None) -> str:
    """Prompt directory, or "" when it is empty or the unresolved ``~``."""
    if not directory or directory == HOME_PLACEHOLDER:
        return ""
    return directory


def clean_command(command: str) -> str:
    """Trim a command and drop a trailing ^C interrupt marker."""
    command = command.strip()
    while command.endswith(INTERRUPT_MARKER):
        command = command.removesuffix(INTERRUPT_MARKER).rstrip()
    return command


def detect_editor(command: str) -> EditorInvocation | None:
    """Detect a file-edit session: ``vi /etc/hosts`` -> target ``/etc/hosts``.

    Option arguments (``-n``, ``+42``) are skipped when picking the target.
    """
    match = EDITOR_RE.match(command.strip())
    if not match:
        return None
    target = None
    for arg in match.group(2).split():
        if arg.startswith(("-", "+")):
            continue
        target = arg
        break
    return EditorInvocation(editor=match.group(1), target_filename=target)
