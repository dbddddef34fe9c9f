"""JSON-file store for commands, servers, threads, command logs and config files."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import asdict, fields, replace
from pathlib import Path
from typing import Iterable

from .models import Category, Command, CommandLog, ConfigFile, Server, Thread, now_ms
from .transcripts import ParsedConfigEntry, ParsedLogEntry

_LOGGER = logging.getLogger(__name__)

STORE_VERSION = 1


def _new_id() -> str:
    return str(uuid.uuid4())


class Store:
    """All records of one knowledge base, persisted as a single JSON document.

    Mutating methods write the file immediately. Lookups of unknown ids raise
    ``KeyError``; updates naming ``id`` or an unknown field raise ``ValueError``.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self.commands: list[Command] = []
        self.servers: list[Server] = []
        self.threads: list[Thread] = []
        self.logs: list[CommandLog] = []
        self.configs: list[ConfigFile] = []
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    # --- Command library ---

    def add_command(
        self,
        command: str,
        description: str = "",
        output: str = "",
        category: Category | str = Category.OTHER,
        tags: Iterable[str] = (),
    ) -> Command:
        item = Command(
            id=_new_id(),
            command=command,
            description=description,
            output=output,
            category=_category_value(category),
            tags=list(tags),
        )
        self.commands.append(item)
        self._save()
        return item

    def get_command(self, command_id: str) -> Command:
        for item in self.commands:
            if item.id == command_id:
                return item
        raise KeyError(f"No command with id {command_id!r}")

    def commands_in(self, category: Category | str | None = None) -> list[Command]:
        """Library commands, newest first, optionally limited to one category."""
        wanted = _category_value(category) if category is not None else None
        return [c for c in reversed(self.commands) if wanted is None or c.category == wanted]

    def update_command(self, command_id: str, **updates) -> Command:
        if "category" in updates:
            updates["category"] = _category_value(updates["category"])
        item = _updated(self.get_command(command_id), updates, updated_at=now_ms())
        self.commands = [item if c.id == command_id else c for c in self.commands]
        self._save()
        return item

    def delete_command(self, command_id: str) -> None:
        self.get_command(command_id)
        self.commands = [c for c in self.commands if c.id != command_id]
        self._save()

    # --- Servers ---

    def add_server(self, name: str, host: str, **details) -> Server:
        server = Server(id=_new_id(), name=name, host=host, **details)
        self.servers.append(server)
        self._save()
        return server

    def get_server(self, server_id: str) -> Server:
        for server in self.servers:
            if server.id == server_id:
                return server
        raise KeyError(f"No server with id {server_id!r}")

    def servers_in(self, project: str | None = None) -> list[Server]:
        return [s for s in self.servers if project is None or s.project == project]

    def update_server(self, server_id: str, **updates) -> Server:
        server = _updated(self.get_server(server_id), updates, updated_at=now_ms())
        self.servers = [server if s.id == server_id else s for s in self.servers]
        self._save()
        return server

    def delete_server(self, server_id: str) -> None:
        """Delete a server with its threads, their logs, and its config files."""
        self.get_server(server_id)
        thread_ids = {t.id for t in self.threads if t.server_id == server_id}
        self.servers = [s for s in self.servers if s.id != server_id]
        self.threads = [t for t in self.threads if t.id not in thread_ids]
        self.logs = [l for l in self.logs if l.thread_id not in thread_ids]
        self.configs = [c for c in self.configs if c.server_id != server_id]
        self._save()
        _LOGGER.info("Deleted server %s and %d thread(s)", server_id, len(thread_ids))

    # --- Threads ---

    def add_thread(self, server_id: str, title: str) -> Thread:
        self.get_server(server_id)
        orders = [t.order for t in self.threads if t.server_id == server_id]
        thread = Thread(id=_new_id(), server_id=server_id, title=title, order=max(orders, default=-1) + 1)
        self.threads.append(thread)
        self._save()
        return thread

    def get_thread(self, thread_id: str) -> Thread:
        for thread in self.threads:
            if thread.id == thread_id:
                return thread
        raise KeyError(f"No thread with id {thread_id!r}")

    def threads_for(self, server_id: str) -> list[Thread]:
        return sorted((t for t in self.threads if t.server_id == server_id), key=lambda t: t.order)

    def update_thread(self, thread_id: str, **updates) -> Thread:
        if "server_id" in updates:
            self.get_server(updates["server_id"])
        thread = _updated(self.get_thread(thread_id), updates, updated_at=now_ms())
        self.threads = [thread if t.id == thread_id else t for t in self.threads]
        self._save()
        return thread

    def delete_thread(self, thread_id: str) -> None:
        """Delete a thread and its command logs."""
        self.get_thread(thread_id)
        self.threads = [t for t in self.threads if t.id != thread_id]
        self.logs = [l for l in self.logs if l.thread_id != thread_id]
        self._save()

    # --- Command logs ---

    def add_log(
        self,
        thread_id: str,
        command: str,
        output: str = "",
        user: str | None = None,
        directory: str | None = None,
        file_content_before: str | None = None,
        file_content_after: str | None = None,
    ) -> CommandLog:
        self.get_thread(thread_id)
        log = CommandLog(
            id=_new_id(),
            thread_id=thread_id,
            command=command,
            output=output,
            user=user,
            directory=directory,
            file_content_before=file_content_before,
            file_content_after=file_content_after,
            order=self._next_log_order(thread_id),
        )
        self.logs.append(log)
        self._save()
        return log

    def append_logs(self, thread_id: str, entries: Iterable[ParsedLogEntry]) -> list[CommandLog]:
        """Commit reviewed log entries to a thread, keeping their order."""
        self.get_thread(thread_id)
        order = self._next_log_order(thread_id)
        created = []
        for entry in entries:
            created.append(CommandLog(
                id=_new_id(),
                thread_id=thread_id,
                command=entry.command,
                output=entry.output,
                user=entry.user or None,
                directory=entry.directory or None,
                order=order,
            ))
            order += 1
        self.logs.extend(created)
        self._save()
        _LOGGER.info("Appended %d log(s) to thread %s", len(created), thread_id)
        return created

    def get_log(self, log_id: str) -> CommandLog:
        for log in self.logs:
            if log.id == log_id:
                return log
        raise KeyError(f"No log with id {log_id!r}")

    def logs_for(self, thread_id: str) -> list[CommandLog]:
        return sorted((l for l in self.logs if l.thread_id == thread_id), key=lambda l: l.order)

    def update_log(self, log_id: str, **updates) -> CommandLog:
        log = _updated(self.get_log(log_id), updates)
        self.logs = [log if l.id == log_id else l for l in self.logs]
        self._save()
        return log

    def delete_log(self, log_id: str) -> None:
        self.get_log(log_id)
        self.logs = [l for l in self.logs if l.id != log_id]
        self._save()

    # --- Config files ---

    def append_configs(self, server_id: str, entries: Iterable[ParsedConfigEntry]) -> list[ConfigFile]:
        """Commit reviewed config entries to a server."""
        self.get_server(server_id)
        created = [
            ConfigFile(id=_new_id(), server_id=server_id, path=e.path, content=e.content, type=e.type)
            for e in entries
        ]
        self.configs.extend(created)
        self._save()
        _LOGGER.info("Appended %d config file(s) to server %s", len(created), server_id)
        return created

    def get_config(self, config_id: str) -> ConfigFile:
        for config_file in self.configs:
            if config_file.id == config_id:
                return config_file
        raise KeyError(f"No config file with id {config_id!r}")

    def configs_for(self, server_id: str) -> list[ConfigFile]:
        return [c for c in self.configs if c.server_id == server_id]

    def update_config(self, config_id: str, **updates) -> ConfigFile:
        """Update a saved config. Changing its path keeps the stored type."""
        config_file = _updated(self.get_config(config_id), updates, updated_at=now_ms())
        self.configs = [config_file if c.id == config_id else c for c in self.configs]
        self._save()
        return config_file

    def delete_config(self, config_id: str) -> None:
        self.get_config(config_id)
        self.configs = [c for c in self.configs if c.id != config_id]
        self._save()

    # --- Persistence ---

    def _next_log_order(self, thread_id: str) -> int:
        return max((l.order for l in self.logs if l.thread_id == thread_id), default=-1) + 1

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise RuntimeError(f"Store file {self._path} is not valid JSON: {exc}") from exc

        try:
            if not isinstance(data, dict):
                raise TypeError(f"top level is {type(data).__name__}, expected an object")
            self.commands = [_from_dict(Command, d) for d in data.get("commands", [])]
            self.servers = [_from_dict(Server, d) for d in data.get("servers", [])]
            self.threads = [_from_dict(Thread, d) for d in data.get("threads", [])]
            self.logs = [_from_dict(CommandLog, d) for d in data.get("logs", [])]
            self.configs = [_from_dict(ConfigFile, d) for d in data.get("configs", [])]
        except TypeError as exc:
            raise RuntimeError(f"Store file {self._path} has an unexpected layout: {exc}") from exc

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "version": STORE_VERSION,
            "commands": [asdict(c) for c in self.commands],
            "servers": [asdict(s) for s in self.servers],
            "threads": [asdict(t) for t in self.threads],
            "logs": [asdict(l) for l in self.logs],
            "configs": [asdict(c) for c in self.configs],
        }
        self._path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def _from_dict(cls, data):
    """Build a record, ignoring keys written by newer versions.

    Raises:
        TypeError: If ``data`` is not an object or lacks a required field.
    """
    if not isinstance(data, dict):
        raise TypeError(f"{cls.__name__} record is {type(data).__name__}, expected an object")
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in known})


def _updated(record, updates: dict, **stamps):
    editable = {f.name for f in fields(record)} - {"id"}
    unknown = set(updates) - editable
    if unknown:
        raise ValueError(f"Cannot update field(s) {sorted(unknown)} of {type(record).__name__}")
    return replace(record, **updates, **stamps)


def _category_value(category: Category | str) -> str:
    if isinstance(category, Category):
        return category.value
    return Category.parse(category).value
