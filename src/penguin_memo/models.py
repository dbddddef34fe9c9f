"""Durable records kept in the knowledge base."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum


def now_ms() -> int:
    return int(time.time() * 1000)


class Category(Enum):
    FILE_SYSTEM = "File System"
    NETWORK = "Network"
    PROCESS = "Process"
    USER_MGMT = "User Management"
    ARCHIVE = "Archive/Compression"
    SYSTEM_INFO = "System Info"
    PACKAGE_MGMT = "Package Mgmt"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: str) -> "Category":
        """Match a category by value or name, falling back to OTHER."""
        for category in cls:
            if value in (category.value, category.name):
                return category
        return cls.OTHER


@dataclass
class Server:
    """An SSH server entry."""

    id: str
    name: str
    host: str
    username: str = ""
    port: int = 22
    auth_type: str = "password"  # "password" | "key"
    auth_value: str = ""  # password, or key path/content
    project: str = ""
    description: str = ""
    tags: list[str] = field(default_factory=list)
    updated_at: int = field(default_factory=now_ms)


@dataclass
class Thread:
    """A named session of command logs on one server."""

    id: str
    server_id: str
    title: str
    order: int = 0
    created_at: int = field(default_factory=now_ms)
    updated_at: int = field(default_factory=now_ms)


@dataclass
class CommandLog:
    id: str
    thread_id: str
    command: str
    output: str = ""
    note: str = ""
    user: str | None = None
    directory: str | None = None
    file_content_before: str | None = None  # for editor commands (vi, nano)
    file_content_after: str | None = None
    order: int = 0
    created_at: int = field(default_factory=now_ms)


@dataclass
class ConfigFile:
    id: str
    server_id: str
    path: str
    content: str
    type: str = "other"
    updated_at: int = field(default_factory=now_ms)


@dataclass
class Command:
    """A reusable shell command in the library, not tied to a server."""

    id: str
    command: str
    description: str = ""
    output: str = ""  # example output
    category: str = Category.OTHER.value
    tags: list[str] = field(default_factory=list)
    created_at: int = field(default_factory=now_ms)
    updated_at: int = field(default_factory=now_ms)
