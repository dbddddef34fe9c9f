"""Paths, defaults, and environment detection."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _xdg_data_home() -> Path:
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))


def _xdg_config_home() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


ENV_FILE_TEMPLATE = """\
# Penguin Memo: API keys and settings
# This file is read by pmemo on every run.
# It is NOT committed to any repo. Keep it private.
#
# Command suggestions and log notes need one of these (Anthropic wins when both are set):

# ANTHROPIC_API_KEY=sk-ant-...
# OPENAI_API_KEY=sk-...

# Default transcript parse mode: auto (default) or lines
# PM_PARSE_MODE=auto

# Search backend: bm25 (default) or none
# PM_SEARCH_BACKEND=bm25
"""


@dataclass
class Config:
    """Runtime configuration, resolved from env vars and defaults."""

    # Knowledge base storage
    data_dir: Path = field(default_factory=lambda: _xdg_data_home() / "penguin-memo")

    # Env file for API keys
    env_file: Path = field(default_factory=lambda: _xdg_config_home() / "penguin-memo" / "env")

    # LLM settings
    llm_provider: str | None = None  # "anthropic" | "openai" | None (auto-detect)
    anthropic_model: str = "claude-sonnet-4-5-20250929"
    openai_model: str = "gpt-4o-mini"

    # Transcript parsing
    parse_mode: str = field(
        default_factory=lambda: os.environ.get("PM_PARSE_MODE", "auto")
    )  # "auto" | "lines"

    # Search settings
    search_backend: str = field(
        default_factory=lambda: os.environ.get("PM_SEARCH_BACKEND", "bm25")
    )  # "bm25" | "none"

    @property
    def store_path(self) -> Path:
        return self.data_dir / "store.json"

    @property
    def search_index_dir(self) -> Path:
        return self.data_dir / ".search-index"

    def ensure_data_dir(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def load_env_file(self) -> None:
        """Load API keys from the env file into os.environ (if not already set)."""
        if not self.env_file.exists():
            return
        for line in self.env_file.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip().strip("'\"")
            # Don't overwrite keys already in the environment
            if key and key not in os.environ:
                os.environ[key] = value

    def ensure_env_file(self) -> bool:
        """Create the env file from template if it doesn't exist. Returns True if created."""
        if self.env_file.exists():
            return False
        self.env_file.parent.mkdir(parents=True, exist_ok=True)
        self.env_file.write_text(ENV_FILE_TEMPLATE)
        self.env_file.chmod(0o600)
        return True

    def detect_provider(self) -> str:
        """Auto-detect which LLM API to use based on available keys."""
        if self.llm_provider:
            return self.llm_provider
        if os.environ.get("ANTHROPIC_API_KEY"):
            return "anthropic"
        if os.environ.get("OPENAI_API_KEY"):
            return "openai"
        raise RuntimeError(
            "No LLM API key found. Add your key to "
            f"{self.env_file} or set ANTHROPIC_API_KEY / OPENAI_API_KEY."
        )
