"""Pluggable search over saved command logs and config files."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable


class DocumentSource(Enum):
    LOGS = "logs"
    CONFIGS = "configs"


@dataclass
class Document:
    """A searchable record from the store."""

    doc_id: str  # e.g. "log:<uuid>" or "cfg:<uuid>"
    source: DocumentSource
    heading: str  # command line, or config file path
    content: str  # full searchable text (heading included)
    metadata: dict = field(default_factory=dict)


@dataclass
class SearchResult:
    """A single search hit."""

    document: Document
    score: float
    rank: int


@runtime_checkable
class SearchBackend(Protocol):
    """What the CLI needs from a backend: rebuild, query, and a readiness check."""

    def index(self, documents: list[Document]) -> None: ...

    def search(
        self,
        query: str,
        limit: int = 10,
        source: DocumentSource | None = None,
        server_id: str | None = None,
    ) -> list[SearchResult]: ...

    def is_ready(self) -> bool: ...


def get_backend(backend_name: str, config) -> SearchBackend:
    """Resolve a backend name to an instance."""
    if backend_name == "bm25":
        from .bm25 import BM25Backend

        return BM25Backend(config.search_index_dir / "bm25.pkl")
    elif backend_name == "none":
        from .none import NoneBackend

        return NoneBackend()
    else:
        raise ValueError(
            f"Unknown search backend: {backend_name!r}. Use 'bm25' or 'none'."
        )


def reindex(config, store=None) -> int:
    """Rebuild the search index from the store.

    Returns:
        Number of documents indexed.
    """
    from ..store import Store
    from .documents import documents_from_store

    if store is None:
        store = Store(config.store_path)

    documents = documents_from_store(store)
    backend = get_backend(config.search_backend, config)
    backend.index(documents)
    return len(documents)
