"""Search disabled (PM_SEARCH_BACKEND=none)."""

from __future__ import annotations

from . import Document, DocumentSource, SearchResult


class NoneBackend:
    """Indexing is skipped; every query comes back empty."""

    def index(self, documents: list[Document]) -> None:
        pass

    def search(
        self,
        query: str,
        limit: int = 10,
        source: DocumentSource | None = None,
        server_id: str | None = None,
    ) -> list[SearchResult]:
        return []

    def is_ready(self) -> bool:
        return False
