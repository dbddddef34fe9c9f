"""BM25 search backend using rank-bm25."""

from __future__ import annotations

import logging
import pickle
import re
from pathlib import Path

from . import Document, DocumentSource, SearchResult

_LOGGER = logging.getLogger(__name__)

_STOPWORDS = frozenset({
    "the", "a", "an", "is", "are", "was", "were", "in", "on", "at",
    "to", "for", "of", "and", "or", "but", "not", "with", "by", "from",
})

# Keep hyphenated words whole ("apt-get", "docker-compose"); paths split on "/" and ".".
_TOKEN_RE = re.compile(r"[\w][\w\-]*")


def _tokenize(text: str) -> list[str]:
    """Lowercase, split shell text into words, remove stopwords."""
    return [w for w in _TOKEN_RE.findall(text.lower()) if w not in _STOPWORDS]


class BM25Backend:
    """BM25 keyword search over logs and configs, pickled next to the store."""

    def __init__(self, index_path: Path) -> None:
        self._index_path = index_path
        self._bm25 = None
        self._documents: list[Document] = []
        self._tokenized_corpus: list[list[str]] = []
        self._load()

    def index(self, documents: list[Document]) -> None:
        self._documents = documents
        self._tokenized_corpus = [_tokenize(doc.content) for doc in documents]
        self._build()
        self._save()
        _LOGGER.debug("Indexed %d document(s) into %s", len(documents), self._index_path)

    def search(
        self,
        query: str,
        limit: int = 10,
        source: DocumentSource | None = None,
        server_id: str | None = None,
    ) -> list[SearchResult]:
        if not self.is_ready():
            return []

        tokenized_query = _tokenize(query)
        if not tokenized_query:
            return []

        # A hit shares a query token. BM25Okapi scores go negative for terms in
        # half or more of a small corpus, so the score only orders hits.
        query_terms = set(tokenized_query)
        scores = self._bm25.get_scores(tokenized_query)
        hits = [
            (float(score), doc)
            for score, doc, tokens in zip(scores, self._documents, self._tokenized_corpus)
            if not query_terms.isdisjoint(tokens)
            and (source is None or doc.source == source)
            and (server_id is None or doc.metadata.get("server_id") == server_id)
        ]
        hits.sort(key=lambda hit: hit[0], reverse=True)

        return [
            SearchResult(document=doc, score=score, rank=rank)
            for rank, (score, doc) in enumerate(hits[:limit], start=1)
        ]

    def is_ready(self) -> bool:
        return self._bm25 is not None and len(self._documents) > 0

    def _build(self) -> None:
        from rank_bm25 import BM25Okapi

        self._bm25 = BM25Okapi(self._tokenized_corpus) if self._tokenized_corpus else None

    def _save(self) -> None:
        self._index_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._index_path, "wb") as f:
            pickle.dump({"documents": self._documents, "tokenized_corpus": self._tokenized_corpus}, f)

    def _load(self) -> None:
        if not self._index_path.exists():
            return
        try:
            with open(self._index_path, "rb") as f:
                data = pickle.load(f)
            documents, corpus = data["documents"], data["tokenized_corpus"]
        except (OSError, pickle.UnpicklingError, EOFError, KeyError, AttributeError) as exc:
            _LOGGER.warning("Ignoring unreadable search index %s: %s", self._index_path, exc)
            return

        self._documents, self._tokenized_corpus = documents, corpus
        self._build()
