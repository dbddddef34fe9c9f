"""Turn stored records into searchable documents."""

from __future__ import annotations

from typing import TYPE_CHECKING

from . import Document, DocumentSource

if TYPE_CHECKING:
    from ..store import Store


def documents_from_store(store: Store) -> list[Document]:
    """One document per command log and per config file.

    Every document records its ``server_id`` so results can be scoped to a
    server. Logs whose thread no longer exists get an empty server id.
    """
    thread_servers = {t.id: t.server_id for t in store.threads}
    documents = []

    for log in store.logs:
        parts = [log.command]
        if log.note:
            parts.append(log.note)
        if log.output:
            parts.append(log.output)
        documents.append(
            Document(
                doc_id=f"log:{log.id}",
                source=DocumentSource.LOGS,
                heading=log.command,
                content="\n".join(parts),
                metadata={
                    "thread_id": log.thread_id,
                    "server_id": thread_servers.get(log.thread_id, ""),
                    "directory": log.directory or "",
                },
            )
        )

    for config_file in store.configs:
        documents.append(
            Document(
                doc_id=f"cfg:{config_file.id}",
                source=DocumentSource.CONFIGS,
                heading=config_file.path,
                content=f"{config_file.path}\n{config_file.content}",
                metadata={"server_id": config_file.server_id, "type": config_file.type},
            )
        )

    return documents
