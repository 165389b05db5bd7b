"""
Chroma-backed document store: one named collection on a Chroma server.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterator, List, Sequence, Type
from urllib.parse import urlsplit

import chromadb
from chromadb.api import AsyncClientAPI
from chromadb.config import Settings as ChromaSettings

from docstore.config import Settings, settings as default_settings
from docstore.embeddings.client import EmbeddingsClient
from docstore.engine.manager import EngineProcessManager
from docstore.errors import (
    DocumentStoreError,
    EngineQueryError,
    EngineUnavailableError,
    EngineWriteError,
)
from docstore.vector_store.base import CollectionHandle, CollectionInfo, Document, Metadata

COLLECTION_DESCRIPTION = "Document vector store collection"

ClientFactory = Callable[[], Awaitable[AsyncClientAPI]]

logger = logging.getLogger(__name__)


def chroma_client_factory(settings: Settings) -> ClientFactory:
    """Build an AsyncHttpClient factory pointed at the configured engine URL."""
    parts = urlsplit(settings.engine_url)
    ssl = parts.scheme == "https"
    host = parts.hostname or "localhost"
    port = parts.port or (443 if ssl else settings.chroma_port)

    async def factory() -> AsyncClientAPI:
        return await chromadb.AsyncHttpClient(
            host=host,
            port=port,
            ssl=ssl,
            settings=ChromaSettings(anonymized_telemetry=False),
        )

    return factory


@contextmanager
def engine_errors(error_cls: Type[DocumentStoreError], action: str) -> Iterator[None]:
    """Re-raise anything the Chroma client throws as a typed store error."""
    try:
        yield
    except DocumentStoreError:
        raise
    except Exception as exc:
        logger.error("Chroma operation failed", extra={"action": action, "error": str(exc)})
        raise error_cls(f"{action} failed: {exc}") from exc


class DocumentStore:
    def __init__(
        self,
        engine: EngineProcessManager,
        embeddings_client: EmbeddingsClient,
        settings: Settings | None = None,
        collection_name: str | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self.engine = engine
        self.embeddings_client = embeddings_client
        self.collection_name = collection_name or self.settings.chroma_collection
        self._client_factory = client_factory or chroma_client_factory(self.settings)
        self._client: AsyncClientAPI | None = None
        self._client_task: asyncio.Task[AsyncClientAPI] | None = None
        self._collection: CollectionHandle | None = None

    async def initialize(self) -> CollectionHandle:
        """Get or create the collection. Safe to call repeatedly and concurrently."""
        await self.engine.ensure_running()
        with engine_errors(EngineUnavailableError, "Opening collection"):
            client = await self._get_client()
            collection = await client.get_or_create_collection(
                name=self.collection_name,
                metadata={
                    "description": COLLECTION_DESCRIPTION,
                    "hnsw:space": self.settings.chroma_distance,
                },
                embedding_function=None,
            )
        if self._collection is None:
            self._collection = collection
            logger.info("Chroma collection initialised", extra={"collection": self.collection_name})
        return self._collection

    async def _get_client(self) -> AsyncClientAPI:
        if self._client is not None:
            return self._client
        # Racing initialisers share one client instead of each building their own.
        if self._client_task is None:
            self._client_task = asyncio.ensure_future(self._client_factory())
        try:
            self._client = await asyncio.shield(self._client_task)
        except Exception:
            self._client_task = None
            raise
        return self._client

    async def get_collection(self) -> CollectionHandle:
        if self._collection is not None:
            return self._collection
        return await self.initialize()

    async def add(
        self,
        texts: Sequence[str],
        ids: Sequence[str] | None = None,
        metadatas: Sequence[Metadata] | None = None,
    ) -> List[str]:
        texts = list(texts)
        if not texts:
            raise ValueError("texts must be a non-empty list")
        if any(not isinstance(text, str) or not text.strip() for text in texts):
            raise ValueError("texts must contain only non-empty strings")
        if ids is not None and len(ids) != len(texts):
            raise ValueError("ids must have the same length as texts")
        if metadatas is not None and len(metadatas) != len(texts):
            raise ValueError("metadatas must have the same length as texts")

        # Embed before touching the engine so a failure leaves nothing behind.
        embeddings = await self.embeddings_client.embed_texts(texts)

        document_ids = list(ids) if ids is not None else _generate_ids(len(texts))
        if metadatas is not None:
            document_metadatas = [dict(meta) for meta in metadatas]
        else:
            created_at = datetime.now(timezone.utc).isoformat()
            document_metadatas = [
                {"text": text, "index": index, "createdAt": created_at} for index, text in enumerate(texts)
            ]

        collection = await self.get_collection()
        with engine_errors(EngineWriteError, "Adding documents"):
            await collection.add(
                ids=document_ids,
                embeddings=embeddings,
                documents=texts,
                metadatas=document_metadatas,
            )
        logger.info("Added documents to Chroma", extra={"count": len(texts), "collection": self.collection_name})
        return document_ids

    async def get(self, ids: Sequence[str] | None = None) -> List[Document]:
        collection = await self.get_collection()
        with engine_errors(EngineQueryError, "Fetching documents"):
            result = await collection.get(
                ids=list(ids) if ids is not None else None,
                include=["documents", "metadatas"],
            )

        doc_ids = result.get("ids") or []
        texts = result.get("documents") or [""] * len(doc_ids)
        metadatas = result.get("metadatas") or [None] * len(doc_ids)
        return [
            Document(id=doc_id, text=text or "", metadata=dict(metadata or {}))
            for doc_id, text, metadata in zip(doc_ids, texts, metadatas)
        ]

    async def delete(self, ids: Sequence[str]) -> int:
        """Delete documents by id; unknown ids are ignored. Returns how many existed."""
        ids = list(ids)
        if not ids:
            raise ValueError("ids must be a non-empty list")

        collection = await self.get_collection()
        with engine_errors(EngineQueryError, "Looking up documents"):
            existing = await collection.get(ids=ids, include=[])
        deleted = len(existing.get("ids") or [])

        with engine_errors(EngineWriteError, "Deleting documents"):
            await collection.delete(ids=ids)
        logger.info(
            "Deleted documents from Chroma",
            extra={"requested": len(ids), "deleted": deleted, "collection": self.collection_name},
        )
        return deleted

    async def clear(self) -> int:
        documents = await self.get()
        if not documents:
            return 0
        return await self.delete([doc.id for doc in documents])

    async def count(self) -> int:
        collection = await self.get_collection()
        with engine_errors(EngineQueryError, "Counting documents"):
            return await collection.count()

    async def info(self) -> CollectionInfo:
        collection = await self.get_collection()
        count = await self.count()
        return CollectionInfo(
            name=self.collection_name,
            count=count,
            metadata=dict(getattr(collection, "metadata", None) or {}),
        )

    async def aclose(self) -> None:
        """Drop cached handles; the next call reopens the collection."""
        client = self._client
        self._client = None
        self._client_task = None
        self._collection = None
        # Not every chromadb release gives the async client a close hook.
        close = getattr(client, "close", None)
        if close is not None:
            await close()


def _generate_ids(size: int) -> List[str]:
    stamp = int(time.time() * 1000)
    suffix = uuid.uuid4().hex[:8]
    return [f"doc_{stamp}_{suffix}_{index}" for index in range(size)]


__all__ = ["DocumentStore", "chroma_client_factory", "engine_errors", "COLLECTION_DESCRIPTION"]
