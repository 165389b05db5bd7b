"""
Long-lived service context owning the engine manager, embeddings client, store and query engine.
"""

from __future__ import annotations

import logging
from typing import Any

from docstore.config import Settings, settings as default_settings
from docstore.embeddings.client import EmbeddingsClient
from docstore.engine.manager import EngineProcessManager
from docstore.search.pipeline import QueryEngine
from docstore.vector_store.chroma_store import DocumentStore

logger = logging.getLogger(__name__)


class StoreContext:
    def __init__(
        self,
        settings: Settings | None = None,
        engine: EngineProcessManager | None = None,
        embeddings_client: EmbeddingsClient | None = None,
        store: DocumentStore | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self.engine = engine or EngineProcessManager(self.settings)
        self.embeddings_client = embeddings_client or EmbeddingsClient(self.settings)
        self.store = store or DocumentStore(self.engine, self.embeddings_client, settings=self.settings)
        self.query_engine = QueryEngine(self.store, self.embeddings_client)

    async def start(self) -> None:
        """Bring the engine up and open the collection."""
        await self.store.initialize()
        logger.info("Document store ready", extra={"collection": self.store.collection_name})

    async def aclose(self) -> None:
        if self.settings.engine_stop_on_shutdown:
            await self.engine.stop()
        await self.store.aclose()
        await self.embeddings_client.aclose()
        await self.engine.aclose()

    async def __aenter__(self) -> "StoreContext":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


__all__ = ["StoreContext"]
