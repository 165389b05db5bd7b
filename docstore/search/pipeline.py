"""
Similarity search: embed the query text, ask Chroma for neighbours, normalise the response.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping

from docstore.embeddings.client import EmbeddingsClient
from docstore.vector_store.base import QueryMatch
from docstore.vector_store.chroma_store import DocumentStore, engine_errors
from docstore.errors import EngineQueryError

DEFAULT_N_RESULTS = 5


class QueryEngine:
    """Nearest-neighbour queries against the store's collection."""

    def __init__(
        self,
        store: DocumentStore,
        embeddings_client: EmbeddingsClient,
        logger_: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.embeddings_client = embeddings_client
        self.logger = logger_ or logging.getLogger(__name__)

    async def query(
        self,
        text: str,
        n_results: int = DEFAULT_N_RESULTS,
        where: Mapping[str, Any] | None = None,
    ) -> List[QueryMatch]:
        """
        Return up to `n_results` documents closest to `text`, nearest first.

        `where` is handed to Chroma unchanged; no filtering happens here.
        """
        if not isinstance(text, str) or not text.strip():
            raise ValueError("query text must be a non-empty string")
        if n_results < 1:
            raise ValueError("nResults must be >= 1")

        embedding = (await self.embeddings_client.embed_texts([text]))[0]

        collection = await self.store.get_collection()
        if await self.store.count() == 0:
            self.logger.info("Query on empty collection", extra={"collection": self.store.collection_name})
            return []

        with engine_errors(EngineQueryError, "Query"):
            raw = await collection.query(
                query_embeddings=[embedding],
                n_results=n_results,
                where=dict(where) if where else None,
                include=["documents", "metadatas", "distances"],
            )

        matches = self._normalize(raw)[:n_results]
        self.logger.info(
            "Query completed",
            extra={
                "requested": n_results,
                "returned": len(matches),
                "top_distance": round(matches[0].distance, 4) if matches else None,
            },
        )
        return matches

    @staticmethod
    def _normalize(raw: Mapping[str, Any]) -> List[QueryMatch]:
        # Chroma answers one row per query embedding; we always send exactly one.
        ids = _first_row(raw, "ids")
        texts = _first_row(raw, "documents") or [""] * len(ids)
        metadatas = _first_row(raw, "metadatas") or [None] * len(ids)
        distances = _first_row(raw, "distances") or [0.0] * len(ids)

        matches = [
            QueryMatch(
                id=doc_id,
                text=text or "",
                metadata=dict(metadata or {}),
                distance=max(0.0, float(distance)),
            )
            for doc_id, text, metadata, distance in zip(ids, texts, metadatas, distances)
        ]
        matches.sort(key=lambda match: match.distance)
        return matches


def _first_row(raw: Mapping[str, Any], key: str) -> List[Any]:
    rows = raw.get(key) or [[]]
    return list(rows[0] or [])


__all__ = ["QueryEngine", "DEFAULT_N_RESULTS"]
