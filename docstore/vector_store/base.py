"""
Document types and the collection interface the store relies on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Protocol, Sequence

Metadata = Dict[str, Any]


@dataclass
class Document:
    id: str
    text: str
    metadata: Metadata = field(default_factory=dict)
    embedding: List[float] = field(default_factory=list)


@dataclass
class QueryMatch:
    id: str
    text: str
    metadata: Metadata
    distance: float

    @property
    def similarity(self) -> float:
        return 1.0 - self.distance


@dataclass
class CollectionInfo:
    name: str
    count: int
    metadata: Metadata


class CollectionHandle(Protocol):
    """Subset of chromadb's AsyncCollection used by the store."""

    name: str
    metadata: Mapping[str, Any] | None

    async def add(
        self,
        ids: Sequence[str],
        embeddings: Sequence[Sequence[float]],
        documents: Sequence[str],
        metadatas: Sequence[Metadata],
    ) -> None:
        ...

    async def get(self, ids: Sequence[str] | None = None, include: Sequence[str] = ...) -> Mapping[str, Any]:
        ...

    async def delete(self, ids: Sequence[str]) -> None:
        ...

    async def query(
        self,
        query_embeddings: Sequence[Sequence[float]],
        n_results: int = 10,
        where: Mapping[str, Any] | None = None,
        include: Sequence[str] = ...,
    ) -> Mapping[str, Any]:
        ...

    async def count(self) -> int:
        ...


__all__ = ["Document", "QueryMatch", "CollectionInfo", "CollectionHandle", "Metadata"]
