from __future__ import annotations

from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field

MetadataValue = Union[str, int, float, bool]


# Documents
class AddDocumentsRequest(BaseModel):
    """Texts to embed and store."""

    texts: List[str] = Field(..., min_length=1, description="Document texts")
    ids: List[str] | None = Field(default=None, description="Optional ids, one per text")
    metadatas: List[Dict[str, MetadataValue]] | None = Field(
        default=None,
        description="Optional metadata, one mapping per text",
    )


class DeleteDocumentsRequest(BaseModel):
    ids: List[str] = Field(..., min_length=1, description="Ids of documents to delete")


class DocumentsPayload(BaseModel):
    ids: List[str]
    documents: List[str]
    metadatas: List[Dict[str, Any]]


# Query
class QueryRequest(BaseModel):
    """Similarity search request."""

    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(..., min_length=1, description="Query text")
    n_results: int = Field(default=5, ge=1, alias="nResults", description="How many matches to return")
    where: Dict[str, Any] | None = Field(default=None, description="Chroma metadata filter")


class QueryMatchPayload(BaseModel):
    id: str
    document: str
    metadata: Dict[str, Any]
    distance: float = Field(..., ge=0)
    similarity: float


# Collection
class CollectionInfoPayload(BaseModel):
    name: str
    count: int = Field(..., ge=0)
    metadata: Dict[str, Any]


class EngineStatusPayload(BaseModel):
    running: bool
    url: str
    state: str
    reason: str | None = None


# Envelope
class SuccessResponse(BaseModel):
    success: bool = True
    data: Any | None = None
    message: str | None = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


__all__ = [
    "AddDocumentsRequest",
    "DeleteDocumentsRequest",
    "DocumentsPayload",
    "QueryRequest",
    "QueryMatchPayload",
    "CollectionInfoPayload",
    "EngineStatusPayload",
    "SuccessResponse",
    "ErrorResponse",
]
