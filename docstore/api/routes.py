from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from docstore.context import StoreContext
from docstore.models.schemas import (
    AddDocumentsRequest,
    CollectionInfoPayload,
    DeleteDocumentsRequest,
    DocumentsPayload,
    EngineStatusPayload,
    QueryMatchPayload,
    QueryRequest,
    SuccessResponse,
)

router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)


def get_context(request: Request) -> StoreContext:
    return request.app.state.context


@router.get("/collection/info", response_model=SuccessResponse, response_model_exclude_none=True)
async def collection_info(context: StoreContext = Depends(get_context)) -> SuccessResponse:
    info = await context.store.info()
    payload = CollectionInfoPayload(name=info.name, count=info.count, metadata=info.metadata)
    return SuccessResponse(data=payload)


@router.get("/documents", response_model=SuccessResponse, response_model_exclude_none=True)
async def list_documents(context: StoreContext = Depends(get_context)) -> SuccessResponse:
    documents = await context.store.get()
    payload = DocumentsPayload(
        ids=[doc.id for doc in documents],
        documents=[doc.text for doc in documents],
        metadatas=[doc.metadata for doc in documents],
    )
    return SuccessResponse(data=payload)


@router.post("/documents", response_model=SuccessResponse, response_model_exclude_none=True)
async def add_documents(
    request: AddDocumentsRequest,
    context: StoreContext = Depends(get_context),
) -> SuccessResponse:
    logger.info("Add documents request", extra={"count": len(request.texts)})
    ids = await context.store.add(request.texts, ids=request.ids, metadatas=request.metadatas)
    return SuccessResponse(data={"ids": ids}, message=f"Added {len(ids)} documents")


@router.delete("/documents", response_model=SuccessResponse, response_model_exclude_none=True)
async def delete_documents(
    request: DeleteDocumentsRequest,
    context: StoreContext = Depends(get_context),
) -> SuccessResponse:
    deleted = await context.store.delete(request.ids)
    return SuccessResponse(data={"deleted": deleted}, message=f"Deleted {deleted} documents")


@router.post("/query", response_model=SuccessResponse, response_model_exclude_none=True)
async def query(request: QueryRequest, context: StoreContext = Depends(get_context)) -> SuccessResponse:
    logger.info("Query request", extra={"len": len(request.query), "n_results": request.n_results})
    matches = await context.query_engine.query(request.query, n_results=request.n_results, where=request.where)
    payload = [
        QueryMatchPayload(
            id=match.id,
            document=match.text,
            metadata=match.metadata,
            distance=match.distance,
            similarity=match.similarity,
        )
        for match in matches
    ]
    return SuccessResponse(data=payload)


@router.delete("/collection/clear", response_model=SuccessResponse, response_model_exclude_none=True)
async def clear_collection(context: StoreContext = Depends(get_context)) -> SuccessResponse:
    deleted = await context.store.clear()
    return SuccessResponse(data={"deleted": deleted}, message="Collection cleared")


@router.get("/engine/status", response_model=SuccessResponse, response_model_exclude_none=True)
async def engine_status(context: StoreContext = Depends(get_context)) -> SuccessResponse:
    status = await context.engine.status()
    return SuccessResponse(data=EngineStatusPayload(**status))


__all__ = ["router", "get_context"]
