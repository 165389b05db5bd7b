"""Shared fakes: an in-memory Chroma client, a keyword embeddings API and a stub engine."""

from __future__ import annotations

import math
from types import SimpleNamespace
from typing import Any, Dict, List

import httpx
import openai
import pytest

from docstore.config import Settings
from docstore.embeddings.client import EmbeddingsClient
from docstore.search.pipeline import QueryEngine
from docstore.vector_store.chroma_store import DocumentStore

TOPICS = [
    {"apple", "pie", "recipe", "recipes", "dessert", "cake", "baking"},
    {"rocket", "engine", "design", "space", "orbit", "launch"},
]


def keyword_vector(text: str) -> List[float]:
    words = text.lower().split()
    vector = [float(sum(1 for word in words if word in topic)) for topic in TOPICS]
    vector.append(0.1)
    return vector


def cosine_distance(a: List[float], b: List[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return max(0.0, 1.0 - dot / norm)


class FakeEmbeddingsAPI:
    """Stands in for AsyncOpenAI: `await api.embeddings.create(model=..., input=[...])`."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.fail_on: str | None = None
        self.closed = False
        self.embeddings = SimpleNamespace(create=self._create)

    async def _create(self, model: str, input: List[str]) -> Any:
        self.calls.append(list(input))
        if self.fail_on is not None and self.fail_on in input:
            raise openai.APIConnectionError(
                message="upstream embedding service down",
                request=httpx.Request("POST", "https://api.example.test/v1/embeddings"),
            )
        data = [SimpleNamespace(index=i, embedding=keyword_vector(text)) for i, text in enumerate(input)]
        return SimpleNamespace(data=data)

    async def close(self) -> None:
        self.closed = True


class FakeCollection:
    def __init__(self, name: str, metadata: Dict[str, Any] | None = None) -> None:
        self.name = name
        self.metadata = metadata
        self.records: Dict[str, Dict[str, Any]] = {}
        self.fail_with: Exception | None = None
        self.query_calls: List[Dict[str, Any]] = []

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def add(self, ids, embeddings, documents, metadatas) -> None:
        self._maybe_fail()
        for doc_id, embedding, document, metadata in zip(ids, embeddings, documents, metadatas):
            self.records[doc_id] = {"embedding": embedding, "document": document, "metadata": metadata}

    async def get(self, ids=None, include=("documents", "metadatas")) -> Dict[str, Any]:
        self._maybe_fail()
        wanted = list(self.records) if ids is None else [i for i in ids if i in self.records]
        result: Dict[str, Any] = {"ids": wanted}
        if "documents" in include:
            result["documents"] = [self.records[i]["document"] for i in wanted]
        if "metadatas" in include:
            result["metadatas"] = [self.records[i]["metadata"] for i in wanted]
        return result

    async def delete(self, ids) -> None:
        self._maybe_fail()
        for doc_id in ids:
            self.records.pop(doc_id, None)

    async def query(self, query_embeddings, n_results=10, where=None, include=()) -> Dict[str, Any]:
        self._maybe_fail()
        self.query_calls.append({"n_results": n_results, "where": where})
        query = query_embeddings[0]
        candidates = [
            (doc_id, record)
            for doc_id, record in self.records.items()
            if not where or all(record["metadata"].get(k) == v for k, v in where.items())
        ]
        scored = sorted(
            ((cosine_distance(query, record["embedding"]), doc_id, record) for doc_id, record in candidates),
            key=lambda item: item[0],
        )[:n_results]
        return {
            "ids": [[doc_id for _, doc_id, _ in scored]],
            "documents": [[record["document"] for _, _, record in scored]],
            "metadatas": [[record["metadata"] for _, _, record in scored]],
            "distances": [[distance for distance, _, _ in scored]],
        }

    async def count(self) -> int:
        self._maybe_fail()
        return len(self.records)


class FakeChromaClient:
    def __init__(self) -> None:
        self.collections: Dict[str, FakeCollection] = {}
        self.get_or_create_calls = 0
        self.closed = False

    async def get_or_create_collection(self, name, metadata=None, embedding_function=None) -> FakeCollection:
        self.get_or_create_calls += 1
        if name not in self.collections:
            self.collections[name] = FakeCollection(name, metadata)
        return self.collections[name]

    async def close(self) -> None:
        self.closed = True


class FakeEngine:
    def __init__(self) -> None:
        self.ensure_calls = 0
        self.error: Exception | None = None
        self.stopped = False

    async def ensure_running(self) -> None:
        self.ensure_calls += 1
        if self.error is not None:
            raise self.error

    async def status(self) -> Dict[str, Any]:
        return {"running": self.error is None, "url": "http://localhost:8000", "state": "running"}

    async def stop(self) -> None:
        self.stopped = True

    async def aclose(self) -> None:
        return None


def make_settings(tmp_path, **overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "openai_api_key": "test-key",
        "chroma_data_path": str(tmp_path / "chroma_data"),
        "chroma_server_url": None,
        "chroma_port": 8000,
        "engine_health_retries": 3,
        "engine_health_interval": 0.0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def embeddings_api() -> FakeEmbeddingsAPI:
    return FakeEmbeddingsAPI()


@pytest.fixture
def embeddings_client(settings, embeddings_api) -> EmbeddingsClient:
    return EmbeddingsClient(settings, client=embeddings_api)


@pytest.fixture
def chroma_client() -> FakeChromaClient:
    return FakeChromaClient()


@pytest.fixture
def client_factory(chroma_client):
    factory_calls: List[int] = []

    async def factory() -> FakeChromaClient:
        factory_calls.append(1)
        return chroma_client

    factory.calls = factory_calls
    return factory


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def store(settings, engine, embeddings_client, client_factory) -> DocumentStore:
    return DocumentStore(engine, embeddings_client, settings=settings, client_factory=client_factory)


@pytest.fixture
def query_engine(store, embeddings_client) -> QueryEngine:
    return QueryEngine(store, embeddings_client)
