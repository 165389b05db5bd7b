import asyncio
from types import SimpleNamespace

import pytest

from docstore.embeddings.client import EmbeddingsClient
from docstore.errors import (
    ConfigurationError,
    EmbeddingError,
    EngineQueryError,
    EngineUnavailableError,
    EngineWriteError,
)
from docstore.vector_store import chroma_store
from docstore.vector_store.chroma_store import DocumentStore

from tests.conftest import make_settings


async def test_add_then_get_returns_texts(store):
    texts = ["apple pie recipe", "rocket engine design", "chocolate cake"]

    ids = await store.add(texts)

    documents = await store.get()
    assert {doc.text for doc in documents} == set(texts)
    assert {doc.id for doc in documents} == set(ids)
    assert await store.count() == 3


async def test_generated_ids_are_unique_within_a_batch(store):
    ids = await store.add(["one pie", "two pie", "three pie"])

    assert len(set(ids)) == 3
    assert all(doc_id.startswith("doc_") for doc_id in ids)
    assert [doc_id.rsplit("_", 1)[1] for doc_id in ids] == ["0", "1", "2"]


async def test_generated_ids_differ_across_batches_in_the_same_millisecond(store, monkeypatch):
    monkeypatch.setattr(chroma_store, "time", SimpleNamespace(time=lambda: 1_700_000_000.0))

    first = await store.add(["one pie"])
    second = await store.add(["two pie"])

    assert first != second
    assert await store.count() == 2


async def test_default_metadata_is_synthesized(store):
    await store.add(["apple pie recipe"])

    (doc,) = await store.get()
    assert doc.metadata["text"] == "apple pie recipe"
    assert doc.metadata["index"] == 0
    assert "createdAt" in doc.metadata


async def test_explicit_ids_and_metadata_are_kept(store):
    await store.add(["apple pie"], ids=["pie-1"], metadatas=[{"kind": "dessert"}])

    (doc,) = await store.get(["pie-1"])
    assert doc.id == "pie-1"
    assert doc.metadata == {"kind": "dessert"}


@pytest.mark.parametrize(
    "kwargs",
    [
        {"texts": []},
        {"texts": ["ok", ""]},
        {"texts": ["ok", "   "]},
        {"texts": ["a", "b"], "ids": ["only-one"]},
        {"texts": ["a"], "metadatas": [{}, {}]},
    ],
)
async def test_add_rejects_invalid_input(store, embeddings_api, kwargs):
    with pytest.raises(ValueError):
        await store.add(**kwargs)
    assert embeddings_api.calls == []


async def test_embedding_failure_adds_nothing(store, embeddings_api, chroma_client):
    await store.add(["existing pie"])
    embeddings_api.fail_on = "broken"

    with pytest.raises(EmbeddingError):
        await store.add(["fine cake", "broken"])

    assert await store.count() == 1


async def test_missing_credential_fails_before_engine(tmp_path, engine, client_factory):
    settings = make_settings(tmp_path, openai_api_key=None)
    store = DocumentStore(engine, EmbeddingsClient(settings), settings=settings, client_factory=client_factory)

    with pytest.raises(ConfigurationError):
        await store.add(["x"])

    assert engine.ensure_calls == 0
    assert client_factory.calls == []


async def test_engine_write_error_is_surfaced(store, chroma_client):
    collection = await store.initialize()
    collection.fail_with = RuntimeError("dimension mismatch")

    with pytest.raises(EngineWriteError, match="dimension mismatch"):
        await store.add(["apple pie"])


async def test_engine_read_error_is_surfaced(store):
    collection = await store.initialize()
    collection.fail_with = RuntimeError("server error")

    with pytest.raises(EngineQueryError, match="server error"):
        await store.get()


async def test_get_omits_missing_ids(store):
    await store.add(["apple pie"], ids=["a"])

    documents = await store.get(["a", "missing"])

    assert [doc.id for doc in documents] == ["a"]


async def test_delete_is_idempotent(store):
    await store.add(["apple pie", "rocket"], ids=["a", "b"])

    assert await store.delete(["a"]) == 1
    assert await store.delete(["a"]) == 0
    assert [doc.id for doc in await store.get()] == ["b"]


async def test_delete_nonexistent_id_changes_nothing(store):
    await store.add(["apple pie"])

    assert await store.delete(["nonexistent-id"]) == 0
    assert await store.count() == 1


async def test_delete_requires_ids(store):
    with pytest.raises(ValueError):
        await store.delete([])


async def test_clear_empty_collection(store):
    assert await store.clear() == 0
    assert await store.count() == 0


async def test_clear_removes_everything(store):
    await store.add(["apple pie", "rocket engine", "cake"])

    assert await store.clear() == 3
    assert await store.count() == 0


async def test_info(store, settings):
    await store.add(["apple pie"])

    info = await store.info()

    assert info.name == settings.chroma_collection
    assert info.count == 1
    assert info.metadata["description"]


async def test_initialize_is_idempotent_under_concurrency(store, chroma_client, client_factory):
    handles = await asyncio.gather(*(store.initialize() for _ in range(3)))

    assert all(handle is handles[0] for handle in handles)
    assert len(chroma_client.collections) == 1
    assert len(client_factory.calls) == 1


async def test_collection_handle_is_cached(store, engine):
    await store.count()
    await store.count()

    assert engine.ensure_calls == 1


async def test_engine_unavailable_propagates(store, engine):
    engine.error = EngineUnavailableError("no engine", ["docker: missing"])

    with pytest.raises(EngineUnavailableError):
        await store.count()


async def test_aclose_closes_client_and_reopens_on_next_use(store, chroma_client, client_factory, engine):
    await store.add(["apple pie"])

    await store.aclose()

    assert chroma_client.closed
    assert await store.count() == 1
    assert len(client_factory.calls) == 2
    assert engine.ensure_calls == 2
