import pytest

from docstore.embeddings.client import EmbeddingsClient
from docstore.errors import ConfigurationError, EmbeddingError

from tests.conftest import keyword_vector, make_settings


async def test_one_request_per_text_in_order(embeddings_client, embeddings_api):
    texts = ["apple pie", "rocket launch", "cake"]

    vectors = await embeddings_client.embed_texts(texts)

    assert embeddings_api.calls == [["apple pie"], ["rocket launch"], ["cake"]]
    assert vectors == [keyword_vector(text) for text in texts]


async def test_batching_keeps_order(settings, embeddings_api):
    client = EmbeddingsClient(settings, batch_size=2, client=embeddings_api)
    texts = ["a pie", "an orbit", "a cake"]

    vectors = await client.embed_texts(texts)

    assert embeddings_api.calls == [["a pie", "an orbit"], ["a cake"]]
    assert vectors == [keyword_vector(text) for text in texts]


async def test_empty_input_makes_no_calls(embeddings_client, embeddings_api):
    assert await embeddings_client.embed_texts([]) == []
    assert embeddings_api.calls == []


async def test_missing_credential_is_configuration_error(tmp_path):
    client = EmbeddingsClient(make_settings(tmp_path, openai_api_key=None))

    with pytest.raises(ConfigurationError):
        await client.embed_texts(["x"])


async def test_failure_on_any_item_fails_whole_call(embeddings_client, embeddings_api):
    embeddings_api.fail_on = "second"

    with pytest.raises(EmbeddingError, match="Embedding request failed"):
        await embeddings_client.embed_texts(["first", "second", "third"])

    # Nothing after the failing item is attempted.
    assert embeddings_api.calls == [["first"], ["second"]]


async def test_embed_text_returns_single_vector(embeddings_client):
    assert await embeddings_client.embed_text("rocket design") == keyword_vector("rocket design")


async def test_aclose_closes_underlying_client(embeddings_client, embeddings_api):
    await embeddings_client.aclose()
    assert embeddings_api.closed
