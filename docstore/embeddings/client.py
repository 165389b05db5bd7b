"""
OpenAI-compatible embeddings client.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from openai import AsyncOpenAI, OpenAIError

from docstore.config import Settings, settings as default_settings
from docstore.errors import ConfigurationError, EmbeddingError

DEFAULT_EMBED_BATCH_SIZE = 1

logger = logging.getLogger(__name__)


class EmbeddingsClient:
    def __init__(
        self,
        settings: Settings | None = None,
        model: str | None = None,
        batch_size: int = DEFAULT_EMBED_BATCH_SIZE,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self.model = model or self.settings.embedding_model_name
        self.batch_size = max(1, batch_size)
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is not None:
            return self._client
        if not self.settings.openai_api_key:
            raise ConfigurationError("Embedding API key is not configured (set OPENAI_API_KEY)")
        self._client = AsyncOpenAI(
            api_key=self.settings.openai_api_key.get_secret_value(),
            base_url=self.settings.embedding_base_url,
        )
        return self._client

    async def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Embed every text, one request per batch (one text per request by default).

        Either every vector is returned in input order or EmbeddingError is raised.
        """
        if not texts:
            return []

        client = self._get_client()
        embeddings: List[List[float]] = []
        for i in range(0, len(texts), self.batch_size):
            batch = list(texts[i : i + self.batch_size])
            try:
                response = await client.embeddings.create(model=self.model, input=batch)
            except OpenAIError as exc:
                logger.error("Embedding request failed", extra={"offset": i, "model": self.model})
                raise EmbeddingError(f"Embedding request failed: {exc}") from exc

            items = sorted(response.data, key=lambda item: item.index)
            if len(items) != len(batch):
                raise EmbeddingError(
                    f"Embedding API returned {len(items)} vectors for {len(batch)} texts"
                )
            embeddings.extend([list(item.embedding) for item in items])

        logger.info("Embedded texts", extra={"count": len(embeddings), "model": self.model})
        return embeddings

    async def embed_text(self, text: str) -> List[float]:
        vectors = await self.embed_texts([text])
        return vectors[0]

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()


__all__ = ["EmbeddingsClient", "DEFAULT_EMBED_BATCH_SIZE"]
