"""OpenAI embedding service for tag vectors."""
import logging
from dataclasses import dataclass
from typing import List, Optional

from openai import AsyncOpenAI

from vault_worker.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class EmbeddingBatch:
    """Vectors for one request, in request order, and the model that produced them."""

    embeddings: List[List[float]]
    model: str


class EmbeddingService:
    """Service for generating OpenAI embeddings."""

    def __init__(self, api_key: Optional[str] = None, client: Optional[AsyncOpenAI] = None):
        """Initialize the embedding service.

        Args:
            api_key: OpenAI API key (defaults to settings.OPENAI_API_KEY)
            client: Optional pre-built client
        """
        if client is None:
            api_key = api_key or settings.OPENAI_API_KEY
            if not api_key:
                raise ValueError("OpenAI API key is required")
            client = AsyncOpenAI(api_key=api_key)

        self.client = client
        self.model = settings.EMBEDDING_MODEL
        self.dimensions = settings.EMBEDDING_DIMENSION

    async def embed_many(self, texts: List[str]) -> EmbeddingBatch:
        """Embed several texts with a single API call.

        Args:
            texts: Texts to embed (tag names are short, so no batching or truncation)

        Returns:
            EmbeddingBatch with one vector per input text
        """
        if not texts:
            return EmbeddingBatch(embeddings=[], model=self.model)

        response = await self.client.embeddings.create(
            model=self.model,
            input=texts,
            dimensions=self.dimensions,
        )

        # The API may return items out of order; index is authoritative
        data = sorted(response.data, key=lambda item: item.index)
        embeddings = [item.embedding for item in data]

        logger.info(f"Generated {len(embeddings)} embeddings with {self.model}")
        return EmbeddingBatch(embeddings=embeddings, model=response.model or self.model)
