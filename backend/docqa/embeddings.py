"""
Embedding service for document QA using OpenAI text-embedding-3-small.

Provides abstraction layer for query embedding with:
- A single round trip per query (no internal retry)
- Boundary validation of the returned vector
- Interface for substitutable fakes and future providers
"""

import logging
from abc import ABC, abstractmethod
from typing import List

import openai
from openai import AsyncOpenAI

from .config import EmbeddingConfig
from .errors import EmbeddingServiceError

logger = logging.getLogger(__name__)


class IEmbeddingService(ABC):
    """Interface for embedding services."""

    @abstractmethod
    async def embed_query(self, query: str) -> List[float]:
        """
        Generate embedding for a single query.

        Args:
            query: Non-empty, trimmed query text

        Returns:
            Embedding vector as List[float]

        Raises:
            EmbeddingServiceError: If the service fails or returns no vector
        """
        pass


class OpenAIEmbeddingService(IEmbeddingService):
    """
    OpenAI embedding service using text-embedding-3-small.

    The client handle is created once per process and shared by all requests.
    """

    def __init__(self, config: EmbeddingConfig, client: AsyncOpenAI = None):
        self.config = config
        self.client = client or AsyncOpenAI(api_key=config.api_key)
        self.model = config.model_name

        logger.info(f"Initialized OpenAI embedding service with model: {self.model}")

    async def embed_query(self, query: str) -> List[float]:
        """Generate embedding for single query, consuming only the first vector."""
        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=query
            )
        except openai.OpenAIError as e:
            logger.error(f"OpenAI embedding error: {e}")
            raise EmbeddingServiceError(
                f"Embedding request failed: {e}",
                context={"model": self.model}
            ) from e

        data = getattr(response, "data", None) or []
        if not data or not data[0].embedding:
            logger.error("Embedding response contained no vector")
            raise EmbeddingServiceError(
                "Embedding service returned no vector",
                context={"model": self.model}
            )

        vector = [float(value) for value in data[0].embedding]
        logger.debug(f"Embedded query into {len(vector)} dimensions")
        return vector
