"""
Vector index adapters for document QA.

Provides repository pattern abstraction over the external similarity search:
- SupabaseVectorIndex: `match_documents` RPC on a pgvector-backed Supabase project
- ChromaVectorIndex: local ChromaDB collection filtered by corpus metadata

Both return untyped rows shaped `{id, content, metadata, similarity}` in the
index's own similarity-descending order. Conversion into strict entities
happens in the retrieval service.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

import chromadb
import httpx
from chromadb.config import Settings

from .config import VectorIndexConfig
from .errors import RetrievalError

logger = logging.getLogger(__name__)


class IVectorIndex(ABC):
    """Interface for vector index operations."""

    @abstractmethod
    async def match_documents(
        self,
        query_embedding: List[float],
        match_count: int,
        filter: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        """Return up to match_count rows most similar to query_embedding within filter."""
        pass


class SupabaseVectorIndex(IVectorIndex):
    """
    Supabase implementation of the vector index.

    Calls the `match_documents` Postgres function through PostgREST:
    POST /rest/v1/rpc/match_documents {query_embedding, match_count, filter}
    """

    def __init__(self, config: VectorIndexConfig, client: httpx.AsyncClient):
        self.config = config
        self.client = client
        self.url = config.rpc_url
        self.headers = {**config.auth_headers, "Content-Type": "application/json"}

        logger.info(f"Initialized Supabase vector index: {self.url}")

    async def match_documents(
        self,
        query_embedding: List[float],
        match_count: int,
        filter: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        payload = {
            "query_embedding": query_embedding,
            "match_count": match_count,
            "filter": filter,
        }

        try:
            response = await self.client.post(self.url, json=payload, headers=self.headers)
            response.raise_for_status()
            rows = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Supabase RPC returned {e.response.status_code}: {e.response.text}")
            raise RetrievalError(
                f"Vector index returned HTTP {e.response.status_code}: {e.response.text}",
                context={"rpc": self.config.rpc_function}
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Supabase RPC transport error: {e}")
            raise RetrievalError(
                f"Vector index request failed: {e}",
                context={"rpc": self.config.rpc_function}
            ) from e
        except ValueError as e:
            logger.error(f"Supabase RPC returned invalid JSON: {e}")
            raise RetrievalError(
                "Vector index returned invalid JSON",
                context={"rpc": self.config.rpc_function}
            ) from e

        if rows is None:
            return []

        if not isinstance(rows, list):
            raise RetrievalError(
                f"Vector index returned {type(rows).__name__}, expected a list of rows",
                context={"rpc": self.config.rpc_function}
            )

        logger.info(f"Supabase RPC matched {len(rows)} rows")
        return rows


class ChromaVectorIndex(IVectorIndex):
    """
    ChromaDB implementation of the vector index.

    Uses a single collection with corpus metadata filtering.
    """

    def __init__(self, config: VectorIndexConfig, client: Any = None):
        self.config = config

        if client is None:
            client = chromadb.PersistentClient(
                path=str(config.persist_directory),
                settings=Settings(anonymized_telemetry=False)
            )

        self.client = client
        self.collection = self.client.get_or_create_collection(
            name=config.collection_name,
            metadata={"hnsw:space": "cosine"}
        )

        logger.info(
            f"Initialized ChromaDB vector index: {config.collection_name} "
            f"at {config.persist_directory}"
        )

    async def match_documents(
        self,
        query_embedding: List[float],
        match_count: int,
        filter: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        """
        Search for similar chunks filtered by corpus.

        Returns rows sorted by similarity (most similar first).
        """
        try:
            results = self.collection.query(
                query_embeddings=[query_embedding],
                n_results=match_count,
                where=filter
            )
        except Exception as e:
            logger.error(f"Error searching ChromaDB: {e}")
            raise RetrievalError(
                f"Vector index query failed: {e}",
                context={"collection": self.config.collection_name}
            ) from e

        if not results.get("ids") or not results["ids"][0]:
            logger.info(f"No results found for filter: {filter}")
            return []

        # Chromadb returns lists of lists (one per query embedding)
        ids = results["ids"][0]
        documents = results["documents"][0]
        metadatas = results["metadatas"][0]
        distances = results["distances"][0]

        rows = [
            {
                "id": chunk_id,
                "content": text,
                "metadata": dict(metadata or {}),
                # Collection uses cosine space: distance = 1 - cosine similarity
                "similarity": 1 - distance,
            }
            for chunk_id, text, metadata, distance in zip(ids, documents, metadatas, distances)
        ]

        logger.info(f"ChromaDB matched {len(rows)} rows")
        return rows


def create_vector_index(config: VectorIndexConfig, http_client: httpx.AsyncClient = None) -> IVectorIndex:
    """
    Create the configured vector index.

    Args:
        config: VectorIndexConfig instance
        http_client: Shared httpx client (required for the supabase backend)

    Returns:
        IVectorIndex implementation
    """
    if config.backend == "chroma":
        return ChromaVectorIndex(config)

    if http_client is None:
        raise ValueError("An httpx.AsyncClient is required for the supabase backend")
    return SupabaseVectorIndex(config, http_client)
