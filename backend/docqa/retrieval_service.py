"""
Retrieval service for document QA vector search.

Provides high-level retrieval interface with:
- A single similarity search per query, bounded by match_count
- Corpus filtering
- Boundary conversion of index rows into RetrievedChunk entities

No secondary similarity cutoff and no re-ranking: the index's own ordering
and thresholding are authoritative.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from .config import RetrievalConfig
from .errors import RetrievalError, ServiceError
from .models import RetrievedChunk
from .vector_store import IVectorIndex

logger = logging.getLogger(__name__)


class RetrievalService:
    """Service for retrieving relevant passages from the vector index."""

    def __init__(self, vector_index: IVectorIndex, config: RetrievalConfig):
        self.vector_index = vector_index
        self.config = config

        logger.info(
            f"Initialized retrieval service (match_count={config.match_count}, "
            f"filter={config.corpus_filter})"
        )

    async def retrieve(
        self,
        vector: List[float],
        limit: Optional[int] = None,
        filter: Optional[Dict[str, Any]] = None
    ) -> List[RetrievedChunk]:
        """
        Retrieve passages similar to an embedded query.

        Args:
            vector: Query embedding
            limit: Maximum number of passages (defaults to config.match_count)
            filter: Corpus filter (defaults to config.corpus_filter)

        Returns:
            Passages in the index's similarity-descending order; empty when nothing matches

        Raises:
            RetrievalError: On transport failure or malformed rows
        """
        start_time = time.time()

        if limit is None:
            limit = self.config.match_count
        if filter is None:
            filter = self.config.corpus_filter

        try:
            rows = await self.vector_index.match_documents(
                query_embedding=vector,
                match_count=limit,
                filter=filter
            )
        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Error in retrieval: {e}")
            raise RetrievalError(f"Vector index call failed: {e}") from e

        try:
            chunks = [RetrievedChunk.from_row(row) for row in rows or []]
        except ValueError as e:
            logger.error(f"Malformed row from vector index: {e}")
            raise RetrievalError(str(e)) from e

        if len(chunks) > limit:
            logger.warning(f"Vector index returned {len(chunks)} rows for limit {limit}, truncating")
            chunks = chunks[:limit]

        latency_ms = (time.time() - start_time) * 1000
        logger.info(f"Retrieved {len(chunks)} chunks in {latency_ms:.2f}ms")

        return chunks
