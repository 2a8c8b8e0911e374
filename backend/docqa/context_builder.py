"""
Context builder: renders retrieved chunks into a citation-indexed block.

Citation [i] is the 1-based position of the chunk in retrieval order.
No re-sorting, no deduplication, no token budget.
"""

import logging
from typing import Sequence, Tuple

from .models import ContextBlock, RetrievedChunk

logger = logging.getLogger(__name__)

UNKNOWN_PAGE = "?"


def render_chunk(index: int, chunk: RetrievedChunk) -> str:
    page = chunk.page if chunk.page is not None else UNKNOWN_PAGE
    return f"[{index}] (Page {page})\n{chunk.content}"


def assemble(chunks: Sequence[RetrievedChunk]) -> Tuple[ContextBlock, Tuple[RetrievedChunk, ...]]:
    """
    Build the context block for the generator.

    Args:
        chunks: Retrieved chunks in index order

    Returns:
        Tuple of (context_block, displayed_order). An empty input yields an
        empty context text, which callers use to skip generation.
    """
    ordered = tuple(chunks)
    text = "\n\n".join(
        render_chunk(index, chunk) for index, chunk in enumerate(ordered, start=1)
    )

    logger.info(f"Built context with {len(ordered)} citations ({len(text)} chars)")

    return ContextBlock(text=text, chunks=ordered), ordered
