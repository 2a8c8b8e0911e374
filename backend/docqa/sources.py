"""Source manifest: one UI-facing entry per cited chunk, in citation order."""

from typing import List, Sequence

from domain.models import SourceEntry

from .models import RetrievedChunk

PREVIEW_CHARS = 200


def build_sources(chunks: Sequence[RetrievedChunk], preview_chars: int = PREVIEW_CHARS) -> List[SourceEntry]:
    """
    Map chunks to source entries.

    index is position + 1, matching the [index] markers in the context block;
    preview is a plain character cut of the content.
    """
    return [
        SourceEntry(
            id=chunk.id,
            index=position,
            page=chunk.page,
            preview=chunk.content[:preview_chars],
            similarity=chunk.similarity,
        )
        for position, chunk in enumerate(chunks, start=1)
    ]
