"""
Document QA models for queries, retrieved chunks and assembled context.

These models represent the core entities in the answering pipeline:
- Query: Trimmed, non-empty user question
- RetrievedChunk: Passage returned by the vector index with its similarity
- ContextBlock: Citation-indexed text handed to the generator

Dynamic rows coming back from the index are converted into these strict
entities at the boundary (RetrievedChunk.from_row).
"""

from typing import Any, Dict, List, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field

from .errors import InputError


EmbeddingVector = List[float]


class Query(BaseModel):
    """A validated user question."""

    model_config = ConfigDict(frozen=True)

    text: str

    @classmethod
    def from_raw(cls, raw: Optional[str]) -> "Query":
        """Trim the raw message and reject it when nothing is left."""
        text = (raw or "").strip()
        if not text:
            raise InputError("Empty query")
        return cls(text=text)


class ChunkMetadata(BaseModel):
    """Metadata stored alongside a passage in the index."""

    model_config = ConfigDict(frozen=True, extra="allow")

    page: Optional[Union[int, float]] = None
    source: Optional[str] = None


class RetrievedChunk(BaseModel):
    """Represents a retrieved passage with its similarity score."""

    model_config = ConfigDict(frozen=True)

    id: Union[int, str]
    content: str
    metadata: ChunkMetadata = Field(default_factory=ChunkMetadata)
    similarity: Optional[float] = None

    @property
    def page(self) -> Optional[Union[int, float]]:
        return self.metadata.page

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "RetrievedChunk":
        """
        Build a chunk from an untyped index row.

        Args:
            row: Mapping with id, content, metadata and similarity keys

        Returns:
            RetrievedChunk with missing page/source/similarity set to None

        Raises:
            ValueError: If id or content is missing
        """
        if not isinstance(row, dict):
            raise ValueError(f"Expected a mapping for retrieved row, got {type(row).__name__}")

        chunk_id = row.get("id")
        if chunk_id is None or chunk_id == "":
            raise ValueError("Retrieved row is missing required field 'id'")

        content = row.get("content")
        if not isinstance(content, str):
            raise ValueError(f"Retrieved row {chunk_id} is missing required field 'content'")

        raw_metadata = row.get("metadata") or {}
        if not isinstance(raw_metadata, dict):
            raw_metadata = {}

        page = raw_metadata.get("page")
        if isinstance(page, bool) or not isinstance(page, (int, float)):
            page = None

        source = raw_metadata.get("source")
        similarity = row.get("similarity")
        if isinstance(similarity, bool) or not isinstance(similarity, (int, float)):
            similarity = None

        return cls(
            id=chunk_id,
            content=content,
            metadata=ChunkMetadata(
                page=page,
                source=source if isinstance(source, str) else None,
            ),
            similarity=float(similarity) if similarity is not None else None,
        )


class ContextBlock(BaseModel):
    """Citation-indexed context plus the chunk order it was rendered in."""

    model_config = ConfigDict(frozen=True)

    text: str = ""
    chunks: Tuple[RetrievedChunk, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.text
