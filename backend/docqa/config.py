"""
Configuration dataclasses for all document QA components.

Provides centralized configuration with sensible defaults for:
- Embeddings (model selection)
- Vector index (Supabase RPC or ChromaDB collection)
- Retrieval (match count, corpus filter)
- Generation (chat model, temperature)
- Source manifest (preview length)
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
import os

from dotenv import load_dotenv


SUPPORTED_INDEX_BACKENDS = ("supabase", "chroma")


@dataclass
class EmbeddingConfig:
    """Configuration for embedding service."""

    model_name: str = "text-embedding-3-small"  # OpenAI model

    # Environment variable for API key
    api_key_env_var: str = "OPENAI_API_KEY"

    @property
    def api_key(self) -> str:
        """Get OpenAI API key from environment."""
        key = os.getenv(self.api_key_env_var)
        if not key:
            raise ValueError(
                f"OpenAI API key not found in environment variable: {self.api_key_env_var}"
            )
        return key


@dataclass
class VectorIndexConfig:
    """Configuration for the external vector index."""

    backend: str = "supabase"  # "supabase" or "chroma"

    # Supabase (PostgREST RPC)
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    rpc_function: str = "match_documents"

    # ChromaDB
    persist_directory: Path = field(default_factory=lambda: Path("data/rag/chroma"))
    collection_name: str = "documents"

    def __post_init__(self):
        """Validate configuration."""
        if self.backend not in SUPPORTED_INDEX_BACKENDS:
            raise ValueError(
                f"Unknown vector index backend: {self.backend} "
                f"(expected one of {', '.join(SUPPORTED_INDEX_BACKENDS)})"
            )
        self.persist_directory = Path(self.persist_directory)

    @property
    def rpc_url(self) -> str:
        """Full URL of the match RPC endpoint."""
        if not self.supabase_url:
            raise ValueError("SUPABASE_URL must be set for the supabase backend")
        return f"{self.supabase_url.rstrip('/')}/rest/v1/rpc/{self.rpc_function}"

    @property
    def auth_headers(self) -> Dict[str, str]:
        """Headers for the service-role key."""
        if not self.supabase_key:
            raise ValueError("SUPABASE_SERVICE_ROLE_KEY must be set for the supabase backend")
        return {
            "apikey": self.supabase_key,
            "Authorization": f"Bearer {self.supabase_key}",
        }


@dataclass
class RetrievalConfig:
    """Configuration for retrieval service."""

    match_count: int = 8  # Upper bound on passages per query
    corpus_metadata_key: str = "source"
    corpus_source: str = "human-nutrition-text.pdf"

    def __post_init__(self):
        """Validate configuration."""
        if self.match_count <= 0:
            raise ValueError("match_count must be positive")
        if not self.corpus_source:
            raise ValueError("corpus_source must not be empty")

    @property
    def corpus_filter(self) -> Dict[str, Any]:
        """Filter pinning retrieval to the configured corpus."""
        return {self.corpus_metadata_key: self.corpus_source}


@dataclass
class GenerationConfig:
    """Configuration for the answer generator."""

    model_name: str = "gpt-4o-mini"
    temperature: float = 0.2  # Low temperature favours grounded, repeatable answers

    def __post_init__(self):
        """Validate configuration."""
        if not 0 <= self.temperature <= 2:
            raise ValueError("temperature must be between 0 and 2")


@dataclass
class SourcesConfig:
    """Configuration for the source manifest."""

    preview_chars: int = 200

    def __post_init__(self):
        if self.preview_chars < 0:
            raise ValueError("preview_chars must not be negative")


@dataclass
class RAGConfig:
    """Aggregated document QA configuration."""

    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    vector_index: VectorIndexConfig = field(default_factory=VectorIndexConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    sources: SourcesConfig = field(default_factory=SourcesConfig)

    @classmethod
    def from_env(cls) -> "RAGConfig":
        """
        Create configuration with environment variable overrides.

        Loads from a .env file if present, then reads environment variables.

        Raises:
            ValueError: If an override is invalid.
        """
        load_dotenv()

        vector_index = VectorIndexConfig(
            backend=os.getenv("VECTOR_INDEX_BACKEND", "supabase").strip().lower(),
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
            persist_directory=Path(os.getenv("CHROMA_PERSIST_DIR", "data/rag/chroma")),
        )

        retrieval = RetrievalConfig()
        if corpus_source := os.getenv("RAG_CORPUS_SOURCE"):
            retrieval.corpus_source = corpus_source

        generation = GenerationConfig()
        if chat_model := os.getenv("RAG_CHAT_MODEL"):
            generation.model_name = chat_model

        return cls(
            vector_index=vector_index,
            retrieval=retrieval,
            generation=generation,
        )
