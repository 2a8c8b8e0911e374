"""Global Pytest Configuration - Sets up Python path and shared fakes."""

import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add backend directory to Python path so flat imports work
backend_dir = os.path.dirname(os.path.abspath(__file__))
if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)

from docqa.config import RAGConfig, VectorIndexConfig  # noqa: E402
from docqa.pipeline import RAGPipeline  # noqa: E402
from docqa.retrieval_service import RetrievalService  # noqa: E402


@pytest.fixture
def rag_config():
    """Default configuration without touching the environment."""
    return RAGConfig(vector_index=VectorIndexConfig(supabase_url="https://example.supabase.co", supabase_key="test-key"))


@pytest.fixture
def nutrition_rows():
    """Two rows as the index returns them: page 12 then page 45."""
    return [
        {
            "id": 101,
            "content": "Vitamin C, also known as ascorbic acid, is a water-soluble vitamin. " * 5,
            "metadata": {"page": 12, "source": "human-nutrition-text.pdf"},
            "similarity": 0.82,
        },
        {
            "id": 202,
            "content": "Citrus fruits are a rich dietary source of vitamin C.",
            "metadata": {"page": 45, "source": "human-nutrition-text.pdf"},
            "similarity": 0.74,
        },
    ]


@pytest.fixture
def fake_embedding_service():
    mock = MagicMock()
    mock.embed_query = AsyncMock(return_value=[0.1, 0.2, 0.3])
    return mock


@pytest.fixture
def fake_vector_index(nutrition_rows):
    mock = MagicMock()
    mock.match_documents = AsyncMock(return_value=nutrition_rows)
    return mock


@pytest.fixture
def fake_answer_generator():
    mock = MagicMock()
    mock.generate = AsyncMock(
        return_value="Vitamin C is a water-soluble vitamin [1] (Page 12) found in citrus fruits [2] (Page 45)."
    )
    return mock


@pytest.fixture
def make_pipeline(rag_config, fake_embedding_service, fake_vector_index, fake_answer_generator):
    """Build a pipeline around the fakes; individual fakes can be swapped per test."""

    def _make(embedding_service=None, vector_index=None, answer_generator=None):
        retrieval_service = RetrievalService(
            vector_index=vector_index or fake_vector_index,
            config=rag_config.retrieval
        )
        return RAGPipeline(
            embedding_service=embedding_service or fake_embedding_service,
            retrieval_service=retrieval_service,
            answer_generator=answer_generator or fake_answer_generator,
            config=rag_config
        )

    return _make
