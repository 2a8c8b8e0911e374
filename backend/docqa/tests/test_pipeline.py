"""
Tests for retrieval and the end-to-end pipeline with faked external services.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from docqa.config import RetrievalConfig
from docqa.errors import EmbeddingServiceError, GenerationError, InputError, RetrievalError
from docqa.generator import NO_ANSWER_FALLBACK
from docqa.pipeline import NOT_FOUND_ANSWER
from docqa.retrieval_service import RetrievalService


def _index(rows=None, side_effect=None):
    mock = MagicMock()
    mock.match_documents = AsyncMock(return_value=rows, side_effect=side_effect)
    return mock


class TestRetrievalService:
    """Tests for RetrievalService."""

    @pytest.mark.asyncio
    async def test_uses_match_count_and_corpus_filter(self, nutrition_rows):
        index = _index(nutrition_rows)
        service = RetrievalService(index, RetrievalConfig())

        chunks = await service.retrieve([0.1, 0.2])

        index.match_documents.assert_awaited_once_with(
            query_embedding=[0.1, 0.2],
            match_count=8,
            filter={"source": "human-nutrition-text.pdf"}
        )
        assert [c.page for c in chunks] == [12, 45]

    @pytest.mark.asyncio
    async def test_no_local_similarity_cutoff_or_reordering(self):
        rows = [
            {"id": 1, "content": "low", "metadata": {"page": 2}, "similarity": 0.01},
            {"id": 2, "content": "high", "metadata": {"page": 1}, "similarity": 0.99},
        ]
        service = RetrievalService(_index(rows), RetrievalConfig())

        chunks = await service.retrieve([0.1])

        assert [c.id for c in chunks] == [1, 2]

    @pytest.mark.asyncio
    async def test_empty_and_null_results_are_not_errors(self):
        assert await RetrievalService(_index([]), RetrievalConfig()).retrieve([0.1]) == []
        assert await RetrievalService(_index(None), RetrievalConfig()).retrieve([0.1]) == []

    @pytest.mark.asyncio
    async def test_truncates_to_limit(self):
        rows = [{"id": i, "content": f"chunk {i}"} for i in range(12)]
        service = RetrievalService(_index(rows), RetrievalConfig())

        chunks = await service.retrieve([0.1])

        assert len(chunks) == 8
        assert [c.id for c in chunks] == list(range(8))

    @pytest.mark.asyncio
    async def test_malformed_row_raises_retrieval_error(self):
        service = RetrievalService(_index([{"id": 1}]), RetrievalConfig())

        with pytest.raises(RetrievalError):
            await service.retrieve([0.1])

    @pytest.mark.asyncio
    async def test_unexpected_index_failure_is_wrapped(self):
        service = RetrievalService(_index(side_effect=ConnectionError("socket closed")), RetrievalConfig())

        with pytest.raises(RetrievalError) as exc_info:
            await service.retrieve([0.1])

        assert "socket closed" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_typed_index_errors_propagate_unchanged(self):
        original = RetrievalError("HTTP 503")
        service = RetrievalService(_index(side_effect=original), RetrievalConfig())

        with pytest.raises(RetrievalError) as exc_info:
            await service.retrieve([0.1])

        assert exc_info.value is original


class TestPipeline:
    """Tests for RAGPipeline."""

    @pytest.mark.asyncio
    async def test_answer_with_two_chunks(self, make_pipeline, fake_answer_generator):
        pipeline = make_pipeline()

        response = await pipeline.answer("What is vitamin C?")

        assert "[1]" in response.answer or "[2]" in response.answer
        assert [(s.index, s.page) for s in response.sources] == [(1, 12), (2, 45)]
        assert [s.id for s in response.sources] == [101, 202]

        query, context = fake_answer_generator.generate.await_args.args
        assert query == "What is vitamin C?"
        assert context.startswith("[1] (Page 12)\n")
        assert "\n\n[2] (Page 45)\nCitrus fruits" in context

    @pytest.mark.asyncio
    async def test_query_is_trimmed_before_embedding(self, make_pipeline, fake_embedding_service):
        await make_pipeline().answer("   What is vitamin C?  ")

        fake_embedding_service.embed_query.assert_awaited_once_with("What is vitamin C?")

    @pytest.mark.asyncio
    async def test_retrieval_always_uses_fixed_count_and_filter(self, make_pipeline, fake_vector_index):
        await make_pipeline().answer("What is vitamin C?")

        kwargs = fake_vector_index.match_documents.await_args.kwargs
        assert kwargs["query_embedding"] == [0.1, 0.2, 0.3]
        assert kwargs["match_count"] == 8
        assert kwargs["filter"] == {"source": "human-nutrition-text.pdf"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", ["", "   ", "\t\n", None])
    async def test_blank_query_makes_no_external_calls(
        self, make_pipeline, message,
        fake_embedding_service, fake_vector_index, fake_answer_generator
    ):
        pipeline = make_pipeline()

        with pytest.raises(InputError):
            await pipeline.answer(message)

        fake_embedding_service.embed_query.assert_not_awaited()
        fake_vector_index.match_documents.assert_not_awaited()
        fake_answer_generator.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_chunks_short_circuits(self, make_pipeline, fake_answer_generator):
        pipeline = make_pipeline(vector_index=_index([]))

        response = await pipeline.answer("What is the airspeed of a swallow?")

        assert response.answer == NOT_FOUND_ANSWER
        assert response.sources == []
        fake_answer_generator.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fallback_answer_still_returns_sources(self, make_pipeline):
        generator = MagicMock()
        generator.generate = AsyncMock(return_value=NO_ANSWER_FALLBACK)

        response = await make_pipeline(answer_generator=generator).answer("What is vitamin C?")

        assert response.answer == NO_ANSWER_FALLBACK
        assert len(response.sources) == 2

    @pytest.mark.asyncio
    async def test_embedding_failure_stops_pipeline(
        self, make_pipeline, fake_vector_index, fake_answer_generator
    ):
        embedder = MagicMock()
        embedder.embed_query = AsyncMock(side_effect=EmbeddingServiceError("embedding service down"))

        with pytest.raises(EmbeddingServiceError):
            await make_pipeline(embedding_service=embedder).answer("What is vitamin C?")

        fake_vector_index.match_documents.assert_not_awaited()
        fake_answer_generator.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_pipelines_share_no_request_state(self, make_pipeline):
        pipeline = make_pipeline()

        first = await pipeline.answer("What is vitamin C?")
        pipeline.retrieval_service.vector_index = _index([])
        second = await pipeline.answer("What is vitamin C?")

        assert len(first.sources) == 2
        assert second.sources == []
        assert second.answer == NOT_FOUND_ANSWER


class TestRespond:
    """Tests for the request boundary mapping."""

    @pytest.mark.asyncio
    async def test_success_body(self, make_pipeline):
        status, body = await make_pipeline().respond("What is vitamin C?")

        assert status == 200
        assert set(body) == {"answer", "sources"}
        assert body["sources"][0] == {
            "id": 101,
            "index": 1,
            "page": 12,
            "preview": ("Vitamin C, also known as ascorbic acid, is a water-soluble vitamin. " * 5)[:200],
            "similarity": 0.82,
        }

    @pytest.mark.asyncio
    async def test_empty_query_is_400(self, make_pipeline):
        assert await make_pipeline().respond("  ") == (400, {"error": "Empty query"})

    @pytest.mark.asyncio
    async def test_short_circuit_is_200(self, make_pipeline):
        status, body = await make_pipeline(vector_index=_index([])).respond("Anything?")

        assert status == 200
        assert body == {"answer": NOT_FOUND_ANSWER, "sources": []}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stage,error", [
        ("embedding_service", EmbeddingServiceError("embedding service down")),
        ("vector_index", RetrievalError("index unreachable")),
        ("answer_generator", GenerationError("model overloaded")),
    ])
    async def test_dependency_failures_are_500(self, make_pipeline, stage, error):
        failing = MagicMock()
        failing.embed_query = AsyncMock(side_effect=error)
        failing.match_documents = AsyncMock(side_effect=error)
        failing.generate = AsyncMock(side_effect=error)

        status, body = await make_pipeline(**{stage: failing}).respond("What is vitamin C?")

        assert status == 500
        assert body == {"error": f"Server error: {error}"}

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_500(self, make_pipeline):
        embedder = MagicMock()
        embedder.embed_query = AsyncMock(side_effect=KeyError("data"))

        status, body = await make_pipeline(embedding_service=embedder).respond("q")

        assert status == 500
        assert body["error"].startswith("Server error: ")
