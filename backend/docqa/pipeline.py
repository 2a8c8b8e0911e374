"""
Document QA pipeline for LangGraph.

Compiles the answering workflow once and runs it per request:

    embed → retrieve → assemble ─┬─ (empty context)  → short_circuit → END
                                 └─ (context found)  → generate → build_sources → END

Query validation happens before the graph runs, so an empty query never
reaches an external service. Nothing is shared between requests except the
stateless client handles injected at construction.
"""

import logging
import time
from typing import Any, Dict, List, Tuple

from langgraph.graph import END, StateGraph
from typing_extensions import TypedDict

from domain.models import ChatResponse, ErrorResponse, SourceEntry

from .config import RAGConfig
from .context_builder import assemble
from .embeddings import IEmbeddingService
from .errors import InputError
from .generator import IAnswerGenerator
from .models import ContextBlock, Query, RetrievedChunk
from .retrieval_service import RetrievalService
from .sources import build_sources

logger = logging.getLogger(__name__)

NOT_FOUND_ANSWER = "I couldn't find this in the provided document."
EMPTY_QUERY_ERROR = "Empty query"


class PipelineState(TypedDict, total=False):
    """State carried through one request."""
    query: str
    embedding: List[float]
    chunks: List[RetrievedChunk]
    context: ContextBlock
    answer: str
    sources: List[SourceEntry]
    short_circuited: bool
    stage_latency_ms: Dict[str, float]


def _timed(state: PipelineState, stage: str, start_time: float) -> Dict[str, float]:
    latencies = dict(state.get("stage_latency_ms") or {})
    latencies[stage] = (time.time() - start_time) * 1000
    return latencies


class RAGPipeline:
    """
    Retrieval-augmented answering over a single static corpus.

    Flow: Query → Embedder → Retriever → [empty? short-circuit : ContextBuilder]
          → AnswerGenerator → SourceManifest → Response
    """

    def __init__(
        self,
        embedding_service: IEmbeddingService,
        retrieval_service: RetrievalService,
        answer_generator: IAnswerGenerator,
        config: RAGConfig
    ):
        self.embedding_service = embedding_service
        self.retrieval_service = retrieval_service
        self.answer_generator = answer_generator
        self.config = config

        self.workflow = self._build_graph()

    def _build_graph(self):
        workflow = StateGraph(PipelineState)

        workflow.add_node("embed", self._embed_node)
        workflow.add_node("retrieve", self._retrieve_node)
        workflow.add_node("assemble", self._assemble_node)
        workflow.add_node("short_circuit", self._short_circuit_node)
        workflow.add_node("generate", self._generate_node)
        workflow.add_node("build_sources", self._sources_node)

        workflow.set_entry_point("embed")
        workflow.add_edge("embed", "retrieve")
        workflow.add_edge("retrieve", "assemble")
        workflow.add_conditional_edges(
            "assemble",
            self._route_after_assemble,
            {
                "short_circuit": "short_circuit",
                "generate": "generate",
            }
        )
        workflow.add_edge("generate", "build_sources")
        workflow.add_edge("build_sources", END)
        workflow.add_edge("short_circuit", END)

        compiled = workflow.compile()
        logger.info("Document QA pipeline compiled successfully")
        return compiled

    async def _embed_node(self, state: PipelineState) -> Dict[str, Any]:
        start_time = time.time()
        embedding = await self.embedding_service.embed_query(state["query"])
        logger.info(f"Query embedded ({len(embedding)} dimensions)")
        return {
            "embedding": embedding,
            "stage_latency_ms": _timed(state, "embed", start_time),
        }

    async def _retrieve_node(self, state: PipelineState) -> Dict[str, Any]:
        start_time = time.time()
        chunks = await self.retrieval_service.retrieve(
            state["embedding"],
            limit=self.config.retrieval.match_count,
            filter=self.config.retrieval.corpus_filter
        )
        return {
            "chunks": chunks,
            "stage_latency_ms": _timed(state, "retrieve", start_time),
        }

    async def _assemble_node(self, state: PipelineState) -> Dict[str, Any]:
        context, ordered = assemble(state.get("chunks") or [])
        return {"context": context, "chunks": list(ordered)}

    def _route_after_assemble(self, state: PipelineState) -> str:
        if state["context"].is_empty:
            return "short_circuit"
        return "generate"

    async def _short_circuit_node(self, state: PipelineState) -> Dict[str, Any]:
        logger.info("No context retrieved, skipping generation")
        return {
            "answer": NOT_FOUND_ANSWER,
            "sources": [],
            "short_circuited": True,
        }

    async def _generate_node(self, state: PipelineState) -> Dict[str, Any]:
        start_time = time.time()
        answer = await self.answer_generator.generate(state["query"], state["context"].text)
        return {
            "answer": answer,
            "short_circuited": False,
            "stage_latency_ms": _timed(state, "generate", start_time),
        }

    async def _sources_node(self, state: PipelineState) -> Dict[str, Any]:
        sources = build_sources(state["context"].chunks, self.config.sources.preview_chars)
        return {"sources": sources}

    async def answer(self, message: str) -> ChatResponse:
        """
        Answer a question from the corpus.

        Args:
            message: Raw user message

        Returns:
            ChatResponse with the answer and its aligned source manifest

        Raises:
            InputError: If the message is empty after trimming
            EmbeddingServiceError, RetrievalError, GenerationError: On dependency failure
        """
        query = Query.from_raw(message)
        start_time = time.time()

        final_state = await self.workflow.ainvoke({"query": query.text, "stage_latency_ms": {}})

        total_ms = (time.time() - start_time) * 1000
        latencies = ", ".join(
            f"{stage}={ms:.2f}ms" for stage, ms in (final_state.get("stage_latency_ms") or {}).items()
        )
        logger.info(
            f"Pipeline completed in {total_ms:.2f}ms "
            f"(short_circuited={final_state.get('short_circuited', False)}; {latencies})"
        )

        return ChatResponse(
            answer=final_state["answer"],
            sources=final_state.get("sources") or []
        )

    async def respond(self, message: str) -> Tuple[int, Dict[str, Any]]:
        """
        Request boundary: run the pipeline and map the outcome to (status, body).

        Every failure is caught here exactly once.
        """
        try:
            response = await self.answer(message)
        except InputError:
            logger.info("Rejected empty query")
            return 400, ErrorResponse(error=EMPTY_QUERY_ERROR).model_dump()
        except Exception as e:
            logger.error(f"Pipeline error: {e}", exc_info=True)
            return 500, ErrorResponse(error=f"Server error: {e}").model_dump()

        return 200, response.model_dump()
