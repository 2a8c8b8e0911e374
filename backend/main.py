"""
API layer - FastAPI application exposing the document QA pipeline.
Following SOLID:
- Single Responsibility - Controllers are thin, delegate to the pipeline.
- Dependency Inversion - Controllers depend on the pipeline, built once per process.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from openai import AsyncOpenAI
from pydantic import ValidationError

from domain.models import ChatRequest, ErrorResponse
from docqa.config import RAGConfig
from docqa.embeddings import OpenAIEmbeddingService
from docqa.generator import LLMAnswerGenerator
from docqa.pipeline import RAGPipeline
from docqa.retrieval_service import RetrievalService
from docqa.vector_store import create_vector_index

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Global service instances
pipeline: RAGPipeline = None
http_client: httpx.AsyncClient = None


def build_pipeline(config: RAGConfig, client: httpx.AsyncClient) -> RAGPipeline:
    """Wire the three external clients into a pipeline."""
    openai_api_key = config.embedding.api_key

    embedding_service = OpenAIEmbeddingService(
        config.embedding,
        client=AsyncOpenAI(api_key=openai_api_key)
    )

    retrieval_service = RetrievalService(
        vector_index=create_vector_index(config.vector_index, http_client=client),
        config=config.retrieval
    )

    answer_generator = LLMAnswerGenerator(config.generation, openai_api_key=openai_api_key)

    return RAGPipeline(
        embedding_service=embedding_service,
        retrieval_service=retrieval_service,
        answer_generator=answer_generator,
        config=config
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - initialize services on startup."""
    global pipeline, http_client

    logger.info("Initializing application...")

    config = RAGConfig.from_env()
    http_client = httpx.AsyncClient()

    try:
        pipeline = build_pipeline(config, http_client)
    except Exception as e:
        logger.error(f"Failed to initialize document QA services: {e}")
        await http_client.aclose()
        raise

    logger.info(
        f"Application initialized successfully "
        f"(index={config.vector_index.backend}, corpus={config.retrieval.corpus_source})"
    )

    yield

    logger.info("Application shutting down...")
    await http_client.aclose()


def get_pipeline() -> RAGPipeline:
    return pipeline


# Create FastAPI app
app = FastAPI(
    title="Document QA",
    description="Retrieval-augmented answers with citations over a single document",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Bodies that are not valid JSON get the same envelope as any other server-side failure."""
    logger.error(f"Invalid chat request body: {exc.errors()}")
    detail = "; ".join(error.get("msg", "invalid request") for error in exc.errors())
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error=f"Server error: {detail}").model_dump()
    )


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Document QA API is running"}


@app.post("/api/chat")
async def chat(body: Any = Body(default=None), rag_pipeline: RAGPipeline = Depends(get_pipeline)):
    """
    Answer a question from the corpus.

    Returns:
    - 200 {answer, sources} on success or when nothing relevant was found
    - 400 {error: "Empty query"} for blank messages, or a body without a message
    - 500 {error: "Server error: ..."} on any dependency failure
    """
    if rag_pipeline is None:
        logger.error("Chat request received before pipeline initialization")
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Server error: document QA services not available").model_dump()
        )

    try:
        request = ChatRequest.from_body(body)
    except ValidationError as e:
        logger.error(f"Invalid chat message: {e}")
        detail = "; ".join(error.get("msg", "invalid request") for error in e.errors())
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error=f"Server error: {detail}").model_dump()
        )

    status_code, content = await rag_pipeline.respond(request.message)
    return JSONResponse(status_code=status_code, content=content)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
