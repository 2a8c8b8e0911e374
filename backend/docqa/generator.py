"""
Answer generator for document QA.

Sends the question and the citation-indexed context to the chat model under a
grounding-only system instruction. The model may only answer from the
context, must cite with the bracketed indices it was given and must quote page
numbers when citing.
"""

import logging
import time
from abc import ABC, abstractmethod

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from .config import GenerationConfig
from .errors import GenerationError

logger = logging.getLogger(__name__)

GROUNDING_INSTRUCTION = (
    "You are a strict RAG assistant. Answer ONLY using the CONTEXT. "
    "Cite sources like [1], [2] and include page numbers."
)

NO_ANSWER_FALLBACK = "No answer generated."


def build_user_prompt(query: str, context: str) -> str:
    return f"QUESTION: {query}\n\nCONTEXT:\n{context}"


class IAnswerGenerator(ABC):
    """Interface for grounded answer generation."""

    @abstractmethod
    async def generate(self, query: str, context: str) -> str:
        """
        Generate an answer to query using only context.

        Raises:
            GenerationError: If the model call fails
        """
        pass


class LLMAnswerGenerator(IAnswerGenerator):
    """Chat-model answer generator built on LangChain's ChatOpenAI."""

    def __init__(self, config: GenerationConfig, llm: ChatOpenAI = None, openai_api_key: str = None):
        self.config = config
        if llm is None:
            credentials = {"openai_api_key": openai_api_key} if openai_api_key else {}
            llm = ChatOpenAI(
                model=config.model_name,
                temperature=config.temperature,
                **credentials
            )
        self.llm = llm

        logger.info(
            f"Initialized answer generator with model: {config.model_name} "
            f"(temperature={config.temperature})"
        )

    async def generate(self, query: str, context: str) -> str:
        start_time = time.time()
        messages = [
            SystemMessage(content=GROUNDING_INSTRUCTION),
            HumanMessage(content=build_user_prompt(query, context)),
        ]

        try:
            response = await self.llm.ainvoke(messages)
        except Exception as e:
            logger.error(f"Chat model error: {e}")
            raise GenerationError(
                f"Answer generation failed: {e}",
                context={"model": self.config.model_name}
            ) from e

        content = getattr(response, "content", None)
        if not isinstance(content, str) or not content.strip():
            logger.warning("Chat model returned no content, using fallback answer")
            return NO_ANSWER_FALLBACK

        latency_ms = (time.time() - start_time) * 1000
        logger.info(f"Generated answer ({len(content)} chars) in {latency_ms:.2f}ms")
        return content
