"""
Typed exceptions for the document QA pipeline.

Every external-dependency failure is raised as one of these and caught
exactly once at the request boundary (RAGPipeline.respond).
"""


class ServiceError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, context: dict = None):
        """
        Initialize service error with message and optional context.

        Args:
            message: Human-readable error description
            context: Additional context (stage, model, corpus, etc.)
        """
        super().__init__(message)
        self.context = context or {}

    def __str__(self):
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{super().__str__()} [Context: {ctx_str}]"
        return super().__str__()


class InputError(ServiceError):
    """Raised when the query is empty after trimming (400 Bad Request)."""
    pass


class EmbeddingServiceError(ServiceError):
    """Raised when embedding generation fails (500 Internal Server Error)."""
    pass


class RetrievalError(ServiceError):
    """Raised when the vector index call fails or returns malformed rows (500)."""
    pass


class GenerationError(ServiceError):
    """Raised when the chat model call fails (500 Internal Server Error)."""
    pass
