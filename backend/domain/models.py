"""
Domain models - API-facing request and response entities.
Following SOLID: Single Responsibility Principle - each model has one clear purpose.
"""
from typing import Any, List, Optional, Union
from pydantic import BaseModel, Field, field_validator


class ChatRequest(BaseModel):
    """Incoming chat request from frontend."""
    message: Optional[str] = None

    @field_validator("message", mode="before")
    @classmethod
    def coerce_message(cls, value: Any) -> Optional[str]:
        """Scalars are accepted in their string form; missing/null stays None."""
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, bool):
            return str(value).lower()
        if isinstance(value, (int, float)):
            return str(value)
        raise ValueError("message must be a string")

    @classmethod
    def from_body(cls, body: Any) -> "ChatRequest":
        """Any parsed JSON body; a missing, null or non-object body carries no message."""
        if isinstance(body, dict):
            return cls.model_validate(body)
        return cls()


class SourceEntry(BaseModel):
    """One cited passage, aligned with the [index] markers in the answer."""
    id: Union[int, str]
    index: int
    page: Optional[Union[int, float]] = None
    preview: str
    similarity: Optional[float] = None


class ChatResponse(BaseModel):
    """Response sent back to frontend."""
    answer: str
    sources: List[SourceEntry] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Uniform error envelope."""
    error: str
