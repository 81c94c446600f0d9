"""Pydantic request/response schemas for the API.

Defines the public contracts used by the FastAPI endpoints:
- GenerateRequest: Input payload for the generation endpoint.
- Citation: A span of the answer supported by one or more grounding documents.
- GenerateResponse: Output payload with the generated text and citations.
- ErrorResponse: Error body for 400/500/503 responses.
- HealthResponse: Liveness payload including corpus state.
"""
from typing import List, Optional
from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    """Request body for /generate.

    The prompt is optional at the schema level so a missing prompt is reported as
    {"error": "Prompt is required"} with status 400 instead of a validation error.
    """
    prompt: Optional[str] = Field(default=None, description="User prompt")


class Citation(BaseModel):
    """A cited span of the generated text.

    Attributes:
        start: Start offset of the cited span in the response text.
        end: End offset (exclusive).
        text: The cited span.
        document_ids: Ids of the grounding documents supporting the span.
    """
    start: int
    end: int
    text: str
    document_ids: List[str]


class GenerateResponse(BaseModel):
    text: str
    citations: List[Citation] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    corpus: str
    documents: int
