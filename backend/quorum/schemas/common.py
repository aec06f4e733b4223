"""
Quorum Backend - Shared Response Schemas
========================================

What:  Models reused across resources: author summaries, catalog entries,
       the error envelope, and the health check payload.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, Field


class AuthorSummary(BaseModel):
    """Public slice of a Profile embedded in questions and answers."""
    id: uuid.UUID
    display_name: str
    avatar_seed: str

    model_config = {"from_attributes": True}


class CategoryResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str

    model_config = {"from_attributes": True}


class TagResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    usage_count: int = Field(description="Number of questions carrying this tag")

    model_config = {"from_attributes": True}


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "forbidden", "conflict")
        message: Human-readable description for display to users
        details: Optional extra context (e.g., which field failed validation)
        request_id: Correlation ID for tracing this error in server logs

    Example:
        {
            "error": "forbidden",
            "message": "Only the question's author can accept an answer",
            "details": {"action": "accept_answer"},
            "request_id": "1f0c2a9e"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
