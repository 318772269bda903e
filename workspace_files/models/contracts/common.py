"""
Common response models.
"""

from typing import Any

from pydantic import BaseModel

from workspace_files import __version__


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str
    message: str
    details: dict[str, Any] | None = None


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = "healthy"
    version: str = __version__


class ResolveResponse(BaseModel):
    """Result of expanding a short identifier."""

    candidate: str
    id: str
