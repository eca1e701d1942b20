"""
Breviago Backend — Shared Response Schemas
===========================================

What:  Response models used across every router: errors, plain messages,
       the index greeting and the health report.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "permission_denied",
            "message": "permission denied",
            "request_id": "1f3a9c0e"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    message: str


class IndexResponse(BaseModel):
    message: str = Field(description="Greeting")
    name: str = Field(description="Service name")
    version: str = Field(description="Application version")


class HealthResponse(BaseModel):
    """
    Health check response showing service and dependency status.

    status:        healthy | degraded (authorization backend down) | unhealthy (DB down)
    authorization: available | unavailable | circuit_open
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    authorization: str = Field(description="Authorization backend status")
    authz_backend: str = Field(description="Configured authorization backend: local or openfga")
    uptime_seconds: float = Field(description="Seconds since service started")
