"""
Pixdrop Backend — Pydantic Request/Response Schemas
====================================================

What:  The API contract of the image endpoints.
How:   FastAPI validates request bodies against these models, serializes the
       responses, and builds the OpenAPI document from them.
"""

import uuid
from typing import Literal, Optional

from pydantic import BaseModel, Field


class PostImageParams(BaseModel):
    """Body of POST /image/{api_key}."""

    data: str = Field(description="Base 64 representation of the image (any format Pillow reads)")


class PostImageResult(BaseModel):
    """
    What:  Returned once, on successful upload.
    Why:   `delete_token` is never shown again; losing it means the image can
           no longer be deleted through the API.
    """

    id: uuid.UUID = Field(description="Image ID, used in GET /image/{id}")
    width: int = Field(description="Stored width in pixels")
    height: int = Field(description="Stored height in pixels")
    delete_token: uuid.UUID = Field(description="Capability for DELETE /image/{api_key}/{delete_token}")


class HealthResponse(BaseModel):
    status: Literal["healthy", "unhealthy"] = Field(description="Overall service status")
    version: str = Field(description="Backend version")
    storage: Literal["writable", "unavailable"] = Field(description="Data directory status")
    uptime_seconds: float = Field(description="Seconds since the process started")


class ErrorResponse(BaseModel):
    """Shape of every error body produced by the exception handlers."""

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable description")
    request_id: Optional[str] = Field(default=None, description="Correlation ID (X-Request-ID)")
