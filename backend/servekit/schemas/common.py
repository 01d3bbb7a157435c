"""
Servekit — Shared Response Schemas
==================================

What:  Models for responses that do not use the envelope (the health check).
       The envelope model itself lives next to ResponseBuilder in
       servekit.core.response_builder.
"""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Body of GET /health."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    socket_connections: int = Field(description="Open socket-event connections")
    uptime_seconds: float = Field(description="Seconds since service started")
