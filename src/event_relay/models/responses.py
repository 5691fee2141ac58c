"""
Response Schemas
================

Pydantic models for payloads returned by the HTTP listener.

Output Contract (GET /events):
    {
        "events": ["<raw payload>", "<raw payload>", ...]
    }

Payloads are the upstream messages exactly as received. They are
strings carrying serialized data, but are never parsed here.
"""

from typing import List

from pydantic import BaseModel, Field


class EventsResponse(BaseModel):
    """
    Schema for the poll endpoint response.

    Contains every event buffered since the previous successful poll,
    in arrival order. Empty when nothing arrived, including during
    upstream outages.

    Attributes:
        events: Raw upstream payloads, un-parsed
    """

    events: List[str] = Field(
        default_factory=list,
        description="Raw upstream payloads in arrival order",
    )

    class Config:
        """Pydantic model configuration."""

        json_schema_extra = {
            "example": {
                "events": [
                    '{"event": "chat", "data": {"comment": "hello"}}',
                    '{"event": "like", "data": {"likeCount": 3}}',
                ],
            }
        }


class ServiceInfo(BaseModel):
    """Schema for the service information endpoint."""

    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    upstream_url: str = Field(..., description="Upstream WebSocket URL")
    connection_state: str = Field(..., description="Upstream connection state")
    status: str = Field(default="running", description="Process status")
