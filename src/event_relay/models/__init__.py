"""
Data Models
===========

Pydantic schemas for the HTTP listener's responses.
"""

from event_relay.models.responses import EventsResponse, ServiceInfo


__all__ = [
    "EventsResponse",
    "ServiceInfo",
]
