"""
Servekit — Socket Event Schemas
===============================

Data payloads of the example socket events.
"""

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """`data` of a `chat:message` event."""
    room: str = Field(default="general", min_length=1, max_length=50)
    text: str = Field(min_length=1, max_length=1000)
