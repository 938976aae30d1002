"""Pydantic models for conversation turns and wire formats.

Provides type safety, validation, and automatic OpenAPI documentation.

Models:
    - Role: Closed set of conversation roles
    - Turn: Individual message in a conversation
    - ChatRequest: Incoming relay request payload
    - CompletionRequest: Outgoing upstream request body
    - UpstreamEvent: Partial schema of one upstream stream frame
"""

from sonic_chat.models.schemas import (
    ChatRequest,
    CompletionRequest,
    Role,
    Turn,
    UpstreamChoice,
    UpstreamDelta,
    UpstreamEvent,
)

__all__ = [
    "ChatRequest",
    "CompletionRequest",
    "Role",
    "Turn",
    "UpstreamChoice",
    "UpstreamDelta",
    "UpstreamEvent",
]
