"""Browser-side chat logic, independent of the UI toolkit.

Responsibilities:
    - Conversation state keyed by turn identifier
    - Render buffering with size, paragraph and idle flush triggers
    - Consuming the relay stream into the in-progress turn
"""

from sonic_chat.client.buffer import RenderBuffer
from sonic_chat.client.consumer import StreamConsumer, StreamError, StreamResult
from sonic_chat.client.conversation import ClientTurn, Conversation

__all__ = [
    "ClientTurn",
    "Conversation",
    "RenderBuffer",
    "StreamConsumer",
    "StreamError",
    "StreamResult",
]
