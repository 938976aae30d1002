"""FastAPI endpoints for the chat relay.

Endpoints:
    - GET /health: Service health status
    - POST /api/chat: Streamed completion for a conversation
"""

from sonic_chat.api.app import app, create_app

__all__ = ["app", "create_app"]
