"""Sonic Chat - streaming chat client for OpenAI-compatible completion APIs.

Combines FastAPI for the streaming relay, httpx for upstream and browser-side
HTTP, NiceGUI for the chat interface, and Pydantic for data validation.

Components:
    - api: HTTP endpoints and the streamed relay response
    - relay: upstream client, fragment codec and relay configuration
    - client: conversation state, render buffering and stream consumption
    - ui: Web interface for chat interactions
    - models: Turn and wire schemas
"""

__version__ = "0.1.0"
