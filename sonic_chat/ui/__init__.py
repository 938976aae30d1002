"""NiceGUI interface - thin visualization layer for chat interactions.

Responsibilities:
    - Chat message display with progressive markdown rendering
    - Code blocks split out for highlighting and copy (segments)
    - Input handling and in-progress indication

Contains minimal business logic. Streaming and buffering live in
sonic_chat.client; replies come from the relay API.
"""
