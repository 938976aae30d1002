"""Unit tests for individual components in isolation.

Coverage:
    - relay/: Fragment codec, SSE parsing, upstream client, relay service
    - client/: Render buffer and conversation state
    - models/: Pydantic validation and serialization
"""
