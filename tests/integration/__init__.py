"""Integration tests for components working together as a system.

Coverage:
    - POST /api/chat through the real FastAPI app
    - StreamConsumer reading the relay app end to end

Upstream provider traffic is served by a mock transport.
"""
