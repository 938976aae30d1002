"""Streaming relay between the chat UI and the completion provider.

Responsibilities:
    - Relay configuration and the fixed instruction turn
    - Upstream SSE parsing with sentinel and malformed-frame handling
    - Fragment splitting and tagged-line encoding
    - Relay lifecycle: open upstream, re-encode deltas, release connection

Maintains clean separation from the HTTP layer.
"""

from sonic_chat.relay.codec import TaggedLineDecoder, encode_delta, split_fragments
from sonic_chat.relay.config import (
    INSTRUCTION_TURN,
    RelayConfig,
    RelayConfigError,
    get_relay_config,
)
from sonic_chat.relay.service import RelayService, RelayStream, get_relay_service
from sonic_chat.relay.upstream import UpstreamClient, UpstreamError, parse_sse_line

__all__ = [
    "INSTRUCTION_TURN",
    "RelayConfig",
    "RelayConfigError",
    "RelayService",
    "RelayStream",
    "TaggedLineDecoder",
    "UpstreamClient",
    "UpstreamError",
    "encode_delta",
    "get_relay_config",
    "get_relay_service",
    "parse_sse_line",
    "split_fragments",
]
