"""Chat relay endpoint.

Accepts a conversation, forwards it upstream and streams the generated text
back as tagged fragment lines.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from sonic_chat.models.schemas import ChatRequest
from sonic_chat.relay.config import RelayConfigError
from sonic_chat.relay.service import RelayService, get_relay_service
from sonic_chat.relay.upstream import UpstreamError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])

# text/html keeps intermediaries from buffering the body; it is not HTML.
STREAM_MEDIA_TYPE = "text/html; charset=utf-8"
STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


def relay_service() -> RelayService:
    """Resolve the relay service, failing closed when it is not configured.

    Raises:
        HTTPException: 503 if no upstream credentials are configured.
    """
    try:
        return get_relay_service()
    except RelayConfigError as e:
        logger.error(f"Relay configuration invalid: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Chat relay is not configured",
        ) from e


@router.post("/chat")
async def chat(
    request: ChatRequest,
    service: RelayService = Depends(relay_service),
) -> StreamingResponse:
    """Stream a completion for the given conversation.

    Args:
        request: Conversation turns in prompt order.
        service: Relay service (injected).

    Returns:
        StreamingResponse of ``0:"<fragment>"`` lines.

    Raises:
        422: Invalid turn list.
        502: Upstream rejected the request or was unreachable.
        503: Relay has no upstream credentials.
    """
    logger.info(f"Relaying conversation with {len(request.messages)} turns")

    try:
        stream = await service.start(request.messages)
    except UpstreamError as e:
        logger.warning(f"Upstream request failed: {e}")
        detail = "Upstream completion request failed"
        if e.status_code is not None:
            detail = f"{detail} (HTTP {e.status_code})"
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
        ) from e

    # releases upstream if the client disconnects mid-stream
    cleanup = BackgroundTasks()
    cleanup.add_task(stream.aclose)

    return StreamingResponse(
        stream,
        media_type=STREAM_MEDIA_TYPE,
        headers=STREAM_HEADERS,
        background=cleanup,
    )
