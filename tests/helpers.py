"""Builders for fake upstream traffic."""

import json
from collections.abc import AsyncIterator, Callable

import httpx


def delta_frame(
    text: str | None,
    finish_reason: str | None = None,
    *,
    ensure_ascii: bool = True,
) -> str:
    """JSON payload of one chat-completion chunk.

    With ensure_ascii=False non-ASCII text is written raw, as providers do.
    """
    delta = {} if text is None else {"content": text}
    return json.dumps(
        {
            "id": "chatcmpl-test",
            "object": "chat.completion.chunk",
            "model": "gpt-4o-mini",
            "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
        },
        ensure_ascii=ensure_ascii,
    )


def sse_body(*payloads: str, done: bool = True) -> bytes:
    """Assemble an SSE body from raw data payloads."""
    lines = [f"data: {p}\n\n" for p in payloads]
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode("utf-8")


def deltas_body(*deltas: str) -> bytes:
    return sse_body(*(delta_frame(d) for d in deltas), delta_frame(None, "stop"))


async def chunked(data: bytes, size: int) -> AsyncIterator[bytes]:
    for i in range(0, len(data), size):
        yield data[i : i + size]


class FakeUpstream:
    """Programmable stand-in for the completion provider.

    Attributes:
        body: Response body bytes.
        status_code: Response status.
        chunk_size: Deliver the body in chunks of this many bytes.
        error: Transport error to raise instead of responding.
        requests: Requests received, in order.
    """

    def __init__(self) -> None:
        self.body = deltas_body("Hel", "lo!")
        self.status_code = 200
        self.chunk_size: int | None = None
        self.error: Exception | None = None
        self.stream_factory: Callable[[], AsyncIterator[bytes]] | None = None
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.stream_factory is not None:
            content = self.stream_factory()
        elif self.chunk_size:
            content = chunked(self.body, self.chunk_size)
        else:
            content = self.body
        return httpx.Response(
            self.status_code,
            content=content,
            headers={"content-type": "text/event-stream"},
        )

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def last_body(self) -> dict:
        return json.loads(self.requests[-1].content)
