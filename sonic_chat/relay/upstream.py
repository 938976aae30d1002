"""Streaming client for OpenAI-compatible chat-completions endpoints.

Reads the provider's Server-Sent-Events body line by line and yields the
incremental text deltas it carries.
"""

import json
import logging
import re
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

import httpx
from pydantic import ValidationError

from sonic_chat.models.schemas import CompletionRequest, UpstreamEvent
from sonic_chat.relay.config import RelayConfig

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"

# SSE line terminators. U+2028, U+2029 and U+0085 may appear raw in JSON text.
_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


class UpstreamError(Exception):
    """Raised when the completion API cannot be reached or rejects a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SseLineSplitter:
    """Splits decoded SSE text into lines, holding partial lines between feeds.

    Only CRLF, CR and LF end a line. A trailing CR is held back until the
    next feed shows whether it starts a CRLF pair.
    """

    def __init__(self) -> None:
        self._pending = ""

    def feed(self, text: str) -> list[str]:
        self._pending += text
        held = "\r" if self._pending.endswith("\r") else ""
        body = self._pending[: len(self._pending) - len(held)]
        *lines, rest = _LINE_BREAK_RE.split(body)
        self._pending = rest + held
        return lines

    def flush(self) -> list[str]:
        line, self._pending = self._pending.rstrip("\r"), ""
        return [line] if line else []


def _payload(line: str) -> str | None:
    if not line.startswith(DATA_PREFIX):
        return None
    return line[len(DATA_PREFIX) :].strip()


def is_done_line(line: str) -> bool:
    """Whether a line carries the end-of-stream sentinel."""
    return _payload(line) == DONE_SENTINEL


def parse_sse_line(line: str) -> str | None:
    """Extract the delta text from one SSE line.

    Blank lines, comments, non-data fields, the sentinel, frames without a
    delta and malformed JSON all yield None. Malformed frames are logged
    and never raised.

    Args:
        line: One line of the upstream body, without its line terminator.

    Returns:
        The first choice's delta text, or None.
    """
    payload = _payload(line)
    if not payload or payload == DONE_SENTINEL:
        return None

    try:
        event = UpstreamEvent.model_validate(json.loads(payload))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"Skipping malformed stream frame: {e}")
        return None

    if event.finish_reason:
        logger.debug(f"Upstream finished: {event.finish_reason}")
    return event.delta_text or None


class UpstreamClient:
    """Streams completions from the configured provider.

    Credentials come from RelayConfig only; nothing from the inbound
    request is forwarded as a header.
    """

    def __init__(
        self,
        config: RelayConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the upstream client.

        Args:
            config: Relay configuration with endpoint and credentials.
            client: Optional shared httpx client. One is created and owned
                    when not provided.
        """
        self._config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.request_timeout)
        )

    def build_request(self, messages: list[dict[str, str]]) -> dict[str, object]:
        """Build the JSON body for a streaming completion."""
        return CompletionRequest(
            model=self._config.model_name,
            messages=messages,
            temperature=self._config.temperature,
        ).model_dump(exclude_none=True)

    @asynccontextmanager
    async def open_stream(
        self, messages: list[dict[str, str]]
    ) -> AsyncGenerator[AsyncIterator[str]]:
        """Open a streaming completion and yield an iterator of deltas.

        The response status is checked before control returns to the caller,
        so a rejected request raises before anything is relayed.

        Args:
            messages: Full prompt, instruction turn included.

        Yields:
            Async iterator of non-empty delta strings in upstream order.

        Raises:
            UpstreamError: On network failure or a non-success status.
        """
        logger.info(
            f"Streaming completion from {self._config.completions_url} "
            f"using model {self._config.model_name}"
        )
        try:
            async with self._client.stream(
                "POST",
                self._config.completions_url,
                json=self.build_request(messages),
                headers=self._config.auth_headers(),
            ) as response:
                if response.is_error:
                    await response.aread()
                    raise UpstreamError(
                        f"Upstream returned HTTP {response.status_code}: "
                        f"{response.text[:200]}",
                        status_code=response.status_code,
                    )
                if response.status_code == httpx.codes.NO_CONTENT:
                    raise UpstreamError(
                        "Upstream response has no body",
                        status_code=response.status_code,
                    )
                yield self._iter_deltas(response)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Upstream request failed: {e}") from e

    async def _iter_deltas(self, response: httpx.Response) -> AsyncGenerator[str]:
        splitter = SseLineSplitter()
        async for text in response.aiter_text():
            for line in splitter.feed(text):
                if is_done_line(line):
                    logger.debug("Upstream sent end-of-stream sentinel")
                    return
                delta = parse_sse_line(line)
                if delta:
                    yield delta
        for line in splitter.flush():
            delta = parse_sse_line(line)
            if delta:
                yield delta

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
