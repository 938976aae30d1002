"""Stream consumer: drives one relay call and renders it into a conversation.

Reads the relay's tagged-line body incrementally, decodes it with a stateful
UTF-8 decoder (characters may span network chunks), and feeds fragments
through a RenderBuffer into the in-progress turn.
"""

import codecs
import logging
import os
from collections.abc import AsyncGenerator, Callable, Iterable
from contextlib import aclosing, asynccontextmanager
from dataclasses import dataclass

import httpx

from sonic_chat.client.buffer import FLUSH_THRESHOLD, IDLE_FLUSH_DELAY, RenderBuffer
from sonic_chat.client.conversation import ClientTurn, Conversation
from sonic_chat.relay.codec import TaggedLineDecoder

logger = logging.getLogger(__name__)

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
CHAT_PATH = "/api/chat"

UpdateCallback = Callable[[Conversation], None]


class StreamError(Exception):
    """Raised when the relay response cannot be streamed."""

    pass


@dataclass
class StreamResult:
    """Outcome of one streamed reply.

    Attributes:
        turn_id: The turn that was streamed, or None if nothing was in progress.
        completed: Whether the stream ended normally.
        error: Description of the failure, if any.
    """

    turn_id: int | None
    completed: bool
    error: str | None = None


class StreamConsumer:
    """Sends a conversation to the relay and streams the reply into it."""

    def __init__(
        self,
        conversation: Conversation,
        *,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        on_update: UpdateCallback | None = None,
        threshold: int = FLUSH_THRESHOLD,
        idle_delay: float = IDLE_FLUSH_DELAY,
        timeout: float = 120.0,
    ) -> None:
        """Initialize the consumer.

        Args:
            conversation: Conversation that receives streamed text.
            base_url: Relay base URL. Defaults to API_BASE_URL.
            client: Optional httpx client; one is created per stream otherwise.
            on_update: Called after every change to the conversation.
            threshold: Render buffer size threshold.
            idle_delay: Render buffer idle flush delay in seconds.
            timeout: Request timeout when the consumer creates its own client.
        """
        self.conversation = conversation
        self._url = f"{(base_url or API_BASE_URL).rstrip('/')}{CHAT_PATH}"
        self._client = client
        self._on_update = on_update
        self._threshold = threshold
        self._idle_delay = idle_delay
        self._timeout = timeout

    async def send(self, turns: Iterable[ClientTurn]) -> StreamResult:
        """Add turns to the conversation and stream the in-progress reply.

        Args:
            turns: New turns, normally the user turn and an assistant
                   placeholder with is_typing set.

        Returns:
            StreamResult describing how the stream ended.
        """
        self.conversation.add_turns(turns)
        self._notify()

        typing = self.conversation.typing_turn()
        if typing is None:
            logger.debug("No turn in progress, nothing to stream")
            return StreamResult(turn_id=None, completed=False)

        return await self.stream(typing.id)

    async def stream(self, turn_id: int) -> StreamResult:
        """Stream the relay reply into the turn with the given id.

        The render buffer is flushed and closed, and the in-progress marker
        cleared, on every exit path.
        """
        error: str | None = None
        try:
            async with (
                RenderBuffer(
                    turn_id,
                    self._apply,
                    threshold=self._threshold,
                    idle_delay=self._idle_delay,
                ) as buffer,
                aclosing(self._fragments()) as fragments,
            ):
                async for fragment in fragments:
                    buffer.append(fragment)
        except (httpx.HTTPError, StreamError, UnicodeDecodeError) as e:
            logger.error(f"Error processing message stream: {e}")
            error = str(e) or e.__class__.__name__
        finally:
            self.finalize()

        return StreamResult(turn_id=turn_id, completed=error is None, error=error)

    def finalize(self) -> None:
        """Clear the in-progress marker on all turns. Idempotent."""
        if self.conversation.clear_typing():
            self._notify()

    def _apply(self, turn_id: int, text: str) -> None:
        if self.conversation.append_content(turn_id, text):
            self._notify()

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update(self.conversation)

    @asynccontextmanager
    async def _http_client(self) -> AsyncGenerator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    async def _fragments(self) -> AsyncGenerator[str]:
        # strict, so bad bytes fail the stream; aiter_text would replace them
        decoder = codecs.getincrementaldecoder("utf-8")()
        lines = TaggedLineDecoder()

        async with (
            self._http_client() as client,
            client.stream(
                "POST",
                self._url,
                json={"messages": self.conversation.to_request()},
            ) as response,
        ):
            if response.is_error:
                raise StreamError(f"Relay returned HTTP {response.status_code}")
            if response.status_code == httpx.codes.NO_CONTENT:
                raise StreamError("Relay response has no body")

            async for chunk in response.aiter_bytes():
                for fragment in lines.feed(decoder.decode(chunk)):
                    yield fragment

            for fragment in lines.feed(decoder.decode(b"", final=True)):
                yield fragment
            for fragment in lines.flush():
                yield fragment
