"""Render buffering for one streaming message.

Fragments arrive far faster than a UI wants to redraw. The buffer collects
them and commits to the conversation on whichever comes first:

    - a paragraph break ("\\n\\n") in the buffered text
    - buffered text longer than the size threshold
    - no new text for the idle delay

Every arrival cancels the pending idle flush before re-evaluating, so a
flush is never applied twice for the same text.
"""

import asyncio
import logging
from collections.abc import Callable
from types import TracebackType

logger = logging.getLogger(__name__)

FLUSH_THRESHOLD = 100
IDLE_FLUSH_DELAY = 0.05  # seconds
PARAGRAPH_BREAK = "\n\n"

FlushCallback = Callable[[int, str], None]


class RenderBuffer:
    """Per-message accumulator with an idle-flush timer.

    Must be used from within a running event loop. Close it on every exit
    path, or use it as an async context manager.
    """

    def __init__(
        self,
        turn_id: int,
        on_flush: FlushCallback,
        *,
        threshold: int = FLUSH_THRESHOLD,
        idle_delay: float = IDLE_FLUSH_DELAY,
    ) -> None:
        """Initialize the buffer.

        Args:
            turn_id: Identifier of the turn receiving the text.
            on_flush: Called with (turn_id, text) for each committed batch.
            threshold: Buffered length above which a flush happens at once.
            idle_delay: Seconds without input before a flush.
        """
        self.turn_id = turn_id
        self._on_flush = on_flush
        self._threshold = threshold
        self._idle_delay = idle_delay
        self._text = ""
        self._timer: asyncio.TimerHandle | None = None
        self._closed = False
        self.flush_count = 0

    @property
    def pending(self) -> str:
        return self._text

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def append(self, text: str) -> None:
        """Buffer text and flush now or schedule an idle flush.

        Raises:
            RuntimeError: If the buffer was already closed.
        """
        if self._closed:
            raise RuntimeError(f"Render buffer for turn {self.turn_id} is closed")

        self._cancel_timer()
        self._text += text

        if PARAGRAPH_BREAK in self._text or len(self._text) > self._threshold:
            self.flush()
        elif self._text:
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(self._idle_delay, self._on_idle)

    def flush(self) -> None:
        """Commit buffered text. No-op when nothing is buffered."""
        self._cancel_timer()
        if not self._text:
            return
        text, self._text = self._text, ""
        self.flush_count += 1
        self._on_flush(self.turn_id, text)

    def close(self) -> None:
        """Final flush and timer teardown. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self.flush()

    def _on_idle(self) -> None:
        self._timer = None
        logger.debug(f"Idle flush for turn {self.turn_id}")
        self.flush()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def __aenter__(self) -> "RenderBuffer":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
