"""Relay service: conversation in, tagged fragment bytes out.

Prepends the fixed instruction turn, opens the upstream stream and
re-encodes every delta as soon as it arrives. Upstream failures that happen
before the first delta surface from ``start`` so the HTTP layer can reject
the request instead of sending an empty 200.
"""

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import AsyncExitStack

import httpx

from sonic_chat.models.schemas import Turn
from sonic_chat.relay.codec import encode_delta
from sonic_chat.relay.config import RelayConfig, get_relay_config
from sonic_chat.relay.upstream import UpstreamClient, UpstreamError

logger = logging.getLogger(__name__)


class RelayStream:
    """An open upstream completion being relayed as tagged fragments.

    Iterate once to receive encoded bytes. The upstream connection is
    released when iteration ends, fails, or ``aclose`` is called.
    """

    def __init__(self, deltas: AsyncIterator[str], exit_stack: AsyncExitStack) -> None:
        self._deltas = deltas
        self._exit_stack = exit_stack
        self._closed = False
        self.delta_count = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._relay()

    async def _relay(self) -> AsyncGenerator[bytes]:
        if self._closed:
            return
        try:
            async for delta in self._deltas:
                self.delta_count += 1
                yield encode_delta(delta)
            logger.info(f"Relay finished after {self.delta_count} deltas")
        except (UpstreamError, httpx.HTTPError) as e:
            logger.error(f"Upstream stream aborted after {self.delta_count} deltas: {e}")
            raise
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        """Release the upstream connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        await self._exit_stack.aclose()


class RelayService:
    """Forwards conversations to the completion API.

    Holds the process-wide configuration and a shared upstream client.
    """

    def __init__(
        self,
        config: RelayConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the relay service.

        Args:
            config: Optional relay configuration.
                    Loads from environment if not provided.
            client: Optional httpx client for upstream calls.
        """
        self._config = config or get_relay_config()
        self._upstream = UpstreamClient(self._config, client)

    @property
    def config(self) -> RelayConfig:
        return self._config

    def build_messages(self, turns: list[Turn]) -> list[dict[str, str]]:
        """Prompt sent upstream: instruction turn followed by the conversation."""
        return [
            self._config.instruction.to_upstream(),
            *(turn.to_upstream() for turn in turns),
        ]

    async def start(self, turns: list[Turn]) -> RelayStream:
        """Open the upstream stream for a conversation.

        Args:
            turns: Client conversation in prompt order.

        Returns:
            RelayStream yielding encoded fragments.

        Raises:
            UpstreamError: If the upstream request fails before streaming.
        """
        async with AsyncExitStack() as stack:
            deltas = await stack.enter_async_context(
                self._upstream.open_stream(self.build_messages(turns))
            )
            return RelayStream(deltas, stack.pop_all())

    async def aclose(self) -> None:
        await self._upstream.aclose()


# Module-level singleton instance
_relay_service: RelayService | None = None


def get_relay_service() -> RelayService:
    """Get or create the global relay service.

    Returns:
        The RelayService instance.

    Raises:
        RelayConfigError: If configuration cannot be loaded.
    """
    global _relay_service
    if _relay_service is None:
        _relay_service = RelayService()
    return _relay_service


async def close_relay_service() -> None:
    """Close the global relay service if one was created."""
    global _relay_service
    if _relay_service is not None:
        await _relay_service.aclose()
        _relay_service = None
