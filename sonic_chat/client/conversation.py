"""Client-side conversation state.

Holds the turns of one page session in prompt order. The in-progress
assistant turn is the only one whose content changes, and only through
``append_content`` and ``clear_typing``.
"""

import logging
import time
from collections.abc import Iterable, Iterator

from pydantic import ConfigDict, Field

from sonic_chat.models.schemas import Turn

logger = logging.getLogger(__name__)


class ClientTurn(Turn):
    """A Turn as the browser holds it.

    Attributes:
        id: Identifier used to find the turn while it streams.
        is_typing: Whether the assistant is still producing this turn.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int
    is_typing: bool = Field(False, alias="isTyping")

    def to_request(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Conversation:
    """Ordered turns of one chat session."""

    _last_id = 0

    def __init__(self, turns: Iterable[ClientTurn] = ()) -> None:
        self._turns: list[ClientTurn] = []
        self.add_turns(turns)

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[ClientTurn]:
        return iter(self._turns)

    @property
    def turns(self) -> list[ClientTurn]:
        return list(self._turns)

    @classmethod
    def next_id(cls) -> int:
        """Return a time-derived identifier larger than any issued before."""
        cls._last_id = max(time.time_ns() // 1_000_000, cls._last_id + 1)
        return cls._last_id

    def get(self, turn_id: int) -> ClientTurn | None:
        return next((t for t in self._turns if t.id == turn_id), None)

    def typing_turn(self) -> ClientTurn | None:
        """The turn currently streaming, if any."""
        return next((t for t in self._turns if t.is_typing), None)

    def add_turns(self, turns: Iterable[ClientTurn]) -> list[ClientTurn]:
        """Append turns whose id is not already in the conversation.

        Args:
            turns: Candidate turns, in order.

        Returns:
            The turns that were actually added.

        Raises:
            ValueError: If more than one turn would be in progress.
        """
        known = {t.id for t in self._turns}
        added: list[ClientTurn] = []
        for turn in turns:
            if turn.id in known:
                continue
            known.add(turn.id)
            added.append(turn)

        typing = sum(t.is_typing for t in self._turns) + sum(t.is_typing for t in added)
        if typing > 1:
            raise ValueError("Only one turn can be in progress at a time")

        self._turns.extend(added)
        return added

    def append_content(self, turn_id: int, text: str) -> bool:
        """Append streamed text to the turn with the given id.

        Returns:
            False if no turn has that id.
        """
        turn = self.get(turn_id)
        if turn is None:
            logger.warning(f"Dropping text for unknown turn {turn_id}")
            return False
        turn.content += text
        return True

    def clear_typing(self) -> bool:
        """Clear the in-progress marker on every turn.

        Returns:
            True if any marker was set.
        """
        changed = False
        for turn in self._turns:
            if turn.is_typing:
                turn.is_typing = False
                changed = True
        return changed

    def clear(self) -> None:
        self._turns.clear()

    def to_request(self) -> list[dict[str, object]]:
        """Turn list in the shape the relay accepts."""
        return [t.to_request() for t in self._turns]
