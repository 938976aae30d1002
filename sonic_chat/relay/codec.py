"""Tagged-line fragment codec shared by the relay and the stream consumer.

Each fragment travels as one line of the form ``0:"<json string>"``. JSON
escaping keeps newlines and quotes inside a fragment from being mistaken
for line boundaries, so the consumer can always recover exact fragments.
"""

import json
import logging
import re

logger = logging.getLogger(__name__)

FRAGMENT_PREFIX = "0:"

# Word runs, whitespace runs, or any single remaining character.
_FRAGMENT_RE = re.compile(r"\w+|\s+|[^\w\s]")


def split_fragments(delta: str) -> list[str]:
    """Split a delta into word, whitespace and punctuation fragments.

    Every character belongs to exactly one of the three classes, so joining
    the result reproduces ``delta`` exactly.
    """
    return _FRAGMENT_RE.findall(delta)


def encode_fragment(fragment: str) -> str:
    """Encode one fragment as a tagged line."""
    return f"{FRAGMENT_PREFIX}{json.dumps(fragment, ensure_ascii=False)}\n"


def encode_delta(delta: str) -> bytes:
    """Encode all fragments of a delta as UTF-8 tagged lines."""
    return "".join(encode_fragment(f) for f in split_fragments(delta)).encode("utf-8")


def decode_line(line: str) -> str | None:
    """Decode a single tagged line (without its newline).

    Returns:
        The fragment text, or None if the line is blank or not a valid
        tagged fragment.
    """
    if not line:
        return None
    if not line.startswith(FRAGMENT_PREFIX):
        logger.warning(f"Skipping untagged line: {line[:80]!r}")
        return None
    try:
        value = json.loads(line[len(FRAGMENT_PREFIX) :])
    except json.JSONDecodeError as e:
        logger.warning(f"Skipping undecodable fragment line: {e}")
        return None
    if not isinstance(value, str):
        logger.warning(f"Skipping non-string fragment: {value!r}")
        return None
    return value


class TaggedLineDecoder:
    """Incremental decoder for a stream of tagged lines.

    Text may arrive split at any point; incomplete trailing lines are held
    until the rest of the line arrives.
    """

    def __init__(self) -> None:
        self._pending = ""

    def feed(self, text: str) -> list[str]:
        """Consume decoded text and return the fragments of complete lines."""
        self._pending += text
        *lines, self._pending = self._pending.split("\n")
        return [f for f in map(decode_line, lines) if f is not None]

    def flush(self) -> list[str]:
        """Decode whatever remains after the stream ended."""
        line, self._pending = self._pending, ""
        fragment = decode_line(line)
        return [fragment] if fragment is not None else []
