"""Splits message markdown into prose and fenced code blocks.

Code blocks are rendered separately so each gets a language label, syntax
highlighting and a copy button. A fence that is still open while a reply
streams yields a code segment with ``closed=False``.
"""

import re
from dataclasses import dataclass
from typing import Literal

_FENCE_OPEN_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})[ \t]*([^\s`]*)[^`]*$")


@dataclass
class Segment:
    """A run of message text rendered as one block.

    Attributes:
        kind: "markdown" for prose, "code" for a fenced block.
        text: Block content, fences excluded.
        language: Info-string language of a code block, or "".
        closed: False while a code fence has not been closed yet.
    """

    kind: Literal["markdown", "code"]
    text: str
    language: str = ""
    closed: bool = True


def _closes(line: str, fence: str) -> bool:
    stripped = line.strip()
    return (
        len(stripped) >= len(fence)
        and set(stripped) == {fence[0]}
        and len(line) - len(line.lstrip(" ")) <= 3
    )


def split_code_blocks(text: str) -> list[Segment]:
    """Split markdown into prose and fenced code segments, in order."""
    segments: list[Segment] = []
    buffer: list[str] = []
    fence = ""
    language = ""

    def flush_prose() -> None:
        prose = "\n".join(buffer)
        if prose.strip():
            segments.append(Segment("markdown", prose))

    for line in text.split("\n"):
        if not fence:
            match = _FENCE_OPEN_RE.match(line)
            if match:
                flush_prose()
                buffer = []
                fence, language = match.group(1), match.group(2)
                continue
            buffer.append(line)
        elif _closes(line, fence):
            segments.append(Segment("code", "\n".join(buffer), language))
            buffer = []
            fence = language = ""
        else:
            buffer.append(line)

    if fence:
        segments.append(Segment("code", "\n".join(buffer), language, closed=False))
    else:
        flush_prose()
    return segments
