"""Newline framing for the rig's text stream."""

from __future__ import annotations

import codecs

ENCODING = "utf-8"


class LineFramer:
    """Turn arbitrarily fragmented byte chunks into complete text lines.

    Partial lines are carried over between ``feed`` calls, and a multi-byte
    character split across two chunks is decoded once both halves arrive.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder(ENCODING)(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> int:
        return len(self._buffer)

    def feed(self, chunk: bytes) -> list[str]:
        self._buffer += self._decoder.decode(chunk)
        *complete, self._buffer = self._buffer.split("\n")
        lines: list[str] = []
        for segment in complete:
            line = segment.strip()
            if line:
                lines.append(line)
        return lines

    def reset(self) -> None:
        self._decoder.reset()
        self._buffer = ""
