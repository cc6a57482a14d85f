"""Transport interfaces."""

from __future__ import annotations

from typing import Protocol


class Transport(Protocol):
    async def open(self) -> None:
        """Acquire the link; return once it is writable."""

    async def read(self) -> bytes:
        """Wait for the next chunk of bytes. ``b""`` signals end of stream."""

    async def write(self, data: bytes) -> None:
        """Write raw bytes and wait until they are handed to the link."""

    async def close(self) -> None:
        """Release the link."""
