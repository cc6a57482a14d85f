"""Serial port transport implementation using pyserial-asyncio."""

from __future__ import annotations

import asyncio
import logging

import serial
import serial_asyncio
from serial.tools import list_ports

from injctl.core.errors import (
    TransportConnectError,
    TransportError,
    TransportReadError,
    TransportSendError,
)

DEFAULT_BAUDRATE = 115200
LOGGER = logging.getLogger(__name__)


def enumerate_ports() -> list[tuple[str, str]]:
    """Return ``(device, description)`` pairs for the serial ports present."""
    ports = [(info.device, info.description) for info in list_ports.comports()]
    ports.sort(key=lambda p: p[0])
    return ports


class SerialTransport:
    def __init__(
        self,
        port: str,
        *,
        baudrate: int = DEFAULT_BAUDRATE,
        read_chunk_size: int = 1024,
    ) -> None:
        self.port = port
        self.baudrate = baudrate
        self.read_chunk_size = read_chunk_size
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None

    @property
    def is_open(self) -> bool:
        return self._writer is not None

    async def open(self) -> None:
        if self._writer is not None:
            raise TransportConnectError(f"Serial port {self.port} is already open")
        try:
            self._reader, self._writer = await serial_asyncio.open_serial_connection(
                url=self.port,
                baudrate=self.baudrate,
            )
        except (serial.SerialException, OSError, ValueError) as exc:
            raise TransportConnectError(
                f"Could not open serial port {self.port} at {self.baudrate} baud: {exc}"
            ) from exc
        LOGGER.info("Opened %s at %d baud", self.port, self.baudrate)

    async def read(self) -> bytes:
        if self._reader is None:
            raise TransportReadError(f"Serial port {self.port} is not open")
        try:
            return await self._reader.read(self.read_chunk_size)
        except (serial.SerialException, OSError) as exc:
            raise TransportReadError(f"Serial read failed on {self.port}: {exc}") from exc

    async def write(self, data: bytes) -> None:
        if self._writer is None:
            raise TransportSendError(f"Serial port {self.port} is not open")
        try:
            self._writer.write(data)
            await self._writer.drain()
        except (serial.SerialException, OSError) as exc:
            raise TransportSendError(f"Serial write failed on {self.port}: {exc}") from exc

    async def close(self) -> None:
        writer = self._writer
        self._reader = None
        self._writer = None
        if writer is None:
            return
        try:
            writer.close()
            await writer.wait_closed()
        except (serial.SerialException, OSError) as exc:
            raise TransportError(f"Closing {self.port} failed: {exc}") from exc
        finally:
            LOGGER.info("Closed %s", self.port)
