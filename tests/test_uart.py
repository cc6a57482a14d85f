from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest
import serial
import serial_asyncio
from serial.tools import list_ports

from injctl.core.errors import TransportConnectError, TransportReadError, TransportSendError
from injctl.transports.uart import SerialTransport, enumerate_ports


class FakeWriter:
    def __init__(self) -> None:
        self.data = b""
        self.closed = False

    def write(self, data: bytes) -> None:
        self.data += data

    async def drain(self) -> None:
        return None

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        return None


def test_missing_port_raises_clean_error(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_open(**kwargs):
        raise serial.SerialException("could not open port /dev/ttyACM9")

    monkeypatch.setattr(serial_asyncio, "open_serial_connection", fake_open)

    transport = SerialTransport("/dev/ttyACM9")
    with pytest.raises(TransportConnectError):
        asyncio.run(transport.open())
    assert not transport.is_open


def test_open_write_read_close(monkeypatch: pytest.MonkeyPatch) -> None:
    writer = FakeWriter()
    calls = []

    async def fake_open(**kwargs):
        calls.append(kwargs)
        reader = asyncio.StreamReader()
        reader.feed_data(b"[LOG]hello\n")
        return reader, writer

    monkeypatch.setattr(serial_asyncio, "open_serial_connection", fake_open)

    async def scenario() -> bytes:
        transport = SerialTransport("/dev/ttyACM0", baudrate=115200, read_chunk_size=64)
        await transport.open()
        await transport.write(b"i\n")
        chunk = await transport.read()
        await transport.close()
        assert not transport.is_open
        return chunk

    chunk = asyncio.run(scenario())
    assert calls == [{"url": "/dev/ttyACM0", "baudrate": 115200}]
    assert chunk == b"[LOG]hello\n"
    assert writer.data == b"i\n"
    assert writer.closed


def test_io_before_open_raises() -> None:
    transport = SerialTransport("/dev/ttyACM0")
    with pytest.raises(TransportSendError):
        asyncio.run(transport.write(b"i\n"))
    with pytest.raises(TransportReadError):
        asyncio.run(transport.read())
    asyncio.run(transport.close())


def test_enumerate_ports_sorted(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        list_ports,
        "comports",
        lambda: [
            SimpleNamespace(device="/dev/ttyUSB0", description="CP2102"),
            SimpleNamespace(device="/dev/ttyACM0", description="Teensy USB Serial"),
        ],
    )
    assert enumerate_ports() == [
        ("/dev/ttyACM0", "Teensy USB Serial"),
        ("/dev/ttyUSB0", "CP2102"),
    ]
