"""Connection lifecycle and protocol engine for one rig session."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

from injctl.core.commands import (
    STATUS_TOKEN,
    CommandTable,
    PulseWidthSequence,
    encode,
)
from injctl.core.decoder import classify, extract_hint
from injctl.core.errors import (
    AlreadyConnectedError,
    InjctlError,
    NotConnectedError,
    TransportConnectError,
    TransportError,
)
from injctl.core.framing import LineFramer
from injctl.core.model import (
    CommandSpec,
    ConnectionState,
    Event,
    ParameterSnapshot,
    PlainTextEvent,
    RigConfig,
    StatusEvent,
)
from injctl.core.store import ParameterStore
from injctl.transports.base import Transport

Listener = Callable[[Event], None]
LOGGER = logging.getLogger(__name__)


class InjectorSession:
    """Owns one connection to the rig and everything read from it.

    A single reader task feeds the line framer and decoder; decoded events
    update the parameter store and are handed to listeners in arrival order.
    Writes are awaited by the caller.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        config: RigConfig | None = None,
        store: ParameterStore | None = None,
    ) -> None:
        self.transport = transport
        self.config = config or RigConfig()
        self.store = store or ParameterStore()
        self.commands = CommandTable(self.config.commands)
        self._state = ConnectionState.DISCONNECTED
        self._framer = LineFramer()
        self._listeners: list[Listener] = []
        self._write_lock = asyncio.Lock()
        self._reader_task: asyncio.Task[None] | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._closing = False
        self._disconnected = asyncio.Event()
        self._disconnected.set()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def snapshot(self) -> ParameterSnapshot:
        return self.store.snapshot()

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _remove

    async def open(self) -> None:
        if self.connected:
            raise AlreadyConnectedError("Session is already connected")

        try:
            await self.transport.open()
        except OSError as exc:
            raise TransportConnectError(f"Could not open transport: {exc}") from exc

        self._framer.reset()
        self._closing = False
        self._state = ConnectionState.CONNECTED
        self._disconnected.clear()
        LOGGER.info("Connected to device")

        self._reader_task = asyncio.create_task(self._read_loop(), name="injctl-reader")
        self._poll_task = asyncio.create_task(self._initial_status_poll(), name="injctl-status-poll")

    async def close(self) -> list[InjctlError]:
        """Tear the session down; always ends disconnected.

        Failures are logged and returned rather than raised.
        """
        if self._state is ConnectionState.DISCONNECTED and self._reader_task is None:
            return []
        self._closing = True
        failures: list[InjctlError] = []

        current = asyncio.current_task()
        for task in (self._poll_task, self._reader_task):
            if task is None or task is current or task.done():
                continue
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._poll_task = None
        self._reader_task = None

        try:
            await self.transport.close()
        except InjctlError as exc:
            LOGGER.warning("Disconnect error: %s", exc)
            failures.append(exc)
        except OSError as exc:
            LOGGER.warning("Disconnect error: %s", exc)
            failures.append(TransportError(str(exc)))

        self._framer.reset()
        self._state = ConnectionState.DISCONNECTED
        if self.config.reset_on_disconnect:
            self.store.reset()
        self._disconnected.set()
        LOGGER.info("Disconnected from device")
        return failures

    async def wait_closed(self) -> None:
        """Return once the session is disconnected, by ``close()`` or the device."""
        await self._disconnected.wait()

    async def __aenter__(self) -> InjectorSession:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def send(self, token: str) -> None:
        """Write one command line, e.g. ``"1"`` to fire injector 1."""
        data = encode(token)
        self._ensure_connected()
        async with self._write_lock:
            await self._write(data)

    async def run(self, name: str) -> CommandSpec:
        """Send a command by its name in the command table."""
        spec = self.commands.resolve(name)
        await self.send(spec.token)
        return spec

    async def request_status(self) -> None:
        await self.send(STATUS_TOKEN)

    async def set_pulse_width(self, value: float | str) -> PulseWidthSequence:
        """Run the two-step pulse width exchange.

        The value is validated before anything is written. With
        ``strict_sequencing`` no other command can be written between the
        mode-select line and the value line.
        """
        sequence = PulseWidthSequence(value)
        self._ensure_connected()
        if self.config.strict_sequencing:
            async with self._write_lock:
                await self._write(sequence.mode_line())
                await asyncio.sleep(self.config.pulse_width_step_delay_s)
                self._ensure_connected()
                await self._write(sequence.value_line())
        else:
            async with self._write_lock:
                await self._write(sequence.mode_line())
            await asyncio.sleep(self.config.pulse_width_step_delay_s)
            self._ensure_connected()
            async with self._write_lock:
                await self._write(sequence.value_line())
        return sequence

    def _ensure_connected(self) -> None:
        if not self.connected or self._closing:
            raise NotConnectedError("Not connected to device")

    async def _write(self, data: bytes) -> None:
        try:
            await self.transport.write(data)
        except TransportError as exc:
            LOGGER.warning("Send error: %s", exc)
            await self.close()
            raise
        LOGGER.debug("> %s", data.decode("utf-8").rstrip("\n"))

    def process_line(self, line: str) -> Event:
        """Decode one line, apply it to the store, and notify listeners."""
        event = classify(line)
        if isinstance(event, StatusEvent):
            self.store.apply_status(event)
        elif isinstance(event, PlainTextEvent):
            hint = extract_hint(event.text)
            if hint is not None:
                self.store.apply(hint)
        LOGGER.debug("< %s", line)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                LOGGER.exception("Event listener %r failed", listener)
        return event

    def feed(self, chunk: bytes) -> list[Event]:
        return [self.process_line(line) for line in self._framer.feed(chunk)]

    async def _read_loop(self) -> None:
        try:
            while True:
                chunk = await self.transport.read()
                if not chunk:
                    LOGGER.warning("Device closed the stream")
                    break
                for line in self._framer.feed(chunk):
                    try:
                        self.process_line(line)
                    except Exception:
                        LOGGER.exception("Failed to process line %r", line)
        except TransportError as exc:
            LOGGER.warning("Read error: %s", exc)
        if not self._closing:
            await self.close()

    async def _initial_status_poll(self) -> None:
        await asyncio.sleep(self.config.status_poll_delay_s)
        try:
            await self.request_status()
        except InjctlError as exc:
            LOGGER.warning("Initial status request failed: %s", exc)
