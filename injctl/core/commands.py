"""Command encoding, validation, and multi-step command sequences."""

from __future__ import annotations

import math
from collections.abc import Iterator, Mapping
from enum import Enum

from injctl.core.errors import CommandValidationError, UnknownCommandError
from injctl.core.model import CommandSpec
from injctl.core.store import format_number

STATUS_TOKEN = "i"
PULSE_WIDTH_TOKEN = "p"
MIN_PULSE_WIDTH_MS = 0.1
MAX_PULSE_WIDTH_MS = 100.0


def encode(token: str) -> bytes:
    """Frame a single command token as one newline-terminated line."""
    normalized = token.strip()
    if not normalized:
        raise CommandValidationError("Command must not be empty")
    if "\n" in normalized or "\r" in normalized:
        raise CommandValidationError(f"Command {token!r} must be a single line")
    return f"{normalized}\n".encode("utf-8")


def validate_pulse_width(value: float | str) -> float:
    try:
        width = float(value)
    except (TypeError, ValueError) as exc:
        raise CommandValidationError(f"Pulse width {value!r} is not a number") from exc
    if math.isnan(width) or not MIN_PULSE_WIDTH_MS <= width <= MAX_PULSE_WIDTH_MS:
        raise CommandValidationError(
            f"Invalid pulse width {value!r}. Must be between "
            f"{format_number(MIN_PULSE_WIDTH_MS)} and {format_number(MAX_PULSE_WIDTH_MS)} ms"
        )
    return width


class SequenceState(Enum):
    AWAITING_MODE_ACK = "awaiting_mode_ack"
    AWAITING_VALUE_SEND = "awaiting_value_send"
    DONE = "done"


class PulseWidthSequence:
    """Two-step "set pulse width" exchange.

    The rig first receives ``p`` to enter pulse-width mode, then, after a short
    processing gap, the value on its own line. The value is validated when the
    sequence is built so nothing is sent for an out-of-range width.
    """

    def __init__(self, value: float | str) -> None:
        self.value = validate_pulse_width(value)
        self.state = SequenceState.AWAITING_MODE_ACK

    @property
    def value_token(self) -> str:
        return format_number(self.value)

    def mode_line(self) -> bytes:
        if self.state is not SequenceState.AWAITING_MODE_ACK:
            raise RuntimeError(f"Mode select already sent (state={self.state.value})")
        self.state = SequenceState.AWAITING_VALUE_SEND
        return encode(PULSE_WIDTH_TOKEN)

    def value_line(self) -> bytes:
        if self.state is not SequenceState.AWAITING_VALUE_SEND:
            raise RuntimeError(f"Value cannot be sent in state {self.state.value}")
        self.state = SequenceState.DONE
        return encode(self.value_token)

    @property
    def done(self) -> bool:
        return self.state is SequenceState.DONE


class CommandTable(Mapping[str, CommandSpec]):
    """Lookup from logical command names to rig tokens."""

    def __init__(self, commands: Mapping[str, CommandSpec]) -> None:
        self._commands = dict(commands)

    def __getitem__(self, name: str) -> CommandSpec:
        return self._commands[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._commands)

    def __len__(self) -> int:
        return len(self._commands)

    def resolve(self, name: str) -> CommandSpec:
        spec = self._commands.get(name)
        if spec is None:
            available = ", ".join(sorted(self._commands))
            raise UnknownCommandError(f"Unknown command '{name}'. Available: {available}")
        return spec
