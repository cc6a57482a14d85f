"""Core data models used across decoder, store, session, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

UNKNOWN_PARAMETER = "--"
UNKNOWN_POT = "---"


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


@dataclass(frozen=True)
class StatusEvent:
    pulse_width_ms: float
    peak_time_ms: float
    hold_freq_hz: float
    hold_duty_pct: float
    sd_available: bool
    logging: bool
    log_file: str | None = None
    offsets: tuple[float, ...] | None = None

    @property
    def sd_state(self) -> str:
        if not self.sd_available:
            return "NOT AVAILABLE"
        return "LOGGING" if self.logging else "READY"


@dataclass(frozen=True)
class ResultEvent:
    injector_id: int
    peak_current_a: float
    avg_current_a: float
    peak_hold_mode: bool = False

    @property
    def mode(self) -> str:
        return "P&H" if self.peak_hold_mode else "Normal"


@dataclass(frozen=True)
class ErrorTextEvent:
    text: str


@dataclass(frozen=True)
class LogTextEvent:
    text: str


@dataclass(frozen=True)
class PlainTextEvent:
    text: str


@dataclass(frozen=True)
class ParseFailureEvent:
    raw: str
    reason: str = ""


Event = Union[
    StatusEvent,
    ResultEvent,
    ErrorTextEvent,
    LogTextEvent,
    PlainTextEvent,
    ParseFailureEvent,
]


@dataclass(frozen=True)
class ParameterHint:
    """A single parameter value recovered from legacy plain-text output."""

    field: str
    value: str


@dataclass(frozen=True)
class ParameterSnapshot:
    """Last-known device parameters, each already rendered with its unit."""

    pulse_width: str = UNKNOWN_PARAMETER
    peak_time: str = UNKNOWN_PARAMETER
    hold_duty: str = UNKNOWN_PARAMETER
    hold_freq: str = UNKNOWN_PARAMETER
    pot0: str = UNKNOWN_POT
    pot1: str = UNKNOWN_POT
    pot2: str = UNKNOWN_POT
    pot3: str = UNKNOWN_POT


@dataclass(frozen=True)
class CommandSpec:
    name: str
    token: str
    description: str = ""


@dataclass(frozen=True)
class RigConfig:
    port: str | None = None
    baudrate: int = 115200
    read_chunk_size: int = 1024
    status_poll_delay_s: float = 0.5
    pulse_width_step_delay_s: float = 0.1
    strict_sequencing: bool = True
    reset_on_disconnect: bool = True
    commands: dict[str, CommandSpec] = field(default_factory=dict)
