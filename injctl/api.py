"""Stable public API for building tooling on top of injctl.

This module is the supported integration surface for third-party callers
(GUIs, dashboards, scripts). Avoid importing from internal modules unless
intentionally depending on non-stable internals.
"""

from __future__ import annotations

from pathlib import Path

from injctl.core.commands import (
    MAX_PULSE_WIDTH_MS,
    MIN_PULSE_WIDTH_MS,
    CommandTable,
    PulseWidthSequence,
    encode,
    validate_pulse_width,
)
from injctl.core.config_loader import LoadedConfig, load_config
from injctl.core.decoder import classify, extract_hint
from injctl.core.errors import (
    AlreadyConnectedError,
    CommandValidationError,
    ConfigLoadError,
    ConfigValidationError,
    DecodeError,
    InjctlError,
    LifecycleError,
    NotConnectedError,
    TransportConnectError,
    TransportError,
    TransportReadError,
    TransportSendError,
    UnknownCommandError,
)
from injctl.core.framing import LineFramer
from injctl.core.model import (
    CommandSpec,
    ConnectionState,
    ErrorTextEvent,
    Event,
    LogTextEvent,
    ParameterHint,
    ParameterSnapshot,
    ParseFailureEvent,
    PlainTextEvent,
    ResultEvent,
    RigConfig,
    StatusEvent,
)
from injctl.core.session import InjectorSession
from injctl.core.store import ParameterStore
from injctl.transports.base import Transport
from injctl.transports.uart import SerialTransport, enumerate_ports

__all__ = [
    "InjctlError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DecodeError",
    "CommandValidationError",
    "UnknownCommandError",
    "LifecycleError",
    "AlreadyConnectedError",
    "NotConnectedError",
    "TransportError",
    "TransportConnectError",
    "TransportSendError",
    "TransportReadError",
    "CommandSpec",
    "ConnectionState",
    "Event",
    "StatusEvent",
    "ResultEvent",
    "ErrorTextEvent",
    "LogTextEvent",
    "PlainTextEvent",
    "ParseFailureEvent",
    "ParameterHint",
    "ParameterSnapshot",
    "RigConfig",
    "LoadedConfig",
    "load_config",
    "LineFramer",
    "classify",
    "extract_hint",
    "ParameterStore",
    "CommandTable",
    "PulseWidthSequence",
    "encode",
    "validate_pulse_width",
    "MIN_PULSE_WIDTH_MS",
    "MAX_PULSE_WIDTH_MS",
    "InjectorSession",
    "Transport",
    "SerialTransport",
    "enumerate_ports",
    "connect",
]


def connect(
    port: str | None = None,
    *,
    config: RigConfig | None = None,
    config_path: Path | None = None,
    transport: Transport | None = None,
) -> InjectorSession:
    """Build a session for the rig, ready for ``async with``.

    The port comes from ``port`` or, failing that, from the loaded config.
    Passing ``transport`` skips serial port handling entirely.
    """
    if config is None:
        config = load_config(config_path).config
    if transport is None:
        resolved_port = port or config.port
        if not resolved_port:
            raise TransportConnectError(
                "No serial port given. Pass --port or set 'port' in the config file."
            )
        transport = SerialTransport(
            resolved_port,
            baudrate=config.baudrate,
            read_chunk_size=config.read_chunk_size,
        )
    return InjectorSession(transport, config=config)
