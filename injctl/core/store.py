"""Last-known device parameters."""

from __future__ import annotations

import logging
import math
from dataclasses import fields, replace

from injctl.core.model import ParameterHint, ParameterSnapshot, StatusEvent

LOGGER = logging.getLogger(__name__)

_FIELDS = frozenset(f.name for f in fields(ParameterSnapshot))


def format_number(value: float) -> str:
    """Render a number the way the rig GUI shows it: ``1.0`` -> ``1``."""
    if math.isfinite(value) and float(value).is_integer():
        return str(int(value))
    return repr(float(value))


class ParameterStore:
    """Holds one immutable snapshot and swaps it whole on every update.

    Readers get the snapshot object itself; since it is frozen, a reader can
    never see an event half-applied.
    """

    def __init__(self) -> None:
        self._snapshot = ParameterSnapshot()

    def snapshot(self) -> ParameterSnapshot:
        return self._snapshot

    def apply_status(self, status: StatusEvent) -> ParameterSnapshot:
        self._snapshot = replace(
            self._snapshot,
            pulse_width=f"{format_number(status.pulse_width_ms)} ms",
            peak_time=f"{format_number(status.peak_time_ms)} ms",
            hold_freq=f"{format_number(status.hold_freq_hz)} Hz",
            hold_duty=f"{format_number(status.hold_duty_pct)} %",
        )
        LOGGER.debug("Parameters updated from status: %s", self._snapshot)
        return self._snapshot

    def apply_hint(self, field: str, value: str) -> ParameterSnapshot:
        if field not in _FIELDS:
            raise ValueError(f"Unknown parameter field '{field}'")
        self._snapshot = replace(self._snapshot, **{field: value})
        LOGGER.debug("Parameter %s set to %r from text hint", field, value)
        return self._snapshot

    def apply(self, hint: ParameterHint) -> ParameterSnapshot:
        return self.apply_hint(hint.field, hint.value)

    def reset(self) -> None:
        self._snapshot = ParameterSnapshot()
