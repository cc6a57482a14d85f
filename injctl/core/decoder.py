"""Line classification and payload decoding for the rig protocol.

Every line read from the rig becomes exactly one event. Structured lines carry
a literal tag followed by a JSON object::

    [STATUS]{"pulseWidth":20.0,"peakTime":2.0,"holdFreq":2000,"holdDuty":50,...}
    [RESULT]{"injector":1,"peakCurrent":3.12,"avgCurrent":1.05,"peakHold":false}

``[ERROR]`` and ``[LOG]`` lines carry free text. Anything else is plain text,
which may still contain one of the parameter lines printed by the rig's help
screen (see :func:`extract_hint`).
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any

from jsonschema import ValidationError

from injctl.core.errors import DecodeError
from injctl.core.model import (
    ErrorTextEvent,
    Event,
    LogTextEvent,
    ParameterHint,
    ParseFailureEvent,
    PlainTextEvent,
    ResultEvent,
    StatusEvent,
)
from injctl.schemas import error_location, load_validator

STATUS_TAG = "[STATUS]"
RESULT_TAG = "[RESULT]"
ERROR_TAG = "[ERROR]"
LOG_TAG = "[LOG]"

# label, field, value pattern; the first label present in a line decides
_HINT_PATTERNS = (
    ("Current pulse width:", "pulse_width", re.compile(r"Current pulse width: ([\d.]+) ms")),
    ("Peak time:", "peak_time", re.compile(r"Peak time: ([\d.]+) ms")),
    ("Hold frequency:", "hold_freq", re.compile(r"Hold frequency: ([\d.]+) Hz")),
)

LOGGER = logging.getLogger(__name__)


def _decode_payload(payload: str, schema_name: str) -> dict[str, Any]:
    try:
        doc = json.loads(payload)
    except ValueError as exc:
        raise DecodeError(f"invalid JSON: {exc}") from exc

    try:
        load_validator(schema_name).validate(doc)
    except ValidationError as exc:
        raise DecodeError(f"schema validation failed{error_location(exc)}: {exc.message}") from exc
    return doc


def _finite(value: Any, name: str) -> float:
    # JSON integers are unbounded and json accepts NaN/Infinity literals
    try:
        number = float(value)
    except (OverflowError, ValueError, TypeError) as exc:
        raise DecodeError(f"{name} is not a usable number: {exc}") from exc
    if not math.isfinite(number):
        raise DecodeError(f"{name} is not a finite number")
    return number


def decode_status(payload: str) -> StatusEvent:
    doc = _decode_payload(payload, "status.schema.json")
    offsets = doc.get("offsets")
    return StatusEvent(
        pulse_width_ms=_finite(doc["pulseWidth"], "pulseWidth"),
        peak_time_ms=_finite(doc["peakTime"], "peakTime"),
        hold_freq_hz=_finite(doc["holdFreq"], "holdFreq"),
        hold_duty_pct=_finite(doc["holdDuty"], "holdDuty"),
        sd_available=doc["sdAvailable"],
        logging=doc["logging"],
        log_file=doc.get("logFile"),
        offsets=(
            tuple(_finite(o, "offsets") for o in offsets) if offsets is not None else None
        ),
    )


def decode_result(payload: str) -> ResultEvent:
    doc = _decode_payload(payload, "result.schema.json")
    return ResultEvent(
        injector_id=int(doc["injector"]),
        peak_current_a=_finite(doc["peakCurrent"], "peakCurrent"),
        avg_current_a=_finite(doc["avgCurrent"], "avgCurrent"),
        peak_hold_mode=doc.get("peakHold", False),
    )


def classify(line: str) -> Event:
    """Map one framed line to its event. Never raises for malformed input."""
    if line.startswith(STATUS_TAG):
        try:
            return decode_status(line[len(STATUS_TAG):])
        except DecodeError as exc:
            LOGGER.warning("Malformed status line %r: %s", line, exc)
            return ParseFailureEvent(raw=line, reason=str(exc))
    if line.startswith(RESULT_TAG):
        try:
            return decode_result(line[len(RESULT_TAG):])
        except DecodeError as exc:
            LOGGER.warning("Malformed result line %r: %s", line, exc)
            return ParseFailureEvent(raw=line, reason=str(exc))
    if line.startswith(ERROR_TAG):
        return ErrorTextEvent(text=line[len(ERROR_TAG):])
    if line.startswith(LOG_TAG):
        return LogTextEvent(text=line[len(LOG_TAG):])
    return PlainTextEvent(text=line)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def extract_hint(text: str) -> ParameterHint | None:
    """Recover a parameter from the rig's legacy help/status text.

    Lines such as ``Hold frequency: 2000 Hz`` predate the ``[STATUS]``
    message. Labels are matched exactly as the firmware prints them and only
    the first label present in the line is considered, so
    ``Peak time: soon`` yields nothing. A value that is not a number
    (``1.2.3``) is ignored.
    """
    for label, field, pattern in _HINT_PATTERNS:
        if label not in text:
            continue
        match = pattern.search(text)
        if match is None:
            return None
        raw = match.group(1)
        try:
            number = float(raw)
        except ValueError:
            return None
        if field == "hold_freq":
            return ParameterHint(field=field, value=f"{_round_half_up(number)} Hz")
        return ParameterHint(field=field, value=f"{raw} ms")
    return None
