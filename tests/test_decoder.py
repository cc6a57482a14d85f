from __future__ import annotations

from injctl.core.decoder import classify, extract_hint
from injctl.core.model import (
    ErrorTextEvent,
    LogTextEvent,
    ParameterHint,
    ParseFailureEvent,
    PlainTextEvent,
    ResultEvent,
    StatusEvent,
)

STATUS_LINE = (
    '[STATUS]{"pulseWidth":2.5,"peakTime":1.0,"holdFreq":400,"holdDuty":50,'
    '"sdAvailable":true,"logging":false}'
)


def test_status_line_decodes() -> None:
    event = classify(STATUS_LINE)
    assert event == StatusEvent(
        pulse_width_ms=2.5,
        peak_time_ms=1.0,
        hold_freq_hz=400.0,
        hold_duty_pct=50.0,
        sd_available=True,
        logging=False,
    )
    assert event.sd_state == "READY"


def test_status_with_firmware_extras() -> None:
    line = (
        '[STATUS]{"pulseWidth":20.0,"peakTime":2.0,"holdFreq":2000,"holdDuty":50,'
        '"sdAvailable":true,"logging":true,"logFile":"CURRENT_LOG_5123.CSV",'
        '"offsets":[0.0123,-0.0040,0.0000,0.0061]}'
    )
    event = classify(line)
    assert isinstance(event, StatusEvent)
    assert event.log_file == "CURRENT_LOG_5123.CSV"
    assert event.offsets == (0.0123, -0.004, 0.0, 0.0061)
    assert event.sd_state == "LOGGING"


def test_result_line_decodes() -> None:
    event = classify('[RESULT]{"injector":2,"peakCurrent":3.456,"avgCurrent":1.2,"peakHold":true}')
    assert event == ResultEvent(
        injector_id=2,
        peak_current_a=3.456,
        avg_current_a=1.2,
        peak_hold_mode=True,
    )
    assert event.mode == "P&H"


def test_result_peak_hold_defaults_to_normal() -> None:
    event = classify('[RESULT]{"injector":4,"peakCurrent":1,"avgCurrent":0.5}')
    assert isinstance(event, ResultEvent)
    assert event.peak_hold_mode is False
    assert event.mode == "Normal"


def test_malformed_status_is_parse_failure() -> None:
    event = classify("[STATUS]{not json}")
    assert isinstance(event, ParseFailureEvent)
    assert event.raw == "[STATUS]{not json}"
    assert "invalid JSON" in event.reason


def test_status_missing_field_is_parse_failure() -> None:
    event = classify('[STATUS]{"pulseWidth":2.5,"peakTime":1.0,"holdFreq":400,"holdDuty":50,"logging":false}')
    assert isinstance(event, ParseFailureEvent)
    assert "sdAvailable" in event.reason


def test_status_non_numeric_field_is_parse_failure() -> None:
    for value in ('"2.5"', "true", "null"):
        line = (
            f'[STATUS]{{"pulseWidth":{value},"peakTime":1.0,"holdFreq":400,"holdDuty":50,'
            '"sdAvailable":true,"logging":false}'
        )
        assert isinstance(classify(line), ParseFailureEvent), value


def test_status_payload_must_be_object() -> None:
    assert isinstance(classify("[STATUS][1, 2, 3]"), ParseFailureEvent)
    assert isinstance(classify("[STATUS]"), ParseFailureEvent)


def test_result_requires_integer_injector() -> None:
    assert isinstance(
        classify('[RESULT]{"injector":"2","peakCurrent":3.4,"avgCurrent":1.2}'),
        ParseFailureEvent,
    )
    assert isinstance(
        classify('[RESULT]{"injector":2.5,"peakCurrent":3.4,"avgCurrent":1.2}'),
        ParseFailureEvent,
    )


def test_result_missing_current_is_parse_failure() -> None:
    assert isinstance(classify('[RESULT]{"injector":1,"peakCurrent":3.4}'), ParseFailureEvent)


def test_error_and_log_text() -> None:
    assert classify("[ERROR]SD card not available!") == ErrorTextEvent(text="SD card not available!")
    assert classify("[LOG]Channel 1: 0.0123 V") == LogTextEvent(text="Channel 1: 0.0123 V")


def test_untagged_line_is_plain_text() -> None:
    assert classify("Firing injector 3 x50") == PlainTextEvent(text="Firing injector 3 x50")
    assert classify("STATUS]{}") == PlainTextEvent(text="STATUS]{}")


def test_decoding_is_repeatable() -> None:
    for line in (STATUS_LINE, "[STATUS]{not json}", "[LOG]hello", "plain"):
        assert classify(line) == classify(line)


def test_hint_pulse_width_kept_as_given() -> None:
    assert extract_hint("Current pulse width: 4.2 ms") == ParameterHint("pulse_width", "4.2 ms")
    assert extract_hint("Current pulse width: 20.0 ms") == ParameterHint("pulse_width", "20.0 ms")


def test_hint_peak_time() -> None:
    assert extract_hint("Peak time: 2.0 ms") == ParameterHint("peak_time", "2.0 ms")


def test_hint_hold_frequency_rounds() -> None:
    assert extract_hint("Hold frequency: 2000 Hz") == ParameterHint("hold_freq", "2000 Hz")
    assert extract_hint("Hold frequency: 1999.5 Hz") == ParameterHint("hold_freq", "2000 Hz")
    assert extract_hint("Hold frequency: 400.4 Hz") == ParameterHint("hold_freq", "400 Hz")


def test_hint_absent() -> None:
    assert extract_hint("Enter new pulse width (ms): ") is None
    assert extract_hint("Peak time: soon") is None
    assert extract_hint("Calibration complete!") is None


def test_status_number_too_large_for_float_is_parse_failure() -> None:
    huge = "1" + "0" * 400
    line = (
        f'[STATUS]{{"pulseWidth":{huge},"peakTime":1.0,"holdFreq":400,"holdDuty":50,'
        '"sdAvailable":true,"logging":false}'
    )
    event = classify(line)
    assert isinstance(event, ParseFailureEvent)
    assert event.raw == line
    assert "pulseWidth" in event.reason


def test_result_non_finite_current_is_parse_failure() -> None:
    event = classify('[RESULT]{"injector":2,"peakCurrent":NaN,"avgCurrent":1.0}')
    assert isinstance(event, ParseFailureEvent)
    event = classify('[RESULT]{"injector":2,"peakCurrent":1.0,"avgCurrent":1e400}')
    assert isinstance(event, ParseFailureEvent)


def test_status_offsets_too_large_is_parse_failure() -> None:
    line = STATUS_LINE[:-1] + ',"offsets":[0.1,' + "9" * 400 + ",0.0,0.0]}"
    assert isinstance(classify(line), ParseFailureEvent)


def test_hint_labels_match_firmware_text() -> None:
    assert extract_hint("Current pulse width: 4. ms") == ParameterHint("pulse_width", "4. ms")
    assert extract_hint("current pulse width: 4.2 ms") is None
    assert extract_hint("HOLD FREQUENCY: 2000 HZ") is None


def test_hint_first_label_decides() -> None:
    assert extract_hint("Peak time: n/a, Hold frequency: 2000 Hz") is None
    assert extract_hint("Hold frequency: 1.2.3 Hz") is None
