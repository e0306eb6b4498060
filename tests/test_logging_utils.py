import json
import logging

from services.shared.logging_utils import log_event


def test_log_event_always_contains_context_keys(caplog) -> None:
    with caplog.at_level(logging.INFO, logger="applicant_intake"):
        log_event("info", "test_event", custom="value")

    payload = json.loads(caplog.records[-1].message)
    assert payload["message"] == "test_event"
    assert payload["trace_id"] is None
    assert payload["custom"] == "value"
    assert "ts" in payload


def test_log_event_maps_levels(caplog) -> None:
    with caplog.at_level(logging.INFO, logger="applicant_intake"):
        log_event("error", "failed_event", trace_id="t-1")
        log_event("warning", "warned_event")

    assert caplog.records[-2].levelno == logging.ERROR
    assert json.loads(caplog.records[-2].message)["trace_id"] == "t-1"
    assert caplog.records[-1].levelno == logging.WARNING
