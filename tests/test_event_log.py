import logging

import pytest

from agmanager.event_log import EventLog, EventLogHandler, LogEntry, safe_stringify


class _Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class _Reporter:
    def __init__(self, error=None):
        self.payloads = []
        self.error = error

    def report(self, payload) -> None:
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error


def _entry(timestamp, message, level=logging.INFO):
    return LogEntry(timestamp=timestamp, level=level, message=message, formatted=message)


def test_count_cap_keeps_most_recent_entries_in_order():
    clock = _Clock()
    log = EventLog(window_seconds=60, max_entries=3, clock=clock)

    for i in range(5):
        log.append(_entry(clock.now, f"m{i}"))

    assert [e.message for e in log] == ["m2", "m3", "m4"]


def test_age_window_evicts_old_entries():
    clock = _Clock(now=0.0)
    log = EventLog(window_seconds=10, max_entries=100, clock=clock)

    for t in (0.0, 5.0, 12.0):
        clock.now = t
        log.append(_entry(t, f"t{int(t)}"))

    assert [e.message for e in log] == ["t5", "t12"]

    clock.now = 30.0
    log.append(_entry(30.0, "t30"))
    assert [e.message for e in log] == ["t30"]


def test_record_renders_context_arguments():
    log = EventLog(clock=_Clock(now=0.0))

    entry = log.record(logging.INFO, "Config loaded", {"port": 8080}, "extra")

    assert entry.formatted == '[1970-01-01T00:00:00.000+00:00] [INFO] Config loaded {"port": 8080} extra'
    assert len(log) == 1


def test_safe_stringify_handles_cycles_and_errors():
    node = {"name": "a"}
    node["self"] = node

    assert safe_stringify(node) == '{"name": "a", "self": "[Circular]"}'
    assert '"name": "ValueError"' in safe_stringify(ValueError("bad"))


def test_escalation_disabled_never_reports():
    reporter = _Reporter()
    log = EventLog(reporter=reporter)

    for _ in range(10):
        log.record(logging.ERROR, "Config: Failed to save config")

    assert reporter.payloads == []


def test_enabling_escalation_only_affects_later_entries():
    reporter = _Reporter()
    log = EventLog(reporter=reporter)

    log.record(logging.ERROR, "before")
    log.set_escalation_enabled(True)
    log.record(logging.WARNING, "warning")
    log.record(logging.ERROR, "after")
    log.set_escalation_enabled(False)
    log.record(logging.ERROR, "disabled again")

    assert [p.message for p in reporter.payloads] == ["after"]
    assert reporter.payloads[0].level == "ERROR"
    assert [e.message for e in reporter.payloads[0].logs] == ["before", "warning", "after"]


def test_reported_snapshot_is_not_affected_by_later_appends():
    reporter = _Reporter()
    log = EventLog(reporter=reporter)
    log.set_escalation_enabled(True)

    log.record(logging.ERROR, "boom")
    log.record(logging.INFO, "later")

    assert len(reporter.payloads[0].logs) == 1
    assert len(log) == 2


def test_causing_error_is_extracted_from_arguments():
    reporter = _Reporter()
    log = EventLog(reporter=reporter)
    log.set_escalation_enabled(True)
    error = OSError("disk full")

    log.record(logging.ERROR, "Config: Failed to save config", error)

    assert reporter.payloads[0].error is error


def test_reporter_failure_does_not_propagate(capsys):
    log = EventLog(reporter=_Reporter(error=RuntimeError("network down")))
    log.set_escalation_enabled(True)

    entry = log.record(logging.ERROR, "boom")

    assert entry.message == "boom"
    assert not log.maybe_escalate(entry)
    assert "Failed to deliver error report" in capsys.readouterr().err


def test_no_reporter_means_no_escalation():
    log = EventLog()
    log.set_escalation_enabled(True)

    assert not log.maybe_escalate(_entry(0.0, "boom", level=logging.ERROR))


def test_rejects_non_positive_cap():
    with pytest.raises(ValueError):
        EventLog(max_entries=0)


def test_handler_feeds_log_records_with_exception():
    reporter = _Reporter()
    log = EventLog(reporter=reporter)
    log.set_escalation_enabled(True)
    logger = logging.getLogger("tests.event_log")
    logger.propagate = False
    logger.setLevel(logging.DEBUG)
    handler = EventLogHandler(log)
    logger.addHandler(handler)
    try:
        logger.info("starting %s", "up")
        try:
            raise ValueError("bad value")
        except ValueError:
            logger.exception("Config: Failed to load config")
    finally:
        logger.removeHandler(handler)

    assert [e.message for e in log] == ["starting up", "Config: Failed to load config"]
    assert isinstance(reporter.payloads[0].error, ValueError)
    assert "bad value" in reporter.payloads[0].logs[-1].formatted
