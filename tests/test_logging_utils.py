from app.harvester import logging_utils, utils


def test_harvest_event_label_and_phase(monkeypatch):
    events: list[str] = []
    monkeypatch.setattr(logging_utils, "log_line", lambda msg: events.append(msg))

    logging_utils._harvest_event("state", phase="retry_decision", kind="empty_retry")

    assert events
    line = events[-1]
    assert line.startswith("[HARVEST][STATE]")
    assert "phase='retry_decision'" in line
    assert "kind='empty_retry'" in line


def test_harvest_event_phase_only_becomes_label(monkeypatch):
    events: list[str] = []
    monkeypatch.setattr(logging_utils, "log_line", lambda msg: events.append(msg))

    logging_utils._harvest_event(phase="flush", rows=20)

    assert events == ["[HARVEST][FLUSH] rows=20"]


def test_harvest_event_swallows_logging_errors(monkeypatch):
    def _broken(msg):
        raise OSError("disk full")

    monkeypatch.setattr(logging_utils, "log_line", _broken)

    logging_utils._harvest_event("partition", status="completed")


def test_log_line_writes_to_run_log():
    log_path = utils.setup_run_logger()

    utils.log_line("[TEST] hello")

    assert utils.get_current_log_path() == log_path
    assert log_path.name.startswith("harvest_")
    assert "[TEST] hello" in log_path.read_text(encoding="utf-8")
