"""Tests for the structured event logging system."""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

import pytest

from cellcalc.formulas import MissingDataSourceError, evaluate_formula, tokenize
from cellcalc.logging import (
    EventLevel,
    EventSink,
    EventType,
    FormulaEvent,
    configure_from_config,
    emit_info,
    get_sink,
    set_log_dir,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def log_dir(tmp_path: Path) -> Iterator[Path]:
    """Install a sink for the duration of a test."""
    d = tmp_path / "logs"
    set_log_dir(d)
    yield d
    set_log_dir(None)


def _read(log_dir: Path) -> list[dict]:
    path = log_dir / "events.ndjson"
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]


# ---------------------------------------------------------------------------
# Event schema
# ---------------------------------------------------------------------------


class TestFormulaEvent:
    def test_event_defaults(self) -> None:
        evt = FormulaEvent(level=EventLevel.info, event_type=EventType.formula_evaluated)
        assert evt.schema_version == 1
        assert evt.ts.endswith("Z")
        assert evt.context == {}
        assert evt.error_code is None


# ---------------------------------------------------------------------------
# Sink
# ---------------------------------------------------------------------------


class TestEventSink:
    def test_write_and_read(self, tmp_path: Path) -> None:
        sink = EventSink(tmp_path / "logs")
        for i in range(3):
            sink.write(
                FormulaEvent(
                    level=EventLevel.info,
                    event_type=EventType.formula_evaluated,
                    context={"result": i},
                )
            )
        events = sink.read_events()
        assert [e["context"]["result"] for e in events] == [2, 1, 0]

    def test_filters_and_limit(self, tmp_path: Path) -> None:
        sink = EventSink(tmp_path)
        sink.write(FormulaEvent(level=EventLevel.warning, event_type=EventType.token_dropped))
        sink.write(FormulaEvent(level=EventLevel.info, event_type=EventType.formula_evaluated))
        sink.write(FormulaEvent(level=EventLevel.info, event_type=EventType.formula_evaluated))
        assert len(sink.read_events(level="warning")) == 1
        assert len(sink.read_events(event_type="formula_evaluated")) == 2
        assert len(sink.read_events(limit=1)) == 1

    def test_lines_are_sorted_json(self, tmp_path: Path) -> None:
        sink = EventSink(tmp_path)
        sink.write(FormulaEvent(level=EventLevel.info, event_type=EventType.formula_evaluated))
        line = (tmp_path / "events.ndjson").read_text().strip()
        keys = list(json.loads(line).keys())
        assert keys == sorted(keys)

    def test_tail_read_skips_partial_line(self, tmp_path: Path) -> None:
        sink = EventSink(tmp_path, tail_bytes=400)
        for i in range(20):
            sink.write(
                FormulaEvent(
                    level=EventLevel.info,
                    event_type=EventType.formula_evaluated,
                    context={"result": i},
                )
            )
        events = sink.read_events()
        assert events
        assert len(events) < 20
        assert events[0]["context"]["result"] == 19

    def test_missing_file(self, tmp_path: Path) -> None:
        assert EventSink(tmp_path).read_events() == []


# ---------------------------------------------------------------------------
# Emission from the engine
# ---------------------------------------------------------------------------


class TestEmit:
    def test_no_sink_discards(self, tmp_path: Path) -> None:
        set_log_dir(None)
        assert get_sink() is None
        assert evaluate_formula("1+1") == 2
        assert not (tmp_path / "events.ndjson").exists()

    def test_evaluation_logged(self, log_dir: Path) -> None:
        evaluate_formula("2+3")
        (event,) = _read(log_dir)
        assert event["event_type"] == "formula_evaluated"
        assert event["level"] == "info"
        assert event["context"]["result"] == 5.0
        assert event["context"]["formula"] == "2+3"

    def test_arithmetic_recovery_logged(self, log_dir: Path) -> None:
        assert evaluate_formula("5/0") == 0
        recovered = [e for e in _read(log_dir) if e["event_type"] == "arithmetic_recovered"]
        assert len(recovered) == 1
        assert recovered[0]["level"] == "warning"
        assert recovered[0]["error_code"] == "invalid_arithmetic"
        assert recovered[0]["context"]["operator"] == "/"

    def test_dropped_fragment_logged(self, log_dir: Path) -> None:
        tokenize("2+@")
        (event,) = _read(log_dir)
        assert event["event_type"] == "token_dropped"
        assert event["context"]["fragment"] == "@"

    def test_failure_logged(self, log_dir: Path) -> None:
        with pytest.raises(MissingDataSourceError):
            evaluate_formula("A1*2")
        (event,) = _read(log_dir)
        assert event["event_type"] == "formula_failed"
        assert event["level"] == "error"
        assert event["error_code"] == "missing_data_source"

    def test_missing_attribution_downgrades(self, log_dir: Path) -> None:
        emit_info(EventType.formula_evaluated, "no result given")
        (event,) = _read(log_dir)
        assert event["level"] == "warning"
        assert event["context"]["_missing_attribution"] == ["result"]

    def test_configure_from_config(self, tmp_path: Path) -> None:
        configure_from_config({"logging_dir": str(tmp_path / "cfg_logs"), "logging_tail_bytes": 1024})
        try:
            assert isinstance(get_sink(), EventSink)
            assert get_sink().log_dir == tmp_path / "cfg_logs"
        finally:
            set_log_dir(None)
        configure_from_config({"logging_dir": None})
        assert get_sink() is None
