"""Unified event schema and module-level emit helpers.

All timestamps use UTC ISO-8601 with ``Z`` suffix.  The ``emit()``
family of functions is safe to call from any context -- failures are
swallowed and printed to stderr.
"""

from __future__ import annotations

import sys
import time
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class EventLevel(str, Enum):
    info = "info"
    warning = "warning"
    error = "error"


class EventType(str, Enum):
    formula_evaluated = "formula_evaluated"
    formula_failed = "formula_failed"

    # Silent recoveries
    arithmetic_recovered = "arithmetic_recovered"
    token_dropped = "token_dropped"


# ---------------------------------------------------------------------------
# Error codes for recovered anomalies (fatal ones use FormulaError.code)
# ---------------------------------------------------------------------------

INVALID_ARITHMETIC = "invalid_arithmetic"
UNRECOGNIZED_TOKEN = "unrecognized_token"


# ---------------------------------------------------------------------------
# Attribution invariants
# ---------------------------------------------------------------------------

_EVENT_REQUIRED_KEYS: dict[str, set[str]] = {
    EventType.formula_evaluated.value: {"result"},
    EventType.formula_failed.value: set(),
    EventType.arithmetic_recovered.value: {"operator", "left", "right"},
    EventType.token_dropped.value: {"fragment"},
}


def _validate_attribution(event: FormulaEvent) -> FormulaEvent:
    """Check required context keys; downgrade to warning if missing."""
    required = _EVENT_REQUIRED_KEYS.get(event.event_type.value, set())
    missing = required - set(event.context.keys())
    if not missing:
        return event
    ctx = dict(event.context)
    ctx["_missing_attribution"] = sorted(missing)
    return event.model_copy(update={"level": EventLevel.warning, "context": ctx})


# ---------------------------------------------------------------------------
# Event model
# ---------------------------------------------------------------------------


def _utc_now() -> str:
    """Return current UTC timestamp in ISO-8601 with Z suffix."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class FormulaEvent(BaseModel):
    """A single structured log event."""

    schema_version: int = 1
    ts: str = Field(default_factory=_utc_now)
    level: EventLevel
    event_type: EventType
    context: dict[str, Any] = Field(default_factory=dict)
    message: str = ""
    error_code: str | None = None


# ---------------------------------------------------------------------------
# Module-level sink reference
# ---------------------------------------------------------------------------

# Set by ``set_log_dir``; ``None`` means events are discarded.
_sink: Any = None  # EventSink | None


def set_log_dir(
    log_dir: Any, *, fsync: bool = False, tail_bytes: int | None = None
) -> None:
    """Configure the module-level event sink.

    If it is never called (or called with ``None``), ``emit()`` silently
    discards events.
    """
    global _sink
    from pathlib import Path

    from cellcalc.logging.sink import EventSink

    if log_dir is None:
        _sink = None
        return
    _sink = EventSink(Path(log_dir), fsync=fsync, tail_bytes=tail_bytes)


def configure_from_config(config: dict[str, Any]) -> None:
    """Install (or clear) the sink from a loaded ``cellcalc.yaml`` dict."""
    tb = config.get("logging_tail_bytes")
    set_log_dir(
        config.get("logging_dir"),
        fsync=bool(config.get("logging_fsync", False)),
        tail_bytes=int(tb) if tb is not None else None,
    )


def get_sink() -> Any:
    """Return the module-level sink, or None."""
    return _sink


# ---------------------------------------------------------------------------
# Rate-limited stderr warnings
# ---------------------------------------------------------------------------

_last_stderr_ts: float = 0.0
_STDERR_INTERVAL_SECS = 60.0


def _stderr_warning(msg: str) -> None:
    """Print a warning to stderr, rate-limited to one per 60 seconds."""
    global _last_stderr_ts
    now = time.monotonic()
    if now - _last_stderr_ts < _STDERR_INTERVAL_SECS:
        return
    _last_stderr_ts = now
    try:
        print(f"[cellcalc] {msg}", file=sys.stderr)
    except Exception:
        pass


# ---------------------------------------------------------------------------
# Safe emit helpers
# ---------------------------------------------------------------------------


def emit(event: FormulaEvent) -> None:
    """Write an event to the configured sink.

    **Never raises.**  On failure, prints a rate-limited warning to stderr.
    """
    try:
        sink = get_sink()
        if sink is None:
            return
        sink.write(_validate_attribution(event))
    except Exception:
        _stderr_warning(f"logging failed: {traceback.format_exc()}")


def emit_info(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
) -> None:
    """Convenience: emit an info-level event."""
    emit(
        FormulaEvent(
            level=EventLevel.info,
            event_type=event_type,
            message=message,
            context=context or {},
        )
    )


def emit_warning(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
) -> None:
    """Convenience: emit a warning-level event."""
    emit(
        FormulaEvent(
            level=EventLevel.warning,
            event_type=event_type,
            message=message,
            context=context or {},
            error_code=error_code,
        )
    )


def emit_error(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
) -> None:
    """Convenience: emit an error-level event."""
    emit(
        FormulaEvent(
            level=EventLevel.error,
            event_type=event_type,
            message=message,
            context=context or {},
            error_code=error_code,
        )
    )
