"""Structured event logging for cellcalc.

Provides the event schema, a filesystem NDJSON sink, and safe emit
helpers that never raise uncaught exceptions.
"""

from cellcalc.logging.events import (
    EventLevel,
    EventType,
    FormulaEvent,
    configure_from_config,
    emit,
    emit_error,
    emit_info,
    emit_warning,
    get_sink,
    set_log_dir,
)
from cellcalc.logging.sink import EventSink

__all__ = [
    "EventLevel",
    "EventSink",
    "EventType",
    "FormulaEvent",
    "configure_from_config",
    "emit",
    "emit_error",
    "emit_info",
    "emit_warning",
    "get_sink",
    "set_log_dir",
]
