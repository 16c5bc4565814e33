"""Command-line interface for cellcalc."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click

from cellcalc import __version__
from cellcalc.config import load_config, options_from_config
from cellcalc.formulas import Evaluator, FormulaError, Lexer
from cellcalc.logging.events import EventLevel, EventType, configure_from_config
from cellcalc.logging.sink import EventSink

# Example formulas printed by ``cellcalc demo``.
DEMO_FORMULAS = [
    "max(2*15; 10; 20)",
    "min(2; 10; 20)",
    "sum(2*15; 10; 20)",
    "23*56",
    "-56 + 12 * 54",
]


@click.group()
@click.version_option(version=__version__, prog_name="cellcalc")
def main() -> None:
    """cellcalc -- evaluate spreadsheet-style formulas."""


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _parse_cells(cells: tuple[str, ...]) -> dict[str, float]:
    values: dict[str, float] = {}
    for item in cells:
        if "=" not in item:
            raise click.ClickException(f"Invalid --cell format: {item!r}. Use REF=VALUE.")
        ref, raw = item.split("=", 1)
        try:
            values[ref.strip()] = float(raw)
        except ValueError:
            raise click.ClickException(f"Invalid --cell value for {ref!r}: {raw!r}")
    return values


def _load(config_path: str | None, log_dir: str | None) -> dict[str, Any]:
    try:
        config = load_config(Path(config_path) if config_path else None)
    except ValueError as e:
        raise click.ClickException(str(e))
    if log_dir:
        config["logging_dir"] = log_dir
    configure_from_config(config)
    return config


def _build_resolver(cells: tuple[str, ...], grid: str | None) -> Any:
    from cellcalc.resolvers import FrameResolver, MappingResolver, load_grid

    if grid and cells:
        raise click.ClickException("Use either --cell or --grid, not both.")
    if grid:
        return FrameResolver(load_grid(Path(grid)))
    if cells:
        return MappingResolver(_parse_cells(cells))
    return None


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@main.command("eval")
@click.argument("formula")
@click.option("--cell", "cells", multiple=True, help="Cell value as REF=VALUE (repeatable).")
@click.option("--grid", default=None, type=click.Path(exists=True), help="Header-less CSV grid of cell values.")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="Path to cellcalc.yaml.")
@click.option("--log-dir", default=None, type=click.Path(), help="Append events to LOG_DIR/events.ndjson.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def eval_cmd(
    formula: str,
    cells: tuple[str, ...],
    grid: str | None,
    config_path: str | None,
    log_dir: str | None,
    as_json: bool,
) -> None:
    """Evaluate FORMULA and print the result."""
    config = _load(config_path, log_dir)
    evaluator = Evaluator(
        resolver=_build_resolver(cells, grid),
        options=options_from_config(config),
    )
    try:
        result = evaluator.evaluate(formula)
    except FormulaError as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps({"formula": formula, "result": result}))
    else:
        click.echo(_format_number(result))


@main.command()
@click.argument("formula")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="Path to cellcalc.yaml.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def tokens(formula: str, config_path: str | None, as_json: bool) -> None:
    """Print the tokens FORMULA splits into."""
    config = _load(config_path, None)
    result = Lexer(options=options_from_config(config)).tokenize(formula)
    if as_json:
        click.echo(json.dumps([t.to_dict() for t in result], indent=2))
        return
    for token in result:
        click.echo(f"  {token.kind.value:14s} {token.value}")


@main.command()
def demo() -> None:
    """Evaluate a few example formulas."""
    evaluator = Evaluator()
    for formula in DEMO_FORMULAS:
        click.echo(f"{formula} = {_format_number(evaluator.evaluate(formula))}")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@main.command("events")
@click.option("--log-dir", default=None, type=click.Path(), help="Directory holding events.ndjson.")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="Path to cellcalc.yaml.")
@click.option("--level", default=None, type=click.Choice([lvl.value for lvl in EventLevel]), help="Filter by level.")
@click.option("--type", "event_type", default=None, type=click.Choice([t.value for t in EventType]), help="Filter by event type.")
@click.option("--limit", default=100, type=int, help="Maximum events to show.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def events_cmd(
    log_dir: str | None,
    config_path: str | None,
    level: str | None,
    event_type: str | None,
    limit: int,
    as_json: bool,
) -> None:
    """Show the structured event log, most recent first."""
    if not log_dir:
        try:
            config = load_config(Path(config_path) if config_path else None)
        except ValueError as e:
            raise click.ClickException(str(e))
        log_dir = config.get("logging_dir")
    if not log_dir:
        raise click.ClickException("No log directory. Pass --log-dir or set logging_dir in cellcalc.yaml.")

    sink = EventSink(Path(log_dir))
    events = sink.read_events(level=level, event_type=event_type, limit=limit)

    if as_json:
        click.echo(json.dumps(events, indent=2))
        return
    if not events:
        click.echo("No events found.")
        return

    for evt in events:
        ts = evt.get("ts", "")
        lvl = evt.get("level", "").upper()
        etype = evt.get("event_type", "")
        msg = evt.get("message", "")
        err = evt.get("error_code")
        line = f"[{ts}] {lvl:7s} {etype}: {msg}"
        if err:
            line += f"  ({err})"
        click.echo(line)


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
