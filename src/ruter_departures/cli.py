from __future__ import annotations

import json
import logging
from functools import partial
from pathlib import Path
from typing import List, Optional

import typer

from .config import load_settings
from .defaults import get_defaults, normalize_defaults, sort_line_codes
from .entur import fetch_departures
from .errors import DeparturesError
from .quay import extract_quay_code
from .resolver import get_departures
from .settings_store import (
    DEFAULT_DIRECTION,
    DEFAULT_LINE_IDS,
    DEFAULT_LINES,
    DEFAULT_MAX_RESULTS,
    DEFAULT_MINUTES_AHEAD,
    DEFAULT_STOP_ID,
    DEFAULT_STOP_NAME,
    DEFAULT_TIME_FORMAT,
    SqlSettingsStore,
    init_db,
)

app = typer.Typer(help="Ruter departures: resolve upcoming departures for the saved stop.")

OPTION_KEYS = {
    "max-results": (DEFAULT_MAX_RESULTS, int),
    "minutes-ahead": (DEFAULT_MINUTES_AHEAD, int),
    "direction": (DEFAULT_DIRECTION, str),
    "time-format": (DEFAULT_TIME_FORMAT, str),
}


def _split(value: Optional[str]) -> List[str]:
    return [s.strip() for s in value.split(",") if s.strip()] if value else []


def _open_store(config_file: Optional[Path]):
    settings = load_settings(config_file)
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    store = SqlSettingsStore(settings.db_url)
    # Stored defaults are healed on every start, like the widget app does.
    normalize_defaults(store)
    return settings, store


@app.command()
def show_config(config_file: Path = typer.Option(None, help="Path to YAML config file")):
    """Print the effective configuration (YAML + env overrides)."""
    settings = load_settings(config_file)
    typer.echo(json.dumps(settings.model_dump(), indent=2))


@app.command()
def initdb(config_file: Path = typer.Option(None, help="Path to YAML config file")):
    """Create the settings table."""
    settings = load_settings(config_file)
    init_db(settings.db_url)
    typer.echo(f"Initialized settings database at {settings.db_url}")


@app.command()
def normalize(config_file: Path = typer.Option(None, help="Path to YAML config file")):
    """Heal malformed or missing default settings."""
    settings = load_settings(config_file)
    store = SqlSettingsStore(settings.db_url)
    changed = normalize_defaults(store)
    typer.echo("Normalized default settings" if changed else "Settings already normalized")


@app.command()
def show_defaults(config_file: Path = typer.Option(None, help="Path to YAML config file")):
    """Print the saved stop, lines and display defaults."""
    _, store = _open_store(config_file)
    out = get_defaults(store).model_dump(by_alias=True)
    out["lineIds"] = store.get(DEFAULT_LINE_IDS) or []
    for name, (key, _) in OPTION_KEYS.items():
        out[name] = store.get(key)
    typer.echo(json.dumps(out, ensure_ascii=False, indent=2))


@app.command()
def set_stop(
    stop_id: str = typer.Argument(..., help="Stop place id, e.g. NSR:StopPlace:58366"),
    name: str = typer.Option("", help="Display name for the stop"),
    config_file: Path = typer.Option(None, help="Path to YAML config file"),
):
    """Save the default stop."""
    _, store = _open_store(config_file)
    store.set(DEFAULT_STOP_ID, stop_id.strip())
    store.set(DEFAULT_STOP_NAME, name.strip())
    typer.echo(f"Default stop set to {stop_id} {name}".rstrip())


@app.command()
def set_lines(
    codes: str = typer.Option(None, help="Comma-separated line codes, e.g. '12,31'"),
    ids: str = typer.Option(None, help="Comma-separated line ids, e.g. 'RUT:Line:12'"),
    config_file: Path = typer.Option(None, help="Path to YAML config file"),
):
    """Save the line filter. Empty values clear it."""
    _, store = _open_store(config_file)
    store.set(DEFAULT_LINES, sort_line_codes(_split(codes)))
    store.set(DEFAULT_LINE_IDS, _split(ids))
    typer.echo(f"Lines: codes={store.get(DEFAULT_LINES)} ids={store.get(DEFAULT_LINE_IDS)}")


@app.command()
def set_option(
    key: str = typer.Argument(..., help=f"One of: {', '.join(OPTION_KEYS)}"),
    value: str = typer.Argument(...),
    config_file: Path = typer.Option(None, help="Path to YAML config file"),
):
    """Save a display default."""
    if key not in OPTION_KEYS:
        raise typer.BadParameter(f"key must be one of {', '.join(OPTION_KEYS)}")
    setting, kind = OPTION_KEYS[key]
    try:
        parsed = kind(value)
    except ValueError:
        raise typer.BadParameter(f"{key} must be an integer")
    _, store = _open_store(config_file)
    store.set(setting, parsed)
    typer.echo(f"{setting} = {parsed}")


@app.command()
def departures(
    use_defaults: bool = typer.Option(True, help="Use the saved stop and lines"),
    max_results: int = typer.Option(None, help="Override the number of rows (1-50)"),
    minutes_ahead: int = typer.Option(None, help="Override the look-ahead window (5-480 minutes)"),
    direction: str = typer.Option(None, help="inbound, outbound or any"),
    time_format: str = typer.Option(None, help="Passed through to the payload"),
    show_canceled: bool = typer.Option(False, help="Include canceled departures"),
    json_out: bool = typer.Option(False, help="Print JSON output"),
    config_file: Path = typer.Option(None, help="Path to YAML config file"),
):
    """Resolve departures for the saved stop and print a summary or JSON."""
    settings, store = _open_store(config_file)
    query = {
        "useDefaults": "true" if use_defaults else "false",
        "maxResults": max_results,
        "minutesAhead": minutes_ahead,
        "direction": direction,
        "timeFormat": time_format,
        "showCanceled": "true" if show_canceled else "false",
    }
    try:
        result = get_departures(store, query, fetcher=partial(fetch_departures, settings=settings))
    except DeparturesError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if json_out:
        typer.echo(json.dumps(result.to_payload(), ensure_ascii=False, indent=2))
        return
    if result.error:
        typer.echo(result.error, err=True)
        raise typer.Exit(code=1)
    for r in result.rows:
        flags = " CANCELED" if r.canceled else ""
        track = f" [{r.track_or_stop}]" if r.track_or_stop else ""
        typer.echo(f"{r.time or '?'} {r.line} to {r.destination or '?'}{track} {r.direction}{flags}")


@app.command()
def quay_code(name: str = typer.Argument(..., help="Quay name, e.g. 'Spor 3'")):
    """Print the platform code guessed from a quay name."""
    typer.echo(extract_quay_code(name))


if __name__ == "__main__":
    app()
