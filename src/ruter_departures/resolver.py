from __future__ import annotations

import logging
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

from .defaults import as_string_array
from .entur import fetch_departures
from .models import DepartureQuery, DepartureRow, DeparturesMeta, DeparturesResponse
from .settings_store import (
    DEFAULT_DIRECTION,
    DEFAULT_LINE_IDS,
    DEFAULT_LINES,
    DEFAULT_MAX_RESULTS,
    DEFAULT_MINUTES_AHEAD,
    DEFAULT_STOP_ID,
    DEFAULT_TIME_FORMAT,
    SettingsStore,
)

logger = logging.getLogger(__name__)

NO_STOP_SELECTED = "No stop selected in Settings."

# Used when the store has never been normalized
UNSET_MAX_RESULTS = 200
UNSET_MINUTES_AHEAD = 180

MIN_RESULTS, MAX_RESULTS = 1, 50
MIN_MINUTES_AHEAD, MAX_MINUTES_AHEAD = 5, 480
MIN_TIME_RANGE_SECONDS, MAX_TIME_RANGE_SECONDS = 300, 8 * 3600

Fetcher = Callable[[str, int, int, Sequence[str]], List[DepartureRow]]


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _stored_int(value: Any, fallback: int) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return fallback


def effective_max_results(override: Optional[int], stored: Any) -> int:
    base = override if override is not None else _stored_int(stored, UNSET_MAX_RESULTS)
    return clamp(base, MIN_RESULTS, MAX_RESULTS)


def effective_minutes_ahead(override: Optional[int], stored: Any) -> int:
    base = override if override is not None else _stored_int(stored, UNSET_MINUTES_AHEAD)
    return clamp(base, MIN_MINUTES_AHEAD, MAX_MINUTES_AHEAD)


def time_range_seconds(minutes_ahead: int) -> int:
    return clamp(minutes_ahead * 60, MIN_TIME_RANGE_SECONDS, MAX_TIME_RANGE_SECONDS)


def filter_rows(
    rows: Sequence[DepartureRow],
    allowed_codes: Sequence[str],
    line_ids: Sequence[str],
    show_canceled: bool,
    direction: str,
    limit: int,
) -> List[DepartureRow]:
    """Apply the local filters in order: line codes, cancellations, direction, cap.

    Line codes are only checked when no line ids went upstream, which covers
    settings saved before lines were whitelisted by id.
    """
    out = list(rows)
    if allowed_codes and not line_ids:
        codes = set(allowed_codes)
        out = [r for r in out if str(r.line) in codes]
    if not show_canceled:
        out = [r for r in out if not r.canceled]
    if direction != "any":
        out = [r for r in out if r.direction == direction]
    return out[:limit]


def get_departures(
    store: SettingsStore,
    query: Union[Mapping[str, Any], DepartureQuery, None] = None,
    fetcher: Fetcher = fetch_departures,
) -> DeparturesResponse:
    """Resolve departures for the stop saved in settings.

    The stop and line selection always come from the store; stop or line
    values in ``query`` are ignored. Upstream errors propagate unchanged.
    """
    if not isinstance(query, DepartureQuery):
        query = DepartureQuery.model_validate(dict(query or {}))

    use_defaults = query.use_defaults
    n = effective_max_results(query.max_results, store.get(DEFAULT_MAX_RESULTS))
    minutes_ahead = effective_minutes_ahead(query.minutes_ahead, store.get(DEFAULT_MINUTES_AHEAD))
    direction = query.direction if query.direction is not None else str(store.get(DEFAULT_DIRECTION) or "any")
    time_format = query.time_format if query.time_format is not None else str(store.get(DEFAULT_TIME_FORMAT) or "auto")

    stop_id = str(store.get(DEFAULT_STOP_ID) or "") if use_defaults else ""
    if not stop_id:
        return DeparturesResponse(rows=[], error=NO_STOP_SELECTED)

    line_ids = as_string_array(store.get(DEFAULT_LINE_IDS)) if use_defaults else []
    allowed_codes = list(dict.fromkeys(as_string_array(store.get(DEFAULT_LINES)))) if use_defaults else []

    rows = fetcher(stop_id, n, time_range_seconds(minutes_ahead), line_ids)
    filtered = filter_rows(rows, allowed_codes, line_ids, query.show_canceled, direction, n)
    logger.info("Resolved %d of %d departures for %s", len(filtered), len(rows), stop_id)

    return DeparturesResponse(
        rows=filtered,
        meta=DeparturesMeta(
            stop_id=stop_id,
            used_defaults=use_defaults,
            line_filter=allowed_codes,
            effective_max_results=n,
            effective_minutes_ahead=minutes_ahead,
            effective_direction=direction,
            effective_time_format=time_format,
            whitelisted_line_ids=line_ids,
        ),
    )
