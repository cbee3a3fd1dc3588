from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

import requests
from pydantic import BaseModel, ConfigDict, Field

from .config import Settings
from .errors import UpstreamGraphError, UpstreamHttpError
from .http import create_session
from .models import DepartureRow
from .quay import extract_quay_code

logger = logging.getLogger(__name__)

QUERY = """
query Departures(
  $stopId: String!,
  $n: Int!,
  $timeRange: Int!,
  $whitelistLines: [ID!]
) {
  stopPlace(id: $stopId) {
    id
    name
    estimatedCalls(
      numberOfDepartures: $n,
      timeRange: $timeRange,
      whiteListed: { lines: $whitelistLines }
    ) {
      realtime
      aimedDepartureTime
      expectedDepartureTime
      cancellation
      destinationDisplay { frontText }
      quay { name publicCode }
      serviceJourney {
        line { id name publicCode transportMode }
        journeyPattern { directionType line { transportMode } }
      }
    }
  }
}
"""


# Raw Entur records. Every field is optional; fallbacks live in _to_row.
class _Raw(BaseModel):
    model_config = ConfigDict(extra="ignore")


class PatternLine(_Raw):
    transport_mode: Optional[str] = Field(None, alias="transportMode")


class JourneyPattern(_Raw):
    direction_type: Optional[str] = Field(None, alias="directionType")
    line: Optional[PatternLine] = None


class Line(_Raw):
    id: Optional[str] = None
    name: Optional[str] = None
    public_code: Optional[str] = Field(None, alias="publicCode")
    transport_mode: Optional[str] = Field(None, alias="transportMode")


class ServiceJourney(_Raw):
    line: Optional[Line] = None
    journey_pattern: Optional[JourneyPattern] = Field(None, alias="journeyPattern")


class Quay(_Raw):
    name: Optional[str] = None
    public_code: Optional[str] = Field(None, alias="publicCode")


class DestinationDisplay(_Raw):
    front_text: Optional[str] = Field(None, alias="frontText")


class EstimatedCall(_Raw):
    realtime: Optional[Any] = None
    aimed_departure_time: Optional[str] = Field(None, alias="aimedDepartureTime")
    expected_departure_time: Optional[str] = Field(None, alias="expectedDepartureTime")
    cancellation: Optional[Any] = None
    destination_display: Optional[DestinationDisplay] = Field(None, alias="destinationDisplay")
    quay: Optional[Quay] = None
    service_journey: Optional[ServiceJourney] = Field(None, alias="serviceJourney")


def _to_row(call: EstimatedCall) -> DepartureRow:
    journey = call.service_journey or ServiceJourney()
    line = journey.line or Line()
    pattern = journey.journey_pattern or JourneyPattern()
    quay = call.quay or Quay()

    mode = line.transport_mode
    if mode is None and pattern.line is not None:
        mode = pattern.line.transport_mode
    quay_name = quay.name or ""

    return DepartureRow(
        line=line.public_code or line.name or "?",
        destination=(call.destination_display.front_text if call.destination_display else None) or "",
        time=call.expected_departure_time or call.aimed_departure_time or None,
        canceled=bool(call.cancellation),
        platform=quay_name,
        track_or_stop=quay.public_code or extract_quay_code(quay_name),
        direction=(pattern.direction_type or "unknown").lower(),
        realtime=bool(call.realtime),
        mode=(mode or "").lower(),
    )


def parse_departures(payload: dict) -> List[DepartureRow]:
    """Turn an Entur ``Departures`` response body into departure rows.

    Raises:
        UpstreamGraphError: when the body carries a non-empty ``errors`` list.
    """
    errors = payload.get("errors") or []
    if errors:
        raise UpstreamGraphError([e.get("message", "") if isinstance(e, dict) else str(e) for e in errors])

    stop_place = (payload.get("data") or {}).get("stopPlace") or {}
    calls = stop_place.get("estimatedCalls") or []
    return [_to_row(EstimatedCall.model_validate(c)) for c in calls]


def fetch_departures(
    stop_id: str,
    count: int,
    time_range_seconds: int,
    line_ids: Optional[Sequence[str]] = None,
    session: Optional[requests.Session] = None,
    settings: Optional[Settings] = None,
) -> List[DepartureRow]:
    """Fetch upcoming departures for a stop place from Entur.

    Args:
        stop_id: NSR stop place id, e.g. "NSR:StopPlace:58366".
        count: Maximum number of estimated calls to request.
        time_range_seconds: Look-ahead window in seconds.
        line_ids: Line ids for server-side whitelisting. Empty means no
            restriction.

    Returns:
        Departure rows in the order Entur returned them.
    """
    settings = settings or Settings()
    sess = session or create_session(settings.client_name)
    variables = {
        "stopId": stop_id,
        "n": count,
        "timeRange": time_range_seconds,
        "whitelistLines": list(line_ids) if line_ids else None,
    }
    logger.debug("Querying Entur for %s (n=%s, timeRange=%ss, lines=%s)", stop_id, count, time_range_seconds, variables["whitelistLines"])
    resp = sess.post(
        settings.entur_url,
        json={"query": QUERY, "variables": variables},
        timeout=settings.request_timeout_seconds,
    )
    if not (200 <= resp.status_code < 300):
        raise UpstreamHttpError(resp.status_code, resp.text)

    rows = parse_departures(resp.json())
    logger.debug("Entur returned %d departures for %s", len(rows), stop_id)
    return rows
