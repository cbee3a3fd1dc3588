from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class StopDefaults(_CamelModel):
    stop_id: str = Field("", alias="stopId")
    stop_name: str = Field("", alias="stopName")
    lines: List[str] = Field(default_factory=list)


class DepartureRow(_CamelModel):
    line: str
    destination: str = ""
    time: Optional[str] = None  # ISO-8601 as delivered by Entur
    canceled: bool = False
    platform: str = ""
    track_or_stop: str = Field("", alias="trackOrStop")
    direction: str = "unknown"
    realtime: bool = False
    mode: str = ""


def _as_flag(value, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value) == "true"


def _as_optional_int(value) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except OverflowError:
        raise ValueError(f"not a finite number: {value!r}")


class DepartureQuery(_CamelModel):
    """Per-request overrides; string flags become real booleans here."""

    use_defaults: bool = Field(True, alias="useDefaults")
    max_results: Optional[int] = Field(None, alias="maxResults")
    minutes_ahead: Optional[int] = Field(None, alias="minutesAhead")
    direction: Optional[str] = None
    time_format: Optional[str] = Field(None, alias="timeFormat")
    show_canceled: bool = Field(False, alias="showCanceled")
    # Accepted for compatibility with older widgets; stored defaults always win.
    stop_id: Any = Field(None, alias="stopId")
    line_filter: Any = Field(None, alias="lineFilter")

    @field_validator("use_defaults", mode="before")
    @classmethod
    def _use_defaults(cls, v):
        return _as_flag(v, True)

    @field_validator("show_canceled", mode="before")
    @classmethod
    def _show_canceled(cls, v):
        return _as_flag(v, False)

    @field_validator("max_results", "minutes_ahead", mode="before")
    @classmethod
    def _numeric(cls, v):
        return _as_optional_int(v)


class DeparturesMeta(_CamelModel):
    stop_id: str = Field(alias="stopId")
    used_defaults: bool = Field(alias="usedDefaults")
    line_filter: List[str] = Field(alias="lineFilter")
    effective_max_results: int = Field(alias="effectiveMaxResults")
    effective_minutes_ahead: int = Field(alias="effectiveMinutesAhead")
    effective_direction: str = Field(alias="effectiveDirection")
    effective_time_format: str = Field(alias="effectiveTimeFormat")
    whitelisted_line_ids: List[str] = Field(alias="whitelistedLineIds")


class DeparturesResponse(_CamelModel):
    rows: List[DepartureRow] = Field(default_factory=list)
    meta: Optional[DeparturesMeta] = None
    error: Optional[str] = None

    def to_payload(self) -> dict:
        """Widget payload: ``{rows, meta}`` or ``{rows: [], error}``."""
        return self.model_dump(by_alias=True, exclude_none=True)
