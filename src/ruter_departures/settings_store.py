from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple

from sqlalchemy import JSON, String, create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

DEFAULT_STOP_ID = "defaultStopId"
DEFAULT_STOP_NAME = "defaultStopName"
DEFAULT_LINES = "defaultLines"
DEFAULT_LINE_IDS = "defaultLineIds"
DEFAULT_MAX_RESULTS = "defaultMaxResults"
DEFAULT_MINUTES_AHEAD = "defaultMinutesAhead"
DEFAULT_DIRECTION = "defaultDirection"
DEFAULT_TIME_FORMAT = "defaultTimeFormat"


class SettingsStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class MemorySettingsStore:
    """Dict-backed store; keeps a log of writes for inspection."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})
        self.writes: List[Tuple[str, Any]] = []

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self.writes.append((key, value))

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._data)


class Base(DeclarativeBase):
    pass


class SettingOrm(Base):
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)


def _ensure_sqlite_path(db_url: str) -> None:
    if db_url.startswith("sqlite:///") and ":memory:" not in db_url:
        path_str = db_url.replace("sqlite:///", "", 1)
        # Expand relative paths and user (~)
        Path(path_str).expanduser().parent.mkdir(parents=True, exist_ok=True)


def create_engine_for_url(db_url: str):
    _ensure_sqlite_path(db_url)
    return create_engine(db_url, future=True)


def init_db(db_url: str) -> None:
    engine = create_engine_for_url(db_url)
    Base.metadata.create_all(engine)


class SqlSettingsStore:
    """Key-value settings persisted in a single SQL table."""

    def __init__(self, db_url: str):
        engine = create_engine_for_url(db_url)
        Base.metadata.create_all(engine)
        self._session_maker = sessionmaker(bind=engine, autoflush=False, future=True)

    def get(self, key: str, default: Any = None) -> Any:
        with self._session_maker() as session:
            row = session.get(SettingOrm, key)
            if row is None or row.value is None:
                return default
            return row.value

    def set(self, key: str, value: Any) -> None:
        with self._session_maker() as session:
            row = session.get(SettingOrm, key)
            if row is None:
                row = SettingOrm(key=key)
                session.add(row)
            row.value = value
            session.commit()
