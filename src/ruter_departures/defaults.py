from __future__ import annotations

import logging
import re
import unicodedata
from typing import Any, Iterable, List, Tuple

from .models import StopDefaults
from .settings_store import (
    DEFAULT_DIRECTION,
    DEFAULT_LINES,
    DEFAULT_MAX_RESULTS,
    DEFAULT_MINUTES_AHEAD,
    DEFAULT_STOP_ID,
    DEFAULT_STOP_NAME,
    DEFAULT_TIME_FORMAT,
    SettingsStore,
)

logger = logging.getLogger(__name__)

FALLBACK_MAX_RESULTS = 50
FALLBACK_MINUTES_AHEAD = 120
FALLBACK_DIRECTION = "any"
FALLBACK_TIME_FORMAT = "auto"

# Bokmål places these after z; ä/ö are treated as æ/ø.
_NORWEGIAN_LETTERS = {"æ": "{", "ä": "{", "ø": "|", "ö": "|", "å": "}"}
_DIGITS_RE = re.compile(r"(\d+)")


def _js_string(v: Any) -> str:
    # Stored line codes use JavaScript spellings: true and 1, not True and 1.0
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return str(v)


def as_string_array(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    out: List[str] = []
    for v in value:
        if v is None:
            continue
        s = _js_string(v).strip()
        if s:
            out.append(s)
    return out


def _fold(text: str) -> str:
    chars = []
    for ch in text.casefold():
        if ch in _NORWEGIAN_LETTERS:
            chars.append(_NORWEGIAN_LETTERS[ch])
            continue
        base = unicodedata.normalize("NFKD", ch)
        chars.append("".join(c for c in base if not unicodedata.combining(c)))
    return "".join(chars)


def _collation_key(code: str) -> Tuple:
    parts = []
    for i, chunk in enumerate(_DIGITS_RE.split(code)):
        if not chunk:
            continue
        # Odd indexes hold the captured digit runs
        parts.append((0, int(chunk), "") if i % 2 else (1, 0, _fold(chunk)))
    return (tuple(parts), code)


def sort_line_codes(codes: Iterable[str]) -> List[str]:
    """Deduplicate line codes and sort them the way a Norwegian reader expects.

    Digit runs compare numerically ("2" < "12"), letters ignore case and
    accents, and æ/ø/å come after z.
    """
    return sorted({str(c) for c in codes}, key=_collation_key)


def normalize_defaults(store: SettingsStore) -> bool:
    """Make sure every stored default is present and well-typed.

    Only keys that need correcting are written, so running this on already
    normalized settings is a no-op. Returns whether anything was written.
    """
    dirty = False

    if not isinstance(store.get(DEFAULT_STOP_ID), str):
        store.set(DEFAULT_STOP_ID, "")
        dirty = True
    if not isinstance(store.get(DEFAULT_STOP_NAME), str):
        store.set(DEFAULT_STOP_NAME, "")
        dirty = True

    stored_lines = store.get(DEFAULT_LINES)
    unique_sorted = sort_line_codes(as_string_array(stored_lines))
    if not isinstance(stored_lines, list) or stored_lines != unique_sorted:
        store.set(DEFAULT_LINES, unique_sorted)
        dirty = True

    # Display defaults are only filled in when missing
    for key, fallback in (
        (DEFAULT_MAX_RESULTS, FALLBACK_MAX_RESULTS),
        (DEFAULT_MINUTES_AHEAD, FALLBACK_MINUTES_AHEAD),
        (DEFAULT_DIRECTION, FALLBACK_DIRECTION),
        (DEFAULT_TIME_FORMAT, FALLBACK_TIME_FORMAT),
    ):
        if store.get(key) is None:
            store.set(key, fallback)
            dirty = True

    if dirty:
        logger.debug("Normalized default settings")
    return dirty


def get_defaults(store: SettingsStore) -> StopDefaults:
    return StopDefaults(
        stop_id=str(store.get(DEFAULT_STOP_ID) or ""),
        stop_name=str(store.get(DEFAULT_STOP_NAME) or ""),
        lines=as_string_array(store.get(DEFAULT_LINES)),
    )
