from __future__ import annotations

import re
from typing import Optional

_KEYWORD_RE = re.compile(r"(?:spor|track|platform|plattform|stop|stopp|bay)\s*([A-Za-z0-9]+)", re.IGNORECASE | re.ASCII)
_BARE_CODE_RE = re.compile(r"\b([A-Za-z]?\d{1,3})\b", re.ASCII)


def extract_quay_code(name: Optional[str]) -> str:
    """Guess a platform/track code such as "4" or "B" from a quay name."""
    if not name:
        return ""
    text = str(name)
    m = _KEYWORD_RE.search(text) or _BARE_CODE_RE.search(text)
    return m.group(1) if m else ""
