from __future__ import annotations

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from . import __version__

DEFAULT_CLIENT_NAME = "com.haleyproductions.ruter"
RETRY_STATUSES = (429, 500, 502, 503, 504)


def create_session(
    client_name: str = DEFAULT_CLIENT_NAME,
    user_agent: str | None = None,
    total_retries: int = 0,
) -> requests.Session:
    """Create a requests session identifying this client to Entur.

    Args:
        client_name: Value of the ET-Client-Name header Entur requires.
        user_agent: Custom User-Agent header value.
        total_retries: Retry attempts for transient errors. Zero by default;
            departures are fetched once and failures go back to the caller.

    Returns:
        Configured requests Session.
    """
    session = requests.Session()
    retry = Retry(
        total=total_retries,
        read=total_retries,
        connect=total_retries,
        backoff_factor=0.5,
        status_forcelist=RETRY_STATUSES,
        allowed_methods={"POST"},
        raise_on_status=False,
        respect_retry_after_header=True,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    session.headers.update(
        {
            "ET-Client-Name": client_name,
            "User-Agent": user_agent or f"RuterDepartures/{__version__} ({client_name})",
            "Accept": "application/json",
        }
    )

    return session
