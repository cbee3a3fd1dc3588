from __future__ import annotations

from typing import List

EXCERPT_LENGTH = 160


class DeparturesError(Exception):
    """Base class for failures while fetching departures."""


class UpstreamHttpError(DeparturesError):
    """Entur answered with a non-2xx status."""

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.excerpt = (body or "")[:EXCERPT_LENGTH]
        super().__init__(f"Entur HTTP {status}: {self.excerpt}")


class UpstreamGraphError(DeparturesError):
    """The GraphQL response carried an ``errors`` list."""

    def __init__(self, messages: List[str]):
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))
