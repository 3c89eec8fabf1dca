# rentradar/domain/errors.py
from __future__ import annotations


class ScrapeError(RuntimeError):
    """Base class for aggregation-pipeline failures."""


class NetworkError(ScrapeError):
    """A static fetch failed after retries (transport error, timeout, or bad status)."""

    def __init__(self, message: str, *, url: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class RenderError(ScrapeError):
    """The rendered-browser escalation could not produce a document."""

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class ParseError(ScrapeError):
    """A raw record carried nothing the normalizer could turn into a property.

    Returned by the normalizer rather than raised.
    """

    def __init__(self, message: str, *, source_id: str | None = None) -> None:
        super().__init__(message)
        self.source_id = source_id


class ValidationError(ScrapeError):
    """Quality-gate rejection of one property."""

    def __init__(self, reasons: list[str]) -> None:
        super().__init__("; ".join(reasons) or "invalid")
        self.reasons = reasons


class CriteriaError(ValueError):
    """Search criteria that no listing could ever satisfy."""

    def __init__(self, problems: list[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = problems


# Errors that end one source's pagination loop (and nothing more)
SCRAPER_ERRORS = (NetworkError, RenderError)


__all__ = [
    "ScrapeError",
    "NetworkError",
    "RenderError",
    "ParseError",
    "ValidationError",
    "CriteriaError",
    "SCRAPER_ERRORS",
]
