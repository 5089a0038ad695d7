"""Error taxonomy for Corex.

Each class maps to one HTTP status in the application factory.
"""

from __future__ import annotations


class CorexError(Exception):
    """Base class for all Corex errors."""


class ValidationError(CorexError):
    """Malformed or missing input. Raised before any side effect."""

    def __init__(self, title: str, details: str, **extra: str):
        super().__init__(details)
        self.title = title
        self.details = details
        self.extra = extra


class NotFoundError(CorexError):
    """No mapping exists for the requested identifier."""

    def __init__(self, corex_id: str):
        super().__init__(f"Corex resource not found: {corex_id}")
        self.corex_id = corex_id


class UpstreamFailure(CorexError):
    """Origin unreachable, timed out, or answered with a non-success status."""


class StoreError(CorexError):
    """Mapping store backend I/O failure."""
