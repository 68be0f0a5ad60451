from __future__ import annotations


class DomainError(Exception):
    """Base for domain errors."""


class InvalidRangeError(DomainError):
    """Date range start is after its end."""


class MissingDataError(DomainError):
    """Smoothing window requested without its trailing days cached."""

    def __init__(self, message: str, *, metric_id: str, missing_days: list | None = None):
        super().__init__(message)
        self.metric_id = metric_id
        self.missing_days = list(missing_days or [])


class DailyFeesFetchError(DomainError):
    """The daily fees source could not answer the request."""


class FeeSeriesInputError(DomainError):
    """Invalid parameters for assembling a fee series."""


class FeeSessionNotFoundError(DomainError):
    """Fee session does not exist or was evicted."""
