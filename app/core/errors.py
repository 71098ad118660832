"""RECON — Exception Types."""


class ReconError(Exception):
    """Base class for engine errors surfaced to callers."""


class SourceUnavailableError(ReconError):
    """Raised when a sync or feed collaborator cannot deliver data."""

    def __init__(self, message: str, source: str = "", account_id: str = ""):
        self.source = source
        self.account_id = account_id
        super().__init__(message)


class InvalidDateRangeError(ReconError):
    """Raised when a date-range descriptor cannot be resolved to bounds."""
