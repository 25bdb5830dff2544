# services/review/errors.py
from __future__ import annotations

from typing import Optional


class ReviewError(RuntimeError):
    """Base for every failure the review session can surface."""

    kind = "review_error"
    scope = "session"
    summary = "Review operation failed"

    def __init__(self, detail: str = "", *, subject: Optional[str] = None) -> None:
        super().__init__(detail or self.summary)
        self.detail = detail
        self.subject = subject

    def describe(self) -> str:
        head = f"{self.summary} ({self.subject})" if self.subject else self.summary
        return f"{head}: {self.detail}" if self.detail else head


class ListingUnavailable(ReviewError):
    kind = "listing_unavailable"
    scope = "dataset"
    summary = "Could not load the record list for dataset"


class RecordLoadError(ReviewError):
    kind = "record_load_error"
    scope = "record"
    summary = "Could not load record"


class RecordNotFound(RecordLoadError):
    kind = "record_not_found"
    summary = "Record not found"


class RecordUnreadable(RecordLoadError):
    kind = "record_unreadable"
    summary = "Record could not be read"


class LedgerUnavailable(ReviewError):
    """Vote history could not be read. Non-fatal for a record load."""

    kind = "ledger_unavailable"
    scope = "record"
    summary = "Vote history unavailable"


class LedgerWriteError(ReviewError):
    """The vote was not saved. Detail carries the backend's message verbatim."""

    kind = "ledger_write_error"
    scope = "submit"
    summary = "Your vote was not saved"


class ValidationError(ReviewError):
    """Local input problem, raised before any network call."""

    kind = "validation_error"
    scope = "local"
    summary = "Invalid input"
