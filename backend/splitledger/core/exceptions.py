"""
Ledger error taxonomy.

Every service in the ledger raises one of these; the API layer turns them into
JSON error responses with the attached status code.
"""
from typing import Any


class LedgerError(Exception):
    """Base class for all ledger errors."""
    status_code = 400

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(LedgerError):
    """Bad input shape or range. Never retried automatically."""
    status_code = 422


class NotFound(LedgerError):
    """Referenced entity is missing or soft-deleted."""
    status_code = 404


class Forbidden(LedgerError):
    """Caller lacks the required relationship to the entity."""
    status_code = 403


class InvalidState(LedgerError):
    """Operation is not legal from the entity's current status."""
    status_code = 409


class StaleDataError(LedgerError):
    """Data changed between read and write; re-fetch and retry once."""
    status_code = 409


class AgreementStaleError(StaleDataError):
    """Settlements referenced by an agreement are no longer all open."""
