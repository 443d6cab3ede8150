"""
Error taxonomy for transaction, dispute and rating operations.

Every error carries the HTTP status it maps to and a stable ``error`` code.
Messages are written for end users; the UI shows them verbatim.
"""

from fastapi import status


class TradeCoreError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "trade_core_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(TradeCoreError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not_found"


class NotParticipantError(TradeCoreError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "not_participant"


class TerminalStateError(TradeCoreError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "terminal_state"


class InvalidStateError(TradeCoreError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "invalid_state"


class DuplicateRatingError(TradeCoreError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "duplicate_rating"


class ConflictError(TradeCoreError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "conflict"


class ValidationError(TradeCoreError):
    status_code = 422
    error_code = "validation_error"


class StorageUnavailableError(TradeCoreError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "storage_unavailable"


class ConcurrentUpdateError(Exception):
    """Raised inside a unit of work when a concurrent writer won a race; retried."""
