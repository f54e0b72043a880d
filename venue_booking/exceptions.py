"""
Booking error taxonomy.

Services raise these; main.py turns them into JSON responses using the
status_code carried on each class.
"""

from typing import Optional


class BookingError(Exception):
    """Base class for all admission-control errors"""

    status_code = 400

    def __init__(self, detail: str, extra: Optional[dict] = None):
        super().__init__(detail)
        self.detail = detail
        self.extra = extra or {}


class ValidationError(BookingError):
    """Malformed input, rejected before any store access"""

    status_code = 400


class NotFoundError(BookingError):
    status_code = 404


class LimitExceededError(BookingError):
    """Customer is over their nightly table quota"""

    status_code = 403


class CombinationUnavailableError(BookingError):
    status_code = 409


class ConflictError(BookingError):
    """A concurrent write won the race; the admission sequence may be retried"""

    status_code = 409


class GenerationExhausted(BookingError):
    """No unique reference or check-in code could be drawn"""

    status_code = 500


class PastEventError(BookingError):
    status_code = 400


class AlreadyCancelledError(BookingError):
    status_code = 409


class AlreadyCheckedInError(BookingError):
    status_code = 409


class InvalidStatusTransition(BookingError):
    status_code = 400
