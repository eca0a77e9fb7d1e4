# backend/offleash/services/errors.py


class SchedulingError(Exception):
    """Base class for scheduling-domain errors."""


class RecipeValidationError(SchedulingError, ValueError):
    """Structurally invalid request. Raised before any write."""


class NotFoundError(SchedulingError):
    """A referenced walker, service, location or series does not exist."""


class BookingConflict(SchedulingError):
    """The single-creation path refused an occurrence."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason
