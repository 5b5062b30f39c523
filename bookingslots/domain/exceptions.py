"""
Domain-specific exception hierarchy for the booking slot engine.
"""


class BookingSlotsError(Exception):
    """Base class for all application-level errors."""


class InvalidInputError(BookingSlotsError, ValueError):
    """Raised for structurally invalid input such as a reversed date range."""


class ScheduleError(InvalidInputError):
    """Raised when working windows are malformed or overlap each other."""


class ProviderNotFoundError(BookingSlotsError):
    """Raised when a provider profile cannot be found."""


class ReservationStoreError(BookingSlotsError):
    """Raised when reservation data cannot be fetched, stored or parsed."""


class ReservationConflictError(BookingSlotsError):
    """Raised by a store when an insert would overlap an active reservation."""
