from __future__ import annotations


class BookingError(Exception):
    """
    Base class for every recoverable booking failure.

    None of these are fatal: callers surface them as a short-lived user
    message and carry on with unchanged state.
    """

    level = "warning"


class InvalidState(BookingError):
    """Operating on a seat or a kiosk session that is in the wrong state."""


class CapacityExceeded(BookingError):
    """Selecting more seats than the requested ticket count."""


class EmptySelection(BookingError):
    """Committing an order with nothing selected."""

    level = "error"


class NoSeatsAvailable(BookingError):
    """Auto-select could not find a contiguous block."""


class NavigationBlocked(BookingError):
    """A workflow guard refused the transition."""

    def __init__(self, message: str, *, target: str | None = None):
        self.target = target
        super().__init__(message)


class SeatNotFound(BookingError):
    def __init__(self, row: int, col: int):
        self.row = row
        self.col = col
        super().__init__(f"seat out of bounds: row={row}, col={col}")


class PersistenceError(BookingError):
    level = "error"
