"""
Business-rule errors raised by the services
Each carries the HTTP status the API answers with
"""
from typing import Any, Dict, Optional


class ReservationError(ValueError):
    """Base class for every rejected request"""

    status_code = 400
    code = "error"

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None):
        self.message = message
        self.data = data
        super().__init__(message)


class ValidationFailed(ReservationError):
    code = "validation_failed"


class Unauthenticated(ReservationError):
    status_code = 401
    code = "unauthenticated"


class Forbidden(ReservationError):
    status_code = 403
    code = "forbidden"


class NameMismatch(Forbidden):
    """No passenger on the booking carries the given last name"""
    code = "name_mismatch"


class NotFound(ReservationError):
    status_code = 404
    code = "not_found"


class FlightUnavailable(NotFound):
    """Flight exists but is not open for booking"""
    code = "flight_unavailable"


class Conflict(ReservationError):
    status_code = 409
    code = "conflict"


class InvalidState(ReservationError):
    code = "invalid_state"


class CapacityExceeded(InvalidState):
    code = "capacity_exceeded"

    def __init__(self, available: int):
        super().__init__(
            f"Not enough seats available. Only {available} seat(s) remaining.",
            {'available_seats': available},
        )
        self.available = available


class Departed(InvalidState):
    code = "departed"

    def __init__(self, message: str = "Flight has already departed. Check-in is no longer available."):
        super().__init__(message)


class TooEarly(InvalidState):
    code = "too_early"

    def __init__(self, hours_remaining: int):
        super().__init__(
            "Check-in opens 24 hours before departure. "
            f"Check-in will be available {hours_remaining} hours from now.",
            {'hours_remaining': hours_remaining},
        )
        self.hours_remaining = hours_remaining


class CountMismatch(InvalidState):
    code = "count_mismatch"

    def __init__(self, seats: int, passengers: int):
        super().__init__(
            f"Number of seat numbers ({seats}) does not match number of passengers ({passengers})"
        )


class AlreadyCheckedIn(InvalidState):
    code = "already_checked_in"

    def __init__(self, message: str = "Check-in already completed for this booking"):
        super().__init__(message)


class SeatTaken(InvalidState):
    code = "seat_taken"

    def __init__(self, seat_number: str):
        super().__init__(
            f"Seat {seat_number} is already taken on this flight",
            {'seat_number': seat_number},
        )
        self.seat_number = seat_number
