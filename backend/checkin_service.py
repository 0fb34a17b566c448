"""
Online check-in service
Looks bookings up by reference and last name and assigns seats inside the check-in window
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from psycopg2.extras import RealDictCursor

from database import Booking, BookingPassenger, BookingStatus, CheckIn, CheckInStatus, row_to_check_in
from backend.booking_service import BOOKING_DETAIL_QUERY, booking_from_row, held_seats, lock_flight
from backend.checkin_window import (
    DEFAULT_GATE, WindowState, boarding_time_for, evaluate, normalize_seat
)
from backend.errors import (
    AlreadyCheckedIn, CountMismatch, Departed, Forbidden, InvalidState, NameMismatch,
    NotFound, SeatTaken, TooEarly, ValidationFailed
)
from backend.passenger_service import PassengerService

logger = logging.getLogger(__name__)


@dataclass
class CheckInLookup:
    """Booking found for check-in, with its passengers ordered by name"""
    booking: Booking
    passengers: List[BookingPassenger] = field(default_factory=list)
    already_checked_in: bool = False
    check_in: Optional[CheckIn] = None


def _mark_missed(cursor, booking_id: int):
    cursor.execute("""
        UPDATE bookings SET status = %s, updated_at = NOW()
        WHERE booking_id = %s
    """, (BookingStatus.MISSED.value, booking_id))


def _existing_check_in(cursor, booking_id: int) -> Optional[CheckIn]:
    cursor.execute("""
        SELECT check_in_id, booking_id, check_in_datetime, gate_number, boarding_time, status
        FROM check_ins WHERE booking_id = %s
    """, (booking_id,))
    return row_to_check_in(cursor.fetchone())


class CheckInService:
    """Service for the check-in flow"""

    def __init__(self, db_manager):
        self.db = db_manager

    def search(self, booking_reference: str, last_name: str, user_id: int) -> CheckInLookup:
        """
        Find a booking for check-in

        A confirmed booking whose flight has left without a check-in is moved
        to missed; that change is committed before Departed is raised.

        Args:
            booking_reference: Booking reference
            last_name: Last name of any passenger on the booking
            user_id: Caller, who must own the booking

        Returns:
            CheckInLookup; already_checked_in is set when a completed check-in exists

        Raises:
            NotFound: Unknown reference
            Forbidden: Booking belongs to another user
            NameMismatch: No passenger has that last name
            InvalidState: Booking is not confirmed
            Departed: Flight has left
            TooEarly: Window not open yet
        """
        departed = False

        with self.db.transaction() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(
                    f"{BOOKING_DETAIL_QUERY} WHERE b.booking_reference = %s FOR UPDATE OF b",
                    (booking_reference.strip().upper(),),
                )
                row = cursor.fetchone()
                if not row:
                    raise NotFound("Booking not found. Please check your booking reference.")

                booking = booking_from_row(row)
                if booking.user_id != user_id:
                    raise Forbidden("Access denied: This booking does not belong to you")

                cursor.execute("""
                    SELECT 1
                    FROM booking_passengers bp
                    INNER JOIN passengers p ON bp.passenger_id = p.passenger_id
                    WHERE bp.booking_id = %s AND LOWER(p.last_name) = LOWER(%s)
                """, (booking.id, last_name.strip()))
                if not cursor.fetchone():
                    raise NameMismatch(
                        "Last name does not match any passenger in this booking. "
                        "Please verify the last name of one of the passengers."
                    )

                if booking.status != BookingStatus.CONFIRMED:
                    raise InvalidState(
                        f"This booking cannot be checked in. Current status: {booking.status.value}"
                    )

                check_in = _existing_check_in(cursor, booking.id)
                window = evaluate(booking.flight.departure_datetime)

                if window.state == WindowState.DEPARTED:
                    if check_in is None:
                        _mark_missed(cursor, booking.id)
                        logger.info("Booking %s marked missed at check-in search", booking.id)
                    departed = True
                elif window.state == WindowState.TOO_EARLY:
                    raise TooEarly(window.hours_remaining)
                else:
                    passengers = PassengerService.booking_passengers(cursor, booking.id, by_name=True)

        if departed:
            raise Departed("Flight has already departed. Booking marked as missed if not checked in.")

        booking.passengers = passengers
        return CheckInLookup(
            booking=booking,
            passengers=passengers,
            already_checked_in=bool(check_in and check_in.status == CheckInStatus.COMPLETED),
            check_in=check_in,
        )

    def confirm(self, booking_id: int, user_id: int, seat_numbers: Sequence[str],
                gate_number: Optional[str] = None) -> CheckIn:
        """
        Check a booking in and assign one seat per passenger

        Seats are assigned positionally to the booking's passengers in link
        order. Boarding starts 30 minutes before departure.

        Args:
            booking_id: Booking to check in
            user_id: Caller, who must own the booking
            seat_numbers: One seat per passenger
            gate_number: Departure gate, 'TBA' when omitted

        Returns:
            Created CheckIn with the assigned seats

        Raises:
            NotFound: Missing or not owned
            InvalidState: Booking is not confirmed
            AlreadyCheckedIn: A check-in already exists
            Departed: Flight has left; the booking is committed as missed
            TooEarly: Window not open yet
            CountMismatch: Seat count differs from passenger count
            SeatTaken: Seat held by another booking or repeated in the request
        """
        departed = False

        with self.db.transaction() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute("""
                    SELECT booking_id, flight_id, status FROM bookings
                    WHERE booking_id = %s AND user_id = %s
                    FOR UPDATE
                """, (booking_id, user_id))
                booking = cursor.fetchone()
                if not booking:
                    raise NotFound("Booking not found or cannot be checked in")
                if booking['status'] != BookingStatus.CONFIRMED.value:
                    raise InvalidState(
                        f"This booking cannot be checked in. Current status: {booking['status']}"
                    )

                flight = lock_flight(cursor, booking['flight_id'])

                if _existing_check_in(cursor, booking_id):
                    raise AlreadyCheckedIn()

                window = evaluate(flight['departure_datetime'])

                if window.state == WindowState.DEPARTED:
                    _mark_missed(cursor, booking_id)
                    logger.info("Booking %s marked missed at check-in confirm", booking_id)
                    departed = True
                elif window.state == WindowState.TOO_EARLY:
                    raise TooEarly(window.hours_remaining)
                else:
                    links = PassengerService.booking_passengers(cursor, booking_id)
                    if len(seat_numbers) != len(links):
                        raise CountMismatch(len(seat_numbers), len(links))

                    seats = [normalize_seat(seat) for seat in seat_numbers]
                    if not all(seats):
                        raise ValidationFailed("Each seat number must be a non-empty string")

                    taken = held_seats(cursor, booking['flight_id'], exclude_booking_id=booking_id)
                    assigned = set()
                    for seat in seats:
                        if seat in taken or seat in assigned:
                            raise SeatTaken(seat)
                        assigned.add(seat)

                    cursor.execute("""
                        INSERT INTO check_ins (booking_id, check_in_datetime, gate_number,
                                               boarding_time, status)
                        VALUES (%s, NOW(), %s, %s, %s)
                        RETURNING check_in_id, booking_id, check_in_datetime, gate_number,
                                  boarding_time, status
                    """, (booking_id, (gate_number or '').strip() or DEFAULT_GATE,
                          boarding_time_for(flight['departure_datetime']),
                          CheckInStatus.COMPLETED.value))
                    check_in = row_to_check_in(cursor.fetchone())

                    for link, seat in zip(links, seats):
                        cursor.execute("""
                            UPDATE booking_passengers SET seat_number = %s
                            WHERE booking_passenger_id = %s
                        """, (seat, link.id))
                    check_in.seats = seats

        if departed:
            raise Departed("Flight has already departed. Booking has been marked as missed.")

        logger.info("Booking %s checked in: seats %s, gate %s",
                    booking_id, ", ".join(check_in.seats), check_in.gate_number)
        return check_in
