"""
Booking service: the seat/booking ledger
Creates, lists and cancels bookings; the flight row is locked while seats are counted
"""
import logging
import random
import string
import time
from decimal import Decimal
from typing import List, Optional, Sequence

from psycopg2.extras import RealDictCursor

from database import (
    Booking, BookingStatus, FareClass, Flight, FlightStatus, PaymentStatus,
    build_update, row_to_booking, row_to_flight
)
from backend.checkin_window import normalize_seat
from backend.errors import (
    CapacityExceeded, FlightUnavailable, InvalidState, NotFound, SeatTaken, ValidationFailed
)
from backend.flight_service import FlightService
from backend.passenger_service import PassengerDetails, PassengerService

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_uppercase

# Booking joined with its flight, both airports and the owning user
BOOKING_DETAIL_QUERY = """
    SELECT b.*,
           u.email AS user_email,
           u.first_name || ' ' || u.last_name AS user_name,
           f.flight_number, f.departure_datetime, f.arrival_datetime,
           f.status AS flight_status, f.from_airport_code, f.to_airport_code,
           dep.airport_name AS from_airport_name, dep.city AS from_city,
           arr.airport_name AS to_airport_name, arr.city AS to_city
    FROM bookings b
    INNER JOIN users u ON b.user_id = u.user_id
    INNER JOIN flights f ON b.flight_id = f.flight_id
    INNER JOIN airports dep ON f.from_airport_code = dep.airport_code
    INNER JOIN airports arr ON f.to_airport_code = arr.airport_code
"""

OWNER_SETTABLE_STATUSES = (BookingStatus.COMPLETED, BookingStatus.MISSED, BookingStatus.CANCELLED)

# Largest value bookings.total_amount NUMERIC(10, 2) can hold
MAX_TOTAL_AMOUNT = Decimal("99999999.99")


def _enum_value(enum_cls, value):
    try:
        return enum_cls(value).value
    except ValueError:
        raise ValidationFailed(f"Invalid status: {value}")


def to_base36(number: int) -> str:
    """Encode a non-negative integer in upper-case base 36"""
    if number < 0:
        raise ValueError("number must be non-negative")
    digits = []
    while True:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
        if number == 0:
            break
    return ''.join(reversed(digits))


def generate_booking_reference(now_ms: Optional[int] = None, rng=random) -> str:
    """
    Generate a booking reference

    Format: 'BK' + base36 epoch milliseconds + 4 random base36 characters.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = ''.join(rng.choices(_BASE36, k=4))
    return f"BK{to_base36(now_ms)}{suffix}"


def booking_from_row(row) -> Booking:
    """Build a Booking with its flight summary from a BOOKING_DETAIL_QUERY row"""
    booking = row_to_booking(row)
    booking.flight = Flight(
        id=row['flight_id'],
        flight_number=row['flight_number'],
        from_airport_code=row['from_airport_code'],
        to_airport_code=row['to_airport_code'],
        departure_datetime=row['departure_datetime'],
        arrival_datetime=row['arrival_datetime'],
        status=FlightStatus(row['flight_status']),
        from_city=row['from_city'],
        to_city=row['to_city'],
        from_airport_name=row['from_airport_name'],
        to_airport_name=row['to_airport_name'],
    )
    return booking


def held_seats(cursor, flight_id: int, exclude_booking_id: Optional[int] = None) -> set:
    """Seat numbers held on a flight by bookings that are not cancelled"""
    cursor.execute("""
        SELECT bp.seat_number
        FROM booking_passengers bp
        INNER JOIN bookings b ON bp.booking_id = b.booking_id
        WHERE b.flight_id = %s
          AND b.status <> 'cancelled'
          AND bp.seat_number IS NOT NULL
          AND b.booking_id <> COALESCE(%s, -1)
    """, (flight_id, exclude_booking_id))
    return {row['seat_number'].upper() for row in cursor.fetchall()}


def lock_flight(cursor, flight_id: int):
    """Lock a flight row for the rest of the transaction and return it with capacity"""
    cursor.execute("""
        SELECT f.*, a.capacity
        FROM flights f
        INNER JOIN aircraft a ON f.aircraft_id = a.aircraft_id
        WHERE f.flight_id = %s
        FOR UPDATE OF f
    """, (flight_id,))
    return cursor.fetchone()


class BookingService:
    """Service for booking operations with transaction safety"""

    def __init__(self, db_manager):
        self.db = db_manager

    def _reference_exists(self, cursor, reference: str) -> bool:
        cursor.execute("SELECT 1 FROM bookings WHERE booking_reference = %s", (reference,))
        return cursor.fetchone() is not None

    def create_booking(self, user_id: int, flight_id: int,
                       passengers: Sequence[PassengerDetails],
                       fare_class=FareClass.ECONOMY) -> Booking:
        """
        Book seats on a flight for one or more passengers

        Args:
            user_id: Booking owner
            flight_id: Flight to book
            passengers: One entry per traveller, reusing a saved passenger by id
                or carrying new passenger details, with an optional seat number
            fare_class: Fare class; unknown classes book as economy

        Returns:
            Created booking with flight summary and passengers

        Raises:
            ValidationFailed: No passengers, or a total above the largest storable amount
            NotFound: Unknown flight, or a reused passenger the user does not own
            FlightUnavailable: Flight is not open for booking
            CapacityExceeded: Fewer seats remain than passengers requested
            SeatTaken: A requested seat is already held on this flight
        """
        if not passengers:
            raise ValidationFailed("Flight ID and passengers data are required")

        fare_class = FareClass.parse(fare_class)
        count = len(passengers)

        with self.db.transaction() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                row = lock_flight(cursor, flight_id)
                if not row:
                    raise NotFound("Flight not found")

                flight = row_to_flight(row)
                if not flight.status.is_bookable:
                    raise FlightUnavailable("Flight not found or not available")

                cursor.execute("""
                    SELECT COUNT(*) AS booked
                    FROM booking_passengers bp
                    INNER JOIN bookings b ON bp.booking_id = b.booking_id
                    WHERE b.flight_id = %s AND b.status <> 'cancelled'
                """, (flight_id,))
                available = flight.capacity - cursor.fetchone()['booked']

                if available < count:
                    logger.warning("Flight %s has %s seat(s) left, %s requested",
                                   flight_id, available, count)
                    raise CapacityExceeded(max(0, available))

                total_amount = Decimal(FlightService.fare_for_class(flight, fare_class)) * count
                if total_amount > MAX_TOTAL_AMOUNT:
                    raise ValidationFailed(
                        f"Booking total {total_amount} exceeds the maximum of {MAX_TOTAL_AMOUNT}"
                    )

                reference = generate_booking_reference()
                while self._reference_exists(cursor, reference):
                    reference = generate_booking_reference()

                cursor.execute("""
                    INSERT INTO bookings (booking_reference, user_id, flight_id,
                                          number_of_passengers, fare_class, total_amount,
                                          status, payment_status)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING booking_id
                """, (reference, user_id, flight_id, count, fare_class.value, total_amount,
                      BookingStatus.CONFIRMED.value, PaymentStatus.PAID.value))
                booking_id = cursor.fetchone()['booking_id']

                taken = held_seats(cursor, flight_id)
                for details in passengers:
                    if details.passenger_id:
                        passenger = PassengerService.owned_passenger(cursor, user_id, details.passenger_id)
                    else:
                        passenger = PassengerService.insert_passenger(
                            cursor, user_id, details, is_saved=bool(details.save)
                        )

                    seat = normalize_seat(details.seat_number)
                    if seat:
                        if seat in taken:
                            raise SeatTaken(seat)
                        taken.add(seat)

                    cursor.execute("""
                        INSERT INTO booking_passengers (booking_id, passenger_id, seat_number)
                        VALUES (%s, %s, %s)
                    """, (booking_id, passenger.id, seat))

        logger.info("Booking %s (%s) created: user %s, flight %s, %s x %s",
                    booking_id, reference, user_id, flight_id, count, fare_class.value)
        return self.get_booking(booking_id, user_id)

    def cancel_booking(self, booking_id: int, user_id: int) -> Booking:
        """
        Cancel a booking and refund it

        Seat numbers stay on the passenger links; cancelled bookings no longer
        count against capacity or seat checks.

        Raises:
            NotFound: Missing or not owned by the user
            InvalidState: Already cancelled or completed
        """
        with self.db.transaction() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute("""
                    SELECT status FROM bookings
                    WHERE booking_id = %s AND user_id = %s
                    FOR UPDATE
                """, (booking_id, user_id))
                row = cursor.fetchone()
                if not row:
                    raise NotFound("Booking not found")

                status = BookingStatus(row['status'])
                if status == BookingStatus.CANCELLED:
                    raise InvalidState("Booking is already cancelled")
                if status == BookingStatus.COMPLETED:
                    raise InvalidState("Cannot cancel a completed booking")

                cursor.execute("""
                    UPDATE bookings
                    SET status = %s, payment_status = %s, updated_at = NOW()
                    WHERE booking_id = %s
                """, (BookingStatus.CANCELLED.value, PaymentStatus.REFUNDED.value, booking_id))

        logger.info("Booking %s cancelled by user %s", booking_id, user_id)
        return self.get_booking(booking_id, user_id)

    def list_bookings(self, user_id: int, status: Optional[str] = None) -> List[Booking]:
        """
        Bookings of a user, newest first

        Args:
            user_id: Owner
            status: Booking status filter; None or 'all' returns every booking
        """
        conditions = ["b.user_id = %s"]
        params = [user_id]
        if status and status != 'all':
            conditions.append("b.status = %s")
            params.append(_enum_value(BookingStatus, status))

        rows = self.db.query(
            f"{BOOKING_DETAIL_QUERY} WHERE {' AND '.join(conditions)} "
            "ORDER BY b.booking_date DESC, b.booking_id DESC",
            params,
        )
        return [booking_from_row(row) for row in rows]

    def get_booking(self, booking_id: int, user_id: Optional[int] = None) -> Booking:
        """
        Get a booking with flight summary and passengers

        Args:
            booking_id: Booking ID
            user_id: Owner; None skips the ownership check (admin access)

        Raises:
            NotFound: Missing or not owned by the user
        """
        with self.db.get_cursor() as cursor:
            if user_id is None:
                cursor.execute(f"{BOOKING_DETAIL_QUERY} WHERE b.booking_id = %s", (booking_id,))
            else:
                cursor.execute(f"{BOOKING_DETAIL_QUERY} WHERE b.booking_id = %s AND b.user_id = %s",
                               (booking_id, user_id))
            row = cursor.fetchone()
            if not row:
                raise NotFound("Booking not found")

            booking = booking_from_row(row)
            booking.passengers = PassengerService.booking_passengers(cursor, booking_id)
            return booking

    def update_status(self, booking_id: int, user_id: int, status) -> Booking:
        """
        Owner-driven status change to completed, missed or cancelled

        Raises:
            ValidationFailed: Status outside completed/missed/cancelled
            NotFound: Missing or not owned by the user
            InvalidState: Booking already cancelled, completed or missed
        """
        try:
            status = BookingStatus(status)
        except ValueError:
            status = None
        if status not in OWNER_SETTABLE_STATUSES:
            raise ValidationFailed("Valid status is required (completed, missed, or cancelled)")

        with self.db.transaction() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute("""
                    SELECT status FROM bookings
                    WHERE booking_id = %s AND user_id = %s
                    FOR UPDATE
                """, (booking_id, user_id))
                row = cursor.fetchone()
                if not row:
                    raise NotFound("Booking not found")

                current = BookingStatus(row['status'])
                if current.is_terminal:
                    raise InvalidState(f"Booking is already {current.value}")

                fields = {'status': status.value}
                if status == BookingStatus.CANCELLED:
                    fields['payment_status'] = PaymentStatus.REFUNDED.value
                statement, params = build_update('bookings', 'booking_id', booking_id, fields,
                                                 ('status', 'payment_status'))
                cursor.execute(statement, params)

        logger.info("Booking %s moved %s -> %s by user %s",
                    booking_id, current.value, status.value, user_id)
        return self.get_booking(booking_id, user_id)

    # Admin console

    def admin_list_bookings(self, status: Optional[str] = None) -> List[Booking]:
        """Every booking, newest first, optionally filtered by status"""
        where = ""
        params = []
        if status and status != 'all':
            where = "WHERE b.status = %s"
            params.append(_enum_value(BookingStatus, status))

        rows = self.db.query(
            f"{BOOKING_DETAIL_QUERY} {where} ORDER BY b.booking_date DESC, b.booking_id DESC",
            params,
        )
        return [booking_from_row(row) for row in rows]

    def admin_get_booking(self, booking_id: int) -> Booking:
        return self.get_booking(booking_id)

    def admin_update_status(self, booking_id: int, status,
                            payment_status=None) -> Booking:
        """
        Set a booking's status and optionally its payment status

        Raises:
            ValidationFailed: Unknown status or payment status
            NotFound: No such booking
        """
        fields = {'status': _enum_value(BookingStatus, status)}
        if payment_status is not None:
            fields['payment_status'] = _enum_value(PaymentStatus, payment_status)

        statement, params = build_update('bookings', 'booking_id', booking_id, fields,
                                         ('status', 'payment_status'))

        with self.db.get_cursor() as cursor:
            cursor.execute(statement, params)
            if cursor.rowcount == 0:
                raise NotFound("Booking not found")

        logger.info("Admin set booking %s to %s", booking_id, ", ".join(
            f"{k}={v}" for k, v in sorted(fields.items())))
        return self.get_booking(booking_id)
