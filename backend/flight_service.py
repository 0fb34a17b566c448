"""
Flight and fare catalog service
Handles flight search, fare lookup and admin CRUD for flights and aircraft
"""
import logging
import math
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Tuple

import psycopg2
from psycopg2 import errors as pg_errors
from psycopg2.extras import RealDictCursor

from database import (
    Aircraft, AircraftStatus, FareClass, Flight, FlightStatus,
    BOOKABLE_FLIGHT_STATUSES, TERMINAL_BOOKING_STATUSES,
    build_update, row_to_aircraft, row_to_flight
)
from backend.errors import Conflict, InvalidState, NotFound, ValidationFailed

logger = logging.getLogger(__name__)

# Passengers held on a flight by bookings that still occupy seats
BOOKED_SEATS_SQL = """
    COALESCE((
        SELECT COUNT(*)
        FROM booking_passengers bp
        INNER JOIN bookings b ON bp.booking_id = b.booking_id
        WHERE b.flight_id = f.flight_id AND b.status <> 'cancelled'
    ), 0) AS booked_seats
"""

# Flight joined with aircraft and both airports
_FLIGHT_DETAIL_QUERY = f"""
    SELECT f.*,
           a.model AS aircraft_model, a.capacity,
           dep.airport_name AS from_airport_name, dep.city AS from_city,
           arr.airport_name AS to_airport_name, arr.city AS to_city,
           {BOOKED_SEATS_SQL}
    FROM flights f
    INNER JOIN aircraft a ON f.aircraft_id = a.aircraft_id
    INNER JOIN airports dep ON f.from_airport_code = dep.airport_code
    INNER JOIN airports arr ON f.to_airport_code = arr.airport_code
"""

FLIGHT_UPDATABLE_FIELDS = (
    'flight_number', 'aircraft_id', 'from_airport_code', 'to_airport_code',
    'departure_datetime', 'arrival_datetime', 'base_price', 'business_price',
    'first_class_price', 'status',
)

AIRCRAFT_UPDATABLE_FIELDS = ('model', 'registration', 'capacity', 'status')

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50


def _with_availability(row) -> Flight:
    """Build a Flight and derive its remaining seats"""
    flight = row_to_flight(row)
    if flight.capacity is not None:
        flight.available_seats = max(0, flight.capacity - int(flight.booked_seats or 0))
    return flight


def _enum_value(enum_cls, value):
    try:
        return enum_cls(value).value
    except ValueError:
        raise ValidationFailed(f"Invalid status: {value}")


class FlightService:
    """Service for flight catalog operations"""

    def __init__(self, db_manager):
        self.db = db_manager

    @staticmethod
    def fare_for_class(flight: Flight, fare_class) -> Decimal:
        """
        Price of one seat in a fare class

        Unknown classes are priced as economy.
        """
        return flight.price_for(FareClass.parse(fare_class))

    def search_flights(self, from_code: Optional[str] = None, to_code: Optional[str] = None,
                       departure_date: Optional[date] = None, passengers: int = 1,
                       fare_class=FareClass.ECONOMY) -> List[Flight]:
        """
        Search bookable flights

        Args:
            from_code: Origin airport code
            to_code: Destination airport code
            departure_date: Calendar day of departure
            passengers: Party size used for the total price
            fare_class: Fare class used for the total price

        Returns:
            Flights ordered by departure, each with available_seats and total_price
        """
        fare_class = FareClass.parse(fare_class)
        conditions = ["f.status IN %s"]
        params = [BOOKABLE_FLIGHT_STATUSES]

        if from_code:
            conditions.append("f.from_airport_code = %s")
            params.append(from_code.upper())
        if to_code:
            conditions.append("f.to_airport_code = %s")
            params.append(to_code.upper())
        if departure_date:
            conditions.append("f.departure_datetime::date = %s")
            params.append(departure_date)

        rows = self.db.query(
            f"{_FLIGHT_DETAIL_QUERY} WHERE {' AND '.join(conditions)} "
            "ORDER BY f.departure_datetime ASC",
            params,
        )

        flights = []
        for row in rows:
            flight = _with_availability(row)
            flight.total_price = self.fare_for_class(flight, fare_class) * passengers
            flights.append(flight)
        return flights

    def get_flight(self, flight_id: int) -> Flight:
        """
        Get a flight with aircraft, airports and remaining seats

        Raises:
            NotFound: No such flight
        """
        row = self.db.query_one(f"{_FLIGHT_DETAIL_QUERY} WHERE f.flight_id = %s", (flight_id,))
        if not row:
            raise NotFound("Flight not found")
        return _with_availability(row)

    def get_flight_status(self, flight_number: str) -> Flight:
        """Look a flight up by its public flight number"""
        row = self.db.query_one(
            f"{_FLIGHT_DETAIL_QUERY} WHERE f.flight_number = %s", (flight_number.upper(),)
        )
        if not row:
            raise NotFound("Flight not found")
        return _with_availability(row)

    def list_flights(self, page: int = 1, limit: int = DEFAULT_PAGE_SIZE,
                     search: Optional[str] = None) -> Tuple[List[Flight], dict]:
        """
        Page through all flights for the admin console

        Args:
            page: 1-based page number
            limit: Page size, clamped to 1..100
            search: Substring matched against flight number, cities and airport names

        Returns:
            (flights, pagination) where pagination has page, limit, total, total_pages
        """
        page = max(1, int(page or 1))
        limit = min(MAX_PAGE_SIZE, max(1, int(limit or DEFAULT_PAGE_SIZE)))
        offset = (page - 1) * limit

        where = ""
        params = []
        search = (search or '').strip()
        if search:
            where = """
                WHERE f.flight_number ILIKE %s OR dep.city ILIKE %s OR dep.airport_name ILIKE %s
                   OR arr.city ILIKE %s OR arr.airport_name ILIKE %s
            """
            params = [f"%{search}%"] * 5

        total = self.db.query_one(f"""
            SELECT COUNT(*) AS total
            FROM flights f
            INNER JOIN airports dep ON f.from_airport_code = dep.airport_code
            INNER JOIN airports arr ON f.to_airport_code = arr.airport_code
            {where}
        """, params)['total']

        rows = self.db.query(
            f"{_FLIGHT_DETAIL_QUERY} {where} ORDER BY f.departure_datetime DESC LIMIT %s OFFSET %s",
            params + [limit, offset],
        )

        pagination = {
            'page': page,
            'limit': limit,
            'total': total,
            'total_pages': math.ceil(total / limit) if total else 0,
        }
        return [_with_availability(row) for row in rows], pagination

    def create_flight(self, flight_number: str, aircraft_id: int, from_airport_code: str,
                      to_airport_code: str, departure_datetime: datetime,
                      arrival_datetime: datetime, base_price: Decimal,
                      business_price: Optional[Decimal] = None,
                      first_class_price: Optional[Decimal] = None,
                      status=FlightStatus.SCHEDULED) -> Flight:
        """
        Create a new flight

        Business and first fares default to 1.5x and 2x the base fare.

        Returns:
            Created flight

        Raises:
            ValidationFailed: Arrival not after departure
            NotFound: Unknown aircraft or airport
            Conflict: Flight number already exists
        """
        if arrival_datetime <= departure_datetime:
            raise ValidationFailed("Arrival time must be after departure time")

        base_price = Decimal(str(base_price))
        if business_price is None:
            business_price = (base_price * Decimal('1.5')).quantize(Decimal('0.01'))
        if first_class_price is None:
            first_class_price = (base_price * 2).quantize(Decimal('0.01'))

        flight_number = flight_number.strip().upper()
        status = _enum_value(FlightStatus, status)

        try:
            with self.db.transaction() as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                    cursor.execute("SELECT 1 FROM flights WHERE flight_number = %s", (flight_number,))
                    if cursor.fetchone():
                        raise Conflict("Flight number already exists")

                    cursor.execute("SELECT 1 FROM aircraft WHERE aircraft_id = %s", (aircraft_id,))
                    if not cursor.fetchone():
                        raise NotFound("Aircraft not found")

                    for code in (from_airport_code, to_airport_code):
                        cursor.execute("SELECT 1 FROM airports WHERE airport_code = %s", (code,))
                        if not cursor.fetchone():
                            raise NotFound(f"Airport {code} not found")

                    cursor.execute("""
                        INSERT INTO flights (flight_number, aircraft_id, from_airport_code,
                                             to_airport_code, departure_datetime, arrival_datetime,
                                             base_price, business_price, first_class_price, status)
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                        RETURNING flight_id
                    """, (flight_number, aircraft_id, from_airport_code, to_airport_code,
                          departure_datetime, arrival_datetime, base_price, business_price,
                          first_class_price, status))
                    flight_id = cursor.fetchone()['flight_id']
        except pg_errors.UniqueViolation:
            raise Conflict("Flight number already exists")

        logger.info("Created flight %s (%s)", flight_id, flight_number)
        return self.get_flight(flight_id)

    def update_flight(self, flight_id: int, **fields) -> Flight:
        """
        Update selected columns of a flight

        Args:
            flight_id: Flight to change
            **fields: Any of FLIGHT_UPDATABLE_FIELDS

        Raises:
            NotFound: No such flight
            ValidationFailed: Nothing to update, or arrival would not follow departure
            Conflict: Flight number taken by another flight
        """
        fields = {k: v for k, v in fields.items() if v is not None}
        if not fields:
            raise ValidationFailed("No fields to update")
        if 'status' in fields:
            fields['status'] = _enum_value(FlightStatus, fields['status'])
        if 'flight_number' in fields:
            fields['flight_number'] = fields['flight_number'].strip().upper()

        statement, params = build_update('flights', 'flight_id', flight_id, fields,
                                         FLIGHT_UPDATABLE_FIELDS)

        try:
            with self.db.transaction() as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                    cursor.execute("""
                        SELECT departure_datetime, arrival_datetime
                        FROM flights WHERE flight_id = %s FOR UPDATE
                    """, (flight_id,))
                    current = cursor.fetchone()
                    if not current:
                        raise NotFound("Flight not found")

                    if 'flight_number' in fields:
                        cursor.execute("""
                            SELECT 1 FROM flights WHERE flight_number = %s AND flight_id <> %s
                        """, (fields['flight_number'], flight_id))
                        if cursor.fetchone():
                            raise Conflict("Flight number already exists")

                    departure = fields.get('departure_datetime', current['departure_datetime'])
                    arrival = fields.get('arrival_datetime', current['arrival_datetime'])
                    if arrival <= departure:
                        raise ValidationFailed("Arrival time must be after departure time")

                    cursor.execute(statement, params)
        except pg_errors.UniqueViolation:
            raise Conflict("Flight number already exists")
        except pg_errors.ForeignKeyViolation:
            raise ValidationFailed("Unknown aircraft or airport")

        logger.info("Updated flight %s: %s", flight_id, ", ".join(sorted(fields)))
        return self.get_flight(flight_id)

    def delete_flight(self, flight_id: int) -> None:
        """
        Delete a flight that has no live bookings

        Raises:
            NotFound: No such flight
            InvalidState: A booking on the flight is not cancelled, completed or missed
        """
        with self.db.transaction() as conn:
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1 FROM flights WHERE flight_id = %s FOR UPDATE", (flight_id,))
                if not cursor.fetchone():
                    raise NotFound("Flight not found")

                cursor.execute("""
                    SELECT COUNT(*) FROM bookings
                    WHERE flight_id = %s AND status NOT IN %s
                """, (flight_id, TERMINAL_BOOKING_STATUSES))
                active = cursor.fetchone()[0]
                if active:
                    raise InvalidState(
                        f"Cannot delete flight with {active} active booking(s). Cancel bookings first."
                    )

                cursor.execute("DELETE FROM flights WHERE flight_id = %s", (flight_id,))

        logger.info("Deleted flight %s", flight_id)

    # Aircraft

    def list_aircraft(self) -> List[Aircraft]:
        """List all aircraft"""
        rows = self.db.query("""
            SELECT aircraft_id, model, registration, capacity, status, created_at, updated_at
            FROM aircraft
            ORDER BY model, registration
        """)
        return [row_to_aircraft(row) for row in rows]

    def get_aircraft(self, aircraft_id: int) -> Aircraft:
        """Get aircraft by ID"""
        row = self.db.query_one("""
            SELECT aircraft_id, model, registration, capacity, status, created_at, updated_at
            FROM aircraft WHERE aircraft_id = %s
        """, (aircraft_id,))
        if not row:
            raise NotFound("Aircraft not found")
        return row_to_aircraft(row)

    def create_aircraft(self, model: str, registration: str, capacity: int,
                        status=AircraftStatus.ACTIVE) -> Aircraft:
        """
        Create a new aircraft

        Args:
            model: Aircraft model name
            registration: Tail registration, stored upper-cased
            capacity: Seats sold per flight
            status: Operational status

        Raises:
            Conflict: Registration already exists
        """
        registration = registration.strip().upper()
        status = _enum_value(AircraftStatus, status)

        try:
            with self.db.get_cursor() as cursor:
                cursor.execute("SELECT 1 FROM aircraft WHERE registration = %s", (registration,))
                if cursor.fetchone():
                    raise Conflict("Aircraft registration already exists")

                cursor.execute("""
                    INSERT INTO aircraft (model, registration, capacity, status)
                    VALUES (%s, %s, %s, %s)
                    RETURNING aircraft_id, model, registration, capacity, status,
                              created_at, updated_at
                """, (model.strip(), registration, capacity, status))
                aircraft = row_to_aircraft(cursor.fetchone())
        except pg_errors.UniqueViolation:
            raise Conflict("Aircraft registration already exists")

        logger.info("Created aircraft %s (%s)", aircraft.id, aircraft.registration)
        return aircraft

    def update_aircraft(self, aircraft_id: int, **fields) -> Aircraft:
        """Update selected columns of an aircraft"""
        fields = {k: v for k, v in fields.items() if v is not None}
        if not fields:
            raise ValidationFailed("No fields to update")
        if 'registration' in fields:
            fields['registration'] = fields['registration'].strip().upper()
        if 'status' in fields:
            fields['status'] = _enum_value(AircraftStatus, fields['status'])

        statement, params = build_update('aircraft', 'aircraft_id', aircraft_id, fields,
                                         AIRCRAFT_UPDATABLE_FIELDS)

        try:
            with self.db.get_cursor() as cursor:
                cursor.execute("SELECT 1 FROM aircraft WHERE aircraft_id = %s FOR UPDATE", (aircraft_id,))
                if not cursor.fetchone():
                    raise NotFound("Aircraft not found")

                if 'registration' in fields:
                    cursor.execute("""
                        SELECT 1 FROM aircraft WHERE registration = %s AND aircraft_id <> %s
                    """, (fields['registration'], aircraft_id))
                    if cursor.fetchone():
                        raise Conflict("Aircraft registration already exists")

                cursor.execute(statement, params)
        except pg_errors.UniqueViolation:
            raise Conflict("Aircraft registration already exists")
        except psycopg2.IntegrityError:
            raise ValidationFailed("Invalid aircraft values")

        return self.get_aircraft(aircraft_id)

    def delete_aircraft(self, aircraft_id: int) -> None:
        """
        Delete an aircraft no flight refers to

        Raises:
            NotFound: No such aircraft
            InvalidState: Aircraft is used by at least one flight
        """
        with self.db.transaction() as conn:
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1 FROM aircraft WHERE aircraft_id = %s FOR UPDATE", (aircraft_id,))
                if not cursor.fetchone():
                    raise NotFound("Aircraft not found")

                cursor.execute("SELECT COUNT(*) FROM flights WHERE aircraft_id = %s", (aircraft_id,))
                used = cursor.fetchone()[0]
                if used:
                    raise InvalidState(f"Cannot delete aircraft used in {used} flight(s)")

                cursor.execute("DELETE FROM aircraft WHERE aircraft_id = %s", (aircraft_id,))

        logger.info("Deleted aircraft %s", aircraft_id)
