"""
Passenger registry service
Saved passengers on user accounts and the passenger rows linked to bookings
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from database import Passenger, BookingPassenger, row_to_passenger, row_to_booking_passenger
from backend.errors import NotFound, ValidationFailed

logger = logging.getLogger(__name__)

PASSENGER_COLUMNS = """
    passenger_id, user_id, first_name, last_name, date_of_birth,
    passport_number, nationality, is_saved, created_at
"""


@dataclass
class PassengerDetails:
    """One traveller on a booking request: an existing passenger id or new details"""
    passenger_id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    passport_number: Optional[str] = None
    nationality: Optional[str] = None
    save: bool = False
    seat_number: Optional[str] = None


class PassengerService:
    """Service for passenger management operations"""

    def __init__(self, db_manager):
        self.db = db_manager

    def list_saved(self, user_id: int) -> List[Passenger]:
        """Saved passengers of a user, newest first"""
        rows = self.db.query(f"""
            SELECT {PASSENGER_COLUMNS}
            FROM passengers
            WHERE user_id = %s AND is_saved = TRUE
            ORDER BY created_at DESC, passenger_id DESC
        """, (user_id,))
        return [row_to_passenger(row) for row in rows]

    def add_saved(self, user_id: int, first_name: str, last_name: str,
                  date_of_birth: Optional[date] = None, passport_number: Optional[str] = None,
                  nationality: Optional[str] = None) -> Passenger:
        """
        Save a passenger profile on a user's account

        Args:
            user_id: Owning user
            first_name: First name
            last_name: Last name
            date_of_birth: Date of birth (optional)
            passport_number: Passport number (optional)
            nationality: Nationality (optional)

        Returns:
            Created passenger object
        """
        with self.db.get_cursor() as cursor:
            passenger = self.insert_passenger(cursor, user_id, PassengerDetails(
                first_name=first_name,
                last_name=last_name,
                date_of_birth=date_of_birth,
                passport_number=passport_number,
                nationality=nationality,
            ), is_saved=True)

        logger.info("User %s saved passenger %s", user_id, passenger.id)
        return passenger

    @staticmethod
    def insert_passenger(cursor, user_id: int, details: PassengerDetails,
                         is_saved: bool = False) -> Passenger:
        """Insert a passenger row inside the caller's transaction"""
        if not details.first_name or not details.last_name:
            raise ValidationFailed("Passenger first and last name are required")

        cursor.execute(f"""
            INSERT INTO passengers (user_id, first_name, last_name, date_of_birth,
                                    passport_number, nationality, is_saved)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING {PASSENGER_COLUMNS}
        """, (user_id, details.first_name.strip(), details.last_name.strip(),
              details.date_of_birth, details.passport_number or None,
              details.nationality or None, is_saved))
        return row_to_passenger(cursor.fetchone())

    @staticmethod
    def owned_passenger(cursor, user_id: int, passenger_id: int) -> Passenger:
        """
        Load a passenger the user may attach to a booking

        Raises:
            NotFound: Passenger does not exist or belongs to someone else
        """
        cursor.execute(f"""
            SELECT {PASSENGER_COLUMNS}
            FROM passengers
            WHERE passenger_id = %s AND user_id = %s
        """, (passenger_id, user_id))
        row = cursor.fetchone()
        if not row:
            raise NotFound(f"Passenger {passenger_id} not found")
        return row_to_passenger(row)

    @staticmethod
    def booking_passengers(cursor, booking_id: int, by_name: bool = False) -> List[BookingPassenger]:
        """
        Passengers linked to a booking

        Ordered by link id, which is the order seats are assigned in, or by
        last then first name when ``by_name`` is set.
        """
        order = "p.last_name, p.first_name" if by_name else "bp.booking_passenger_id"
        cursor.execute(f"""
            SELECT bp.booking_passenger_id, bp.booking_id, bp.passenger_id, bp.seat_number,
                   p.first_name, p.last_name, p.date_of_birth, p.passport_number, p.nationality
            FROM booking_passengers bp
            INNER JOIN passengers p ON bp.passenger_id = p.passenger_id
            WHERE bp.booking_id = %s
            ORDER BY {order}
        """, (booking_id,))
        return [row_to_booking_passenger(row) for row in cursor.fetchall()]

