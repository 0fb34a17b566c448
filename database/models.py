"""
Database models for the SkyWings booking system
Plain Python classes and enums (no ORM)
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
import enum


class UserRole(enum.Enum):
    """User role enumeration"""
    ADMIN = "admin"
    CUSTOMER = "customer"


class UserStatus(enum.Enum):
    """User account status enumeration"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class AircraftStatus(enum.Enum):
    """Aircraft status enumeration"""
    ACTIVE = "active"
    MAINTENANCE = "maintenance"
    RETIRED = "retired"


class FlightStatus(enum.Enum):
    """Flight status enumeration"""
    SCHEDULED = "scheduled"
    BOARDING = "boarding"
    DELAYED = "delayed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @property
    def is_bookable(self) -> bool:
        return self in (FlightStatus.SCHEDULED, FlightStatus.BOARDING)


BOOKABLE_FLIGHT_STATUSES = tuple(s.value for s in FlightStatus if s.is_bookable)


class FareClass(enum.Enum):
    """Fare class enumeration"""
    ECONOMY = "economy"
    BUSINESS = "business"
    FIRST = "first"

    @classmethod
    def parse(cls, value) -> "FareClass":
        """Map a client-supplied class onto a fare tier; unknown values price as economy"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.ECONOMY


class BookingStatus(enum.Enum):
    """Booking status enumeration"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    MISSED = "missed"

    @property
    def is_terminal(self) -> bool:
        return self in (BookingStatus.CANCELLED, BookingStatus.COMPLETED, BookingStatus.MISSED)


TERMINAL_BOOKING_STATUSES = tuple(s.value for s in BookingStatus if s.is_terminal)


class PaymentStatus(enum.Enum):
    """Payment status enumeration"""
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class CheckInStatus(enum.Enum):
    """Check-in status enumeration"""
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class User:
    """User model for authentication and authorization"""
    id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    password_hash: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    def to_public(self) -> dict:
        """User fields safe to return to clients"""
        return {
            'id': self.id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'email': self.email,
            'phone': self.phone,
            'date_of_birth': self.date_of_birth,
            'address': self.address,
            'role': self.role.value if self.role else None,
            'status': self.status.value if self.status else None,
            'created_at': self.created_at,
        }

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.role.value if self.role else None})>"


@dataclass
class Aircraft:
    """Aircraft model; capacity bounds the seats sold per flight"""
    id: Optional[int] = None
    model: Optional[str] = None
    registration: Optional[str] = None
    capacity: Optional[int] = None
    status: Optional[AircraftStatus] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __repr__(self):
        return f"<Aircraft(id={self.id}, registration='{self.registration}', capacity={self.capacity})>"


@dataclass
class Flight:
    """Flight model with schedule and fare tiers"""
    id: Optional[int] = None
    flight_number: Optional[str] = None
    aircraft_id: Optional[int] = None
    from_airport_code: Optional[str] = None
    to_airport_code: Optional[str] = None
    departure_datetime: Optional[datetime] = None
    arrival_datetime: Optional[datetime] = None
    status: Optional[FlightStatus] = None
    base_price: Optional[Decimal] = None
    business_price: Optional[Decimal] = None
    first_class_price: Optional[Decimal] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # For joined queries
    aircraft_model: Optional[str] = None
    capacity: Optional[int] = None
    from_city: Optional[str] = None
    to_city: Optional[str] = None
    from_airport_name: Optional[str] = None
    to_airport_name: Optional[str] = None
    booked_seats: Optional[int] = None
    available_seats: Optional[int] = None
    total_price: Optional[Decimal] = None

    def price_for(self, fare_class: FareClass) -> Decimal:
        """Fare tier for a class"""
        if fare_class == FareClass.FIRST:
            return self.first_class_price
        if fare_class == FareClass.BUSINESS:
            return self.business_price
        return self.base_price

    def __repr__(self):
        return f"<Flight(id={self.id}, number='{self.flight_number}', route='{self.from_airport_code}->{self.to_airport_code}')>"


@dataclass
class Passenger:
    """Passenger profile, optionally saved on a user's account"""
    id: Optional[int] = None
    user_id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    passport_number: Optional[str] = None
    nationality: Optional[str] = None
    is_saved: bool = False
    created_at: Optional[datetime] = None

    def __repr__(self):
        return f"<Passenger(id={self.id}, name='{self.first_name} {self.last_name}')>"


@dataclass
class BookingPassenger:
    """Link between a booking and one of its passengers, with the seat held"""
    id: Optional[int] = None
    booking_id: Optional[int] = None
    passenger_id: Optional[int] = None
    seat_number: Optional[str] = None

    # For joined queries
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    passport_number: Optional[str] = None
    nationality: Optional[str] = None


@dataclass
class CheckIn:
    """Check-in record; at most one per booking"""
    id: Optional[int] = None
    booking_id: Optional[int] = None
    check_in_datetime: Optional[datetime] = None
    gate_number: Optional[str] = None
    boarding_time: Optional[datetime] = None
    status: Optional[CheckInStatus] = None
    seats: List[str] = field(default_factory=list)


@dataclass
class Booking:
    """Booking model linking a user's passengers to a flight"""
    id: Optional[int] = None
    booking_reference: Optional[str] = None
    user_id: Optional[int] = None
    flight_id: Optional[int] = None
    booking_date: Optional[datetime] = None
    number_of_passengers: Optional[int] = None
    fare_class: Optional[FareClass] = None
    total_amount: Optional[Decimal] = None
    status: Optional[BookingStatus] = None
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # For joined queries
    flight: Optional[Flight] = None
    passengers: List[BookingPassenger] = field(default_factory=list)
    user_email: Optional[str] = None
    user_name: Optional[str] = None

    def __repr__(self):
        return f"<Booking(id={self.id}, ref='{self.booking_reference}', status={self.status.value if self.status else None})>"


def row_to_user(row) -> User:
    """Convert database row to User object"""
    if not row:
        return None
    return User(
        id=row['user_id'],
        first_name=row['first_name'],
        last_name=row['last_name'],
        email=row['email'],
        password_hash=row.get('password_hash'),
        phone=row.get('phone'),
        date_of_birth=row.get('date_of_birth'),
        address=row.get('address'),
        role=UserRole(row['role']) if row['role'] else None,
        status=UserStatus(row['status']) if row['status'] else None,
        created_at=row.get('created_at'),
        updated_at=row.get('updated_at')
    )


def row_to_aircraft(row) -> Aircraft:
    """Convert database row to Aircraft object"""
    if not row:
        return None
    return Aircraft(
        id=row['aircraft_id'],
        model=row['model'],
        registration=row['registration'],
        capacity=row['capacity'],
        status=AircraftStatus(row['status']) if row['status'] else None,
        created_at=row.get('created_at'),
        updated_at=row.get('updated_at')
    )


def row_to_flight(row) -> Flight:
    """Convert database row (optionally joined with aircraft and airports) to Flight object"""
    if not row:
        return None
    return Flight(
        id=row['flight_id'],
        flight_number=row['flight_number'],
        aircraft_id=row['aircraft_id'],
        from_airport_code=row['from_airport_code'],
        to_airport_code=row['to_airport_code'],
        departure_datetime=row['departure_datetime'],
        arrival_datetime=row['arrival_datetime'],
        status=FlightStatus(row['status']) if row['status'] else None,
        base_price=row['base_price'],
        business_price=row['business_price'],
        first_class_price=row['first_class_price'],
        created_at=row.get('created_at'),
        updated_at=row.get('updated_at'),
        aircraft_model=row.get('aircraft_model'),
        capacity=row.get('capacity'),
        from_city=row.get('from_city'),
        to_city=row.get('to_city'),
        from_airport_name=row.get('from_airport_name'),
        to_airport_name=row.get('to_airport_name'),
        booked_seats=row.get('booked_seats')
    )


def row_to_passenger(row) -> Passenger:
    """Convert database row to Passenger object"""
    if not row:
        return None
    return Passenger(
        id=row['passenger_id'],
        user_id=row.get('user_id'),
        first_name=row['first_name'],
        last_name=row['last_name'],
        date_of_birth=row.get('date_of_birth'),
        passport_number=row.get('passport_number'),
        nationality=row.get('nationality'),
        is_saved=bool(row.get('is_saved')),
        created_at=row.get('created_at')
    )


def row_to_booking_passenger(row) -> BookingPassenger:
    """Convert a booking_passengers row joined with passengers"""
    if not row:
        return None
    return BookingPassenger(
        id=row['booking_passenger_id'],
        booking_id=row.get('booking_id'),
        passenger_id=row['passenger_id'],
        seat_number=row.get('seat_number'),
        first_name=row.get('first_name'),
        last_name=row.get('last_name'),
        date_of_birth=row.get('date_of_birth'),
        passport_number=row.get('passport_number'),
        nationality=row.get('nationality')
    )


def row_to_check_in(row) -> CheckIn:
    """Convert database row to CheckIn object"""
    if not row:
        return None
    return CheckIn(
        id=row['check_in_id'],
        booking_id=row['booking_id'],
        check_in_datetime=row.get('check_in_datetime'),
        gate_number=row.get('gate_number'),
        boarding_time=row.get('boarding_time'),
        status=CheckInStatus(row['status']) if row.get('status') else None
    )


def row_to_booking(row) -> Booking:
    """Convert database row to Booking object"""
    if not row:
        return None
    return Booking(
        id=row['booking_id'],
        booking_reference=row['booking_reference'],
        user_id=row['user_id'],
        flight_id=row['flight_id'],
        booking_date=row.get('booking_date'),
        number_of_passengers=row['number_of_passengers'],
        fare_class=FareClass(row['fare_class']) if row['fare_class'] else None,
        total_amount=row['total_amount'],
        status=BookingStatus(row['status']) if row['status'] else None,
        payment_status=PaymentStatus(row['payment_status']) if row.get('payment_status') else None,
        payment_method=row.get('payment_method'),
        created_at=row.get('created_at'),
        updated_at=row.get('updated_at'),
        user_email=row.get('user_email'),
        user_name=row.get('user_name')
    )
