"""Database package initialization"""
from .models import (
    User, Aircraft, Flight, Passenger, BookingPassenger, Booking, CheckIn,
    UserRole, UserStatus, AircraftStatus, FlightStatus, FareClass, BookingStatus,
    PaymentStatus, CheckInStatus, BOOKABLE_FLIGHT_STATUSES, TERMINAL_BOOKING_STATUSES,
    row_to_user, row_to_aircraft, row_to_flight, row_to_passenger,
    row_to_booking_passenger, row_to_booking, row_to_check_in
)
from .database import DatabaseManager, build_update

__all__ = [
    'User', 'Aircraft', 'Flight', 'Passenger', 'BookingPassenger', 'Booking', 'CheckIn',
    'UserRole', 'UserStatus', 'AircraftStatus', 'FlightStatus', 'FareClass', 'BookingStatus',
    'PaymentStatus', 'CheckInStatus', 'BOOKABLE_FLIGHT_STATUSES', 'TERMINAL_BOOKING_STATUSES',
    'row_to_user', 'row_to_aircraft', 'row_to_flight', 'row_to_passenger',
    'row_to_booking_passenger', 'row_to_booking', 'row_to_check_in',
    'DatabaseManager', 'build_update'
]
