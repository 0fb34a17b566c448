"""Pytest configuration and fixtures."""
import itertools
import os
import sys
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from backend.auth_service import AuthService
from backend.booking_service import BookingService
from backend.checkin_service import CheckInService
from backend.config import Settings
from backend.flight_service import FlightService
from backend.passenger_service import PassengerDetails, PassengerService
from database import DatabaseManager, UserRole

TEST_PASSWORD = 'Secret123'


@pytest.fixture(scope='session')
def settings():
    """Settings pointed at the test database"""
    return Settings(
        database_url=os.getenv('TEST_DATABASE_URL', 'postgresql://localhost/skywings_test'),
        jwt_secret_key='test-secret-key',
        environment='development',
        log_file='',
    )


@pytest.fixture(scope='function')
def db_manager(settings):
    """Create a test database manager with PostgreSQL test database."""
    try:
        db = DatabaseManager(settings.database_url, minconn=1, maxconn=12)
    except RuntimeError as e:
        pytest.skip(f"PostgreSQL test database unavailable: {e}")

    db.drop_tables()  # Clean slate for each test
    db.create_tables()
    yield db
    db.drop_tables()  # Cleanup after test
    db.close_all_connections()


@pytest.fixture
def auth_service(db_manager, settings):
    return AuthService(db_manager, settings)


@pytest.fixture
def flight_service(db_manager):
    return FlightService(db_manager)


@pytest.fixture
def booking_service(db_manager):
    return BookingService(db_manager)


@pytest.fixture
def checkin_service(db_manager):
    return CheckInService(db_manager)


@pytest.fixture
def passenger_service(db_manager):
    return PassengerService(db_manager)


@pytest.fixture
def make_user(auth_service):
    """Factory registering users with unique emails"""
    counter = itertools.count(1)

    def _make(last_name='Doe', role=UserRole.CUSTOMER, first_name='John'):
        user, _ = auth_service.register(
            first_name=first_name,
            last_name=last_name,
            email=f'user{next(counter)}@example.com',
            password=TEST_PASSWORD,
            role=role,
        )
        return user

    return _make


@pytest.fixture
def test_user(auth_service):
    """Create a test customer"""
    user, _ = auth_service.register(
        first_name='John',
        last_name='Doe',
        email='test@example.com',
        password=TEST_PASSWORD,
    )
    return user


@pytest.fixture
def test_admin(auth_service):
    """Create a test admin user"""
    user, _ = auth_service.register(
        first_name='Ada',
        last_name='Admin',
        email='admin@example.com',
        password=TEST_PASSWORD,
        role=UserRole.ADMIN,
    )
    return user


@pytest.fixture
def test_aircraft(flight_service):
    """Create a test aircraft"""
    return flight_service.create_aircraft(
        model='Boeing 737-800',
        registration='N737SW',
        capacity=180,
    )


@pytest.fixture
def make_flight(flight_service, test_aircraft):
    """
    Factory for flights departing a number of hours from now

    A custom capacity gets its own aircraft.
    """
    counter = itertools.count(100)

    def _make(hours_ahead=24 * 7, capacity=None, base_price=Decimal('100.00'),
              business_price=None, first_class_price=None,
              from_code='NYC', to_code='LAX', status='scheduled'):
        number = next(counter)
        aircraft_id = test_aircraft.id
        if capacity is not None:
            aircraft_id = flight_service.create_aircraft(
                model='Test Jet', registration=f'T{number}', capacity=capacity,
            ).id

        departure = datetime.now().replace(microsecond=0) + timedelta(hours=hours_ahead)
        return flight_service.create_flight(
            flight_number=f'SW{number}',
            aircraft_id=aircraft_id,
            from_airport_code=from_code,
            to_airport_code=to_code,
            departure_datetime=departure,
            arrival_datetime=departure + timedelta(hours=5),
            base_price=base_price,
            business_price=business_price,
            first_class_price=first_class_price,
            status=status,
        )

    return _make


@pytest.fixture
def test_flight(make_flight):
    """Create a test flight a week out"""
    return make_flight(
        base_price=Decimal('200.00'),
        business_price=Decimal('500.00'),
        first_class_price=Decimal('900.00'),
    )


def travellers(*last_names, seats=None):
    """PassengerDetails for new travellers, optionally with seats"""
    seats = seats or [None] * len(last_names)
    return [
        PassengerDetails(first_name='Pat', last_name=name, seat_number=seat)
        for name, seat in zip(last_names, seats)
    ]
