"""
HTTP API tests
Drive the FastAPI app through TestClient with in-memory fake services
"""
from __future__ import annotations

import sys
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api import create_app
from backend.checkin_service import CheckInLookup
from backend.config import Settings
from backend.errors import (
    CapacityExceeded, Conflict, InvalidState, NotFound, TooEarly, Unauthenticated
)
from database import (
    Booking, BookingStatus, CheckIn, CheckInStatus, FareClass, Flight, FlightStatus,
    Passenger, PaymentStatus, User, UserRole, UserStatus
)

DEPARTURE = datetime(2030, 6, 1, 9, 0)

CUSTOMER = User(id=1, first_name='John', last_name='Doe', email='john@example.com',
                password_hash='hash', role=UserRole.CUSTOMER, status=UserStatus.ACTIVE)
ADMIN = User(id=2, first_name='Ada', last_name='Admin', email='admin@example.com',
             password_hash='hash', role=UserRole.ADMIN, status=UserStatus.ACTIVE)

FLIGHT = Flight(
    id=10, flight_number='SW100', aircraft_id=1, from_airport_code='NYC', to_airport_code='LAX',
    departure_datetime=DEPARTURE, arrival_datetime=DEPARTURE + timedelta(hours=5),
    status=FlightStatus.SCHEDULED, base_price=Decimal('200.00'),
    business_price=Decimal('300.00'), first_class_price=Decimal('400.00'),
    capacity=180, booked_seats=0, available_seats=180,
)


def make_booking(**overrides):
    values = dict(
        id=5, booking_reference='BKTEST0001', user_id=CUSTOMER.id, flight_id=FLIGHT.id,
        number_of_passengers=1, fare_class=FareClass.ECONOMY, total_amount=Decimal('200.00'),
        status=BookingStatus.CONFIRMED, payment_status=PaymentStatus.PAID, flight=FLIGHT,
    )
    values.update(overrides)
    return Booking(**values)


class FakeAuth:
    tokens = {'customer-token': CUSTOMER, 'admin-token': ADMIN}

    def resolve_principal(self, token):
        if not token:
            raise Unauthenticated("Unauthorized: No token provided")
        if token not in self.tokens:
            raise Unauthenticated("Unauthorized: Invalid or expired token")
        return self.tokens[token]

    def register(self, first_name, last_name, email, password, phone=None,
                 date_of_birth=None, address=None):
        if email == 'taken@example.com':
            raise Conflict("Email already registered")
        user = User(id=3, first_name=first_name, last_name=last_name, email=email,
                    password_hash='hash', role=UserRole.CUSTOMER, status=UserStatus.ACTIVE)
        return user, 'new-token'

    def authenticate(self, email, password):
        if password != 'Secret123':
            raise Unauthenticated("Invalid email or password")
        return CUSTOMER, 'customer-token'

    def list_users(self):
        return [CUSTOMER, ADMIN]

    def update_user_status(self, admin, user_id, status):
        if user_id == admin.id:
            raise InvalidState("Cannot change your own status")
        return User(id=user_id, email='x@example.com', role=UserRole.CUSTOMER,
                    status=UserStatus(status))


class FakeFlights:
    def __init__(self):
        self.calls = []

    def search_flights(self, **kwargs):
        self.calls.append(kwargs)
        return [Flight(**{**FLIGHT.__dict__, 'total_price': Decimal('600.00')})]

    def get_flight(self, flight_id):
        if flight_id == 500:
            raise RuntimeError("database went away")
        if flight_id == 501:
            raise ValueError("Cannot update field(s): booked_seats")
        if flight_id != FLIGHT.id:
            raise NotFound("Flight not found")
        return FLIGHT

    def get_flight_status(self, flight_number):
        return FLIGHT

    def list_flights(self, page, limit, search):
        self.calls.append({'page': page, 'limit': limit, 'search': search})
        return [FLIGHT], {'page': page, 'limit': limit, 'total': 1, 'total_pages': 1}

    def create_flight(self, **kwargs):
        self.calls.append(kwargs)
        return FLIGHT


class FakeBookings:
    def __init__(self):
        self.calls = []

    def create_booking(self, user_id, flight_id, passengers, fare_class):
        self.calls.append((user_id, flight_id, passengers, fare_class))
        if flight_id == 99:
            raise CapacityExceeded(0)
        return make_booking(number_of_passengers=len(passengers))

    def list_bookings(self, user_id, status=None):
        return [make_booking()]

    def get_booking(self, booking_id, user_id=None):
        if booking_id != 5:
            raise NotFound("Booking not found")
        return make_booking()

    def cancel_booking(self, booking_id, user_id):
        return make_booking(status=BookingStatus.CANCELLED, payment_status=PaymentStatus.REFUNDED)


class FakeCheckIn:
    def search(self, booking_reference, last_name, user_id):
        if booking_reference == 'BKEARLY01':
            raise TooEarly(3)
        return CheckInLookup(booking=make_booking(), passengers=[], already_checked_in=False)

    def confirm(self, booking_id, user_id, seat_numbers, gate_number=None):
        return CheckIn(id=1, booking_id=booking_id, gate_number=gate_number or 'TBA',
                       boarding_time=DEPARTURE - timedelta(minutes=30),
                       status=CheckInStatus.COMPLETED, seats=[s.upper() for s in seat_numbers])


class FakePassengers:
    def list_saved(self, user_id):
        return [Passenger(id=8, user_id=user_id, first_name='Kid', last_name='Doe', is_saved=True)]

    def add_saved(self, user_id, **details):
        return Passenger(id=9, user_id=user_id, is_saved=True, **details)


@pytest.fixture
def services():
    return SimpleNamespace(
        auth=FakeAuth(),
        flights=FakeFlights(),
        bookings=FakeBookings(),
        checkin=FakeCheckIn(),
        passengers=FakePassengers(),
    )


@pytest.fixture
def client(services):
    settings = Settings(environment='development', log_file='', jwt_secret_key='test')
    app = create_app(settings, services=services, configure_logging=False)
    return TestClient(app, raise_server_exceptions=False)


CUSTOMER_AUTH = {'Authorization': 'Bearer customer-token'}
ADMIN_AUTH = {'Authorization': 'Bearer admin-token'}


class TestPublicEndpoints:
    """Test endpoints that need no token"""

    def test_health(self, client):
        """Test the health check"""
        response = client.get('/api/health')

        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        assert body['data']['status'] == 'healthy'

    def test_search_flights(self, client, services):
        """Test query parameters reach the catalog"""
        response = client.get('/api/flights/search', params={
            'from': 'NYC', 'to': 'LAX', 'departure': '2030-06-01', 'passengers': 3, 'class': 'business',
        })

        assert response.status_code == 200
        data = response.json()['data']
        assert data['flights'][0]['total_price'] == 600.0
        assert data['search_params']['class'] == 'business'
        call = services.flights.calls[0]
        assert call['from_code'] == 'NYC'
        assert call['passengers'] == 3
        assert call['departure_date'].isoformat() == '2030-06-01'

    def test_flight_not_found(self, client):
        """Test service errors map to their status code"""
        response = client.get('/api/flights/11')

        assert response.status_code == 404
        assert response.json() == {'success': False, 'message': 'Flight not found'}

    def test_unexpected_error(self, client):
        """Test unexpected errors become a 500 with details in development"""
        response = client.get('/api/flights/500')

        assert response.status_code == 500
        body = response.json()
        assert body['message'] == 'Internal server error'
        assert 'database went away' in body['error']

    def test_stray_value_error_is_server_error(self, client, caplog):
        """Test a ValueError outside the service errors is logged as a 500"""
        with caplog.at_level('ERROR', logger='api.handlers'):
            response = client.get('/api/flights/501')

        assert response.status_code == 500
        assert response.json()['message'] == 'Internal server error'
        assert any('Unhandled error' in record.getMessage() for record in caplog.records)

    def test_register(self, client):
        """Test registration returns the user and a token"""
        response = client.post('/api/auth/register', json={
            'firstName': 'Grace', 'lastName': 'Hopper', 'email': 'grace@example.com',
            'password': 'Cobol1959', 'confirmPassword': 'Cobol1959',
        })

        assert response.status_code == 201
        data = response.json()['data']
        assert data['token'] == 'new-token'
        assert data['user']['email'] == 'grace@example.com'
        assert 'password_hash' not in data['user']

    def test_register_validation(self, client):
        """Test invalid bodies return the field errors"""
        response = client.post('/api/auth/register', json={
            'first_name': 'G', 'last_name': 'Hopper', 'email': 'not-an-email',
            'password': 'weak', 'confirm_password': 'weak',
        })

        assert response.status_code == 400
        body = response.json()
        assert body['message'] == 'Validation failed'
        fields = {error['field'] for error in body['errors']}
        assert {'first_name', 'email', 'password'} <= fields

    def test_register_conflict(self, client):
        """Test duplicate emails return 409"""
        response = client.post('/api/auth/register', json={
            'first_name': 'Grace', 'last_name': 'Hopper', 'email': 'taken@example.com',
            'password': 'Cobol1959', 'confirm_password': 'Cobol1959',
        })

        assert response.status_code == 409

    def test_login(self, client):
        """Test login success and failure"""
        ok = client.post('/api/auth/login', json={'email': 'john@example.com', 'password': 'Secret123'})
        bad = client.post('/api/auth/login', json={'email': 'john@example.com', 'password': 'nope'})

        assert ok.status_code == 200
        assert ok.json()['data']['token'] == 'customer-token'
        assert bad.status_code == 401
        assert bad.json()['message'] == 'Invalid email or password'

    def test_logout(self, client):
        """Test logout always succeeds"""
        assert client.post('/api/auth/logout').json()['success'] is True


class TestAuthenticatedEndpoints:
    """Test customer endpoints"""

    def test_missing_token(self, client):
        """Test protected routes need a bearer token"""
        response = client.get('/api/auth/check')

        assert response.status_code == 401
        assert response.json()['message'] == 'Unauthorized: No token provided'

    def test_bad_token(self, client):
        """Test unknown tokens are rejected"""
        response = client.get('/api/bookings/list', headers={'Authorization': 'Bearer forged'})
        assert response.status_code == 401

    def test_check(self, client):
        """Test the session check returns the caller"""
        response = client.get('/api/auth/check', headers=CUSTOMER_AUTH)
        assert response.json()['data']['user']['id'] == CUSTOMER.id

    @pytest.mark.parametrize('path', [
        '/api/bookings/list',
        '/api/bookings/5',
        '/api/auth/check',
        '/api/flights/10',
        '/api/flights/status/SW100',
        '/api/users/passengers',
    ])
    def test_reads_carry_message(self, client, path):
        """Test read endpoints return the full success envelope"""
        body = client.get(path, headers=CUSTOMER_AUTH).json()

        assert body['success'] is True
        assert isinstance(body['message'], str) and body['message']
        assert 'data' in body

    def test_create_booking(self, client, services):
        """Test booking bodies are converted to passenger details"""
        response = client.post('/api/bookings/create', headers=CUSTOMER_AUTH, json={
            'flight_id': FLIGHT.id,
            'class': 'first',
            'passengers': [
                {'first_name': 'John', 'last_name': 'Doe', 'seat_number': '1A', 'save': True},
                {'passenger_id': 8},
            ],
        })

        assert response.status_code == 201
        booking = response.json()['data']['booking']
        assert booking['booking_reference'] == 'BKTEST0001'
        assert booking['status'] == 'confirmed'

        user_id, flight_id, passengers, fare_class = services.bookings.calls[0]
        assert (user_id, flight_id, fare_class) == (CUSTOMER.id, FLIGHT.id, 'first')
        assert passengers[0].save is True and passengers[0].seat_number == '1A'
        assert passengers[1].passenger_id == 8

    def test_create_booking_capacity(self, client):
        """Test capacity errors carry the remaining seat count"""
        response = client.post('/api/bookings/create', headers=CUSTOMER_AUTH, json={
            'flight_id': 99, 'passengers': [{'first_name': 'John', 'last_name': 'Doe'}],
        })

        assert response.status_code == 400
        body = response.json()
        assert body['message'] == 'Not enough seats available. Only 0 seat(s) remaining.'
        assert body['data'] == {'available_seats': 0}

    def test_booking_not_found(self, client):
        """Test other users' bookings look missing"""
        response = client.get('/api/bookings/6', headers=CUSTOMER_AUTH)
        assert response.status_code == 404

    def test_cancel_booking(self, client):
        """Test cancellation returns the refunded booking"""
        response = client.post('/api/bookings/5/cancel', headers=CUSTOMER_AUTH)

        assert response.status_code == 200
        assert response.json()['data']['booking']['payment_status'] == 'refunded'

    def test_check_in_search(self, client):
        """Test the lookup payload"""
        response = client.post('/api/checkin/search', headers=CUSTOMER_AUTH,
                               json={'booking_reference': 'BKTEST0001', 'last_name': 'Doe'})

        assert response.status_code == 200
        data = response.json()['data']
        assert data['already_checked_in'] is False
        assert data['booking']['id'] == 5

    def test_check_in_too_early(self, client):
        """Test window errors carry the hours remaining"""
        response = client.post('/api/checkin/search', headers=CUSTOMER_AUTH,
                               json={'booking_reference': 'BKEARLY01', 'last_name': 'Doe'})

        assert response.status_code == 400
        assert response.json()['data'] == {'hours_remaining': 3}

    def test_check_in_confirm(self, client):
        """Test the boarding pass payload"""
        response = client.post('/api/checkin/confirm', headers=CUSTOMER_AUTH,
                               json={'booking_id': 5, 'seat_numbers': ['12a']})

        assert response.status_code == 200
        data = response.json()['data']
        assert data['seat_numbers'] == ['12A']
        assert data['gate_number'] == 'TBA'
        assert data['boarding_time'] == '2030-06-01T08:30:00'

    def test_saved_passengers(self, client):
        """Test listing and adding saved passengers"""
        listed = client.get('/api/users/passengers', headers=CUSTOMER_AUTH)
        added = client.post('/api/users/passengers', headers=CUSTOMER_AUTH,
                            json={'firstName': 'Baby', 'lastName': 'Doe'})

        assert listed.json()['data']['passengers'][0]['id'] == 8
        assert added.status_code == 201
        assert added.json()['data']['passenger_id'] == 9


class TestAdminEndpoints:
    """Test the admin console"""

    def test_customer_forbidden(self, client):
        """Test customers cannot reach admin routes"""
        response = client.get('/api/admin/flights', headers=CUSTOMER_AUTH)

        assert response.status_code == 403
        assert response.json()['message'] == 'Forbidden: Admin access required'

    def test_list_flights(self, client, services):
        """Test paging parameters reach the catalog"""
        response = client.get('/api/admin/flights', headers=ADMIN_AUTH,
                              params={'page': 2, 'limit': 10, 'search': 'tokyo'})

        assert response.status_code == 200
        assert response.json()['data']['pagination']['page'] == 2
        assert services.flights.calls[0] == {'page': 2, 'limit': 10, 'search': 'tokyo'}

    def test_create_flight(self, client, services):
        """Test flight creation bodies are validated and forwarded"""
        response = client.post('/api/admin/flights', headers=ADMIN_AUTH, json={
            'flight_number': 'SW100', 'aircraft_id': 1,
            'from_airport_code': 'nyc', 'to_airport_code': 'lax',
            'departure_datetime': '2030-06-01T09:00:00',
            'arrival_datetime': '2030-06-01T14:00:00',
            'base_price': 200,
        })

        assert response.status_code == 201
        assert response.json()['data']['flight_id'] == FLIGHT.id
        call = services.flights.calls[0]
        assert call['from_airport_code'] == 'NYC'
        assert call['business_price'] is None

    def test_list_users_hides_hashes(self, client):
        """Test user listings never expose password hashes"""
        users = client.get('/api/admin/users', headers=ADMIN_AUTH).json()['data']['users']

        assert len(users) == 2
        assert all('password_hash' not in user for user in users)

    def test_own_status_change(self, client):
        """Test admins cannot change their own status"""
        response = client.put(f'/api/admin/users/{ADMIN.id}/status', headers=ADMIN_AUTH,
                              json={'status': 'inactive'})

        assert response.status_code == 400
        assert response.json()['message'] == 'Cannot change your own status'
