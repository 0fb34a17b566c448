"""
Test data generator for populating the database with valid entries
Builds aircraft, users, flights and bookings through the service layer
"""
from datetime import datetime, timedelta
from decimal import Decimal
import random
from faker import Faker
from typing import Optional

from database import DatabaseManager, FareClass, UserRole
from backend.auth_service import AuthService
from backend.booking_service import BookingService
from backend.errors import CapacityExceeded, Conflict, ReservationError
from backend.flight_service import FlightService
from backend.passenger_service import PassengerDetails

DEFAULT_PASSWORD = 'Password123'


class DataGenerator:
    """Generate realistic sample data for the SkyWings booking backend"""

    def __init__(self, db_manager: DatabaseManager, settings, seed: Optional[int] = None):
        """
        Initialize data generator

        Args:
            db_manager: Database the services write to
            settings: Application settings, used for token signing
            seed: Random seed for reproducibility
        """
        if seed is not None:
            random.seed(seed)
            Faker.seed(seed)

        self.faker = Faker()
        self.auth = AuthService(db_manager, settings)
        self.flights = FlightService(db_manager)
        self.bookings = BookingService(db_manager)

        # Codes seeded by schema.sql
        self.airports = ['NYC', 'LAX', 'CHI', 'MIA', 'LON', 'PAR', 'TOK', 'DXB']

        # (model, capacity)
        self.aircraft_types = [
            ('Boeing 737-800', 189),
            ('Boeing 777-300', 396),
            ('Airbus A320', 180),
            ('Airbus A380', 525),
            ('Boeing 787-9', 296),
            ('Airbus A350-900', 325),
        ]

        self.airline_codes = ['SW', 'SK', 'WG']

    def generate_aircraft(self, count: int = 10):
        """
        Generate aircraft

        Args:
            count: Number of aircraft to generate

        Returns:
            List of created aircraft
        """
        aircraft_list = []

        print(f"Generating {count} aircraft...")

        for i in range(count):
            model, capacity = random.choice(self.aircraft_types)
            registration = self.faker.unique.bothify(text='N###??', letters='ABCDEFGHJKLMNPRSTUVWXYZ')

            try:
                aircraft = self.flights.create_aircraft(
                    model=model,
                    registration=registration,
                    capacity=capacity,
                )
                aircraft_list.append(aircraft)
                if (i + 1) % 10 == 0:
                    print(f"  Created {i + 1}/{count} aircraft")
            except Conflict as e:
                print(f"  Error creating aircraft: {e}")

        print(f"Generated {len(aircraft_list)} aircraft")
        return aircraft_list

    def generate_users(self, count: int = 100, admins: int = 1):
        """
        Generate user accounts

        The first ``admins`` accounts get the admin role. Every account uses
        DEFAULT_PASSWORD so the sample data can be logged into.

        Args:
            count: Number of users to generate
            admins: How many of them are administrators

        Returns:
            List of created users
        """
        users = []

        print(f"Generating {count} users...")

        for i in range(count):
            role = UserRole.ADMIN if i < admins else UserRole.CUSTOMER
            try:
                user, _ = self.auth.register(
                    first_name=self.faker.first_name(),
                    last_name=self.faker.last_name(),
                    email=self.faker.unique.email(),
                    password=DEFAULT_PASSWORD,
                    # Fits in varchar(20)
                    phone=self.faker.bothify(text='+1-###-###-####')[:20],
                    date_of_birth=self.faker.date_of_birth(minimum_age=18, maximum_age=80),
                    address=self.faker.address(),
                    role=role,
                )
                users.append(user)

                if (i + 1) % 100 == 0:
                    print(f"  Created {i + 1}/{count} users")

            except Conflict as e:
                print(f"  Error creating user: {e}")

        print(f"Generated {len(users)} users")
        return users

    def generate_flights(self, aircraft_ids: list, count: int = 100, days_ahead: int = 30):
        """
        Generate flights

        Args:
            aircraft_ids: List of aircraft IDs to use
            count: Number of flights to generate
            days_ahead: Number of days ahead to schedule flights

        Returns:
            List of created flights
        """
        flights = []

        print(f"Generating {count} flights...")

        for i in range(count):
            origin, destination = random.sample(self.airports, 2)

            # Departure somewhere in the next N days, on a quarter hour
            departure = datetime.now().replace(second=0, microsecond=0) + timedelta(
                days=random.randint(0, days_ahead),
                hours=random.randint(1, 23),
            )
            departure = departure.replace(minute=random.choice([0, 15, 30, 45]))
            arrival = departure + timedelta(hours=random.randint(1, 14), minutes=random.choice([0, 30]))

            flight_number = f"{random.choice(self.airline_codes)}{random.randint(100, 9999)}"
            base_price = Decimal(str(round(random.uniform(100, 900), 2)))

            try:
                flight = self.flights.create_flight(
                    flight_number=flight_number,
                    aircraft_id=random.choice(aircraft_ids),
                    from_airport_code=origin,
                    to_airport_code=destination,
                    departure_datetime=departure,
                    arrival_datetime=arrival,
                    base_price=base_price,
                )
                flights.append(flight)

                if (i + 1) % 50 == 0:
                    print(f"  Created {i + 1}/{count} flights")

            except Conflict:
                # Random flight number collided; skip it
                continue

        print(f"Generated {len(flights)} flights")
        return flights

    def generate_bookings(self, user_ids: list, flight_ids: list, count: int = 500,
                          max_attempt_multiplier: float = 3.0):
        """
        Generate bookings of one to four passengers each

        Args:
            user_ids: Customers that own the bookings
            flight_ids: Flights to book
            count: Number of bookings to generate
            max_attempt_multiplier: Retry multiplier to ensure requested volume

        Returns:
            List of created booking IDs
        """
        booking_ids = []
        fare_classes = [FareClass.ECONOMY, FareClass.ECONOMY, FareClass.BUSINESS, FareClass.FIRST]

        print(f"Generating {count} bookings...")

        attempts = 0
        max_attempts = max(count, int(count * max(1.0, max_attempt_multiplier)))

        while len(booking_ids) < count and attempts < max_attempts:
            attempts += 1
            passengers = [
                PassengerDetails(
                    first_name=self.faker.first_name(),
                    last_name=self.faker.last_name(),
                    date_of_birth=self.faker.date_of_birth(minimum_age=1, maximum_age=85),
                    passport_number=self.faker.bothify(text='??######', letters='ABCDEFGHIJKLMNOPQRSTUVWXYZ'),
                    nationality=self.faker.country()[:100],
                    save=random.random() < 0.2,
                )
                for _ in range(random.randint(1, 4))
            ]

            try:
                booking = self.bookings.create_booking(
                    user_id=random.choice(user_ids),
                    flight_id=random.choice(flight_ids),
                    passengers=passengers,
                    fare_class=random.choice(fare_classes),
                )
                booking_ids.append(booking.id)

                if len(booking_ids) % 100 == 0:
                    print(f"  Created {len(booking_ids)}/{count} bookings")

            except CapacityExceeded:
                continue
            except ReservationError as e:
                print(f"  Error creating booking: {e}")

        if len(booking_ids) < count:
            print(
                f"Warning: requested {count} bookings but only created {len(booking_ids)}"
                f" after {attempts} attempts. Consider adding flights or aircraft capacity."
            )

        print(f"Generated {len(booking_ids)} bookings")
        return booking_ids

    def generate_sample_dataset(self, aircraft_count: int = 10, user_count: int = 50,
                                flight_count: int = 60, booking_count: int = 200):
        """
        Generate a complete sample dataset

        Returns:
            Dictionary with all generated data
        """
        print("=" * 60)
        print("GENERATING SAMPLE DATASET")
        print("=" * 60)

        aircraft = self.generate_aircraft(count=aircraft_count)
        users = self.generate_users(count=user_count)
        flights = self.generate_flights(
            aircraft_ids=[a.id for a in aircraft], count=flight_count, days_ahead=60
        )

        customer_ids = [u.id for u in users if not u.is_admin]
        booking_ids = []
        if customer_ids and flights:
            booking_ids = self.generate_bookings(
                user_ids=customer_ids,
                flight_ids=[f.id for f in flights],
                count=booking_count,
            )

        print("=" * 60)
        print("DATASET GENERATION COMPLETE")
        print("=" * 60)
        print(f"Aircraft: {len(aircraft)}")
        print(f"Users: {len(users)}")
        print(f"Flights: {len(flights)}")
        print(f"Bookings: {len(booking_ids)}")
        if users:
            print(f"Admin login: {users[0].email} / {DEFAULT_PASSWORD}")
        print("=" * 60)

        return {
            'aircraft': aircraft,
            'users': users,
            'flights': flights,
            'booking_ids': booking_ids,
        }
