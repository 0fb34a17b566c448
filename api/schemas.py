"""Request bodies accepted by the HTTP API."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, List, Literal, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    EmailStr,
    Field,
    PositiveInt,
    StringConstraints,
    field_validator,
    model_validator,
)

NAME_PATTERN = r"^[a-zA-Z\s'-]+$"
MAX_PARTY_SIZE = 50

PersonName = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=2, max_length=100, pattern=NAME_PATTERN),
]
SeatNumber = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=10)]
AirportCode = Annotated[
    str,
    StringConstraints(strip_whitespace=True, to_upper=True, min_length=3, max_length=3),
]
Registration = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=20, pattern=r"^[A-Z0-9\-]+$"),
]
Price = Annotated[Decimal, Field(gt=0, max_digits=10, decimal_places=2)]

FlightStatusValue = Literal["scheduled", "boarding", "delayed", "cancelled", "completed"]
BookingStatusValue = Literal["pending", "confirmed", "cancelled", "completed", "missed"]
PaymentStatusValue = Literal["pending", "paid", "refunded"]
UserStatusValue = Literal["active", "inactive", "suspended"]
AircraftStatusValue = Literal["active", "maintenance", "retired"]


def _check_birth_date(value: Optional[date]) -> Optional[date]:
    if value is not None:
        age = date.today().year - value.year
        if age < 0 or age > 120:
            raise ValueError("Invalid date of birth")
    return value


def _naive(value: Optional[datetime]) -> Optional[datetime]:
    """Store timestamps as local wall-clock time, like the database columns."""

    if value is not None and value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class RegisterRequest(BaseModel):
    first_name: PersonName = Field(validation_alias=AliasChoices("first_name", "firstName"))
    last_name: PersonName = Field(validation_alias=AliasChoices("last_name", "lastName"))
    email: EmailStr = Field(max_length=255)
    password: str = Field(min_length=6)
    confirm_password: str = Field(
        validation_alias=AliasChoices("confirm_password", "confirmPassword")
    )
    phone: Optional[str] = Field(default=None, max_length=20, pattern=r"^[\d\s\-\+\(\)]+$")
    date_of_birth: Optional[date] = Field(
        default=None, validation_alias=AliasChoices("date_of_birth", "dateOfBirth", "dob")
    )
    address: Optional[str] = Field(default=None, max_length=500)

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        if not (
            any(c.islower() for c in value)
            and any(c.isupper() for c in value)
            and any(c.isdigit() for c in value)
        ):
            raise ValueError(
                "Password must contain at least one uppercase letter, one lowercase letter, and one number"
            )
        return value

    @field_validator("date_of_birth")
    @classmethod
    def birth_date_in_range(cls, value: Optional[date]) -> Optional[date]:
        return _check_birth_date(value)

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class SavedPassengerRequest(BaseModel):
    first_name: PersonName = Field(validation_alias=AliasChoices("first_name", "firstName"))
    last_name: PersonName = Field(validation_alias=AliasChoices("last_name", "lastName"))
    date_of_birth: Optional[date] = Field(
        default=None, validation_alias=AliasChoices("date_of_birth", "dateOfBirth")
    )
    passport_number: Optional[str] = Field(
        default=None,
        max_length=50,
        validation_alias=AliasChoices("passport_number", "passportNumber"),
    )
    nationality: Optional[str] = Field(default=None, max_length=100)

    @field_validator("date_of_birth")
    @classmethod
    def birth_date_in_range(cls, value: Optional[date]) -> Optional[date]:
        return _check_birth_date(value)


class BookingPassengerRequest(BaseModel):
    """A saved passenger by id, or the details of a new one."""

    passenger_id: Optional[PositiveInt] = None
    first_name: Optional[PersonName] = None
    last_name: Optional[PersonName] = None
    date_of_birth: Optional[date] = None
    passport_number: Optional[str] = Field(default=None, max_length=50)
    nationality: Optional[str] = Field(default=None, max_length=100)
    save: bool = False
    seat_number: Optional[SeatNumber] = None

    @model_validator(mode="after")
    def identifies_passenger(self) -> "BookingPassengerRequest":
        if self.passenger_id is None and not (self.first_name and self.last_name):
            raise ValueError("Each passenger needs a passenger_id or a first and last name")
        return self


class BookingCreateRequest(BaseModel):
    flight_id: PositiveInt
    passengers: List[BookingPassengerRequest] = Field(min_length=1, max_length=MAX_PARTY_SIZE)
    fare_class: str = Field(
        default="economy", validation_alias=AliasChoices("class", "fare_class")
    )


class BookingStatusRequest(BaseModel):
    status: Literal["completed", "missed", "cancelled"]


class AdminBookingStatusRequest(BaseModel):
    status: BookingStatusValue
    payment_status: Optional[PaymentStatusValue] = None


class CheckInSearchRequest(BaseModel):
    booking_reference: Annotated[
        str,
        StringConstraints(strip_whitespace=True, min_length=5, max_length=20, pattern=r"^[A-Z0-9]+$"),
    ]
    last_name: PersonName


class CheckInConfirmRequest(BaseModel):
    booking_id: PositiveInt
    seat_numbers: List[SeatNumber] = Field(min_length=1)
    gate_number: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=10)]] = None


class FlightCreateRequest(BaseModel):
    flight_number: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=20)]
    aircraft_id: PositiveInt
    from_airport_code: AirportCode
    to_airport_code: AirportCode
    departure_datetime: datetime
    arrival_datetime: datetime
    base_price: Price
    business_price: Optional[Price] = None
    first_class_price: Optional[Price] = None
    status: FlightStatusValue = "scheduled"

    naive_times = field_validator("departure_datetime", "arrival_datetime")(_naive)


class FlightUpdateRequest(BaseModel):
    flight_number: Optional[
        Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=20)]
    ] = None
    aircraft_id: Optional[PositiveInt] = None
    from_airport_code: Optional[AirportCode] = None
    to_airport_code: Optional[AirportCode] = None
    departure_datetime: Optional[datetime] = None
    arrival_datetime: Optional[datetime] = None
    base_price: Optional[Price] = None
    business_price: Optional[Price] = None
    first_class_price: Optional[Price] = None
    status: Optional[FlightStatusValue] = None

    naive_times = field_validator("departure_datetime", "arrival_datetime")(_naive)


class AircraftCreateRequest(BaseModel):
    model: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
    registration: Registration
    capacity: int = Field(ge=1, le=1000)
    status: AircraftStatusValue = "active"


class AircraftUpdateRequest(BaseModel):
    model: Optional[
        Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
    ] = None
    registration: Optional[Registration] = None
    capacity: Optional[int] = Field(default=None, ge=1, le=1000)
    status: Optional[AircraftStatusValue] = None


class UserStatusRequest(BaseModel):
    status: UserStatusValue
