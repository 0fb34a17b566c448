"""Common FastAPI dependencies reused across routers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backend.auth_service import AuthService
from backend.booking_service import BookingService
from backend.checkin_service import CheckInService
from backend.config import Settings
from backend.errors import Forbidden
from backend.flight_service import FlightService
from backend.passenger_service import PassengerService
from database import DatabaseManager, User

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class ServiceContainer:
    """Services shared by every request, built once per application."""

    auth: AuthService
    flights: FlightService
    bookings: BookingService
    checkin: CheckInService
    passengers: PassengerService

    @classmethod
    def build(cls, db_manager: DatabaseManager, settings: Settings) -> "ServiceContainer":
        return cls(
            auth=AuthService(db_manager, settings),
            flights=FlightService(db_manager),
            bookings=BookingService(db_manager),
            checkin=CheckInService(db_manager),
            passengers=PassengerService(db_manager),
        )


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


ServicesDep = Annotated[ServiceContainer, Depends(get_services)]


def get_current_user(
    services: ServicesDep,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> User:
    """Resolve the active user behind the bearer token."""

    token = credentials.credentials if credentials else None
    return services.auth.resolve_principal(token)


CurrentUserDep = Annotated[User, Depends(get_current_user)]


def require_admin(user: CurrentUserDep) -> User:
    if not user.is_admin:
        raise Forbidden("Forbidden: Admin access required")
    return user


AdminDep = Annotated[User, Depends(require_admin)]


__all__ = [
    "ServiceContainer",
    "get_services",
    "get_current_user",
    "require_admin",
    "ServicesDep",
    "CurrentUserDep",
    "AdminDep",
]
