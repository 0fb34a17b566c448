"""Admin console endpoints; every route requires the admin role."""

from __future__ import annotations

from typing import Annotated, Literal, Optional

from fastapi import APIRouter, Depends, Query, status

from api.dependencies import AdminDep, ServicesDep, require_admin
from api.responses import ok
from api.schemas import (
    AdminBookingStatusRequest,
    AircraftCreateRequest,
    AircraftUpdateRequest,
    FlightCreateRequest,
    FlightUpdateRequest,
    UserStatusRequest,
)

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])

BookingStatusFilter = Literal["all", "pending", "confirmed", "cancelled", "completed", "missed"]


# Flights

@router.get("/flights")
def list_flights(
    services: ServicesDep,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    search: Optional[str] = None,
) -> dict:
    flights, pagination = services.flights.list_flights(page=page, limit=limit, search=search)
    return ok({"flights": flights, "pagination": pagination}, "Flights retrieved successfully")


@router.post("/flights", status_code=status.HTTP_201_CREATED)
def create_flight(payload: FlightCreateRequest, services: ServicesDep) -> dict:
    flight = services.flights.create_flight(**payload.model_dump())
    return ok({"flight_id": flight.id, "flight": flight}, "Flight created successfully")


@router.put("/flights/{flight_id}")
def update_flight(flight_id: int, payload: FlightUpdateRequest, services: ServicesDep) -> dict:
    flight = services.flights.update_flight(flight_id, **payload.model_dump(exclude_none=True))
    return ok({"flight": flight}, "Flight updated successfully")


@router.delete("/flights/{flight_id}")
def delete_flight(flight_id: int, services: ServicesDep) -> dict:
    services.flights.delete_flight(flight_id)
    return ok(message="Flight deleted successfully")


# Bookings

@router.get("/bookings")
def list_bookings(services: ServicesDep, status: Optional[BookingStatusFilter] = None) -> dict:
    return ok({"bookings": services.bookings.admin_list_bookings(status)}, "Bookings retrieved successfully")


@router.get("/bookings/{booking_id}")
def get_booking(booking_id: int, services: ServicesDep) -> dict:
    return ok({"booking": services.bookings.admin_get_booking(booking_id)}, "Booking retrieved successfully")


@router.put("/bookings/{booking_id}/status")
def update_booking_status(
    booking_id: int,
    payload: AdminBookingStatusRequest,
    services: ServicesDep,
) -> dict:
    booking = services.bookings.admin_update_status(
        booking_id, payload.status, payload.payment_status
    )
    return ok({"booking": booking}, "Booking status updated successfully")


# Users

@router.get("/users")
def list_users(services: ServicesDep) -> dict:
    return ok(
        {"users": [user.to_public() for user in services.auth.list_users()]},
        "Users retrieved successfully",
    )


@router.put("/users/{user_id}/status")
def update_user_status(
    user_id: int,
    payload: UserStatusRequest,
    admin: AdminDep,
    services: ServicesDep,
) -> dict:
    user = services.auth.update_user_status(admin, user_id, payload.status)
    return ok({"user": user.to_public()}, "User status updated successfully")


# Aircraft

@router.get("/aircraft")
def list_aircraft(services: ServicesDep) -> dict:
    return ok({"aircraft": services.flights.list_aircraft()}, "Aircraft retrieved successfully")


@router.post("/aircraft", status_code=status.HTTP_201_CREATED)
def create_aircraft(payload: AircraftCreateRequest, services: ServicesDep) -> dict:
    aircraft = services.flights.create_aircraft(**payload.model_dump())
    return ok({"aircraft_id": aircraft.id, "aircraft": aircraft}, "Aircraft created successfully")


@router.put("/aircraft/{aircraft_id}")
def update_aircraft(aircraft_id: int, payload: AircraftUpdateRequest, services: ServicesDep) -> dict:
    aircraft = services.flights.update_aircraft(aircraft_id, **payload.model_dump(exclude_none=True))
    return ok({"aircraft": aircraft}, "Aircraft updated successfully")


@router.delete("/aircraft/{aircraft_id}")
def delete_aircraft(aircraft_id: int, services: ServicesDep) -> dict:
    services.flights.delete_aircraft(aircraft_id)
    return ok(message="Aircraft deleted successfully")
