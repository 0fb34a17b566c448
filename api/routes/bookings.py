"""Customer booking endpoints."""

from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, status

from api.dependencies import CurrentUserDep, ServicesDep
from api.responses import ok
from api.schemas import BookingCreateRequest, BookingStatusRequest
from backend.passenger_service import PassengerDetails

router = APIRouter(prefix="/api/bookings", tags=["bookings"])

StatusFilter = Literal["all", "pending", "confirmed", "cancelled", "completed", "missed"]


@router.post("/create", status_code=status.HTTP_201_CREATED)
def create_booking(payload: BookingCreateRequest, user: CurrentUserDep, services: ServicesDep) -> dict:
    booking = services.bookings.create_booking(
        user_id=user.id,
        flight_id=payload.flight_id,
        passengers=[PassengerDetails(**p.model_dump()) for p in payload.passengers],
        fare_class=payload.fare_class,
    )
    return ok({"booking": booking}, "Booking created successfully")


@router.get("/list")
def list_bookings(user: CurrentUserDep, services: ServicesDep, status: Optional[StatusFilter] = None) -> dict:
    return ok({"bookings": services.bookings.list_bookings(user.id, status)}, "Bookings retrieved successfully")


@router.get("/{booking_id}")
def get_booking(booking_id: int, user: CurrentUserDep, services: ServicesDep) -> dict:
    return ok({"booking": services.bookings.get_booking(booking_id, user.id)}, "Booking retrieved successfully")


@router.post("/{booking_id}/cancel")
def cancel_booking(booking_id: int, user: CurrentUserDep, services: ServicesDep) -> dict:
    booking = services.bookings.cancel_booking(booking_id, user.id)
    return ok({"booking": booking}, "Booking cancelled successfully")


@router.post("/{booking_id}/update-status")
def update_booking_status(
    booking_id: int,
    payload: BookingStatusRequest,
    user: CurrentUserDep,
    services: ServicesDep,
) -> dict:
    booking = services.bookings.update_status(booking_id, user.id, payload.status)
    return ok({"booking": booking}, "Booking status updated successfully")
