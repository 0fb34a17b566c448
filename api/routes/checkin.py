"""Online check-in endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from api.dependencies import CurrentUserDep, ServicesDep
from api.responses import ok
from api.schemas import CheckInConfirmRequest, CheckInSearchRequest

router = APIRouter(prefix="/api/checkin", tags=["checkin"])


@router.post("/search")
def search(payload: CheckInSearchRequest, user: CurrentUserDep, services: ServicesDep) -> dict:
    lookup = services.checkin.search(payload.booking_reference, payload.last_name, user.id)
    message = "Already checked in" if lookup.already_checked_in else "Booking found"
    return ok(
        {
            "booking": lookup.booking,
            "already_checked_in": lookup.already_checked_in,
            "check_in": lookup.check_in,
        },
        message,
    )


@router.post("/confirm")
def confirm(payload: CheckInConfirmRequest, user: CurrentUserDep, services: ServicesDep) -> dict:
    check_in = services.checkin.confirm(
        booking_id=payload.booking_id,
        user_id=user.id,
        seat_numbers=payload.seat_numbers,
        gate_number=payload.gate_number,
    )
    return ok(
        {
            "booking_id": check_in.booking_id,
            "gate_number": check_in.gate_number,
            "boarding_time": check_in.boarding_time,
            "seat_numbers": check_in.seats,
        },
        "Check-in completed successfully",
    )
