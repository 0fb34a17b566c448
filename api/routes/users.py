"""Saved passenger endpoints for the signed-in user."""

from __future__ import annotations

from fastapi import APIRouter, status

from api.dependencies import CurrentUserDep, ServicesDep
from api.responses import ok
from api.schemas import SavedPassengerRequest

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/passengers")
def list_passengers(user: CurrentUserDep, services: ServicesDep) -> dict:
    return ok({"passengers": services.passengers.list_saved(user.id)}, "Passengers retrieved successfully")


@router.post("/passengers", status_code=status.HTTP_201_CREATED)
def add_passenger(payload: SavedPassengerRequest, user: CurrentUserDep, services: ServicesDep) -> dict:
    passenger = services.passengers.add_saved(user.id, **payload.model_dump())
    return ok({"passenger_id": passenger.id, "passenger": passenger}, "Passenger added successfully")
