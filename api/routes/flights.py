"""Public flight catalog endpoints."""

from __future__ import annotations

from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Query

from api.dependencies import ServicesDep
from api.responses import ok
from api.schemas import MAX_PARTY_SIZE

router = APIRouter(prefix="/api/flights", tags=["flights"])


@router.get("/search")
def search_flights(
    services: ServicesDep,
    from_code: Annotated[Optional[str], Query(alias="from", max_length=3)] = None,
    to_code: Annotated[Optional[str], Query(alias="to", max_length=3)] = None,
    departure: Optional[date] = None,
    passengers: Annotated[int, Query(ge=1, le=MAX_PARTY_SIZE)] = 1,
    fare_class: Annotated[str, Query(alias="class")] = "economy",
) -> dict:
    """Bookable flights for a route and day, priced for the party."""

    flights = services.flights.search_flights(
        from_code=from_code,
        to_code=to_code,
        departure_date=departure,
        passengers=passengers,
        fare_class=fare_class,
    )
    return ok(
        {
            "flights": flights,
            "search_params": {
                "from": from_code,
                "to": to_code,
                "departure": departure,
                "passengers": passengers,
                "class": fare_class,
            },
        },
        "Flights retrieved successfully",
    )


@router.get("/status/{flight_number}")
def flight_status(flight_number: str, services: ServicesDep) -> dict:
    return ok({"flight": services.flights.get_flight_status(flight_number)}, "Flight status retrieved successfully")


@router.get("/{flight_id}")
def get_flight(flight_id: int, services: ServicesDep) -> dict:
    return ok({"flight": services.flights.get_flight(flight_id)}, "Flight retrieved successfully")
