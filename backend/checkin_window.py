"""
Check-in window policy
Check-in opens 24 hours before departure and closes at departure
"""
import enum
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

CHECK_IN_OPENS_HOURS = 24
BOARDING_LEAD = timedelta(minutes=30)
DEFAULT_GATE = 'TBA'


class WindowState(enum.Enum):
    DEPARTED = "departed"
    TOO_EARLY = "too_early"
    OPEN = "open"


@dataclass(frozen=True)
class CheckInWindow:
    state: WindowState
    hours_until_departure: float
    hours_remaining: int = 0


def hours_until_departure(departure: datetime, now: Optional[datetime] = None) -> float:
    """Signed hours from ``now`` to ``departure``; negative once the flight has left"""
    if now is None:
        now = datetime.now(departure.tzinfo) if departure.tzinfo else datetime.now()
    return (departure - now).total_seconds() / 3600


def evaluate(departure: datetime, now: Optional[datetime] = None) -> CheckInWindow:
    """
    Classify ``now`` against the check-in window for a departure

    Args:
        departure: Scheduled departure
        now: Reference time, defaults to the current time

    Returns:
        CheckInWindow; ``hours_remaining`` is set (rounded up) when too early
    """
    hours = hours_until_departure(departure, now)

    if hours < 0:
        return CheckInWindow(WindowState.DEPARTED, hours)
    if hours > CHECK_IN_OPENS_HOURS:
        return CheckInWindow(
            WindowState.TOO_EARLY, hours,
            hours_remaining=math.ceil(hours - CHECK_IN_OPENS_HOURS),
        )
    return CheckInWindow(WindowState.OPEN, hours)


def boarding_time_for(departure: datetime) -> datetime:
    return departure - BOARDING_LEAD


def normalize_seat(seat_number: Optional[str]) -> Optional[str]:
    """Trim and upper-case a seat number; blank becomes None"""
    if seat_number is None:
        return None
    seat_number = seat_number.strip().upper()
    return seat_number or None
