"""FastAPI routers for the public, customer and admin endpoints."""

from . import admin, auth, bookings, checkin, flights, users

__all__ = ["admin", "auth", "bookings", "checkin", "flights", "users"]
