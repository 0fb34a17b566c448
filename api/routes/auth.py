"""Authentication endpoints: register, login, session check and logout."""

from __future__ import annotations

from fastapi import APIRouter, status

from api.dependencies import CurrentUserDep, ServicesDep
from api.responses import ok
from api.schemas import LoginRequest, RegisterRequest

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, services: ServicesDep) -> dict:
    user, token = services.auth.register(
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        password=payload.password,
        phone=payload.phone,
        date_of_birth=payload.date_of_birth,
        address=payload.address,
    )
    return ok({"user": user.to_public(), "token": token}, "Registration successful")


@router.post("/login")
def login(payload: LoginRequest, services: ServicesDep) -> dict:
    """Validate credentials and issue a JWT access token."""

    user, token = services.auth.authenticate(payload.email, payload.password)
    return ok({"user": user.to_public(), "token": token}, "Login successful")


@router.get("/check")
def check(user: CurrentUserDep) -> dict:
    return ok({"user": user.to_public()}, "Authenticated")


@router.post("/logout")
def logout() -> dict:
    # Tokens are stateless; the client discards its copy
    return ok(message="Logged out successfully")
