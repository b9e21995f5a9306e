"""Pydantic request/response schemas for cr_auth.

All responses are wrapped in ApiResponse at the router layer.
"""

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    email: EmailStr
    # bcrypt only looks at the first 72 bytes
    secret: str = Field(..., min_length=1, max_length=72)


class PinRequest(BaseModel):
    pin: str = Field(..., pattern=r"^\d{4}$")


class AdminInfo(BaseModel):
    """Minimal admin info embedded in responses."""

    admin_id: int
    display_name: str
    email: str
    rank: str
    balance: int


class LoginResponse(BaseModel):
    token: str
    token_type: str            # "access" or "pin"
    requires_pin: bool
    pin_registered: bool       # False -> the PIN sent next will be registered
    admin: AdminInfo


class PinResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    pin_registered_now: bool
    admin: AdminInfo


class SessionStatusResponse(BaseModel):
    valid: bool
    admin_id: int
