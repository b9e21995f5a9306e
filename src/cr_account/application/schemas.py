"""Pydantic request/response schemas for cr_account API."""

from typing import Literal

from pydantic import BaseModel, EmailStr, Field

from src.cr_account.domain.models import Admin


class CreateAdminRequest(BaseModel):
    display_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    # bcrypt only looks at the first 72 bytes
    secret: str = Field(..., min_length=6, max_length=72)
    rank: Literal["master", "reseller"]


class AdminDetail(BaseModel):
    admin_id: int
    display_name: str
    email: str
    rank: str
    balance: int
    created_by: int | None
    has_pin: bool
    last_active_at: str | None  # ISO8601 string
    created_at: str | None

    @classmethod
    def from_domain(cls, admin: Admin) -> "AdminDetail":
        return cls(
            admin_id=admin.id,
            display_name=admin.display_name,
            email=admin.email,
            rank=admin.rank,
            balance=admin.balance,
            created_by=admin.created_by,
            has_pin=admin.has_pin,
            last_active_at=admin.last_active_at.isoformat() if admin.last_active_at else None,
            created_at=admin.created_at.isoformat() if admin.created_at else None,
        )


class ChildrenResponse(BaseModel):
    items: list[AdminDetail]
    total: int
