"""Domain models for cr_account — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.cr_common.enums import AdminRank


@dataclass
class Admin:
    id: int
    display_name: str
    email: str
    rank: str                        # AdminRank value
    balance: int                     # credits, never negative
    credential_hash: str             # plaintext (legacy) or bcrypt
    created_by: int | None = None    # weak reference, no cascade
    pin: str | None = None           # same dual format as credential_hash
    session_token: str | None = None
    last_active_at: datetime | None = None
    last_ip: str | None = None
    created_at: datetime | None = None

    @property
    def is_owner(self) -> bool:
        return self.rank == AdminRank.OWNER

    @property
    def has_pin(self) -> bool:
        return bool(self.pin)
