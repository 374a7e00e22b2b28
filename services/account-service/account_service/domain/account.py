from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class AccountRole(str, Enum):
    """Role deciding whether an account may change other accounts."""

    user = "user"
    admin = "admin"


class AccountStatus(str, Enum):
    """Flat account classification; any value may follow any other."""

    active = "active"
    inactive = "inactive"
    pending = "pending"


@dataclass(slots=True)
class Account:
    """Aggregate root for a user identity, including its credential hash."""

    account_id: str
    email: str
    password_hash: str = field(repr=False)
    name: str
    role: AccountRole
    status: AccountStatus
    created_at: datetime
    updated_at: datetime
    last_login_at: datetime | None = None

    def sanitized(self) -> "AccountView":
        """Return the projection that is safe to hand to any caller."""
        return AccountView(
            account_id=self.account_id,
            email=self.email,
            name=self.name,
            role=self.role,
            status=self.status,
            created_at=self.created_at,
            updated_at=self.updated_at,
            last_login_at=self.last_login_at,
        )


@dataclass(frozen=True, slots=True)
class AccountView:
    """Account without its password hash."""

    account_id: str
    email: str
    name: str
    role: AccountRole
    status: AccountStatus
    created_at: datetime
    updated_at: datetime
    last_login_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class AccountStatistics:
    """Directory-wide counts of all, active, and administrator accounts."""

    total_users: int = 0
    active_users: int = 0
    administrators: int = 0
