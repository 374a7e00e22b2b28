"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .account import AccountRole, AccountStatus


@dataclass(slots=True)
class CreateAccountInput:
    """Signup inputs; the password is plaintext and is never stored as given."""

    email: str
    password: str
    name: str
    role: AccountRole | str = AccountRole.user


@dataclass(frozen=True, slots=True)
class AccountFilter:
    """Optional listing filters, all of which must match."""

    search: str | None = None
    status: AccountStatus | str | None = None
    role: AccountRole | str | None = None


@dataclass(frozen=True, slots=True)
class AccountPatch:
    """The only fields an administrator may change on an existing account."""

    name: str | None = None
    role: AccountRole | str | None = None
    status: AccountStatus | str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AccountPatch":
        """Build a patch from arbitrary input, ignoring keys outside the allow-list."""
        return cls(
            name=data.get("name"),
            role=data.get("role"),
            status=data.get("status"),
        )


@dataclass(frozen=True, slots=True)
class Actor:
    """Identity of the caller, as established by the identity collaborator."""

    account_id: str
    role: AccountRole = AccountRole.user

    @property
    def is_admin(self) -> bool:
        return self.role == AccountRole.admin
