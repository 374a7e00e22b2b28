"""In-memory repository for account data."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta
from threading import Lock
from typing import Any

from .domain.account import Account


class InMemoryAccountRepository:
    """Thread-safe account store keyed by account id.

    Iteration follows insertion order, so listings come back in creation order.
    Every compound operation (check-then-insert, read-modify-write) holds the
    same lock for its full duration.
    """

    def __init__(self) -> None:
        """Initialise an empty store and the lock guarding it."""
        self._accounts: dict[str, Account] = {}
        self._lock = Lock()

    def insert(self, account: Account) -> bool:
        """Store ``account`` unless its email is taken; return whether it was stored."""
        with self._lock:
            if self._find_by_email_locked(account.email) is not None:
                return False
            self._accounts[account.account_id] = account
            return True

    def get(self, account_id: str) -> Account | None:
        """Fetch an account by identifier or return ``None``."""
        with self._lock:
            return self._accounts.get(account_id)

    def find_by_email(self, email: str) -> Account | None:
        """Return the account whose stored (already normalized) email equals ``email``."""
        with self._lock:
            return self._find_by_email_locked(email)

    def list(self) -> list[Account]:
        """Return a snapshot of all accounts in creation order."""
        with self._lock:
            return list(self._accounts.values())

    def update(self, account_id: str, **changes: Any) -> Account | None:
        """Replace fields on a stored account and return the new version."""
        with self._lock:
            current = self._accounts.get(account_id)
            if current is None:
                return None
            updated = dataclasses.replace(current, **changes)
            self._accounts[account_id] = updated
            return updated

    def record_login(self, account_id: str, at: datetime) -> Account | None:
        """Stamp ``last_login_at``, keeping it strictly increasing per account."""
        with self._lock:
            current = self._accounts.get(account_id)
            if current is None:
                return None
            previous = current.last_login_at
            if previous is not None and at <= previous:
                at = previous + timedelta(microseconds=1)
            updated = dataclasses.replace(current, last_login_at=at)
            self._accounts[account_id] = updated
            return updated

    def delete(self, account_id: str) -> bool:
        """Remove an account; return ``False`` when it did not exist."""
        with self._lock:
            return self._accounts.pop(account_id, None) is not None

    def clear(self) -> None:
        """Drop every account. Intended for test isolation."""
        with self._lock:
            self._accounts.clear()

    def _find_by_email_locked(self, email: str) -> Account | None:
        for account in self._accounts.values():
            if account.email == email:
                return account
        return None
