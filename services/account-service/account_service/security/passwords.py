"""Password hashing backed by bcrypt."""

from __future__ import annotations

import bcrypt

# bcrypt only looks at the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted, deliberately slow one-way hashing of account passwords."""

    def __init__(self, rounds: int = 10) -> None:
        """Store the bcrypt cost factor (log2 of the key expansion rounds)."""
        self._rounds = rounds

    def hash(self, password: str) -> str:
        """Return the bcrypt hash string for ``password`` using a fresh salt."""
        hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self._rounds))
        return hashed.decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Check ``password`` against a stored hash in constant time."""
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            return False
        return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
