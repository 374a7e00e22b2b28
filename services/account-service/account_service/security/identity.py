"""Caller identity resolution from trusted request headers.

There is no token verification here: the upstream gateway is assumed to have
authenticated the caller and forwarded ``X-User-Id`` / ``X-User-Role``. Swap
``actor_from_headers`` for a token-backed resolver to harden this.
"""

from __future__ import annotations

import logging

from ..domain.account import AccountRole
from ..domain.contracts import Actor

logger = logging.getLogger(__name__)


def actor_from_headers(user_id: str | None, role: str | None) -> Actor | None:
    """Return the calling ``Actor``, or ``None`` when no identity was supplied.

    A missing or unrecognised role resolves to ``user`` so that malformed
    headers can never grant administrator rights.
    """
    if not user_id or not user_id.strip():
        return None

    resolved = AccountRole.user
    if role:
        try:
            resolved = AccountRole(role)
        except ValueError:
            logger.warning("ignoring unknown role %r for caller %s", role, user_id)
    return Actor(account_id=user_id.strip(), role=resolved)
