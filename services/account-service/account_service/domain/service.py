"""Account service orchestrating validation, hashing, authorization and storage."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, TypeVar

from email_validator import EmailNotValidError, validate_email

from .account import Account, AccountRole, AccountStatistics, AccountStatus, AccountView
from .contracts import AccountFilter, AccountPatch, Actor, CreateAccountInput
from .errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from .. import metrics
from ..repository import InMemoryAccountRepository
from ..security.passwords import MAX_PASSWORD_BYTES, PasswordHasher

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


def normalize_email(email: str) -> str:
    """Lower-case and trim an email address so lookups are case-insensitive."""
    return email.strip().lower()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccountService:
    """Account directory workflows over an injected in-memory repository."""

    def __init__(
        self,
        repository: InMemoryAccountRepository,
        hasher: PasswordHasher,
        *,
        min_password_length: int = 8,
        max_name_length: int = 100,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Store collaborators and the validation limits applied to inputs."""
        self._repository = repository
        self._hasher = hasher
        self._min_password_length = min_password_length
        self._max_name_length = max_name_length
        self._clock = clock

    def create_account(self, payload: CreateAccountInput) -> AccountView:
        """Validate signup input, hash the password and store a new active account.

        Raises
        ------
        ValidationError
            When a required field is missing or malformed.
        ConflictError
            When another account already uses the same normalized email.
        """
        email = normalize_email(payload.email or "")
        name = (payload.name or "").strip()
        if not email or not payload.password or not name:
            raise ValidationError("email, password, and name are required")

        self._validate_email(email)
        self._validate_password(payload.password)
        self._validate_name(name)
        role = _coerce(AccountRole, payload.role or AccountRole.user, "role")

        if self._repository.find_by_email(email) is not None:
            raise ConflictError("account with this email already exists")

        password_hash = self._hasher.hash(payload.password)
        now = self._clock()
        account = Account(
            account_id=str(uuid.uuid4()),
            email=email,
            password_hash=password_hash,
            name=name,
            role=role,
            status=AccountStatus.active,
            created_at=now,
            updated_at=now,
            last_login_at=None,
        )
        # a concurrent signup may have claimed the email while we were hashing
        if not self._repository.insert(account):
            raise ConflictError("account with this email already exists")

        metrics.ACCOUNTS_CREATED.inc()
        logger.info("account %s created with role %s", account.account_id, role.value)
        return account.sanitized()

    def get_account(self, account_id: str) -> Account | None:
        """Return the raw account record for internal use, or ``None``."""
        return self._repository.get(account_id)

    def find_by_email(self, email: str) -> Account | None:
        """Return the raw account registered under ``email`` (case-insensitive)."""
        return self._repository.find_by_email(normalize_email(email))

    def verify_credentials(self, email: str, password: str) -> AccountView | None:
        """Return the sanitized account when the credentials match, otherwise ``None``.

        An unknown email and a wrong password are deliberately indistinguishable.
        """
        account = self.find_by_email(email)
        if account is None or not self._hasher.verify(password, account.password_hash):
            metrics.ACCOUNT_LOGINS.labels(outcome="rejected").inc()
            return None

        updated = self._repository.record_login(account.account_id, self._clock())
        if updated is None:
            # deleted between lookup and login
            metrics.ACCOUNT_LOGINS.labels(outcome="rejected").inc()
            return None

        metrics.ACCOUNT_LOGINS.labels(outcome="accepted").inc()
        logger.info("account %s logged in", updated.account_id)
        return updated.sanitized()

    def list_accounts(self, filters: AccountFilter | None = None) -> list[AccountView]:
        """Return sanitized accounts in creation order, narrowed by ``filters``."""
        filters = filters or AccountFilter()
        accounts = self._repository.list()

        search = (filters.search or "").lower()
        if search:
            accounts = [
                account
                for account in accounts
                if search in account.name.lower() or search in account.email.lower()
            ]
        if filters.status:
            accounts = [account for account in accounts if account.status == filters.status]
        if filters.role:
            accounts = [account for account in accounts if account.role == filters.role]

        return [account.sanitized() for account in accounts]

    def get_statistics(self) -> AccountStatistics:
        """Count all, active, and administrator accounts."""
        accounts = self._repository.list()
        return AccountStatistics(
            total_users=len(accounts),
            active_users=sum(1 for account in accounts if account.status == AccountStatus.active),
            administrators=sum(1 for account in accounts if account.role == AccountRole.admin),
        )

    def update_account(
        self, account_id: str, patch: AccountPatch, actor: Actor | None
    ) -> AccountView:
        """Apply an administrator's changes to ``name``, ``role`` and ``status``.

        Authorization is checked before existence, so a non-admin never learns
        whether ``account_id`` exists.
        """
        if actor is None or not actor.is_admin:
            raise AuthorizationError("account editing is restricted to administrators only")

        if self._repository.get(account_id) is None:
            raise NotFoundError("account not found")

        changes: dict[str, object] = {}
        if patch.name is not None:
            name = patch.name.strip() if isinstance(patch.name, str) else ""
            if not name:
                raise ValidationError("name must be a non-empty string")
            self._validate_name(name)
            changes["name"] = name
        if patch.role is not None:
            changes["role"] = _coerce(AccountRole, patch.role, "role")
        if patch.status is not None:
            changes["status"] = _coerce(AccountStatus, patch.status, "status")

        updated = self._repository.update(account_id, updated_at=self._clock(), **changes)
        if updated is None:
            raise NotFoundError("account not found")

        metrics.ADMIN_ACTIONS.labels(action="update").inc()
        logger.info(
            "account %s updated by %s (fields: %s)",
            account_id,
            actor.account_id,
            ", ".join(sorted(changes)) or "none",
        )
        return updated.sanitized()

    def delete_account(self, account_id: str, actor: Actor | None) -> None:
        """Permanently remove an account on behalf of an administrator."""
        if actor is None or not actor.is_admin:
            raise AuthorizationError("account deletion is restricted to administrators only")

        if not self._repository.delete(account_id):
            raise NotFoundError("account not found")

        metrics.ADMIN_ACTIONS.labels(action="delete").inc()
        logger.info("account %s deleted by %s", account_id, actor.account_id)

    def reset(self) -> None:
        """Remove every account. Only test harnesses should call this."""
        self._repository.clear()
        logger.warning("account directory reset")

    def _validate_email(self, email: str) -> None:
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError as exc:
            raise ValidationError(f"invalid email address: {exc}") from exc

    def _validate_password(self, password: str) -> None:
        if len(password) < self._min_password_length:
            raise ValidationError(
                f"password must be at least {self._min_password_length} characters"
            )
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")

    def _validate_name(self, name: str) -> None:
        if len(name) > self._max_name_length:
            raise ValidationError(f"name must be at most {self._max_name_length} characters")


def _coerce(enum_type: type[E], value: object, field_name: str) -> E:
    try:
        return enum_type(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_type)
        raise ValidationError(f"{field_name} must be one of: {allowed}") from exc
