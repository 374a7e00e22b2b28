from __future__ import annotations

import dataclasses
from datetime import datetime, timezone

import pytest

from account_service.domain.account import AccountRole, AccountStatus, AccountView
from account_service.domain.contracts import AccountFilter, AccountPatch, Actor, CreateAccountInput
from account_service.domain.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from account_service.domain.service import AccountService
from account_service.repository import InMemoryAccountRepository
from account_service.security.passwords import PasswordHasher

ADMIN = Actor(account_id="admin-id", role=AccountRole.admin)
REGULAR = Actor(account_id="user-id", role=AccountRole.user)


def signup(service: AccountService, email: str, name: str = "Test User", **kwargs) -> AccountView:
    return service.create_account(
        CreateAccountInput(email=email, password=kwargs.pop("password", "password123"), name=name, **kwargs)
    )


@pytest.fixture
def seeded(service: AccountService) -> AccountService:
    signup(service, "user1@example.com", "John Doe")
    signup(service, "user2@example.com", "Jane Smith")
    signup(service, "admin@example.com", "Admin User", role=AccountRole.admin)
    return service


def test_create_account_returns_sanitized_view(service):
    account = signup(service, "test@example.com")

    assert account.account_id
    assert account.email == "test@example.com"
    assert account.name == "Test User"
    assert account.role == AccountRole.user
    assert account.status == AccountStatus.active
    assert account.created_at == account.updated_at
    assert account.last_login_at is None
    assert "password_hash" not in {f.name for f in dataclasses.fields(account)}


def test_create_account_normalizes_email_and_name(service):
    account = signup(service, "  TEST@Example.COM ", name="  Padded Name  ")

    assert account.email == "test@example.com"
    assert account.name == "Padded Name"


def test_create_account_never_stores_plaintext(service):
    account = signup(service, "test@example.com", password="correct horse")

    stored = service.get_account(account.account_id)
    assert stored.password_hash != "correct horse"
    assert stored.password_hash.startswith("$2")
    assert "correct horse" not in repr(stored)
    assert stored.password_hash not in repr(stored)


@pytest.mark.parametrize(
    "email,password,name",
    [
        ("", "password123", "Name"),
        ("test@example.com", "", "Name"),
        ("test@example.com", "password123", ""),
        ("test@example.com", "password123", "   "),
    ],
)
def test_create_account_requires_all_fields(service, email, password, name):
    with pytest.raises(ValidationError, match="email, password, and name are required"):
        service.create_account(CreateAccountInput(email=email, password=password, name=name))


def test_create_account_rejects_malformed_input(service):
    with pytest.raises(ValidationError, match="invalid email"):
        signup(service, "not-an-email")
    with pytest.raises(ValidationError, match="at least 8"):
        signup(service, "short@example.com", password="short")
    with pytest.raises(ValidationError, match="at most 72 bytes"):
        signup(service, "long@example.com", password="x" * 73)
    with pytest.raises(ValidationError, match="at most 100"):
        signup(service, "name@example.com", name="n" * 101)
    with pytest.raises(ValidationError, match="role must be one of"):
        signup(service, "role@example.com", role="superuser")
    assert service.list_accounts() == []


def test_create_account_conflicts_on_case_insensitive_email(service):
    signup(service, "test@example.com")

    with pytest.raises(ConflictError, match="already exists"):
        signup(service, " TEST@EXAMPLE.com ", name="Another User", password="password456")
    assert len(service.list_accounts()) == 1


def test_insert_rechecks_email_uniqueness(repository, service):
    """A signup that loses the race after hashing still reports a conflict."""
    first = signup(service, "race@example.com")
    stored = repository.get(first.account_id)

    duplicate = dataclasses.replace(stored, account_id="other-id")
    assert repository.insert(duplicate) is False
    assert repository.get("other-id") is None


def test_get_account_by_id(service):
    created = signup(service, "test@example.com")

    found = service.get_account(created.account_id)
    assert found is not None
    assert found.email == "test@example.com"
    assert service.get_account("non-existent-id") is None


def test_find_by_email_is_case_insensitive(service):
    signup(service, "test@example.com")

    assert service.find_by_email("test@example.com") is not None
    assert service.find_by_email("TEST@EXAMPLE.COM") is not None
    assert service.find_by_email("nonexistent@example.com") is None


def test_verify_credentials_accepts_correct_password(service):
    signup(service, "test@example.com", password="correctpassword")

    account = service.verify_credentials("Test@Example.com", "correctpassword")

    assert account is not None
    assert account.email == "test@example.com"
    assert account.last_login_at is not None
    assert service.find_by_email("test@example.com").last_login_at == account.last_login_at


def test_verify_credentials_returns_none_without_distinguishing_cause(service):
    signup(service, "test@example.com", password="correctpassword")

    assert service.verify_credentials("test@example.com", "wrongpassword") is None
    assert service.verify_credentials("nonexistent@example.com", "correctpassword") is None
    assert service.find_by_email("test@example.com").last_login_at is None


def test_last_login_strictly_increases(repository):
    frozen = datetime(2024, 1, 1, tzinfo=timezone.utc)
    service = AccountService(repository, PasswordHasher(rounds=4), clock=lambda: frozen)
    signup(service, "test@example.com")

    first = service.verify_credentials("test@example.com", "password123")
    second = service.verify_credentials("test@example.com", "password123")

    assert first.last_login_at == frozen
    assert second.last_login_at > first.last_login_at


def test_list_accounts_returns_everyone_in_creation_order(seeded):
    accounts = seeded.list_accounts()

    assert [account.email for account in accounts] == [
        "user1@example.com",
        "user2@example.com",
        "admin@example.com",
    ]
    for account in accounts:
        assert not hasattr(account, "password_hash")


def test_list_accounts_search_matches_name_or_email(seeded):
    by_name = seeded.list_accounts(AccountFilter(search="JOHN"))
    assert [account.name for account in by_name] == ["John Doe"]

    by_email = seeded.list_accounts(AccountFilter(search="admin"))
    assert [account.email for account in by_email] == ["admin@example.com"]

    assert len(seeded.list_accounts(AccountFilter(search="example.com"))) == 3
    assert seeded.list_accounts(AccountFilter(search="nobody")) == []


def test_list_accounts_search_is_matched_as_given(seeded):
    signup(seeded, "johnny@example.org", "Johnny")

    exact = seeded.list_accounts(AccountFilter(search="john "))
    assert [account.name for account in exact] == ["John Doe"]

    loose = seeded.list_accounts(AccountFilter(search="john"))
    assert [account.name for account in loose] == ["John Doe", "Johnny"]


def test_list_accounts_filters_compose(seeded):
    admins = seeded.list_accounts(AccountFilter(role=AccountRole.admin))
    assert [account.email for account in admins] == ["admin@example.com"]

    target = seeded.find_by_email("user2@example.com")
    seeded.update_account(target.account_id, AccountPatch(status=AccountStatus.inactive), ADMIN)

    inactive = seeded.list_accounts(AccountFilter(status="inactive"))
    assert [account.email for account in inactive] == ["user2@example.com"]
    assert seeded.list_accounts(AccountFilter(status="inactive", role="admin")) == []
    assert len(seeded.list_accounts(AccountFilter(search="user", status=AccountStatus.active))) == 2


def test_update_keeps_position_in_listing(seeded):
    first = seeded.find_by_email("user1@example.com")
    seeded.update_account(first.account_id, AccountPatch(name="Johnny"), ADMIN)

    assert seeded.list_accounts()[0].name == "Johnny"


def test_statistics_on_empty_directory(service):
    stats = service.get_statistics()

    assert (stats.total_users, stats.active_users, stats.administrators) == (0, 0, 0)


def test_statistics_count_active_and_admins(seeded):
    stats = seeded.get_statistics()
    assert (stats.total_users, stats.active_users, stats.administrators) == (3, 3, 1)

    target = seeded.find_by_email("user1@example.com")
    seeded.update_account(target.account_id, AccountPatch(status="pending"), ADMIN)
    stats = seeded.get_statistics()
    assert (stats.total_users, stats.active_users, stats.administrators) == (3, 2, 1)


def test_admin_can_update_account(service):
    created = signup(service, "user@example.com", "Regular User")

    updated = service.update_account(
        created.account_id,
        AccountPatch(name="  Updated Name ", role="admin", status=AccountStatus.pending),
        ADMIN,
    )

    assert updated.name == "Updated Name"
    assert updated.role == AccountRole.admin
    assert updated.status == AccountStatus.pending
    assert updated.updated_at >= created.updated_at


def test_update_ignores_fields_outside_allow_list(service):
    created = signup(service, "user@example.com", "Regular User")
    original_hash = service.get_account(created.account_id).password_hash

    patch = AccountPatch.from_mapping(
        {"name": "New Name", "email": "hacked@example.com", "password": "hackedpassword"}
    )
    updated = service.update_account(created.account_id, patch, ADMIN)

    assert updated.name == "New Name"
    assert updated.email == "user@example.com"
    assert service.get_account(created.account_id).password_hash == original_hash
    assert service.verify_credentials("user@example.com", "password123") is not None


def test_update_rejects_invalid_patch_values(service):
    created = signup(service, "user@example.com")

    with pytest.raises(ValidationError):
        service.update_account(created.account_id, AccountPatch(name="   "), ADMIN)
    with pytest.raises(ValidationError, match="status must be one of"):
        service.update_account(created.account_id, AccountPatch(status="archived"), ADMIN)
    assert service.get_account(created.account_id).name == "Test User"


def test_non_admin_update_is_rejected_even_for_missing_accounts(service):
    created = signup(service, "user@example.com")

    with pytest.raises(AuthorizationError, match="restricted to administrators only"):
        service.update_account(created.account_id, AccountPatch(name="Nope"), REGULAR)
    with pytest.raises(AuthorizationError):
        service.update_account("non-existent", AccountPatch(name="Nope"), REGULAR)
    with pytest.raises(AuthorizationError):
        service.update_account(created.account_id, AccountPatch(name="Nope"), None)


def test_admin_update_of_missing_account_is_not_found(service):
    with pytest.raises(NotFoundError, match="account not found"):
        service.update_account("non-existent", AccountPatch(name="Updated"), ADMIN)


def test_admin_can_delete_account(service):
    created = signup(service, "user@example.com")

    assert service.delete_account(created.account_id, ADMIN) is None
    assert service.get_account(created.account_id) is None
    assert service.verify_credentials("user@example.com", "password123") is None


def test_delete_requires_admin_and_existing_account(service):
    created = signup(service, "user@example.com")

    with pytest.raises(AuthorizationError, match="deletion is restricted to administrators only"):
        service.delete_account(created.account_id, REGULAR)
    with pytest.raises(AuthorizationError):
        service.delete_account("non-existent", REGULAR)
    with pytest.raises(NotFoundError):
        service.delete_account("non-existent", ADMIN)
    assert service.get_account(created.account_id) is not None


def test_reset_clears_directory(seeded):
    seeded.reset()

    assert seeded.list_accounts() == []
    assert seeded.get_statistics().total_users == 0
    signup(seeded, "user1@example.com")
