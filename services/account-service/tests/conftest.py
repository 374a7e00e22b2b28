from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from account_service.api import routes
from account_service.config import get_settings
from account_service.domain.service import AccountService
from account_service.main import create_app
from account_service.repository import InMemoryAccountRepository
from account_service.security.passwords import PasswordHasher


@pytest.fixture
def repository() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def service(repository: InMemoryAccountRepository) -> AccountService:
    """Account service with the cheapest bcrypt cost so tests stay fast."""
    return AccountService(repository, PasswordHasher(rounds=4))


@pytest.fixture
def api_client(service: AccountService):
    """Provide a FastAPI test client with isolated state."""
    app = create_app(get_settings(), account_service=service)

    original_limiter = routes.rate_limiter
    routes.rate_limiter = routes.SlidingWindowRateLimiter(max_requests=100, window_seconds=60)

    with TestClient(app) as client:
        yield client, service

    routes.rate_limiter = original_limiter
    service.reset()
