"""HTTP route definitions for the account service."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response, status
from pydantic import BaseModel, ConfigDict, EmailStr
from pydantic.alias_generators import to_camel

from ..config import get_settings
from ..domain.account import AccountRole, AccountStatistics, AccountStatus, AccountView
from ..domain.contracts import AccountFilter, AccountPatch, Actor, CreateAccountInput
from ..domain.service import AccountService
from ..security.identity import actor_from_headers
from ..security.rate_limiter import SlidingWindowRateLimiter
from ..security.redis_rate_limiter import RedisSlidingWindowRateLimiter

logger = logging.getLogger(__name__)

ADMIN_ONLY_MESSAGE = (
    "account editing is restricted to administrators only. "
    "Contact an admin if you need changes made to user accounts."
)


class AccountResponse(BaseModel):
    """Serialised representation of a sanitized account."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    email: EmailStr
    name: str
    role: AccountRole
    status: AccountStatus
    created_at: datetime
    updated_at: datetime
    last_login_at: datetime | None = None

    @classmethod
    def from_domain(cls, account: AccountView) -> "AccountResponse":
        """Build a response model from the sanitized projection."""
        return cls(
            id=account.account_id,
            email=account.email,
            name=account.name,
            role=account.role,
            status=account.status,
            created_at=account.created_at,
            updated_at=account.updated_at,
            last_login_at=account.last_login_at,
        )


class StatisticsResponse(BaseModel):
    """Aggregate counts over the whole directory."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_users: int
    active_users: int
    administrators: int

    @classmethod
    def from_domain(cls, stats: AccountStatistics) -> "StatisticsResponse":
        return cls(
            total_users=stats.total_users,
            active_users=stats.active_users,
            administrators=stats.administrators,
        )


class SignupRequest(BaseModel):
    """Payload accepted when a visitor signs up."""

    email: EmailStr
    password: str
    name: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UpdateAccountRequest(BaseModel):
    """Fields an administrator may change; anything else in the body is dropped."""

    name: str | None = None
    role: AccountRole | None = None
    status: AccountStatus | None = None


settings = get_settings()


def _build_rate_limiter() -> SlidingWindowRateLimiter | RedisSlidingWindowRateLimiter:
    """Instantiate the configured rate limiter backend, preferring Redis when available."""
    if settings.rate_limit_backend == "redis" and settings.redis_url:
        try:
            import redis

            client = redis.from_url(settings.redis_url)
            # ensure connectivity early to fail fast and fall back
            client.ping()
            logger.info("rate limiter configured for redis backend at %s", settings.redis_url)
            return RedisSlidingWindowRateLimiter(
                client,
                max_requests=settings.rate_limit_requests,
                window_seconds=settings.rate_limit_window_seconds,
            )
        except Exception as exc:  # pragma: no cover - depends on a live redis
            logger.warning("redis rate limiter unavailable, falling back to in-memory: %s", exc)

    logger.info("rate limiter using in-memory backend")
    return SlidingWindowRateLimiter(
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )


rate_limiter = _build_rate_limiter()


def enforce_rate_limit(request: Request, response: Response) -> None:
    """Count the request against the caller's quota and expose it as headers."""
    client_host = request.client.host if request.client else "unknown"
    decision = rate_limiter.hit(f"api:{client_host}")
    if not decision.allowed:
        logger.warning("rate limit exceeded for %s", client_host)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="too many requests, please try again later",
            headers=decision.headers(),
        )
    response.headers.update(decision.headers())


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


def get_actor(
    user_id: str | None = Header(default=None, alias="X-User-Id"),
    user_role: str | None = Header(default=None, alias="X-User-Role"),
) -> Actor | None:
    """Resolve the calling actor from identity headers, if any."""
    return actor_from_headers(user_id, user_role)


def require_admin(actor: Actor | None = Depends(get_actor)) -> Actor:
    """Reject non-administrators before the request body is even looked at."""
    if actor is None or not actor.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=ADMIN_ONLY_MESSAGE)
    return actor


router = APIRouter(prefix="/api/users", tags=["users"], dependencies=[Depends(enforce_rate_limit)])


@router.post("/signup", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def signup(
    payload: SignupRequest,
    service: AccountService = Depends(get_service),
) -> AccountResponse:
    """Register a regular user account."""
    account = service.create_account(
        CreateAccountInput(
            email=payload.email,
            password=payload.password,
            name=payload.name,
            role=AccountRole.user,
        )
    )
    return AccountResponse.from_domain(account)


@router.post("/login", response_model=AccountResponse)
def login(
    payload: LoginRequest,
    service: AccountService = Depends(get_service),
) -> AccountResponse:
    """Verify credentials and return the account on success."""
    account = service.verify_credentials(payload.email, payload.password)
    if account is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return AccountResponse.from_domain(account)


@router.get("", response_model=list[AccountResponse])
def list_accounts(
    search: str | None = Query(default=None, max_length=200),
    account_status: AccountStatus | None = Query(default=None, alias="status"),
    role: AccountRole | None = Query(default=None),
    actor: Actor | None = Depends(get_actor),
    service: AccountService = Depends(get_service),
) -> list[AccountResponse]:
    """List accounts, optionally narrowed by search text, status and role."""
    logger.debug("listing accounts for %s", actor.account_id if actor else "anonymous caller")
    filters = AccountFilter(
        search=search.strip() if search else None,
        status=account_status,
        role=role,
    )
    accounts = service.list_accounts(filters)
    return [AccountResponse.from_domain(account) for account in accounts]


@router.get("/stats", response_model=StatisticsResponse)
def get_statistics(
    actor: Actor | None = Depends(get_actor),
    service: AccountService = Depends(get_service),
) -> StatisticsResponse:
    """Return directory-wide account counts."""
    logger.debug("statistics requested by %s", actor.account_id if actor else "anonymous caller")
    return StatisticsResponse.from_domain(service.get_statistics())


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: str,
    service: AccountService = Depends(get_service),
) -> AccountResponse:
    """Retrieve a single account."""
    account = service.get_account(account_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="account not found")
    return AccountResponse.from_domain(account.sanitized())


@router.put("/{account_id}", response_model=AccountResponse)
def update_account(
    account_id: str,
    payload: UpdateAccountRequest,
    actor: Actor = Depends(require_admin),
    service: AccountService = Depends(get_service),
) -> AccountResponse:
    """Apply an administrator's changes to name, role and status."""
    patch = AccountPatch.from_mapping(payload.model_dump(exclude_none=True))
    account = service.update_account(account_id, patch, actor)
    return AccountResponse.from_domain(account)


@router.delete(
    "/{account_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
def delete_account(
    account_id: str,
    actor: Actor = Depends(require_admin),
    service: AccountService = Depends(get_service),
) -> None:
    """Permanently delete an account."""
    service.delete_account(account_id, actor)
