"""Prometheus instruments for account workflows."""

from __future__ import annotations

from prometheus_client import Counter

ACCOUNTS_CREATED = Counter(
    "accounts_created_total",
    "Accounts created through signup.",
)

ACCOUNT_LOGINS = Counter(
    "account_logins_total",
    "Credential verification attempts by outcome.",
    ["outcome"],
)

ADMIN_ACTIONS = Counter(
    "account_admin_actions_total",
    "Administrator mutations applied to accounts.",
    ["action"],
)
