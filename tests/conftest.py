# tests/conftest.py
"""
Shared fixtures: settings, in-memory tables, wired services, seeded accounts.
"""
import asyncio
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from hrms_notify.config import Settings
from hrms_notify.container import build_services
from hrms_notify.core.roles import ADMIN, EMPLOYEE, SUPER_ADMIN
from hrms_notify.infra.table_client import Tables
from hrms_notify.main import create_app
from hrms_notify.models.account import AccountStatus
from hrms_notify.security.jwt_utils import create_token
from tests.fakes import FakeTableClient


@pytest.fixture
def settings():
    return Settings(
        jwt_secret="test-secret",
        vapid_public_key="test-public-key",
        vapid_private_key="test-private-key",
        push_base_url="https://hrms.test",
        log_level="WARNING",
    )


@pytest.fixture
def tables():
    return Tables(
        accounts=FakeTableClient("accounts"),
        subscriptions=FakeTableClient("pushsubscriptions"),
        notifications=FakeTableClient("notifications"),
    )


@pytest.fixture
def push_sender():
    return MagicMock(name="webpush")


@pytest.fixture
def services(settings, tables, push_sender):
    return build_services(settings, tables, push_sender=push_sender)


async def add_account(services, email, role=EMPLOYEE, status=AccountStatus.ACTIVE, password_hash=""):
    account = await services.accounts.create(
        email=email,
        password_hash=password_hash,
        first_name=email.split("@")[0].title(),
        last_name="Tester",
        role=role,
    )
    if status != AccountStatus.ACTIVE:
        account = await services.accounts.update_fields(account.id, status=status.value)
    return account


# --- HTTP side ---------------------------------------------------------------


@pytest.fixture
def app(services):
    return create_app(services=services)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def seeded(services):
    """One account per role, created outside any running loop."""

    async def seed():
        return {
            "employee": await add_account(services, "employee@example.com", EMPLOYEE),
            "other": await add_account(services, "other@example.com", EMPLOYEE),
            "admin": await add_account(services, "admin@example.com", ADMIN),
            "superadmin": await add_account(services, "root@example.com", SUPER_ADMIN),
        }

    return asyncio.run(seed())


@pytest.fixture
def headers_for(settings):
    def make(account):
        return {"Authorization": f"Bearer {create_token(account.id, settings)}"}

    return make
