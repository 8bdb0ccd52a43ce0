"""Shared fixtures: services wired to in-memory doubles."""

from typing import Optional

import pytest
from fastapi.testclient import TestClient

from nearr.api import create_app
from nearr.config import CohortConfig, ConfigModel, ServerConfig
from nearr.services import AccountService, AppContext, CohortService

from .fakes import (
    FakeAuthProvider,
    FakeClusterRegistry,
    FakeDatabase,
    FakeMembershipStore,
    FakeObjectStore,
    FakeProfileStore,
)

ADMIN_EMAIL = "admin@nearr.test"


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def registry():
    return FakeClusterRegistry()


@pytest.fixture
def profiles():
    return FakeProfileStore()


@pytest.fixture
def objects():
    return FakeObjectStore()


@pytest.fixture
def auth():
    return FakeAuthProvider()


@pytest.fixture
def cohort_settings():
    return CohortConfig()


@pytest.fixture
def service(db, registry, profiles, objects, cohort_settings):
    return CohortService(db, registry, FakeMembershipStore(), profiles, objects, settings=cohort_settings)


@pytest.fixture
def accounts(db, profiles, auth):
    return AccountService(db, profiles, auth, server=ServerConfig(admin_emails=[ADMIN_EMAIL]))


@pytest.fixture
def make_cluster(db, registry):
    def _make(name: str = "Runners", max_members: int = 3, category: str = "sports") -> int:
        with db.transaction() as conn:
            return registry.create_cluster(conn, name=name, max_members=max_members, category=category)["id"]

    return _make


@pytest.fixture
def make_profile(db):
    def _make(
        user_id: str,
        nickname: Optional[str] = None,
        whatsapp_number: Optional[str] = "+15550000000",
        **fields,
    ) -> str:
        with db.transaction() as conn:
            conn.profiles[user_id] = {
                "user_id": user_id,
                "nickname": nickname or user_id.capitalize(),
                "whatsapp_number": whatsapp_number,
                "email": f"{user_id}@example.com",
                "friend_reasons": [],
                "services": [],
                **fields,
            }
        return user_id

    return _make


@pytest.fixture
def context(db, service, accounts):
    return AppContext(config=ConfigModel(), db=db, cohorts=service, accounts=accounts)


@pytest.fixture
def client(context):
    return TestClient(create_app(context=context))


@pytest.fixture
def admin_headers(auth):
    return {"Authorization": f"Bearer {auth.issue_token(ADMIN_EMAIL)}"}
