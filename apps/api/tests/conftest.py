"""
Test configuration and fixtures.

Provides:
- A fresh in-memory SQLite database per test (schema from the models)
- JWT session minting for authenticated tests
- HTTPX AsyncClient with session cookie and CSRF header
- Fake report executor and AI query client
"""
import os
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Generator

os.environ["TESTING"] = "1"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("ENV", "test")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import report_engine.db.models  # noqa: F401
from report_engine.core.deps import COOKIE_NAME, get_db
from report_engine.core.security import create_session_token
from report_engine.db.base import Base
from report_engine.db.enums import Role
from report_engine.db.models import Membership, Organization, User
from report_engine.main import app
from report_engine.schemas.report import ReportConfig, ReportResult
from report_engine.services.ai_query_service import AIQueryResult, get_ai_query_client
from report_engine.services.report_executor import get_report_executor


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh in-memory database per test.

    StaticPool keeps a single connection so every session (including the
    ones FastAPI opens on another thread) sees the same database.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()

    yield session

    session.close()
    engine.dispose()


def make_org(db: Session, name: str = "Test Organization") -> Organization:
    org = Organization(name=name, slug=f"org-{uuid.uuid4().hex[:8]}")
    db.add(org)
    db.commit()
    return org


def make_user(
    db: Session,
    org: Organization,
    role: Role = Role.COMPLIANCE_OFFICER,
    display_name: str = "Test User",
) -> User:
    user = User(
        email=f"user-{uuid.uuid4().hex[:8]}@test.com",
        display_name=display_name,
    )
    db.add(user)
    db.flush()
    db.add(Membership(user_id=user.id, organization_id=org.id, role=role.value))
    db.commit()
    return user


@pytest.fixture(scope="function")
def test_org(db: Session) -> Organization:
    return make_org(db)


@pytest.fixture(scope="function")
def test_user(db: Session, test_org: Organization) -> User:
    """Compliance officer in test_org (can manage, delete and generate reports)."""
    return make_user(db, test_org)


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    org: Organization
    token: str
    cookie_name: str = COOKIE_NAME


def make_auth(user: User, org: Organization) -> TestAuth:
    token = create_session_token(
        user_id=user.id,
        org_id=org.id,
        role=user.membership.role,
        token_version=user.token_version,
    )
    return TestAuth(user=user, org=org, token=token)


@pytest.fixture(scope="function")
def test_auth(test_user: User, test_org: Organization) -> TestAuth:
    return make_auth(test_user, test_org)


# =============================================================================
# Collaborator fakes
# =============================================================================

class FakeExecutor:
    """Records every config it is asked to run."""

    def __init__(self, result: ReportResult | None = None, error: Exception | None = None):
        self.result = result or ReportResult(
            columns=[{"id": "status", "label": "Status"}],
            rows=[{"status": "NEW"}],
            total_count=42,
        )
        self.error = error
        self.calls: list[tuple[ReportConfig, uuid.UUID]] = []

    async def execute(self, config: ReportConfig, org_id: uuid.UUID) -> ReportResult:
        self.calls.append((config, org_id))
        if self.error is not None:
            raise self.error
        return self.result


class FakeAIQueryClient:
    def __init__(self, result: AIQueryResult | None = None, error: Exception | None = None):
        self.result = result or AIQueryResult()
        self.error = error
        self.queries: list[str] = []

    async def execute_query(self, query, user_id, org_id) -> AIQueryResult:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture(scope="function")
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture(scope="function")
def fake_ai_client() -> FakeAIQueryClient:
    return FakeAIQueryClient()


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def client_factory(db: Session, fake_executor: FakeExecutor, fake_ai_client: FakeAIQueryClient):
    """
    Build AsyncClients against the app with test dependencies installed.

    Usage:
        async with client_factory(auth) as c:
            await c.get("/reports")
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_report_executor] = lambda: fake_executor
    app.dependency_overrides[get_ai_query_client] = lambda: fake_ai_client

    def build(auth: TestAuth | None = None, csrf: bool = True) -> AsyncClient:
        headers = {"X-Requested-With": "XMLHttpRequest"} if csrf else {}
        cookies = {auth.cookie_name: auth.token} if auth else {}
        return AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            cookies=cookies,
            headers=headers,
        )

    yield build

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(client_factory) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated client."""
    async with client_factory() as c:
        yield c


@pytest.fixture(scope="function")
async def authed_client(client_factory, test_auth: TestAuth) -> AsyncGenerator[AsyncClient, None]:
    """Authenticated client with session cookie and CSRF header."""
    async with client_factory(test_auth) as c:
        yield c


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture(scope="function")
def org_factory(db: Session):
    def build(name: str = "Other Organization") -> Organization:
        return make_org(db, name)
    return build


@pytest.fixture(scope="function")
def user_factory(db: Session):
    def build(
        org: Organization,
        role: Role = Role.COMPLIANCE_OFFICER,
        display_name: str = "Test User",
    ) -> User:
        return make_user(db, org, role, display_name)
    return build


@pytest.fixture(scope="function")
def auth_factory():
    return make_auth
