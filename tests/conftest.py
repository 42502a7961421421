"""Pytest configuration and shared fixtures.

Every test gets its own SQLite file under tmp_path and low bcrypt rounds.
"""
from collections.abc import AsyncIterator, Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from studybuddy.core.config import Settings, get_settings
from studybuddy.core.security import PasswordHasher, Principal, SessionIssuer
from studybuddy.db.session import DatabaseManager, get_database_manager
from studybuddy.main import app
from studybuddy.services.accounts import CredentialStore

TEST_SECRET = "test-secret-key-for-testing-only"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        bcrypt_rounds=4,
        secret_key=TEST_SECRET,
        retry_backoff_seconds=0.01,
    )


@pytest.fixture
def hasher(settings: Settings) -> PasswordHasher:
    return PasswordHasher(rounds=settings.bcrypt_rounds)


@pytest.fixture
def issuer(settings: Settings) -> SessionIssuer:
    return SessionIssuer(settings)


@pytest.fixture
async def db(settings: Settings) -> AsyncIterator[DatabaseManager]:
    manager = DatabaseManager.from_settings(settings)
    await manager.connect()
    yield manager
    await manager.close()


@pytest.fixture
async def session(db: DatabaseManager) -> AsyncIterator[AsyncSession]:
    async with db.session() as s:
        yield s


@pytest.fixture
def make_account(db: DatabaseManager, hasher: PasswordHasher) -> Callable:
    """Create an account directly through the store; returns its Principal."""

    async def _make(email: str = "ana@x.com", password: str = "secret1", name: str = "Ana") -> Principal:
        async with db.session() as s:
            user = await CredentialStore(s, db).create(name, email, hasher.hash(password))
            return Principal(id=user.id, email=user.email, name=user.name)

    return _make


@pytest.fixture
def make_client() -> Iterator[Callable[[Settings], TestClient]]:
    """Build TestClients bound to the given settings and a fresh database manager."""
    clients: list[TestClient] = []

    def _make(client_settings: Settings) -> TestClient:
        manager = DatabaseManager.from_settings(client_settings)
        app.dependency_overrides[get_settings] = lambda: client_settings
        app.dependency_overrides[get_database_manager] = lambda: manager
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client, settings: Settings) -> TestClient:
    return make_client(settings)


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "e2e: end-to-end scenario through the HTTP API")
