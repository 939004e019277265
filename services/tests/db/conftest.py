"""
Shared fixtures for data-access tests.

Store tests run against a real, migrated SQLite database in a temporary
directory, with a real AES-GCM secrets service.
"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

from lemma.db.database import SQLDatabase, init_database
from lemma.db.dialect import DBType
from lemma.models.session import Session
from lemma.models.user import User, UserRole
from lemma.services.encryption_service import AESGCMSecretsService, generate_key


@pytest.fixture
def secrets_service() -> AESGCMSecretsService:
    return AESGCMSecretsService(generate_key())


@pytest_asyncio.fixture
async def database(tmp_path, secrets_service) -> AsyncGenerator[SQLDatabase]:
    """A migrated SQLite database in a temporary directory."""
    db = await init_database(DBType.SQLITE, str(tmp_path / "lemma.db"), secrets_service)
    await db.migrate()
    yield db
    await db.close()


@pytest.fixture
def make_user():
    """Factory for unsaved users."""

    def _make(email: str = "user@example.com", role: UserRole = UserRole.EDITOR) -> User:
        return User(
            email=email,
            display_name=email.split("@")[0].title(),
            password_hash="$2b$12$notarealhash",
            role=role,
        )

    return _make


@pytest.fixture
def make_session():
    """Factory for unsaved sessions expiring ``expires_in`` from now."""

    def _make(session_id: str, user_id: int, expires_in: timedelta) -> Session:
        return Session(
            id=session_id,
            user_id=user_id,
            refresh_token=f"refresh-{session_id}",
            expires_at=datetime.now(UTC) + expires_in,
        )

    return _make
