"""Tests for system settings and statistics."""

import base64
from datetime import timedelta

import pytest

from lemma.db.errors import NotFoundError
from lemma.db.system import JWT_SECRET_KEY, UserStats, generate_random_secret
from lemma.models.workspace import Workspace


class TestSystemSettings:
    async def test_missing_setting(self, database):
        with pytest.raises(NotFoundError, match="site_name"):
            await database.get_system_setting("site_name")

    async def test_set_and_overwrite(self, database):
        await database.set_system_setting("site_name", "Lemma")
        assert await database.get_system_setting("site_name") == "Lemma"

        await database.set_system_setting("site_name", "Lemma Notes")
        assert await database.get_system_setting("site_name") == "Lemma Notes"


class TestEnsureJWTSecret:
    async def test_creates_secret_once(self, database):
        first = await database.ensure_jwt_secret()
        second = await database.ensure_jwt_secret()

        assert first == second
        assert len(base64.b64decode(first)) == 32
        assert await database.get_system_setting(JWT_SECRET_KEY) == first

    async def test_keeps_existing_secret(self, database):
        await database.set_system_setting(JWT_SECRET_KEY, "preexisting")
        assert await database.ensure_jwt_secret() == "preexisting"

    def test_random_secrets_differ(self):
        assert generate_random_secret(32) != generate_random_secret(32)


class TestSystemStats:
    async def test_empty_database(self, database):
        assert await database.get_system_stats() == UserStats()

    async def test_counts(self, database, make_user, make_session):
        alice = await database.create_user(make_user("alice@example.com"))
        await database.create_user(make_user("bob@example.com"))
        await database.create_workspace(Workspace(user_id=alice.id, name="Extra"))
        await database.create_session(make_session("s1", alice.id, timedelta(hours=1)))
        await database.create_session(make_session("s2", alice.id, timedelta(hours=1)))

        stats = await database.get_system_stats()

        assert stats.total_users == 2
        assert stats.total_workspaces == 3
        assert stats.active_users == 1
