"""Tests for settings loading and database URL parsing."""

import pytest
from pydantic import ValidationError

from lemma.config import Settings, parse_db_url
from lemma.db.dialect import DBType


class TestParseDbUrl:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("sqlite://lemma.db", (DBType.SQLITE, "lemma.db")),
            ("sqlite3://data/./lemma.db", (DBType.SQLITE, "data/lemma.db")),
            ("sqlite:///var/lib/lemma/lemma.db", (DBType.SQLITE, "/var/lib/lemma/lemma.db")),
            ("sqlite://:memory:", (DBType.SQLITE, ":memory:")),
        ],
    )
    def test_sqlite(self, url, expected):
        assert parse_db_url(url) == expected

    @pytest.mark.parametrize(
        "url",
        [
            "postgres://lemma:pw@db:5432/lemma",
            "postgresql://lemma@localhost/lemma?sslmode=disable",
            "postgresql+asyncpg://lemma@localhost/lemma",
        ],
    )
    def test_postgres_passes_through(self, url):
        assert parse_db_url(url) == (DBType.POSTGRES, url)

    @pytest.mark.parametrize("url", ["mysql://root@localhost/lemma", "lemma.db", ""])
    def test_unsupported(self, url):
        with pytest.raises(ValueError, match="Unsupported database URL"):
            parse_db_url(url)


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.db_type is DBType.SQLITE
        assert settings.db_data_source == "lemma.db"
        assert settings.encryption_key == ""
        assert not settings.is_development

    def test_postgres_url(self):
        settings = Settings(db_url="postgres://lemma@db/lemma")
        assert settings.db_type is DBType.POSTGRES
        assert settings.db_data_source == "postgres://lemma@db/lemma"

    def test_invalid_db_url_rejected(self):
        with pytest.raises(ValidationError, match="Unsupported database URL"):
            Settings(db_url="mongodb://localhost")

    def test_env_vars(self, monkeypatch):
        monkeypatch.setenv("LEMMA_ENV", "development")
        monkeypatch.setenv("LEMMA_ADMIN_EMAIL", "admin@example.com")
        settings = Settings()
        assert settings.is_development
        assert settings.admin_email == "admin@example.com"

    def test_yaml_file(self, tmp_path, monkeypatch):
        config = tmp_path / "config.yaml"
        config.write_text("log_level: WARNING\ndb_url: sqlite:///srv/lemma.db\n")
        monkeypatch.setenv("LEMMA_CONFIG_FILE", str(config))
        monkeypatch.delenv("LEMMA_LOG_LEVEL", raising=False)

        settings = Settings()
        assert settings.log_level == "WARNING"
        assert settings.db_data_source == "/srv/lemma.db"

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        config = tmp_path / "config.yaml"
        config.write_text("log_level: WARNING\n")
        monkeypatch.setenv("LEMMA_CONFIG_FILE", str(config))
        monkeypatch.setenv("LEMMA_LOG_LEVEL", "ERROR")

        assert Settings().log_level == "ERROR"

    def test_empty_yaml_file(self, tmp_path, monkeypatch):
        config = tmp_path / "config.yaml"
        config.write_text("")
        monkeypatch.setenv("LEMMA_CONFIG_FILE", str(config))
        assert Settings().db_type is DBType.SQLITE
