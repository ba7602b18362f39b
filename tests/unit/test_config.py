"""Tests for Config module."""

import pytest

from schemadump.config import Config, load_pg_service
from schemadump.exceptions import ConfigError

ENV_KEYS = [
    "SCHEMADUMP_DSN",
    "PGHOST",
    "PGPORT",
    "PGDATABASE",
    "PGUSER",
    "PGPASSWORD",
    "PGSSLMODE",
    "PGSERVICE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate tests from the developer's environment and service file."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("PGSERVICEFILE", str(tmp_path / "pg_service.conf"))


def _write_service_file(tmp_path, content: str) -> None:
    (tmp_path / "pg_service.conf").write_text(content)


class TestConfigDefaults:
    def test_config_defaults(self):
        config = Config()
        assert config.dsn is None
        assert config.host is None
        assert config.dbname is None
        assert config.service is None


class TestConfigFromEnv:
    """Test Config.from_env() loading from environment variables."""

    def test_config_loads_from_env(self, monkeypatch):
        monkeypatch.setenv("PGHOST", "db.internal")
        monkeypatch.setenv("PGPORT", "6432")
        monkeypatch.setenv("PGDATABASE", "shop")
        monkeypatch.setenv("PGUSER", "reader")
        monkeypatch.setenv("PGPASSWORD", "secret")
        monkeypatch.setenv("PGSSLMODE", "require")

        config = Config.from_env()

        assert config.host == "db.internal"
        assert config.port == "6432"
        assert config.dbname == "shop"
        assert config.user == "reader"
        assert config.password == "secret"
        assert config.sslmode == "require"

    def test_config_loads_dsn_from_env(self, monkeypatch):
        monkeypatch.setenv("SCHEMADUMP_DSN", "postgresql://localhost/shop")
        assert Config.from_env().dsn == "postgresql://localhost/shop"

    def test_config_cli_overrides_env(self, monkeypatch):
        monkeypatch.setenv("SCHEMADUMP_DSN", "postgresql://env/db")
        config = Config.from_env(dsn="postgresql://cli/db")
        assert config.dsn == "postgresql://cli/db"

    def test_config_loads_from_service_file(self, tmp_path):
        _write_service_file(
            tmp_path,
            "[shop]\nhost = db.internal\ndbname = shop\nuser = reader\n",
        )
        config = Config.from_env(service="shop")
        assert config.host == "db.internal"
        assert config.dbname == "shop"
        assert config.user == "reader"
        assert config.service == "shop"

    def test_env_overrides_service_file(self, tmp_path, monkeypatch):
        _write_service_file(tmp_path, "[shop]\nhost = db.internal\n")
        monkeypatch.setenv("PGHOST", "replica.internal")
        assert Config.from_env(service="shop").host == "replica.internal"

    def test_service_from_pgservice_env(self, tmp_path, monkeypatch):
        _write_service_file(tmp_path, "[shop]\ndbname = shop\n")
        monkeypatch.setenv("PGSERVICE", "shop")
        assert Config.from_env().dbname == "shop"


class TestLoadPgService:
    def test_missing_file_returns_empty(self):
        assert load_pg_service("shop") == {}

    def test_unknown_service_raises(self, tmp_path):
        _write_service_file(tmp_path, "[other]\nhost = x\n")
        with pytest.raises(ConfigError, match="Service 'shop' not found"):
            load_pg_service("shop")


class TestConfigValidation:
    """Test validate_for_db_ops."""

    def test_dsn_alone_is_valid(self):
        Config(dsn="postgresql://localhost/shop").validate_for_db_ops()

    def test_discrete_settings_valid(self):
        Config(host="localhost", dbname="shop", user="reader").validate_for_db_ops()

    def test_missing_settings_raise_ConfigError(self):
        with pytest.raises(ConfigError) as exc_info:
            Config(host="localhost").validate_for_db_ops()
        assert "dbname" in str(exc_info.value)
        assert "user" in str(exc_info.value)
        assert "PGHOST" not in str(exc_info.value)


class TestConninfo:
    def test_dsn_passed_through(self):
        assert Config(dsn="postgresql://x/y").conninfo() == "postgresql://x/y"

    def test_keyword_pairs_quoted(self):
        config = Config(host="localhost", dbname="shop", user="o'brien")
        assert config.conninfo() == "host='localhost' dbname='shop' user='o\\'brien'"
