"""Configuration management for schemadump."""

import configparser
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from schemadump.exceptions import ConfigError

SERVICE_KEYS = ("host", "port", "dbname", "user", "password", "sslmode")


def pg_service_file() -> Path:
    """Location of the libpq connection service file."""
    override = os.environ.get("PGSERVICEFILE")
    if override:
        return Path(override)
    return Path.home() / ".pg_service.conf"


def load_pg_service(service: str) -> dict[str, str]:
    """Load connection settings for a service from ~/.pg_service.conf.

    Args:
        service: Section name in the service file

    Returns:
        Dict with any of host, port, dbname, user, password, sslmode

    Raises:
        ConfigError: If the file exists but the service is not defined
    """
    cfg_path = pg_service_file()
    if not cfg_path.exists():
        return {}

    config = configparser.ConfigParser()
    config.read(cfg_path, encoding="utf-8")

    if service not in config:
        available = config.sections() or ["(none)"]
        raise ConfigError(
            f"Service '{service}' not found in {cfg_path}. "
            f"Available services: {', '.join(available)}"
        )

    section = config[service]
    return {key: section[key].strip() for key in SERVICE_KEYS if key in section}


@dataclass
class Config:
    """Connection configuration for schemadump."""

    dsn: Optional[str] = None
    host: Optional[str] = None
    port: Optional[str] = None
    dbname: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None
    sslmode: Optional[str] = None
    service: Optional[str] = None

    @classmethod
    def from_env(
        cls,
        *,
        dsn: Optional[str] = None,
        host: Optional[str] = None,
        port: Optional[str] = None,
        dbname: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        sslmode: Optional[str] = None,
        service: Optional[str] = None,
    ) -> "Config":
        """Load configuration from ~/.pg_service.conf, env vars, with CLI overrides.

        Priority (highest to lowest):
        1. Explicit parameters (CLI args)
        2. Environment variables
        3. ~/.pg_service.conf service section
        """
        service_name = service or os.environ.get("PGSERVICE")
        service_cfg: dict[str, str] = {}
        if service_name:
            service_cfg = load_pg_service(service_name)

        def resolve(explicit, env_key, cfg_key=None):
            if explicit is not None:
                return explicit
            env_val = os.environ.get(env_key)
            if env_val is not None:
                return env_val
            if cfg_key and cfg_key in service_cfg:
                return service_cfg[cfg_key]
            return None

        return cls(
            dsn=resolve(dsn, "SCHEMADUMP_DSN"),
            host=resolve(host, "PGHOST", "host"),
            port=resolve(port, "PGPORT", "port"),
            dbname=resolve(dbname, "PGDATABASE", "dbname"),
            user=resolve(user, "PGUSER", "user"),
            password=resolve(password, "PGPASSWORD", "password"),
            sslmode=resolve(sslmode, "PGSSLMODE", "sslmode"),
            service=service_name,
        )

    def validate_for_db_ops(self) -> None:
        """Validate that enough is known to open a connection.

        A DSN alone is sufficient; otherwise host, dbname and user are required.

        Raises:
            ConfigError: If connection info is missing.
        """
        if self.dsn:
            return

        missing = []
        if not self.host:
            missing.append("host (set PGHOST or use --dsn)")
        if not self.dbname:
            missing.append("dbname (set PGDATABASE or use --dsn)")
        if not self.user:
            missing.append("user (set PGUSER or use --dsn)")

        if missing:
            raise ConfigError(
                "Missing required configuration:\n  - " + "\n  - ".join(missing)
            )

    def conninfo(self) -> str:
        """Render a libpq connection string."""
        if self.dsn:
            return self.dsn
        parts = []
        for key in SERVICE_KEYS:
            value = getattr(self, key)
            if value:
                escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
                parts.append(f"{key}='{escaped}'")
        return " ".join(parts)
