"""Resolve database connection settings from the manifest and environment.

Individual fields take precedence over a URL so passwords with special
characters never have to be URL-encoded.  Environment values come from
the process overlaid with the project's ``.env`` file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

from contracts.errors import ConfigurationError
from contracts.manifest import DatabaseConfig, DriverType


@dataclass(frozen=True)
class ConnectionSpec:
    driver: DriverType
    url: str | None = None
    path: Path | None = None
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        """Identity used by the driver pool; never includes the password."""
        if self.driver == DriverType.SQLITE:
            return f"sqlite:{self.path}"
        if self.url:
            return f"postgres:{self.url}"
        p = self.params
        return f"postgres:{p.get('host')}:{p.get('port')}:{p.get('dbname')}:{p.get('user')}"


def load_env(project_root: Path) -> dict[str, str]:
    env = dict(os.environ)
    env_file = project_root / ".env"
    if env_file.exists():
        env.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    return env


def _pick(direct: Any, env_key: str | None, env: dict[str, str]) -> Any:
    if direct not in (None, ""):
        return direct
    if env_key and env.get(env_key):
        return env[env_key]
    return None


def resolve_connection(db: DatabaseConfig, project_root: str | Path = ".") -> ConnectionSpec:
    root = Path(project_root).resolve()

    if db.driver == DriverType.SQLITE:
        if not db.path:
            raise ConfigurationError("database.path is required for the sqlite driver")
        path = Path(db.path)
        if not path.is_absolute():
            path = root / path
        return ConnectionSpec(driver=DriverType.SQLITE, path=path.resolve())

    env = load_env(root)
    host = _pick(db.host, db.host_env, env)
    user = _pick(db.user, db.user_env, env)
    password = _pick(db.password, db.password_env, env)
    database = _pick(db.database, db.database_env, env)
    port = _pick(db.port, db.port_env, env)

    if host or user or password or database:
        params: dict[str, Any] = {
            "host": host or "localhost",
            "port": int(port) if port else 5432,
            "user": user or "postgres",
            "password": password or "",
            "dbname": database or "postgres",
        }
        if db.ssl:
            params["sslmode"] = db.ssl
        return ConnectionSpec(driver=DriverType.POSTGRES, params=params)

    url = db.url or env.get(db.url_env)
    if not url:
        raise ConfigurationError(
            "Database connection not configured. Either set individual fields "
            f"(host, user, password, database) or set {db.url_env} in {root / '.env'}"
        )
    return ConnectionSpec(driver=DriverType.POSTGRES, url=url.strip().strip("'\""))
