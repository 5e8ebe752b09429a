"""
Process configuration read from environment variables.

`Settings.from_env()` is called once in the FastAPI lifespan (see `api/main.py`).
Every missing or malformed variable is collected first, so a broken deployment
reports all of its problems in one go instead of one per restart.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping

DEFAULT_AWS_REGION = "ap-south-1"
DEFAULT_KEY_PREFIX = "entries"
DEFAULT_MAX_UPLOAD_BYTES = 25 * 1024 * 1024  # 25 MiB


class ConfigError(RuntimeError):
    def __init__(self, problems: list[str]) -> None:
        self.problems = list(problems)
        super().__init__("Invalid configuration: " + "; ".join(self.problems))


def _env_str(env: Mapping[str, str], name: str, default: str = "") -> str:
    return (env.get(name, default) or "").strip() or default


def _env_bool(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = (env.get(name, "") or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def _env_positive_int(
    env: Mapping[str, str],
    name: str,
    default: int,
    problems: list[str],
) -> int:
    raw = (env.get(name, "") or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        problems.append(f"{name} must be an integer (got {raw!r})")
        return default
    if value <= 0:
        problems.append(f"{name} must be > 0 (got {value})")
        return default
    return value


def cors_allow_origins_from_env(env: Mapping[str, str] | None = None) -> list[str]:
    env = os.environ if env is None else env
    origins = [o.strip() for o in _env_str(env, "CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]
    return origins or ["*"]


@dataclass(frozen=True)
class DatabaseSettings:
    dsn: str | None = None
    host: str = ""
    port: int = 5432
    user: str = ""
    password: str = ""
    name: str = ""
    pool_min_size: int = 1
    pool_max_size: int = 5
    command_timeout_s: int = 30


@dataclass(frozen=True)
class StorageSettings:
    bucket: str
    region: str = DEFAULT_AWS_REGION
    access_key_id: str = ""
    secret_access_key: str = ""
    key_prefix: str = DEFAULT_KEY_PREFIX
    connect_timeout_s: int = 10
    read_timeout_s: int = 60


@dataclass(frozen=True)
class Settings:
    database: DatabaseSettings
    storage: StorageSettings
    app_env: str = "production"
    host: str = "0.0.0.0"
    port: int = 3001
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    cleanup_orphaned_uploads: bool = False
    cors_allow_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @property
    def expose_error_detail(self) -> bool:
        # Internal diagnostics only leave the process outside production.
        return not self.is_production

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if env is None else env
        problems: list[str] = []

        missing = [
            name
            for name in ("S3_BUCKET_NAME", "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY")
            if not _env_str(env, name)
        ]

        dsn = _env_str(env, "DATABASE_URL") or None
        if dsn is None:
            missing.extend(name for name in ("DB_HOST", "DB_USER", "DB_NAME") if not _env_str(env, name))

        if missing:
            problems.insert(0, "missing required variables: " + ", ".join(missing))

        database = DatabaseSettings(
            dsn=dsn,
            host=_env_str(env, "DB_HOST"),
            port=_env_positive_int(env, "DB_PORT", 5432, problems),
            user=_env_str(env, "DB_USER"),
            # An empty password is valid for local trust auth.
            password=(env.get("DB_PASS", "") or ""),
            name=_env_str(env, "DB_NAME"),
            pool_min_size=_env_positive_int(env, "DB_POOL_MIN_SIZE", 1, problems),
            pool_max_size=_env_positive_int(env, "DB_POOL_MAX_SIZE", 5, problems),
            command_timeout_s=_env_positive_int(env, "DB_COMMAND_TIMEOUT_S", 30, problems),
        )
        if database.pool_min_size > database.pool_max_size:
            problems.append("DB_POOL_MIN_SIZE must not exceed DB_POOL_MAX_SIZE")

        storage = StorageSettings(
            bucket=_env_str(env, "S3_BUCKET_NAME"),
            region=_env_str(env, "AWS_REGION", DEFAULT_AWS_REGION),
            access_key_id=_env_str(env, "AWS_ACCESS_KEY_ID"),
            secret_access_key=_env_str(env, "AWS_SECRET_ACCESS_KEY"),
            key_prefix=_env_str(env, "S3_KEY_PREFIX", DEFAULT_KEY_PREFIX).strip("/") or DEFAULT_KEY_PREFIX,
            connect_timeout_s=_env_positive_int(env, "S3_CONNECT_TIMEOUT_S", 10, problems),
            read_timeout_s=_env_positive_int(env, "S3_READ_TIMEOUT_S", 60, problems),
        )

        settings = cls(
            database=database,
            storage=storage,
            app_env=_env_str(env, "APP_ENV", "production"),
            host=_env_str(env, "HOST", "0.0.0.0"),
            port=_env_positive_int(env, "PORT", 3001, problems),
            max_upload_bytes=_env_positive_int(env, "MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES, problems),
            cleanup_orphaned_uploads=_env_bool(env, "CLEANUP_ORPHANED_UPLOADS"),
            cors_allow_origins=cors_allow_origins_from_env(env),
            log_level=_env_str(env, "LOG_LEVEL", "INFO").upper(),
        )

        if problems:
            raise ConfigError(problems)
        return settings
