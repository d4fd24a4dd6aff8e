"""
Shared environment-driven database configuration helpers.
"""

from __future__ import annotations

import os
from pathlib import Path
from urllib.parse import quote_plus


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


def normalize_postgres_url(url: str) -> str:
    """
    Normalize postgres URLs to SQLAlchemy's recommended psycopg driver form.
    """

    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def _first_env(*names: str) -> str | None:
    for name in names:
        value = os.getenv(name)
        if value is not None and value.strip():
            return value.strip()
    return None


def build_url_from_parts() -> str | None:
    """
    Assemble a PostgreSQL URL from discrete DB_* variables.

    Returns None when the host or the database name is missing.
    """

    host = _first_env("DB_HOST")
    name = _first_env("DB_NAME", "DB")
    if host is None or name is None:
        return None

    user = _first_env("DB_USER", "DB_ADMIN") or ""
    password = _first_env("DB_PASSWORD") or ""
    port = _first_env("DB_PORT")

    credentials = quote_plus(user)
    if password:
        credentials = f"{credentials}:{quote_plus(password)}"
    if credentials:
        credentials = f"{credentials}@"
    location = f"{host}:{port}" if port else host
    return f"postgresql+psycopg://{credentials}{location}/{name}"


def resolve_database_url() -> str:
    """
    Resolve database URL using environment variables and optional .env files.

    Priority:
    1) DATABASE_URL
    2) DB_HOST / DB_USER / DB_PASSWORD / DB_NAME (DB_ADMIN and DB accepted as aliases)
    """

    load_env_files()

    direct_url = os.getenv("DATABASE_URL")
    if direct_url:
        return normalize_postgres_url(direct_url)

    assembled = build_url_from_parts()
    if assembled:
        return assembled

    raise RuntimeError(
        "No database URL configured. Set DATABASE_URL, or configure "
        "DB_HOST / DB_USER / DB_PASSWORD / DB_NAME."
    )
