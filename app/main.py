from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI


def _validate_env() -> None:
    """
    Validate all required environment variables at startup.

    Runs before any service or database connection is initialised.
    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - No empty-string values are accepted.
    - A database is configured through DATABASE_URL or DB_HOST + DB_NAME.
    - Google service account credentials and SPREADSHEET_ID are required.
    - SUBMISSIONS_CLEAR_POLICY, when set, must be a known policy.
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    def _present(*names: str) -> bool:
        return any(os.getenv(name, "").strip() for name in names)

    # --- Database -------------------------------------------------------
    if not _present("DATABASE_URL") and not (_present("DB_HOST") and _present("DB_NAME", "DB")):
        errors.append(
            "No database configured. Set DATABASE_URL, or DB_HOST / DB_USER / "
            "DB_PASSWORD / DB_NAME."
        )

    # --- Google Sheets source -------------------------------------------
    if not _present("GOOGLE_CLIENT_EMAIL", "CLIENT_EMAIL"):
        errors.append("GOOGLE_CLIENT_EMAIL is not set (service account email).")
    if not _present("GOOGLE_PRIVATE_KEY", "PRIVATE_KEY"):
        errors.append("GOOGLE_PRIVATE_KEY is not set (service account private key).")
    if not _present("SPREADSHEET_ID"):
        errors.append("SPREADSHEET_ID is not set.")

    # --- Pipeline -------------------------------------------------------
    clear_policy = os.getenv("SUBMISSIONS_CLEAR_POLICY", "").strip().lower()
    if clear_policy and clear_policy not in {"after_commit", "per_row"}:
        errors.append(
            f"SUBMISSIONS_CLEAR_POLICY='{clear_policy}' is not valid. "
            "Allowed values: ['after_commit', 'per_row']."
        )

    if errors:
        raise RuntimeError(
            "Startup validation failed — missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Compare Base.metadata table names against the live DB schema.

    Every table registered on Base.metadata must exist in the database.
    If any are missing, log a critical error and abort startup so that
    the operator is forced to run migrations before the pipeline writes.

    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401 — registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        log = logging.getLogger(__name__)
        log.critical(
            "Schema mismatch — %d table(s) defined in ORM metadata are absent from "
            "the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema, start the poll scheduler on boot; shut it down on exit."""
    from app.config import get_submission_pipeline_settings
    from app.services.ingestion_pipeline import get_ingestion_pipeline

    log = logging.getLogger(__name__)
    _check_db()
    log.info("Database connectivity confirmed")
    _check_schema()
    log.info("Database schema validated")

    scheduler = None
    if get_submission_pipeline_settings().scheduler_enabled:
        from app.scheduler.jobs import build_scheduler

        scheduler = build_scheduler()
        scheduler.start()
        log.info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
    else:
        log.info("Submission scheduler disabled; only manual triggers will run")

    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=True)
            log.info("Scheduler shut down")
        get_ingestion_pipeline().shutdown()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Submission Ingestion API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import submission_ingestion_router

    application.include_router(submission_ingestion_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
