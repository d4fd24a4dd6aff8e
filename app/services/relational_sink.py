"""
app/services/relational_sink.py

Transaction owner for submission batches.

A batch is written through exactly one `SinkTransaction`. The sink allows a
single open transaction at a time, so two pipeline runs can never interleave
inserts.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.submission import Submission
from app.errors import InsertFailedError, TransactionInProgressError
from app.repositories.submission_repository import SubmissionRepository

logger = logging.getLogger(__name__)


class SinkTransaction:
    """
    One open database transaction covering a single batch.
    """

    def __init__(self, *, session: Session, on_close: Callable[[], None]) -> None:
        self._session = session
        self._repository = SubmissionRepository(session)
        self._on_close = on_close
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    def insert_record(
        self,
        submission: Submission,
        *,
        download_content: bytes | None = None,
        authorization_letter: bytes | None = None,
    ) -> int:
        """
        Insert one submission inside the open transaction and return its id.
        """

        self._require_open()
        try:
            record_id = self._repository.insert_record(
                submission,
                download_content=download_content,
                authorization_letter=authorization_letter,
            )
        except SQLAlchemyError as exc:
            raise InsertFailedError(f"Failed to insert submission email={submission.email}: {exc}") from exc

        return record_id

    def commit(self) -> None:
        self._require_open()
        try:
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise InsertFailedError(f"Failed to commit submission batch: {exc}") from exc
        finally:
            self._close()

    def rollback(self) -> None:
        if not self._open:
            return
        try:
            self._session.rollback()
        finally:
            self._close()

    def _require_open(self) -> None:
        if not self._open:
            raise InsertFailedError("Transaction is already closed.")

    def _close(self) -> None:
        self._open = False
        try:
            self._session.close()
        finally:
            self._on_close()


class RelationalSink:
    """
    Hands out batch transactions from a pooled session factory.
    """

    def __init__(
        self,
        *,
        session_factory: Callable[[], Session],
        dispose: Callable[[], None] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._dispose = dispose
        self._guard = threading.Lock()

    @property
    def in_transaction(self) -> bool:
        return self._guard.locked()

    def begin_transaction(self) -> SinkTransaction:
        """
        Open the batch transaction.

        Raises TransactionInProgressError if another batch transaction is open.
        """

        if not self._guard.acquire(blocking=False):
            raise TransactionInProgressError("A submission batch transaction is already open.")

        try:
            session = self._session_factory()
            session.begin()
        except Exception:
            self._guard.release()
            raise

        logger.debug("Opened submission batch transaction")
        return SinkTransaction(session=session, on_close=self._guard.release)

    @contextmanager
    def transaction(self) -> Iterator[SinkTransaction]:
        """
        Commit on clean exit, roll back when the block raises.
        """

        tx = self.begin_transaction()
        try:
            yield tx
        except BaseException:
            tx.rollback()
            raise
        if tx.is_open:
            tx.commit()

    def dispose(self) -> None:
        """Release pooled connections on shutdown."""
        if self._dispose is not None:
            self._dispose()
            logger.info("Database connections released")
