"""
Row storage: where committed batches go.

Protocol:
    bulk_insert(entity_key, rows, batch_id=None) -> number of rows written
    clear(entity_key) -> number of rows removed

SqlAlchemyRowStorage writes in chunks of 500 rows inside one SAVEPOINT per
call, so a failed insert leaves no partial batch behind. SQLAlchemy
failures are raised as StorageCommitError with the cause chained.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from intake_kernel.db.base import utc_now
from intake_kernel.db.engine import session_scope
from intake_kernel.domain.dtos import to_json_safe
from intake_kernel.exceptions import StorageCommitError
from intake_kernel.logging_config import get_logger

from intake_pipeline.models import ImportedRowModel

logger = get_logger("ingestion.storage")

CHUNK_SIZE = 500


@runtime_checkable
class RowStorage(Protocol):
    """Storage engine boundary used by the coordinator's commit step."""

    def bulk_insert(
        self,
        entity_key: str,
        rows: Sequence[Mapping[str, Any]],
        batch_id: UUID | None = None,
    ) -> int:
        ...

    def clear(self, entity_key: str) -> int:
        ...


class InMemoryRowStorage:
    """Process-local storage. ``calls`` records every operation in order."""

    def __init__(self) -> None:
        self._rows: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[tuple[str, str, int]] = []

    def bulk_insert(
        self,
        entity_key: str,
        rows: Sequence[Mapping[str, Any]],
        batch_id: UUID | None = None,
    ) -> int:
        self._rows.setdefault(entity_key, []).extend(dict(r) for r in rows)
        self.calls.append(("bulk_insert", entity_key, len(rows)))
        return len(rows)

    def clear(self, entity_key: str) -> int:
        removed = len(self._rows.pop(entity_key, []))
        self.calls.append(("clear", entity_key, removed))
        return removed

    def rows(self, entity_key: str) -> list[dict[str, Any]]:
        return list(self._rows.get(entity_key, []))

    def count(self, entity_key: str) -> int:
        return len(self._rows.get(entity_key, []))


class SqlAlchemyRowStorage:
    """Rows stored as JSON payloads in ``intake_rows``."""

    def __init__(self, session_factory: sessionmaker[Session], chunk_size: int = CHUNK_SIZE):
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        self._session_factory = session_factory
        self._chunk_size = chunk_size

    def bulk_insert(
        self,
        entity_key: str,
        rows: Sequence[Mapping[str, Any]],
        batch_id: UUID | None = None,
    ) -> int:
        # One timestamp per batch keeps (created_at, row_number) in insertion order
        stamped = utc_now()
        try:
            with session_scope(self._session_factory) as session:
                with session.begin_nested():
                    for start in range(0, len(rows), self._chunk_size):
                        chunk = rows[start:start + self._chunk_size]
                        session.add_all([
                            ImportedRowModel(
                                entity_key=entity_key,
                                batch_id=batch_id,
                                row_number=start + offset,
                                payload=to_json_safe(row),
                                created_at=stamped,
                            )
                            for offset, row in enumerate(chunk, start=1)
                        ])
                        session.flush()
        except SQLAlchemyError as exc:
            raise StorageCommitError(entity_key, "bulk_insert", str(exc)) from exc

        logger.info(
            "rows_inserted",
            extra={"entity_key": entity_key, "count": len(rows), "chunk_size": self._chunk_size},
        )
        return len(rows)

    def clear(self, entity_key: str) -> int:
        try:
            with session_scope(self._session_factory) as session:
                result = session.execute(
                    delete(ImportedRowModel).where(ImportedRowModel.entity_key == entity_key)
                )
                removed = result.rowcount or 0
        except SQLAlchemyError as exc:
            raise StorageCommitError(entity_key, "clear", str(exc)) from exc

        logger.info("rows_cleared", extra={"entity_key": entity_key, "count": removed})
        return removed

    def rows(self, entity_key: str) -> list[dict[str, Any]]:
        """Stored payloads of an entity, in insertion order within each batch."""
        with session_scope(self._session_factory) as session:
            models = session.execute(
                select(ImportedRowModel)
                .where(ImportedRowModel.entity_key == entity_key)
                .order_by(ImportedRowModel.created_at, ImportedRowModel.row_number)
            ).scalars().all()
            return [dict(m.payload) for m in models]

    def count(self, entity_key: str) -> int:
        with session_scope(self._session_factory) as session:
            return session.execute(
                select(func.count()).select_from(ImportedRowModel)
                .where(ImportedRowModel.entity_key == entity_key)
            ).scalar_one()
