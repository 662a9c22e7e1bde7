"""
Key-value settings stores.

The pipeline persists settings through the KeyValueStore protocol only
(get/set by string key, JSON-compatible values). Two implementations:
an in-process dict and a SQLAlchemy table (``intake_settings``).
"""

from __future__ import annotations

import copy
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from intake_kernel.db.engine import session_scope
from intake_kernel.logging_config import get_logger

from intake_pipeline.models import SettingEntryModel

logger = get_logger("ingestion.settings")


@runtime_checkable
class KeyValueStore(Protocol):
    """Get/set JSON-compatible values by string key."""

    def get(self, key: str) -> Any | None:
        ...

    def set(self, key: str, value: Any) -> None:
        ...


class InMemoryKeyValueStore:
    """Dict-backed store. Values are deep-copied in and out."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = copy.deepcopy(initial or {})

    def get(self, key: str) -> Any | None:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def keys(self) -> list[str]:
        return list(self._data)


class SqlAlchemyKeyValueStore:
    """Store backed by the ``intake_settings`` table; one short transaction per call."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def get(self, key: str) -> Any | None:
        with session_scope(self._session_factory) as session:
            entry = session.execute(
                select(SettingEntryModel).where(SettingEntryModel.key == key)
            ).scalar_one_or_none()
            return copy.deepcopy(entry.value) if entry is not None else None

    def set(self, key: str, value: Any) -> None:
        with session_scope(self._session_factory) as session:
            entry = session.execute(
                select(SettingEntryModel).where(SettingEntryModel.key == key)
            ).scalar_one_or_none()
            if entry is None:
                session.add(SettingEntryModel(key=key, value=copy.deepcopy(value)))
            else:
                entry.value = copy.deepcopy(value)
        logger.debug("setting_written", extra={"key": key})
