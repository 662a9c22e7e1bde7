"""Settings, mapping-profile and row storage implementations."""

from intake_pipeline.stores.key_value import (
    InMemoryKeyValueStore,
    KeyValueStore,
    SqlAlchemyKeyValueStore,
)
from intake_pipeline.stores.mapping_store import KEY_FIELDS_KEY, SETTINGS_KEY, MappingStore
from intake_pipeline.stores.storage import (
    CHUNK_SIZE,
    InMemoryRowStorage,
    RowStorage,
    SqlAlchemyRowStorage,
)

__all__ = [
    "CHUNK_SIZE",
    "KEY_FIELDS_KEY",
    "SETTINGS_KEY",
    "InMemoryKeyValueStore",
    "InMemoryRowStorage",
    "KeyValueStore",
    "MappingStore",
    "RowStorage",
    "SqlAlchemyKeyValueStore",
    "SqlAlchemyRowStorage",
]
