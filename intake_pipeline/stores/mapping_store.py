"""
Mapping store: confirmed MappingSets and key-field overrides by signature.

All profiles live in one settings document under ``import_mappings_v2``:

    {
        "<entity>_<sorted|columns>": {
            "<TargetField>": {"sourceColumn": ..., "operation": ..., ...},
            "__keyFields": ["DocumentId", "LineId"]
        },
        ...
    }

Every read and every read-modify-write holds the store's re-entrant lock,
so two runs sharing a store never interleave a write with a read.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping, Sequence
from typing import Any

from intake_kernel.logging_config import get_logger

from intake_pipeline.domain.types import MappingSet
from intake_pipeline.stores.key_value import KeyValueStore

logger = get_logger("ingestion.mapping_store")

SETTINGS_KEY = "import_mappings_v2"
KEY_FIELDS_KEY = "__keyFields"


class MappingStore:
    """Persisted mapping profiles on top of a KeyValueStore."""

    def __init__(self, kv: KeyValueStore, settings_key: str = SETTINGS_KEY):
        self._kv = kv
        self._settings_key = settings_key
        self._lock = threading.RLock()

    # -- raw document ---------------------------------------------------------

    def _load(self) -> dict[str, dict[str, Any]]:
        data = self._kv.get(self._settings_key)
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.warning(
                "mapping_profiles_malformed",
                extra={"settings_key": self._settings_key, "type": type(data).__name__},
            )
            return {}
        return {k: dict(v) for k, v in data.items() if isinstance(v, dict)}

    def _save(self, profiles: dict[str, dict[str, Any]]) -> None:
        self._kv.set(self._settings_key, profiles)

    # -- mappings -------------------------------------------------------------

    def _parse(self, signature: str, doc: Mapping[str, Any] | None) -> MappingSet | None:
        if not doc:
            return None
        try:
            mapping_set = MappingSet.from_dict(doc)
        except (TypeError, ValueError) as exc:
            logger.warning(
                "mapping_profile_unreadable",
                extra={"mapping_signature": signature, "reason": str(exc)},
            )
            return None
        return mapping_set if len(mapping_set) else None

    @staticmethod
    def _key_fields_of(doc: Mapping[str, Any]) -> tuple[str, ...] | None:
        keys = doc.get(KEY_FIELDS_KEY)
        if not keys or not isinstance(keys, list):
            return None
        return tuple(str(k) for k in keys)

    def get(self, signature: str) -> MappingSet | None:
        """Stored MappingSet for a signature; None when absent or unreadable."""
        with self._lock:
            doc = self._load().get(signature)
        return self._parse(signature, doc)

    def get_profile(self, signature: str) -> tuple[MappingSet | None, tuple[str, ...] | None]:
        """Mapping and key-field override of a signature, read in one step."""
        with self._lock:
            doc = self._load().get(signature, {})
        return self._parse(signature, doc), self._key_fields_of(doc)

    def set(self, signature: str, mapping_set: MappingSet) -> None:
        """Store a MappingSet; an existing key-field override is kept."""
        with self._lock:
            profiles = self._load()
            doc = mapping_set.to_dict()
            previous = profiles.get(signature, {})
            if KEY_FIELDS_KEY in previous:
                doc[KEY_FIELDS_KEY] = previous[KEY_FIELDS_KEY]
            profiles[signature] = doc
            self._save(profiles)
        logger.info(
            "mapping_saved",
            extra={"mapping_signature": signature, "field_count": len(mapping_set)},
        )

    def delete(self, signature: str) -> bool:
        with self._lock:
            profiles = self._load()
            if signature not in profiles:
                return False
            del profiles[signature]
            self._save(profiles)
        return True

    # -- key-field overrides --------------------------------------------------

    def get_key_fields(self, signature: str) -> tuple[str, ...] | None:
        with self._lock:
            doc = self._load().get(signature, {})
        return self._key_fields_of(doc)

    def set_key_fields(self, signature: str, key_fields: Sequence[str]) -> None:
        with self._lock:
            profiles = self._load()
            doc = profiles.setdefault(signature, {})
            doc[KEY_FIELDS_KEY] = list(key_fields)
            self._save(profiles)
        logger.info(
            "key_fields_saved",
            extra={"mapping_signature": signature, "key_fields": list(key_fields)},
        )

    # -- profile management ---------------------------------------------------

    def export_profiles(self) -> dict[str, dict[str, Any]]:
        """All profiles as a JSON-compatible dict."""
        with self._lock:
            return self._load()

    def import_profiles(self, data: Mapping[str, Any]) -> int:
        """
        Merge profiles into the store; imported entries win per field.

        Returns the number of signatures imported. Raises ValueError when
        ``data`` is not a signature -> profile object or a profile holds a
        mapping entry that cannot be read; nothing is stored in that case.
        """
        if not isinstance(data, Mapping) or not all(isinstance(v, Mapping) for v in data.values()):
            raise ValueError("mapping profiles must be an object of signature -> profile objects")
        for signature, doc in data.items():
            try:
                MappingSet.from_dict(doc)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"mapping profile {signature!r} is invalid: {exc}") from exc
        with self._lock:
            profiles = self._load()
            for signature, doc in data.items():
                merged = profiles.get(signature, {})
                merged.update(doc)
                profiles[signature] = merged
            self._save(profiles)
        logger.info("mapping_profiles_imported", extra={"count": len(data)})
        return len(data)

    def clear(self) -> None:
        with self._lock:
            self._save({})

    def count(self) -> int:
        with self._lock:
            return len(self._load())
