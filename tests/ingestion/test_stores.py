"""Tests for settings, mapping-profile and row stores (intake_pipeline/stores)."""

import threading
import time
from uuid import uuid4

import pytest

from intake_kernel.exceptions import StorageCommitError
from intake_pipeline.domain.types import MappingConfig, MappingOperation, MappingSet
from intake_pipeline.stores import (
    KEY_FIELDS_KEY,
    SETTINGS_KEY,
    InMemoryKeyValueStore,
    InMemoryRowStorage,
    KeyValueStore,
    MappingStore,
    RowStorage,
    SqlAlchemyKeyValueStore,
    SqlAlchemyRowStorage,
)

SIG = "invoice_items_Amt|Period|Vendor Name"


def _mapping():
    return MappingSet({
        "VendorId": MappingConfig("Vendor Name"),
        "Amount": MappingConfig("Amt", transform_id="ParseDeCurrency"),
        "Currency": MappingConfig.constant("EUR"),
        "Description": MappingConfig(
            "Text", operation=MappingOperation.CONCAT, secondary_column="Note", separator=" - "
        ),
    })


class TestInMemoryKeyValueStore:
    def test_get_missing(self, kv_store):
        assert kv_store.get("nope") is None

    def test_values_copied(self, kv_store):
        value = {"a": [1]}
        kv_store.set("k", value)
        value["a"].append(2)
        fetched = kv_store.get("k")
        fetched["a"].append(3)
        assert kv_store.get("k") == {"a": [1]}

    def test_protocol(self, kv_store):
        assert isinstance(kv_store, KeyValueStore)


class TestMappingStore:
    def test_round_trip(self, mapping_store):
        mapping_store.set(SIG, _mapping())
        assert mapping_store.get(SIG) == _mapping()

    def test_unknown_signature(self, mapping_store):
        assert mapping_store.get("other") is None
        assert mapping_store.get_key_fields("other") is None

    def test_persisted_document_shape(self, mapping_store, kv_store):
        mapping_store.set(SIG, _mapping())
        doc = kv_store.get(SETTINGS_KEY)[SIG]
        assert doc["Amount"] == {"sourceColumn": "Amt", "operation": "direct", "transformId": "ParseDeCurrency"}
        assert doc["Currency"]["constantValue"] == "EUR"
        assert doc["Description"]["separator"] == " - "

    def test_key_fields_survive_mapping_update(self, mapping_store):
        mapping_store.set_key_fields(SIG, ["POId", "LineId"])
        mapping_store.set(SIG, _mapping())
        assert mapping_store.get_key_fields(SIG) == ("POId", "LineId")
        assert len(mapping_store.get(SIG)) == 4

    def test_key_fields_only_profile_has_no_mapping(self, mapping_store):
        mapping_store.set_key_fields(SIG, ["DocumentId"])
        assert mapping_store.get(SIG) is None

    def test_delete(self, mapping_store):
        mapping_store.set(SIG, _mapping())
        assert mapping_store.delete(SIG)
        assert not mapping_store.delete(SIG)
        assert mapping_store.count() == 0

    def test_export_import(self, mapping_store):
        mapping_store.set(SIG, _mapping())
        mapping_store.set_key_fields(SIG, ["VendorId", "LineId"])
        exported = mapping_store.export_profiles()

        other = MappingStore(InMemoryKeyValueStore())
        assert other.import_profiles(exported) == 1
        assert other.get(SIG) == _mapping()
        assert other.get_key_fields(SIG) == ("VendorId", "LineId")

    def test_import_merges_per_field(self, mapping_store):
        mapping_store.set(SIG, _mapping())
        mapping_store.import_profiles({SIG: {"Amount": {"sourceColumn": "Betrag"}}})
        merged = mapping_store.get(SIG)
        assert merged.get("Amount").source_column == "Betrag"
        assert merged.get("VendorId").source_column == "Vendor Name"

    def test_import_rejects_malformed(self, mapping_store):
        with pytest.raises(ValueError):
            mapping_store.import_profiles({SIG: ["not", "an", "object"]})
        with pytest.raises(ValueError):
            mapping_store.import_profiles(["x"])

    def test_import_rejects_unknown_operation(self, mapping_store):
        mapping_store.set(SIG, _mapping())
        with pytest.raises(ValueError, match="is invalid"):
            mapping_store.import_profiles({
                "other": {"Amount": {"sourceColumn": "Amt"}},
                SIG: {"Amount": {"sourceColumn": "Amt", "operation": "explode"}},
            })
        assert mapping_store.count() == 1
        assert mapping_store.get(SIG) == _mapping()

    def test_unreadable_profile_returns_none(self, kv_store, captured_logs):
        kv_store.set(SETTINGS_KEY, {
            SIG: {"Amount": {"sourceColumn": "Amt", "operation": "explode"}, KEY_FIELDS_KEY: ["LineId"]},
        })
        store = MappingStore(kv_store)

        assert store.get(SIG) is None
        assert store.get_profile(SIG) == (None, ("LineId",))
        assert any(
            r["message"] == "mapping_profile_unreadable" and r["mapping_signature"] == SIG
            for r in captured_logs()
        )

    def test_get_profile(self, mapping_store):
        assert mapping_store.get_profile(SIG) == (None, None)
        mapping_store.set(SIG, _mapping())
        assert mapping_store.get_profile(SIG) == (_mapping(), None)
        mapping_store.set_key_fields(SIG, ["VendorId", "LineId"])
        assert mapping_store.get_profile(SIG) == (_mapping(), ("VendorId", "LineId"))

    def test_malformed_document_treated_as_empty(self, kv_store, captured_logs):
        kv_store.set(SETTINGS_KEY, "garbage")
        store = MappingStore(kv_store)
        assert store.get(SIG) is None
        assert any(r["message"] == "mapping_profiles_malformed" for r in captured_logs())

    def test_reserved_keys_skipped(self, kv_store):
        kv_store.set(SETTINGS_KEY, {SIG: {KEY_FIELDS_KEY: ["a"], "__note": {"x": 1}}})
        assert MappingStore(kv_store).get(SIG) is None

    def test_clear(self, mapping_store):
        mapping_store.set(SIG, _mapping())
        mapping_store.clear()
        assert mapping_store.count() == 0


class SlowKeyValueStore(InMemoryKeyValueStore):
    """Widens the read-modify-write window so interleaved writers would collide."""

    def get(self, key):
        value = super().get(key)
        time.sleep(0.002)
        return value


class TestMappingStoreConcurrency:
    def test_concurrent_writers_lose_nothing(self):
        store = MappingStore(SlowKeyValueStore())
        signatures = [f"invoice_items_col{i}" for i in range(8)]

        def write(signature):
            store.set(signature, _mapping())
            store.set_key_fields(signature, [signature])

        threads = [threading.Thread(target=write, args=(s,)) for s in signatures]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert store.count() == len(signatures)
        for signature in signatures:
            assert store.get_profile(signature) == (_mapping(), (signature,))


class TestInMemoryRowStorage:
    def test_insert_and_clear(self, row_storage):
        assert row_storage.bulk_insert("systems", [{"name": "a"}, {"name": "b"}]) == 2
        assert row_storage.count("systems") == 2
        assert row_storage.clear("systems") == 2
        assert row_storage.rows("systems") == []
        assert row_storage.calls == [("bulk_insert", "systems", 2), ("clear", "systems", 2)]

    def test_protocol(self, row_storage):
        assert isinstance(row_storage, RowStorage)


class TestSqlAlchemyKeyValueStore:
    def test_round_trip(self, sqlite_session_factory):
        store = SqlAlchemyKeyValueStore(sqlite_session_factory)
        assert store.get("k") is None
        store.set("k", {"a": [1, 2]})
        assert store.get("k") == {"a": [1, 2]}

    def test_overwrite(self, sqlite_session_factory):
        store = SqlAlchemyKeyValueStore(sqlite_session_factory)
        store.set("k", {"v": 1})
        store.set("k", {"v": 2})
        assert store.get("k") == {"v": 2}

    def test_backs_mapping_store(self, sqlite_session_factory):
        store = MappingStore(SqlAlchemyKeyValueStore(sqlite_session_factory))
        store.set(SIG, _mapping())
        store.set_key_fields(SIG, ["VendorId", "LineId"])

        reopened = MappingStore(SqlAlchemyKeyValueStore(sqlite_session_factory))
        assert reopened.get(SIG) == _mapping()
        assert reopened.get_key_fields(SIG) == ("VendorId", "LineId")


class TestSqlAlchemyRowStorage:
    def test_insert_in_chunks(self, sqlite_session_factory):
        storage = SqlAlchemyRowStorage(sqlite_session_factory, chunk_size=2)
        rows = [{"name": f"sys-{i}", "sort_order": i} for i in range(5)]
        assert storage.bulk_insert("systems", rows, batch_id=uuid4()) == 5
        assert storage.count("systems") == 5
        assert [r["name"] for r in storage.rows("systems")] == [f"sys-{i}" for i in range(5)]

    def test_payload_json_safe(self, sqlite_session_factory):
        from decimal import Decimal

        storage = SqlAlchemyRowStorage(sqlite_session_factory)
        storage.bulk_insert("invoice_items", [{"Amount": Decimal("1234.56"), "LineId": 1}])
        assert storage.rows("invoice_items") == [{"Amount": "1234.56", "LineId": 1}]

    def test_clear_only_touches_entity(self, sqlite_session_factory):
        storage = SqlAlchemyRowStorage(sqlite_session_factory)
        storage.bulk_insert("systems", [{"name": "a"}, {"name": "b"}])
        storage.bulk_insert("invoice_items", [{"Amount": "1"}])
        assert storage.clear("systems") == 2
        assert storage.count("systems") == 0
        assert storage.count("invoice_items") == 1

    def test_invalid_chunk_size(self, sqlite_session_factory):
        with pytest.raises(ValueError):
            SqlAlchemyRowStorage(sqlite_session_factory, chunk_size=0)

    def test_database_failure_wrapped(self, sqlite_session_factory):
        from intake_kernel.db.engine import drop_tables, get_engine

        storage = SqlAlchemyRowStorage(sqlite_session_factory)
        drop_tables(get_engine())
        with pytest.raises(StorageCommitError) as exc_info:
            storage.bulk_insert("systems", [{"name": "a"}])
        assert exc_info.value.operation == "bulk_insert"
        assert exc_info.value.__cause__ is not None

        with pytest.raises(StorageCommitError) as exc_info:
            storage.clear("systems")
        assert exc_info.value.operation == "clear"

    def test_protocol(self, sqlite_session_factory):
        assert isinstance(SqlAlchemyRowStorage(sqlite_session_factory), RowStorage)
