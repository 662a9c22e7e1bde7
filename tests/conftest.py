"""
Pytest fixtures for the intake test suite.

Provides:
- Structured logging configured once per session, LogContext cleared per test
- Deterministic clock and token factory
- Invoice / systems import targets loaded from the bundled entity YAML
- In-memory stores and an in-memory SQLite engine for the SQL-backed stores
"""

import json
import logging
from io import StringIO
from itertools import count

import pytest

from intake_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from intake_kernel.domain.clock import DeterministicClock
from intake_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from intake_pipeline.domain.types import TabularSheet
from intake_pipeline.services import ImportEventHub, load_import_target
from intake_pipeline.stores import InMemoryKeyValueStore, InMemoryRowStorage, MappingStore


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture intake logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, coordinator):
            ...
            logs = captured_logs()
            assert any(r["message"] == "batch_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("intake")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Time and ids
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Clock fixed at 2024-01-01 12:00 UTC."""
    return DeterministicClock()


@pytest.fixture
def sequential_tokens():
    """Token factory yielding 000000000001, 000000000002, ..."""
    counter = count(1)
    return lambda: f"{next(counter):012d}"


# =============================================================================
# Targets and sheets
# =============================================================================


@pytest.fixture(scope="session")
def invoice_target():
    return load_import_target("invoice_items")


@pytest.fixture(scope="session")
def systems_target():
    return load_import_target("systems")


@pytest.fixture
def invoice_schema(invoice_target):
    return invoice_target.schema


def make_sheet(rows, name="invoices", columns=None):
    """TabularSheet from a list of dicts; columns default to the first row's keys."""
    rows = tuple(dict(r) for r in rows)
    if columns is None:
        columns = tuple(rows[0]) if rows else ()
    return TabularSheet(name=name, columns=tuple(columns), rows=rows)


@pytest.fixture
def invoice_sheet():
    """Three invoice lines with German amounts and a vendor column to map by hand."""
    return make_sheet([
        {"Period": "2025-01", "Vendor Name": "V001", "Amt": "1.234,56", "DocumentId": "INV-1", "LineId": "1"},
        {"Period": "2025-01", "Vendor Name": "V002", "Amt": "99,00", "DocumentId": "INV-1", "LineId": "2"},
        {"Period": "2025-02", "Vendor Name": "V003", "Amt": "-10,5", "DocumentId": "INV-2", "LineId": "1"},
    ])


# =============================================================================
# Stores
# =============================================================================


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def mapping_store(kv_store):
    return MappingStore(kv_store)


@pytest.fixture
def row_storage():
    return InMemoryRowStorage()


@pytest.fixture
def event_hub():
    return ImportEventHub()


@pytest.fixture
def recorded_events(event_hub):
    """List that receives every event published on ``event_hub``."""
    received = []
    event_hub.subscribe(received.append)
    return received


@pytest.fixture
def sqlite_session_factory():
    """Session factory bound to a fresh in-memory SQLite database."""
    engine = init_engine_from_url("sqlite:///:memory:")
    create_tables(engine)
    yield get_session_factory()
    drop_tables(engine)
    reset_engine()
