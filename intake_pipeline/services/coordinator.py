"""
Import coordinator: the state machine driving one batch from decoded sheet
to committed rows.

    idle --start--> mapping_suggested --confirm_mapping--> mapping_confirmed
      -> enriching -> validating --+--> committing -> done
                                   +--> key_resolution_pending
                                          --confirm_key_fields--> committing

    any failure -> error          cancel() -> cancelled

Suspension points are ``mapping_suggested`` and ``key_resolution_pending``.
Callers read ``state`` and ``pending_action`` and resume with the matching
confirm call; both resume the same in-memory batch. Only the commit step
touches storage: ``clear`` first when the mode is overwrite, then exactly
one ``bulk_insert`` for the whole batch. A batch with any invalid row is
refused as a whole.

Every transition into ``error`` records the exception and the error list
before the exception is raised to the caller.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import ClassVar
from uuid import UUID, uuid4

from intake_kernel.domain.clock import Clock, SystemClock
from intake_kernel.domain.dtos import ValidationError
from intake_kernel.exceptions import (
    BatchValidationError,
    IncompleteMappingError,
    IntakeError,
    InvalidMappingError,
    InvalidStateTransitionError,
    NoDataError,
    RowProcessingError,
    SchemaError,
    StorageCommitError,
    UnknownTransformError,
)
from intake_kernel.logging_config import LogContext, get_logger

from intake_pipeline.domain.duplicates import (
    DuplicateReport,
    find_duplicates,
    has_duplicates,
    suggest_key_fields,
)
from intake_pipeline.domain.types import (
    ImportBatch,
    ImportMode,
    ImportState,
    MappingSet,
    TabularSheet,
)
from intake_pipeline.domain.validators import ValidationGate
from intake_pipeline.enrichment import enrich_rows, random_token
from intake_pipeline.mapping.catalog import DEFAULT_CATALOG, TransformCatalog
from intake_pipeline.mapping.engine import RowTransformer
from intake_pipeline.mapping.resolver import (
    check_mapping,
    mapping_signature,
    merge_suggestion,
    missing_required_fields,
    suggest,
)
from intake_pipeline.services.events import DataChanged, ImportEvent, ImportEventHub
from intake_pipeline.services.targets import ImportTarget
from intake_pipeline.stores.mapping_store import MappingStore
from intake_pipeline.stores.storage import RowStorage

logger = get_logger("ingestion.coordinator")

_MAPPING_STATES = (ImportState.MAPPING_SUGGESTED, ImportState.MAPPING_CONFIRMED)
_CANCELLABLE = _MAPPING_STATES + (ImportState.KEY_RESOLUTION_PENDING,)


# -----------------------------------------------------------------------------
# Pull surface
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ConfirmMapping:
    """The caller must confirm (or edit and confirm) the suggested mapping."""

    kind: ClassVar[str] = "confirm_mapping"

    suggestion: MappingSet
    columns: tuple[str, ...]
    missing_fields: tuple[str, ...]

    @property
    def missing_count(self) -> int:
        return len(self.missing_fields)


@dataclass(frozen=True)
class ConfirmKeyFields:
    """Rows collide under the current key; the caller must choose key fields."""

    kind: ClassVar[str] = "confirm_key_fields"

    report: DuplicateReport
    current_key_fields: tuple[str, ...]
    proposed_key_fields: tuple[str, ...]


PendingAction = ConfirmMapping | ConfirmKeyFields


@dataclass(frozen=True)
class ImportOutcome:
    batch_id: UUID
    entity_key: str
    mode: ImportMode
    inserted: int
    cleared: int | None
    key_fields: tuple[str, ...]
    mapping_signature: str


# -----------------------------------------------------------------------------
# Coordinator
# -----------------------------------------------------------------------------


class ImportCoordinator:
    """Runs one import batch. Single use: create a new coordinator per batch."""

    def __init__(
        self,
        target: ImportTarget,
        mapping_store: MappingStore,
        storage: RowStorage,
        events: ImportEventHub | None = None,
        clock: Clock | None = None,
        catalog: TransformCatalog | None = None,
        token_factory: Callable[[], str] = random_token,
    ):
        self._target = target
        self._store = mapping_store
        self._storage = storage
        self._events = events or ImportEventHub()
        self._clock = clock or SystemClock()
        self._catalog = catalog or DEFAULT_CATALOG
        self._transformer = RowTransformer(self._catalog)
        self._gate = ValidationGate()
        self._token_factory = token_factory

        self._state = ImportState.IDLE
        self._batch: ImportBatch | None = None
        self._mapping_set: MappingSet | None = None
        self._key_override: tuple[str, ...] | None = None
        self._key_fields: tuple[str, ...] = target.default_key_fields
        self._pending: PendingAction | None = None
        self._errors: tuple[str, ...] = ()
        self._issues: tuple[ValidationError, ...] = ()
        self._error: IntakeError | None = None
        self._outcome: ImportOutcome | None = None

    # -- pull surface ---------------------------------------------------------

    @property
    def state(self) -> ImportState:
        return self._state

    @property
    def pending_action(self) -> PendingAction | None:
        return self._pending

    @property
    def errors(self) -> tuple[str, ...]:
        """Row-level messages of a refused batch, or the failure message."""
        return self._errors

    @property
    def issues(self) -> tuple[ValidationError, ...]:
        return self._issues

    @property
    def error(self) -> IntakeError | None:
        return self._error

    @property
    def outcome(self) -> ImportOutcome | None:
        return self._outcome

    @property
    def batch(self) -> ImportBatch | None:
        return self._batch

    @property
    def events(self) -> ImportEventHub:
        return self._events

    # -- operations -----------------------------------------------------------

    def start(self, source: TabularSheet, mode: ImportMode | str = ImportMode.APPEND) -> ImportState:
        """Accept a decoded sheet and suggest a mapping for it."""
        self._require("start", ImportState.IDLE)
        mode = ImportMode(mode)
        schema = self._target.schema
        signature = mapping_signature(schema.entity_key, source.columns)

        self._batch = ImportBatch(
            batch_id=uuid4(),
            entity_key=schema.entity_key,
            mode=mode,
            sheet_name=source.name,
            columns=tuple(source.columns),
            source_rows=tuple(dict(r) for r in source.rows),
            mapping_signature=signature,
        )
        LogContext.set(
            batch_id=self._batch.batch_id,
            entity_key=schema.entity_key,
            mapping_signature=signature,
            sheet=source.name,
        )
        logger.info(
            "batch_started",
            extra={"sheet": source.name, "mode": mode.value, "total_rows": len(source.rows)},
        )

        if not source.rows:
            raise self._fail(NoDataError(source.name))

        saved, self._key_override = self._store.get_profile(signature)
        if saved is not None:
            saved = MappingSet({k: v for k, v in saved.items() if k in schema})
        self._mapping_set = merge_suggestion(saved, suggest(source.columns, schema))

        self._transition(ImportState.MAPPING_SUGGESTED)
        self._pending = self._mapping_request(self._mapping_set)
        logger.info(
            "mapping_suggested",
            extra={
                "saved_mapping": saved is not None,
                "mapped_fields": len(self._mapping_set),
                "missing_required": self._pending.missing_count,
            },
        )
        return self._state

    def confirm_mapping(self, mapping_set: MappingSet | None = None) -> ImportState:
        """
        Confirm the suggested (or an edited) mapping and run the batch.

        Raises:
            IncompleteMappingError: required fields unmapped; state unchanged.
            InvalidMappingError / UnknownTransformError: state becomes error.
            BatchValidationError: rows failed validation; state becomes error.
            RowProcessingError: a transform or enricher raised; state becomes error.
            StorageCommitError: storage failed; state becomes error.
        """
        self._require("confirm_mapping", ImportState.MAPPING_SUGGESTED)
        chosen = mapping_set if mapping_set is not None else self._mapping_set
        schema = self._target.schema

        missing = missing_required_fields(chosen, schema, self._target.enricher.derived_fields)
        if missing:
            self._mapping_set = chosen
            self._pending = self._mapping_request(chosen)
            logger.warning("mapping_incomplete", extra={"missing_fields": list(missing)})
            raise IncompleteMappingError(missing)

        try:
            check_mapping(chosen, schema, self._catalog)
        except (InvalidMappingError, UnknownTransformError) as exc:
            self._fail(exc)
            raise

        self._mapping_set = chosen
        self._pending = None
        self._store.set(self._batch.mapping_signature, chosen)
        self._transition(ImportState.MAPPING_CONFIRMED)
        logger.info("mapping_confirmed", extra={"mapped_fields": len(chosen)})
        return self._process()

    def confirm_key_fields(self, key_fields: Sequence[str]) -> ImportState:
        """
        Persist the chosen key fields for this mapping signature and commit.

        Rows that still collide under the chosen key are committed as they are.
        """
        self._require("confirm_key_fields", ImportState.KEY_RESOLUTION_PENDING)
        fields = tuple(key_fields)
        if not fields:
            raise ValueError("key fields must not be empty")
        for f in fields:
            if f not in self._target.schema:
                raise InvalidMappingError(f, self._target.entity_key)

        self._store.set_key_fields(self._batch.mapping_signature, fields)
        self._key_fields = fields
        self._pending = None
        logger.info("key_fields_confirmed", extra={"key_fields": list(fields)})
        return self._commit()

    def cancel(self) -> ImportState:
        """Discard the batch. Nothing has been written to storage."""
        self._require("cancel", *_CANCELLABLE)
        self._pending = None
        self._transition(ImportState.CANCELLED)
        logger.info("batch_cancelled")
        self._batch = None
        return self._state

    # -- pipeline -------------------------------------------------------------

    def _process(self) -> ImportState:
        schema = self._target.schema
        batch = self._batch

        self._transition(ImportState.ENRICHING)
        stage = "transform"
        try:
            drafts = self._transformer.apply_all(batch.source_rows, self._mapping_set, schema)
            stage = "enrich"
            enriched = enrich_rows(drafts, self._target.enricher, self._clock, self._token_factory)
        except IntakeError as exc:
            raise self._fail(exc)
        except Exception as exc:
            raise self._fail(RowProcessingError(stage, f"{type(exc).__name__}: {exc}")) from exc

        self._transition(ImportState.VALIDATING)
        try:
            report = self._gate.validate(enriched, schema)
        except SchemaError as exc:
            raise self._fail(exc)
        if not report.ok:
            self._issues = report.issues
            raise self._fail(
                BatchValidationError(report.errors, report.invalid_rows, report.total_rows),
                errors=report.errors,
            )
        self._batch = batch.with_target_rows(report.valid)
        logger.info("batch_validated", extra={"valid_rows": len(report.valid)})

        key_fields = self._key_override or self._target.default_key_fields
        self._key_fields = key_fields
        if self._key_override is None and has_duplicates(report.valid, key_fields):
            duplicates = find_duplicates(report.valid, key_fields)
            proposed = suggest_key_fields(report.valid, self._target.key_candidates, key_fields)
            self._pending = ConfirmKeyFields(
                report=duplicates,
                current_key_fields=tuple(key_fields),
                proposed_key_fields=proposed,
            )
            self._transition(ImportState.KEY_RESOLUTION_PENDING)
            logger.warning(
                "duplicates_detected",
                extra={
                    "key_fields": list(key_fields),
                    "duplicate_count": duplicates.duplicate_count,
                    "proposed_key_fields": list(proposed),
                },
            )
            return self._state

        return self._commit()

    def _commit(self) -> ImportState:
        batch = self._batch
        rows = batch.target_rows
        entity_key = batch.entity_key
        self._transition(ImportState.COMMITTING)

        cleared: int | None = None
        operation = "clear"
        try:
            if batch.mode == ImportMode.OVERWRITE:
                cleared = self._storage.clear(entity_key)
            operation = "bulk_insert"
            self._storage.bulk_insert(entity_key, rows, batch_id=batch.batch_id)
        except StorageCommitError as exc:
            self._fail(exc)
            raise
        except Exception as exc:
            raise self._fail(StorageCommitError(entity_key, operation, str(exc))) from exc

        self._outcome = ImportOutcome(
            batch_id=batch.batch_id,
            entity_key=entity_key,
            mode=batch.mode,
            inserted=len(rows),
            cleared=cleared,
            key_fields=tuple(self._key_fields),
            mapping_signature=batch.mapping_signature,
        )
        self._transition(ImportState.DONE)
        logger.info(
            "batch_committed",
            extra={"inserted": len(rows), "cleared": cleared, "mode": batch.mode.value},
        )
        self._events.publish(ImportEvent(type="insert", count=len(rows), entity_key=entity_key, batch_id=batch.batch_id))
        self._events.publish(DataChanged(entity_key=entity_key))
        return self._state

    # -- helpers --------------------------------------------------------------

    def _mapping_request(self, mapping_set: MappingSet) -> ConfirmMapping:
        return ConfirmMapping(
            suggestion=mapping_set,
            columns=self._batch.columns,
            missing_fields=missing_required_fields(
                mapping_set, self._target.schema, self._target.enricher.derived_fields
            ),
        )

    def _require(self, operation: str, *allowed: ImportState) -> None:
        if self._state not in allowed:
            raise InvalidStateTransitionError(self._state.value, operation)

    def _transition(self, new_state: ImportState) -> None:
        logger.debug(
            "state_transition",
            extra={"from_state": self._state.value, "to_state": new_state.value},
        )
        self._state = new_state

    def _fail(self, exc: IntakeError, errors: Sequence[str] | None = None) -> IntakeError:
        """Record the failure, enter the error state and hand back ``exc`` to raise."""
        self._error = exc
        self._errors = tuple(errors) if errors is not None else (str(exc),)
        self._pending = None
        self._transition(ImportState.ERROR)
        logger.error(
            "batch_failed",
            extra={"error_code": exc.code, "error_count": len(self._errors)},
        )
        return exc


def run_import(
    source: TabularSheet,
    target: ImportTarget,
    mapping_store: MappingStore,
    storage: RowStorage,
    mode: ImportMode | str = ImportMode.APPEND,
    events: ImportEventHub | None = None,
    clock: Clock | None = None,
    mapping_set: MappingSet | None = None,
    key_fields: Sequence[str] | None = None,
) -> ImportOutcome:
    """
    Non-interactive import: confirm the suggestion (or ``mapping_set``) and,
    if rows collide, accept ``key_fields`` or the proposed key.
    """
    coordinator = ImportCoordinator(target, mapping_store, storage, events=events, clock=clock)
    coordinator.start(source, mode)
    state = coordinator.confirm_mapping(mapping_set)
    if state == ImportState.KEY_RESOLUTION_PENDING:
        pending = coordinator.pending_action
        coordinator.confirm_key_fields(key_fields or pending.proposed_key_fields)
    return coordinator.outcome
