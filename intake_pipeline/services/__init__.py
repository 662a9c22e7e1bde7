"""Import orchestration: coordinator state machine, targets, notifications."""

from intake_pipeline.services.coordinator import (
    ConfirmKeyFields,
    ConfirmMapping,
    ImportCoordinator,
    ImportOutcome,
    PendingAction,
    run_import,
)
from intake_pipeline.services.events import DataChanged, ImportEvent, ImportEventHub
from intake_pipeline.services.targets import ImportTarget, load_import_target

__all__ = [
    "ConfirmKeyFields",
    "ConfirmMapping",
    "DataChanged",
    "ImportCoordinator",
    "ImportEvent",
    "ImportEventHub",
    "ImportOutcome",
    "ImportTarget",
    "PendingAction",
    "load_import_target",
    "run_import",
]
