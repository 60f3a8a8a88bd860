"""Bulk feature module: batched upsert and delete with partial-failure accounting."""

from app.features.bulk.results import (
    BulkResult,
    Classification,
    FailureReason,
    OutcomeKind,
    RecordOutcome,
    classify,
)
from app.features.bulk.routes import router
from app.features.bulk.schemas import (
    BulkDeleteRequest,
    BulkImportRequest,
    BulkOperationResponse,
)
from app.features.bulk.service import BulkDeleteOrchestrator, BulkImportOrchestrator
from app.features.bulk.splitter import split_batches

__all__ = [
    "BulkDeleteOrchestrator",
    "BulkDeleteRequest",
    "BulkImportOrchestrator",
    "BulkImportRequest",
    "BulkOperationResponse",
    "BulkResult",
    "Classification",
    "FailureReason",
    "OutcomeKind",
    "RecordOutcome",
    "classify",
    "router",
    "split_batches",
]
