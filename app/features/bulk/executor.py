"""Per-record executors: one store mutation per record, failures isolated.

CRITICAL: ``execute`` never raises for a per-record problem. Validation
errors, store errors and unexpected exceptions are all converted into a
failed ``RecordOutcome`` so that sibling records keep going. Only task
cancellation (``asyncio.CancelledError``) passes through.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from app.core.logging import get_logger
from app.features.bulk.results import FailureReason, OutcomeStatus, RecordOutcome
from app.features.bulk.validator import (
    OperationKind,
    RecordValidationError,
    validate_record,
)
from app.features.catalog.store import Collection, DocumentStore, StoreError, StoreErrorKind

logger = get_logger(__name__)

STORE_ERROR_REASONS: dict[StoreErrorKind, FailureReason] = {
    StoreErrorKind.NOT_FOUND: FailureReason.NOT_FOUND,
    StoreErrorKind.VALIDATION: FailureReason.VALIDATION,
    StoreErrorKind.CONSTRAINT: FailureReason.CONSTRAINT,
}


def _record_id(record: Any) -> str | None:
    if isinstance(record, Mapping):
        value = record.get("id")
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


class UpsertExecutor:
    """Create-or-update one import record against a collection store."""

    def __init__(self, collection: Collection, store: DocumentStore) -> None:
        self.collection = collection
        self.store = store

    async def execute(self, record: dict[str, Any], index: int) -> RecordOutcome:
        """Validate and upsert one record.

        Args:
            record: Raw record as submitted.
            index: Position of the record in the submitted batch.

        Returns:
            CREATED, UPDATED or FAILED outcome.
        """
        identifier = _record_id(record)

        try:
            normalized = validate_record(self.collection, record)

            if (
                normalized.operation is OperationKind.UPDATE
                and normalized.document_id is not None
            ):
                await self.store.update_by_id(normalized.document_id, normalized.fields)
                return RecordOutcome(
                    index=index,
                    status=OutcomeStatus.UPDATED,
                    identifier=normalized.document_id,
                )

            document_id = await self.store.create_one(normalized.fields)
            return RecordOutcome(index=index, status=OutcomeStatus.CREATED, identifier=document_id)

        except RecordValidationError as e:
            return self._failed(index, record, identifier, FailureReason.VALIDATION, e.message)
        except StoreError as e:
            return self._failed(index, record, identifier, STORE_ERROR_REASONS[e.kind], e.message)
        except Exception as e:
            logger.error(
                "bulk.record_internal_error",
                collection=self.collection.value,
                index=index,
                identifier=identifier,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return self._failed(
                index, record, identifier, FailureReason.INTERNAL, f"Internal error: {e}"
            )

    def cancelled(self, record: dict[str, Any], index: int) -> RecordOutcome:
        """Outcome for a record that was never attempted."""
        return RecordOutcome.failure(
            index,
            FailureReason.CANCELLED,
            "Not processed: bulk operation deadline exceeded",
            identifier=_record_id(record),
            record=record if isinstance(record, Mapping) else None,
        )

    def _failed(
        self,
        index: int,
        record: Any,
        identifier: str | None,
        reason: FailureReason,
        message: str,
    ) -> RecordOutcome:
        logger.debug(
            "bulk.record_failed",
            collection=self.collection.value,
            index=index,
            reason=reason.value,
            message=message,
        )
        return RecordOutcome.failure(
            index,
            reason,
            message,
            identifier=identifier,
            record=record if isinstance(record, Mapping) else None,
        )


class DeleteExecutor:
    """Delete one document by identifier."""

    def __init__(self, collection: Collection, store: DocumentStore) -> None:
        self.collection = collection
        self.store = store

    async def execute(self, document_id: str, index: int) -> RecordOutcome:
        """Delete one document.

        "Not found" is a failure with reason ``not_found`` so that stale
        identifiers are visible to the caller.

        Args:
            document_id: Identifier to delete.
            index: Position of the identifier in the submitted batch.

        Returns:
            DELETED or FAILED outcome.
        """
        try:
            await self.store.delete_by_id(document_id)
        except StoreError as e:
            reason = STORE_ERROR_REASONS[e.kind]
            logger.debug(
                "bulk.record_failed",
                collection=self.collection.value,
                index=index,
                reason=reason.value,
                message=e.message,
            )
            return RecordOutcome.failure(index, reason, e.message, identifier=document_id)
        except Exception as e:
            logger.error(
                "bulk.record_internal_error",
                collection=self.collection.value,
                index=index,
                identifier=document_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return RecordOutcome.failure(
                index, FailureReason.INTERNAL, f"Internal error: {e}", identifier=document_id
            )

        return RecordOutcome(index=index, status=OutcomeStatus.DELETED, identifier=document_id)

    def cancelled(self, document_id: str, index: int) -> RecordOutcome:
        """Outcome for an identifier that was never attempted."""
        return RecordOutcome.failure(
            index,
            FailureReason.CANCELLED,
            "Not processed: bulk operation deadline exceeded",
            identifier=document_id,
        )
