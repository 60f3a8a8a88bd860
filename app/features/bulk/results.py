"""Per-record outcomes, the aggregate bulk result, and outcome classification."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Literal

from fastapi import status


class OutcomeStatus(str, Enum):
    """What happened to one submitted record or identifier."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    FAILED = "failed"


class FailureReason(str, Enum):
    """Failure categories reported in bulk error entries.

    - VALIDATION: record content rejected before or by the store
    - NOT_FOUND: update or delete target does not exist
    - CONSTRAINT: uniqueness or integrity violation
    - INTERNAL: unexpected error while handling this record
    - CANCELLED: never attempted because the bulk deadline passed
    """

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONSTRAINT = "constraint"
    INTERNAL = "internal"
    CANCELLED = "cancelled"


# Failures that say nothing about the client's input
SERVER_SIDE_REASONS = frozenset({FailureReason.INTERNAL, FailureReason.CANCELLED})


@dataclass(frozen=True)
class RecordOutcome:
    """Result for exactly one input record, produced once and never mutated."""

    index: int
    status: OutcomeStatus
    identifier: str | None = None
    record: Mapping[str, Any] | None = None
    reason: FailureReason | None = None
    message: str | None = None

    @property
    def failed(self) -> bool:
        return self.status is OutcomeStatus.FAILED

    @classmethod
    def failure(
        cls,
        index: int,
        reason: FailureReason,
        message: str,
        *,
        identifier: str | None = None,
        record: Mapping[str, Any] | None = None,
    ) -> RecordOutcome:
        """Build a failed outcome."""
        return cls(
            index=index,
            status=OutcomeStatus.FAILED,
            identifier=identifier,
            record=MappingProxyType(dict(record)) if record is not None else None,
            reason=reason,
            message=message,
        )


@dataclass(frozen=True)
class BulkError:
    """One itemized failure in a bulk result."""

    index: int
    reason: FailureReason
    message: str
    identifier: str | None = None
    record: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class BulkResult:
    """Aggregate of one bulk import or delete call.

    Invariants:
        created + updated + failed == total (import)
        deleted + failed == total (delete)
        len(errors) == failed, ordered by original index
    """

    operation: Literal["import", "delete"]
    total: int
    failed: int
    processing_time_ms: int
    created: int = 0
    updated: int = 0
    deleted: int = 0
    errors: tuple[BulkError, ...] = field(default_factory=tuple)

    @property
    def successful(self) -> int:
        if self.operation == "import":
            return self.created + self.updated
        return self.deleted

    @property
    def success_rate(self) -> str:
        """Success percentage formatted with 2 decimals, "0%" for an empty batch."""
        if self.total == 0:
            return "0%"
        return f"{self.successful / self.total * 100:.2f}%"

    @classmethod
    def from_outcomes(
        cls,
        operation: Literal["import", "delete"],
        outcomes: Iterable[RecordOutcome],
        processing_time_ms: int,
    ) -> BulkResult:
        """Accumulate outcomes into a result.

        Args:
            operation: "import" or "delete".
            outcomes: One outcome per submitted item, in any order.
            processing_time_ms: Elapsed wall time of the call.

        Returns:
            Immutable bulk result with errors ordered by original index.
        """
        counts = dict.fromkeys(OutcomeStatus, 0)
        errors: list[BulkError] = []
        total = 0

        for outcome in outcomes:
            total += 1
            counts[outcome.status] += 1
            if outcome.failed:
                errors.append(
                    BulkError(
                        index=outcome.index,
                        reason=outcome.reason or FailureReason.INTERNAL,
                        message=outcome.message or "",
                        identifier=outcome.identifier,
                        record=outcome.record,
                    )
                )

        errors.sort(key=lambda e: e.index)

        return cls(
            operation=operation,
            total=total,
            created=counts[OutcomeStatus.CREATED],
            updated=counts[OutcomeStatus.UPDATED],
            deleted=counts[OutcomeStatus.DELETED],
            failed=counts[OutcomeStatus.FAILED],
            errors=tuple(errors),
            processing_time_ms=processing_time_ms,
        )


# =============================================================================
# Outcome classification
# =============================================================================


class OutcomeKind(str, Enum):
    """Three-way classification of a bulk result."""

    FULL_SUCCESS = "full-success"
    PARTIAL_SUCCESS = "partial-success"
    FULL_FAILURE = "full-failure"


@dataclass(frozen=True)
class Classification:
    """Outcome kind plus the HTTP status it maps to."""

    kind: OutcomeKind
    status_code: int


def classify(result: BulkResult) -> Classification:
    """Map a bulk result to its outcome kind and transport status.

    - nothing failed (including an empty batch): full-success, 200
    - some but not all failed: partial-success, 206
    - everything failed because of the input: full-failure, 400
    - everything failed and no failure is attributable to the input
      (internal errors or deadline cancellations only): full-failure, 500

    Args:
        result: Aggregate bulk result.

    Returns:
        Classification with outcome kind and status code.
    """
    if result.failed == 0:
        return Classification(OutcomeKind.FULL_SUCCESS, status.HTTP_200_OK)

    if result.failed < result.total:
        return Classification(OutcomeKind.PARTIAL_SUCCESS, status.HTTP_206_PARTIAL_CONTENT)

    if result.errors and all(e.reason in SERVER_SIDE_REASONS for e in result.errors):
        return Classification(OutcomeKind.FULL_FAILURE, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Classification(OutcomeKind.FULL_FAILURE, status.HTTP_400_BAD_REQUEST)
