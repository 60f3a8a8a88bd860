"""Bulk API routes: batched import and batched delete per collection."""

from fastapi import APIRouter, Depends, Response

from app.core.config import get_settings
from app.core.database import get_session_maker
from app.core.exceptions import BadRequestError
from app.core.logging import get_logger
from app.features.bulk.results import BulkResult, classify
from app.features.bulk.schemas import (
    BulkDeleteRequest,
    BulkDetails,
    BulkErrorEntry,
    BulkImportRequest,
    BulkOperationResponse,
    BulkSummary,
)
from app.features.bulk.service import BulkDeleteOrchestrator, BulkImportOrchestrator
from app.features.catalog.store import Collection, DocumentStore, build_document_stores

logger = get_logger(__name__)

router = APIRouter(prefix="/bulk", tags=["bulk"])


def get_document_stores() -> dict[Collection, DocumentStore]:
    """Dependency providing one document store per collection."""
    return build_document_stores(get_session_maker())


def ensure_within_record_limit(count: int) -> None:
    """Reject a request above the configured per-call limit.

    The schemas cap a request at 1000 entries; deployments may set
    ``bulk_max_records`` lower.

    Raises:
        BadRequestError: If ``count`` exceeds ``bulk_max_records``.
    """
    limit = get_settings().bulk_max_records
    if count > limit:
        raise BadRequestError(
            message=f"Bulk request has {count} entries; the limit is {limit}",
            details={"count": count, "limit": limit},
        )


def render_bulk_result(result: BulkResult) -> BulkOperationResponse:
    """Render a bulk result as the summary + details response body.

    Args:
        result: Aggregate result from an orchestrator.

    Returns:
        Response body; import omits ``deleted``, delete omits ``created``/``updated``.
    """
    is_import = result.operation == "import"

    return BulkOperationResponse(
        message=f"Bulk {result.operation} completed",
        summary=BulkSummary(
            total=result.total,
            created=result.created if is_import else None,
            updated=result.updated if is_import else None,
            deleted=None if is_import else result.deleted,
            failed=result.failed,
            success_rate=result.success_rate,
            processing_time=f"{result.processing_time_ms}ms",
        ),
        details=BulkDetails(
            successful=result.successful,
            errors=[
                BulkErrorEntry(
                    index=error.index,
                    identifier=error.identifier,
                    record=dict(error.record) if error.record is not None else None,
                    reason=error.reason.value,
                    message=error.message,
                )
                for error in result.errors
            ],
        ),
    )


@router.post(
    "/{collection}/import",
    response_model=BulkOperationResponse,
    response_model_exclude_none=True,
    summary="Bulk create or update records",
    description="""
Create or update up to 1000 records of one collection in a single call.

**Upsert:** a record with an `id` updates that document; a record without
one is created with declared defaults applied.

**Partial Success:** every record is validated and written on its own.
A bad record is reported in `details.errors` and never stops the others.

**Status codes:**
- 200: every record succeeded
- 206: some records failed
- 400: every record failed, or the request body itself is malformed
- 500: every record failed for server-side reasons
- 503: the store is unreachable; nothing was attempted
""",
)
async def bulk_import(
    collection: Collection,
    request: BulkImportRequest,
    response: Response,
    stores: dict[Collection, DocumentStore] = Depends(get_document_stores),
) -> BulkOperationResponse:
    """Bulk import records into a collection.

    Args:
        collection: Target collection.
        request: Records and optional sub-batch size.
        response: Outgoing response, status set from the outcome.
        stores: Document stores by collection.

    Returns:
        Summary and itemized errors.
    """
    logger.info(
        "bulk.import_request_received",
        collection=collection.value,
        record_count=len(request.records),
        batch_size=request.batch_size,
    )

    ensure_within_record_limit(len(request.records))

    orchestrator = BulkImportOrchestrator(collection, stores[collection])
    result = await orchestrator.run(request.records, request.batch_size)

    classification = classify(result)
    response.status_code = classification.status_code

    logger.info(
        "bulk.import_request_completed",
        collection=collection.value,
        outcome=classification.kind.value,
        status_code=classification.status_code,
    )

    return render_bulk_result(result)


@router.post(
    "/{collection}/delete",
    response_model=BulkOperationResponse,
    response_model_exclude_none=True,
    summary="Bulk delete documents by ID",
    description="""
Delete up to 1000 documents of one collection by identifier.

Identifiers that do not exist are reported with reason `not_found` and do
not stop the remaining deletions. Status codes follow bulk import.
""",
)
async def bulk_delete(
    collection: Collection,
    request: BulkDeleteRequest,
    response: Response,
    stores: dict[Collection, DocumentStore] = Depends(get_document_stores),
) -> BulkOperationResponse:
    """Bulk delete documents from a collection.

    Args:
        collection: Target collection.
        request: Identifiers to delete.
        response: Outgoing response, status set from the outcome.
        stores: Document stores by collection.

    Returns:
        Summary and itemized errors.
    """
    logger.info(
        "bulk.delete_request_received",
        collection=collection.value,
        id_count=len(request.ids),
    )

    ensure_within_record_limit(len(request.ids))

    orchestrator = BulkDeleteOrchestrator(collection, stores[collection])
    result = await orchestrator.run(request.ids)

    classification = classify(result)
    response.status_code = classification.status_code

    logger.info(
        "bulk.delete_request_completed",
        collection=collection.value,
        outcome=classification.kind.value,
        status_code=classification.status_code,
    )

    return render_bulk_result(result)
