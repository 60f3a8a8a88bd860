"""Record validator: raw client record -> typed, normalized store fields.

One declared schema per collection. A record with an ``id`` is an update
and only the fields the client actually sent are written; a record without
one is a create and every declared default is applied.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import ValidationError

from app.features.bulk.schemas import (
    ImportRecordBase,
    ProductImportRecord,
    ProductUpdateRecord,
    SalesImportRecord,
    SalesUpdateRecord,
    StoreImportRecord,
    StoreUpdateRecord,
)
from app.features.catalog.store import Collection

RECORD_SCHEMAS: dict[Collection, type[ImportRecordBase]] = {
    Collection.SALES: SalesImportRecord,
    Collection.PRODUCTS: ProductImportRecord,
    Collection.STORES: StoreImportRecord,
}

UPDATE_SCHEMAS: dict[Collection, type[ImportRecordBase]] = {
    Collection.SALES: SalesUpdateRecord,
    Collection.PRODUCTS: ProductUpdateRecord,
    Collection.STORES: StoreUpdateRecord,
}


class OperationKind(str, Enum):
    """Store mutation selected for a record."""

    CREATE = "create"
    UPDATE = "update"


class RecordValidationError(Exception):
    """A record failed its collection schema."""

    def __init__(self, message: str, document_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.document_id = document_id


@dataclass(frozen=True)
class NormalizedRecord:
    """Validated record ready for the store."""

    operation: OperationKind
    fields: dict[str, Any]
    document_id: str | None = None


def format_validation_error(exc: ValidationError) -> str:
    """Flatten pydantic errors into one readable line.

    Example: ``quantity: Input should be greater than or equal to 0``
    """
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def _document_id(raw: Any) -> str | None:
    value = raw.get("id") if isinstance(raw, dict) else None
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def validate_record(collection: Collection, raw: Any) -> NormalizedRecord:
    """Validate and normalize one import record.

    Args:
        collection: Target collection, selects the schema.
        raw: Record as submitted by the client.

    Returns:
        Normalized record with operation kind and column-named fields.

    Raises:
        RecordValidationError: If the record does not satisfy its schema.
    """
    document_id = _document_id(raw)
    schema = (UPDATE_SCHEMAS if document_id is not None else RECORD_SCHEMAS)[collection]

    try:
        record = schema.model_validate(raw)
    except ValidationError as e:
        raise RecordValidationError(format_validation_error(e), document_id=document_id) from e

    if document_id is not None:
        fields = record.model_dump(exclude={"id"}, exclude_unset=True)
        return NormalizedRecord(OperationKind.UPDATE, fields, document_id=document_id)

    fields = record.create_defaults(record.model_dump(exclude={"id"}))
    return NormalizedRecord(OperationKind.CREATE, fields)
