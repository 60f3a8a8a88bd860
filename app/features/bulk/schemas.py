"""Pydantic schemas for the bulk API.

Two layers of validation:

- Request shape (``BulkImportRequest`` / ``BulkDeleteRequest``) is checked at
  the HTTP boundary; failures reject the whole request with 400.
- Record content (``SalesImportRecord`` etc.) is checked per record inside
  the engine; failures become ``validation`` entries in the bulk result.
"""

import re
import uuid
from datetime import date as date_type
from decimal import Decimal
from typing import Annotated, Any, ClassVar, Literal, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

MAX_BULK_ITEMS = 1000
MAX_BATCH_SIZE = 100

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]{10,15}$")

Pincode = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^\d{6}$")]

CreditRating = Literal["A+", "A", "A-", "B+", "B", "B-", "C+", "C", "C-", "D", "F"]

# Column limits of the catalog tables
MAX_INT32 = 2**31 - 1
CODE_LENGTH = 50
LABEL_LENGTH = 100
NAME_LENGTH = 200
ADDRESS_LENGTH = 300
DESCRIPTION_LENGTH = 2000

# Numeric(12, 2): at most 10 digits before the decimal point
Amount = Annotated[Decimal, Field(ge=0, max_digits=12, decimal_places=2)]
Quantity = Annotated[int, Field(ge=0, le=MAX_INT32)]


# =============================================================================
# Request schemas
# =============================================================================


class BulkImportRequest(BaseModel):
    """Request body for POST /bulk/{collection}/import."""

    model_config = ConfigDict(populate_by_name=True)

    records: list[dict[str, Any]] = Field(
        ...,
        min_length=1,
        max_length=MAX_BULK_ITEMS,
        description="Records to create (no id) or update (with id)",
    )
    batch_size: int | None = Field(
        None,
        alias="batchSize",
        ge=1,
        le=MAX_BATCH_SIZE,
        description="Records per sub-batch (default 50)",
    )


class BulkDeleteRequest(BaseModel):
    """Request body for POST /bulk/{collection}/delete."""

    ids: list[NonEmptyStr] = Field(
        ...,
        min_length=1,
        max_length=MAX_BULK_ITEMS,
        description="Identifiers of the documents to delete",
    )


# =============================================================================
# Record schemas (one per collection)
# =============================================================================


class ImportRecordBase(BaseModel):
    """Common configuration for client-supplied import records.

    Wire names are camelCase; attribute names are snake_case and match the
    ORM column names.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="forbid",
    )

    # Fields that an update may omit but never set to null
    non_nullable: ClassVar[frozenset[str]] = frozenset()

    id: str | None = Field(None, description="Existing document ID; present means update")

    @field_validator("id", mode="before")
    @classmethod
    def blank_id_is_absent(cls, v: Any) -> Any:
        """Treat an empty or whitespace-only id as no id at all."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def reject_explicit_nulls(self) -> Self:
        nulls = sorted(
            name
            for name in self.non_nullable & self.model_fields_set
            if getattr(self, name) is None
        )
        if nulls:
            raise ValueError(f"{', '.join(nulls)} cannot be null")
        return self

    def create_defaults(self, fields: dict[str, Any]) -> dict[str, Any]:
        """Fill values that are generated only when a document is created."""
        return fields


class SalesImportRecord(ImportRecordBase):
    """One sales line, keyed by store code (plant) and product style code."""

    date: date_type = Field(default_factory=date_type.today)
    plant: NonEmptyStr = Field(..., max_length=CODE_LENGTH, description="Store code")
    material_code: NonEmptyStr = Field(
        ..., max_length=CODE_LENGTH, description="Product style code"
    )
    quantity: Quantity
    mrp: Amount
    discount: Amount = Decimal("0")
    gsv: Amount
    nsv: Amount
    total_tax: Amount = Decimal("0")


class ProductImportRecord(ImportRecordBase):
    """Product master record."""

    name: NonEmptyStr = Field(..., max_length=NAME_LENGTH)
    style_code: NonEmptyStr = Field(..., max_length=CODE_LENGTH)
    internal_code: str = Field("", max_length=CODE_LENGTH)
    vendor_code: str = Field("", max_length=CODE_LENGTH)
    factory_code: str = Field("", max_length=CODE_LENGTH)
    ean_code: str = Field("", max_length=CODE_LENGTH)
    description: str = Field("", max_length=DESCRIPTION_LENGTH)
    category: str | None = Field(None, max_length=LABEL_LENGTH)
    software_code: str | None = Field(None, max_length=CODE_LENGTH)

    def create_defaults(self, fields: dict[str, Any]) -> dict[str, Any]:
        if not fields.get("software_code"):
            fields["software_code"] = generate_software_code()
        fields.setdefault("status", "active")
        return fields


class StoreImportRecord(ImportRecordBase):
    """Store (plant) master record."""

    store_code: NonEmptyStr = Field(..., alias="storeId", max_length=CODE_LENGTH)
    store_name: NonEmptyStr = Field(..., max_length=NAME_LENGTH)
    city: NonEmptyStr = Field(..., max_length=LABEL_LENGTH)
    address_line1: NonEmptyStr = Field(..., max_length=ADDRESS_LENGTH)
    store_number: NonEmptyStr = Field(..., max_length=CODE_LENGTH)
    pincode: Pincode
    contact_person: NonEmptyStr = Field(..., max_length=NAME_LENGTH)
    contact_email: EmailStr
    contact_phone: NonEmptyStr
    credit_rating: CreditRating = "C"

    bp_code: str | None = Field(None, max_length=CODE_LENGTH)
    old_store_code: str | None = Field(None, max_length=CODE_LENGTH)
    bp_name: str | None = Field(None, max_length=NAME_LENGTH)
    street: str | None = Field(None, max_length=NAME_LENGTH)
    block: str | None = Field(None, max_length=LABEL_LENGTH)
    address_line2: str = Field("", max_length=ADDRESS_LENGTH)
    zip_code: str | None = Field(None, max_length=20)
    state: str | None = Field(None, max_length=LABEL_LENGTH)
    country: str | None = Field(None, max_length=LABEL_LENGTH)
    telephone: str | None = None
    internal_sap_code: str | None = Field(None, max_length=CODE_LENGTH)
    internal_software_code: str | None = Field(None, max_length=CODE_LENGTH)
    brand_grouping: str | None = Field(None, max_length=LABEL_LENGTH)
    brand: str | None = Field(None, max_length=LABEL_LENGTH)

    hanky_norms: Amount | None = None
    socks_norms: Amount | None = None
    towel_norms: Amount | None = None
    total_norms: Amount | None = None

    is_active: bool = True

    @field_validator("store_code")
    @classmethod
    def upper_store_code(cls, v: str | None) -> str | None:
        return v.upper() if v is not None else None

    @field_validator("contact_email")
    @classmethod
    def lower_contact_email(cls, v: str | None) -> str | None:
        return v.lower() if v is not None else None

    @field_validator("contact_phone", "telephone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        """Phone numbers: 10-15 digits, spaces, dashes or parentheses, optional +."""
        if v is None or v == "":
            return None
        if not PHONE_PATTERN.match(v):
            raise ValueError(
                "must be 10-15 digits with optional +, spaces, dashes, or parentheses"
            )
        return v


def _required_fields(model: type[BaseModel]) -> frozenset[str]:
    return frozenset(name for name, info in model.model_fields.items() if info.is_required())


# Update schemas: the create schema with every required field made optional.
# Only the fields a client sends are validated and written.


class SalesUpdateRecord(SalesImportRecord):
    """Partial update of an existing sales line."""

    non_nullable = _required_fields(SalesImportRecord)

    id: NonEmptyStr
    plant: NonEmptyStr | None = Field(None, max_length=CODE_LENGTH)
    material_code: NonEmptyStr | None = Field(None, max_length=CODE_LENGTH)
    quantity: Quantity | None = None
    mrp: Amount | None = None
    gsv: Amount | None = None
    nsv: Amount | None = None


class ProductUpdateRecord(ProductImportRecord):
    """Partial update of an existing product."""

    # software_code is optional on create only because it is generated
    non_nullable = _required_fields(ProductImportRecord) | {"software_code"}

    id: NonEmptyStr
    name: NonEmptyStr | None = Field(None, max_length=NAME_LENGTH)
    style_code: NonEmptyStr | None = Field(None, max_length=CODE_LENGTH)


class StoreUpdateRecord(StoreImportRecord):
    """Partial update of an existing store."""

    non_nullable = _required_fields(StoreImportRecord)

    id: NonEmptyStr
    store_code: NonEmptyStr | None = Field(None, alias="storeId", max_length=CODE_LENGTH)
    store_name: NonEmptyStr | None = Field(None, max_length=NAME_LENGTH)
    city: NonEmptyStr | None = Field(None, max_length=LABEL_LENGTH)
    address_line1: NonEmptyStr | None = Field(None, max_length=ADDRESS_LENGTH)
    store_number: NonEmptyStr | None = Field(None, max_length=CODE_LENGTH)
    pincode: Pincode | None = None
    contact_person: NonEmptyStr | None = Field(None, max_length=NAME_LENGTH)
    contact_email: EmailStr | None = None
    contact_phone: NonEmptyStr | None = None


def generate_software_code() -> str:
    """Generate an internal product software code (``PRD-`` + 10 hex chars)."""
    return f"PRD-{uuid.uuid4().hex[:10]}".upper()


# =============================================================================
# Response schemas
# =============================================================================


class BulkResponseModel(BaseModel):
    """Base for response models serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BulkErrorEntry(BulkResponseModel):
    """One failed record or identifier."""

    index: int = Field(..., description="0-based position in the submitted array")
    identifier: str | None = Field(None, description="Document ID the failure refers to")
    record: dict[str, Any] | None = Field(None, description="Submitted record snapshot")
    reason: str = Field(
        ...,
        description="Failure category: validation, not_found, constraint, internal, cancelled",
    )
    message: str = Field(..., description="Human-readable explanation")


class BulkSummary(BulkResponseModel):
    """Aggregate counts for one bulk call."""

    total: int = Field(..., ge=0)
    created: int | None = Field(None, ge=0)
    updated: int | None = Field(None, ge=0)
    deleted: int | None = Field(None, ge=0)
    failed: int = Field(..., ge=0)
    success_rate: str = Field(..., description='Percentage with 2 decimals, e.g. "50.00%"')
    processing_time: str = Field(..., description='Elapsed time, e.g. "125ms"')


class BulkDetails(BulkResponseModel):
    """Success count and itemized failures."""

    successful: int = Field(..., ge=0)
    errors: list[BulkErrorEntry] = Field(default_factory=list)


class BulkOperationResponse(BulkResponseModel):
    """Response body for bulk import and bulk delete."""

    message: str
    summary: BulkSummary
    details: BulkDetails
