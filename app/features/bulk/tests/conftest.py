"""Feature-specific test fixtures for the bulk module."""

import asyncio
import uuid
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import Settings
from app.features.bulk.routes import get_document_stores
from app.features.catalog.store import Collection, StoreError, StoreErrorKind
from app.main import app


class InMemoryDocumentStore:
    """Dict-backed document store honoring the DocumentStore protocol.

    Args:
        unique_keys: Field tuples that must be unique across documents.
        references: Field -> allowed values (simulates foreign-key resolution).
        fail_when: Predicate on the fields; True raises an unexpected error.
        delay: Seconds to sleep per mutation, or a callable of the fields.
        ping_error: Raised by ``ping`` when set.
        on_call: Hook invoked at the start of every mutation.
    """

    def __init__(
        self,
        unique_keys: tuple[tuple[str, ...], ...] = (),
        references: dict[str, set[str]] | None = None,
        fail_when: Callable[[dict[str, Any]], bool] | None = None,
        delay: float | Callable[[dict[str, Any]], float] = 0.0,
        ping_error: Exception | None = None,
        on_call: Callable[[], None] | None = None,
    ) -> None:
        self.documents: dict[str, dict[str, Any]] = {}
        self.unique_keys = unique_keys
        self.references = references or {}
        self.fail_when = fail_when
        self.delay = delay
        self.ping_error = ping_error
        self.on_call = on_call
        self.calls: list[tuple[str, Any]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _enter(self, fields: dict[str, Any]) -> None:
        if self.on_call is not None:
            self.on_call()
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delay(fields) if callable(self.delay) else self.delay
            await asyncio.sleep(delay)
        finally:
            self.in_flight -= 1
        if self.fail_when is not None and self.fail_when(fields):
            raise ConnectionResetError("connection reset by peer")

    def _check(self, fields: dict[str, Any], exclude_id: str | None = None) -> None:
        for field_name, allowed in self.references.items():
            if field_name in fields and fields[field_name] not in allowed:
                raise StoreError(
                    StoreErrorKind.VALIDATION,
                    f"Reference '{fields[field_name]}' for {field_name} not found",
                )
        for key in self.unique_keys:
            wanted = tuple(fields.get(k) for k in key)
            for doc_id, doc in self.documents.items():
                if doc_id != exclude_id and tuple(doc.get(k) for k in key) == wanted:
                    raise StoreError(
                        StoreErrorKind.CONSTRAINT,
                        f"Duplicate value for {', '.join(key)}",
                    )

    async def create_one(self, fields: dict[str, Any]) -> str:
        self.calls.append(("create", fields))
        await self._enter(fields)
        self._check(fields)
        document_id = uuid.uuid4().hex
        self.documents[document_id] = dict(fields)
        return document_id

    async def update_by_id(self, document_id: str, fields: dict[str, Any]) -> None:
        self.calls.append(("update", (document_id, fields)))
        await self._enter(fields)
        if document_id not in self.documents:
            raise StoreError(StoreErrorKind.NOT_FOUND, f"Document with ID {document_id} not found")
        merged = {**self.documents[document_id], **fields}
        self._check(merged, exclude_id=document_id)
        self.documents[document_id] = merged

    async def delete_by_id(self, document_id: str) -> None:
        self.calls.append(("delete", document_id))
        await self._enter({"id": document_id})
        if document_id not in self.documents:
            raise StoreError(StoreErrorKind.NOT_FOUND, f"Document with ID {document_id} not found")
        del self.documents[document_id]

    async def ping(self) -> None:
        if self.ping_error is not None:
            raise self.ping_error


def make_sales_record(**overrides: Any) -> dict[str, Any]:
    """Build a valid wire-format sales record."""
    record: dict[str, Any] = {
        "plant": "P1",
        "materialCode": "M1",
        "quantity": 10,
        "mrp": 100,
        "gsv": 900,
        "nsv": 850,
        "date": "2024-01-15",
    }
    record.update(overrides)
    return record


def make_product_record(**overrides: Any) -> dict[str, Any]:
    """Build a valid wire-format product record."""
    record: dict[str, Any] = {"name": "Cotton Hanky", "styleCode": "STY-001"}
    record.update(overrides)
    return record


def make_store_record(**overrides: Any) -> dict[str, Any]:
    """Build a valid wire-format store record."""
    record: dict[str, Any] = {
        "storeId": "s001",
        "storeName": "Main Street",
        "city": "Pune",
        "addressLine1": "12 Main Street",
        "storeNumber": "001",
        "pincode": "411001",
        "contactPerson": "R. Sharma",
        "contactEmail": "Main.Street@Example.com",
        "contactPhone": "+91 98765 43210",
    }
    record.update(overrides)
    return record


@pytest.fixture
def bulk_settings() -> Settings:
    """Settings with the documented bulk defaults."""
    return Settings(
        bulk_default_batch_size=50,
        bulk_max_batch_size=100,
        bulk_delete_batch_size=50,
        bulk_concurrent=True,
        bulk_timeout_seconds=300,
    )


@pytest.fixture
def sales_store() -> InMemoryDocumentStore:
    """Sales store with known plants/materials and the (date, plant, material) grain."""
    return InMemoryDocumentStore(
        unique_keys=(("date", "plant", "material_code"),),
        references={"plant": {"P1", "P2"}, "material_code": {"M1", "M2"}},
    )


@pytest.fixture
def product_store() -> InMemoryDocumentStore:
    """Product store with unique style and software codes."""
    return InMemoryDocumentStore(unique_keys=(("style_code",), ("software_code",)))


@pytest.fixture
def store_store() -> InMemoryDocumentStore:
    """Store master store with unique code and e-mail."""
    return InMemoryDocumentStore(unique_keys=(("store_code",), ("contact_email",)))


@pytest.fixture
def document_stores(sales_store, product_store, store_store) -> dict[Collection, Any]:
    """All in-memory stores keyed by collection."""
    return {
        Collection.SALES: sales_store,
        Collection.PRODUCTS: product_store,
        Collection.STORES: store_store,
    }


@pytest.fixture
def sales_record_factory() -> Callable[..., dict[str, Any]]:
    """Factory for valid sales records (keyword overrides)."""
    return make_sales_record


@pytest.fixture
def product_record_factory() -> Callable[..., dict[str, Any]]:
    """Factory for valid product records (keyword overrides)."""
    return make_product_record


@pytest.fixture
def store_record_factory() -> Callable[..., dict[str, Any]]:
    """Factory for valid store records (keyword overrides)."""
    return make_store_record


@pytest.fixture
async def client(document_stores) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose bulk routes write to the in-memory stores."""
    app.dependency_overrides[get_document_stores] = lambda: document_stores

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
