"""Integration tests for the catalog document stores and bulk engine.

These tests require a running PostgreSQL database (docker-compose up -d).
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings
from app.features.bulk.results import FailureReason
from app.features.bulk.service import BulkDeleteOrchestrator, BulkImportOrchestrator
from app.features.catalog.models import Sales
from app.features.catalog.store import (
    Collection,
    StoreError,
    StoreErrorKind,
    build_document_stores,
)

STORE_FIELDS = {
    "store_code": "S001",
    "store_name": "Main Street",
    "city": "Pune",
    "address_line1": "12 Main Street",
    "store_number": "001",
    "pincode": "411001",
    "contact_person": "R. Sharma",
    "contact_email": "main@example.com",
    "contact_phone": "9876543210",
}


def _sales_record(**overrides):
    record = {
        "plant": "S001",
        "materialCode": "STY-001",
        "quantity": 1,
        "mrp": 5,
        "gsv": 5,
        "nsv": 5,
    }
    record.update(overrides)
    return record


@pytest.fixture
async def seeded_stores(db_session_maker: async_sessionmaker[AsyncSession]):
    """Document stores with one store (S001) and one product (STY-001)."""
    stores = build_document_stores(db_session_maker)
    await stores[Collection.STORES].create_one(dict(STORE_FIELDS))
    await stores[Collection.PRODUCTS].create_one(
        {"name": "Cotton Hanky", "style_code": "STY-001", "software_code": "PRD-0000000001"}
    )
    return stores


@pytest.mark.integration
class TestDocumentStoreIntegration:
    """Store adapter behavior against PostgreSQL."""

    async def test_duplicate_store_code_is_constraint(self, seeded_stores) -> None:
        """Creating a second store with the same code violates uniqueness."""
        with pytest.raises(StoreError) as exc_info:
            await seeded_stores[Collection.STORES].create_one(
                {**STORE_FIELDS, "contact_email": "other@example.com"}
            )

        assert exc_info.value.kind == StoreErrorKind.CONSTRAINT

    async def test_sales_grain_is_unique(self, seeded_stores) -> None:
        """Two sales lines for the same date, store and product collide."""
        sales = seeded_stores[Collection.SALES]
        line = {
            "date": date(2024, 1, 15),
            "plant": "S001",
            "material_code": "STY-001",
            "quantity": 1,
            "mrp": Decimal("10"),
            "discount": Decimal("0"),
            "gsv": Decimal("10"),
            "nsv": Decimal("9"),
            "total_tax": Decimal("0"),
        }
        await sales.create_one(dict(line))

        with pytest.raises(StoreError) as exc_info:
            await sales.create_one(dict(line))

        assert exc_info.value.kind == StoreErrorKind.CONSTRAINT

    async def test_update_and_delete_missing(self, seeded_stores) -> None:
        """Unknown ids are reported as not_found."""
        products = seeded_stores[Collection.PRODUCTS]

        with pytest.raises(StoreError) as update_exc:
            await products.update_by_id("0" * 32, {"name": "x"})
        with pytest.raises(StoreError) as delete_exc:
            await products.delete_by_id("0" * 32)

        assert update_exc.value.kind == StoreErrorKind.NOT_FOUND
        assert delete_exc.value.kind == StoreErrorKind.NOT_FOUND


@pytest.mark.integration
class TestBulkEngineIntegration:
    """Bulk orchestrators over the real stores."""

    async def test_sales_import_partial_success(
        self, seeded_stores, db_session: AsyncSession
    ) -> None:
        """Valid lines are stored; invalid and unresolvable lines are itemized."""
        records = [
            _sales_record(plant="s001", quantity=10, date="2024-01-15"),
            _sales_record(quantity=-5, date="2024-01-16"),
            _sales_record(plant="S404", date="2024-01-17"),
            _sales_record(quantity=2, date="2024-01-15"),
        ]

        result = await BulkImportOrchestrator(
            Collection.SALES, seeded_stores[Collection.SALES], Settings()
        ).run(records, batch_size=2)

        assert (result.total, result.created, result.failed) == (4, 1, 3)
        assert [(e.index, e.reason) for e in result.errors] == [
            (1, FailureReason.VALIDATION),
            (2, FailureReason.VALIDATION),
            (3, FailureReason.CONSTRAINT),
        ]
        count = await db_session.scalar(select(func.count()).select_from(Sales))
        assert count == 1

    async def test_product_upsert_and_delete(self, seeded_stores) -> None:
        """Products can be created, updated by id and deleted by id in bulk."""
        products = seeded_stores[Collection.PRODUCTS]
        orchestrator = BulkImportOrchestrator(Collection.PRODUCTS, products, Settings())

        created = await orchestrator.run(
            [{"name": "Socks", "styleCode": "STY-100"}, {"name": "Towel", "styleCode": "STY-200"}]
        )
        assert created.created == 2

        socks_id = await products.create_one(
            {"name": "Socks 2", "style_code": "STY-300", "software_code": "PRD-0000000300"}
        )
        updated = await orchestrator.run([{"id": socks_id, "description": "Ankle length"}])
        assert updated.updated == 1

        deleted = await BulkDeleteOrchestrator(Collection.PRODUCTS, products, Settings()).run(
            [socks_id, "f" * 32]
        )
        assert (deleted.deleted, deleted.failed) == (1, 1)
        assert deleted.errors[0].reason == FailureReason.NOT_FOUND

    async def test_deleting_referenced_store_is_constraint(self, seeded_stores) -> None:
        """A store with sales lines cannot be deleted."""
        store_id = await seeded_stores[Collection.STORES].create_one(
            {**STORE_FIELDS, "store_code": "S002", "contact_email": "s2@example.com"}
        )
        await seeded_stores[Collection.SALES].create_one(
            {
                "date": date(2024, 2, 1),
                "plant": "S002",
                "material_code": "STY-001",
                "quantity": 1,
                "mrp": Decimal("1"),
                "discount": Decimal("0"),
                "gsv": Decimal("1"),
                "nsv": Decimal("1"),
                "total_tax": Decimal("0"),
            }
        )

        result = await BulkDeleteOrchestrator(
            Collection.STORES, seeded_stores[Collection.STORES], Settings()
        ).run([store_id])

        assert result.errors[0].reason == FailureReason.CONSTRAINT

    @pytest.mark.parametrize("concurrent", [True, False])
    async def test_duplicate_delete_ids_counted_once(self, seeded_stores, concurrent) -> None:
        """The same id twice deletes one row and reports the repeat as not_found."""
        products = seeded_stores[Collection.PRODUCTS]
        product_id = await products.create_one(
            {"name": "Towel", "style_code": "STY-900", "software_code": "PRD-0000000900"}
        )

        result = await BulkDeleteOrchestrator(
            Collection.PRODUCTS, products, Settings(bulk_concurrent=concurrent)
        ).run([product_id, product_id])

        assert (result.deleted, result.failed) == (1, 1)
        assert result.errors[0].reason == FailureReason.NOT_FOUND

    async def test_oversized_value_is_validation(self, seeded_stores) -> None:
        """A value too long for its column is a validation failure, not internal."""
        with pytest.raises(StoreError) as exc_info:
            await seeded_stores[Collection.PRODUCTS].create_one(
                {"name": "Long", "style_code": "S" * 80, "software_code": "PRD-0000000901"}
            )

        assert exc_info.value.kind == StoreErrorKind.VALIDATION

    async def test_sales_import_preloads_keys(self, seeded_stores) -> None:
        """Several lines for the same store and product resolve their keys once per batch."""
        sales = seeded_stores[Collection.SALES]

        result = await BulkImportOrchestrator(Collection.SALES, sales, Settings()).run(
            [_sales_record(date=f"2024-03-0{day}") for day in range(1, 4)]
        )

        assert result.created == 3
