"""Document-store adapter over the catalog tables.

The bulk engine only needs four operations per collection:

- ``create_one(fields) -> id``
- ``update_by_id(id, fields)``
- ``delete_by_id(id)``
- ``ping()``

Every mutation runs in its own short session and transaction so that one
failing record (e.g., a unique-constraint violation) can never poison the
session used by its siblings, and so that concurrent calls never share an
``AsyncSession``.

Expected per-record failures are raised as ``StoreError`` with a kind of
``not_found``, ``validation`` or ``constraint``. A value the column type
cannot hold (``DataError``) is a ``validation`` failure. Anything else
(driver errors, timeouts) propagates unchanged.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any, ClassVar, Protocol, runtime_checkable

from sqlalchemy import delete, select, text
from sqlalchemy.exc import DataError, DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.logging import get_logger
from app.features.catalog.models import Product, Sales, Store

logger = get_logger(__name__)


class Collection(str, Enum):
    """Collections that accept bulk import and delete."""

    SALES = "sales"
    PRODUCTS = "products"
    STORES = "stores"


class StoreErrorKind(str, Enum):
    """Expected failure kinds reported by a document store."""

    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    CONSTRAINT = "constraint"


class StoreError(Exception):
    """A store call failed for a reason attributable to this one document."""

    def __init__(self, kind: StoreErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


@runtime_checkable
class DocumentStore(Protocol):
    """Protocol for the per-collection store used by the bulk engine."""

    async def create_one(self, fields: dict[str, Any]) -> str:
        """Insert a document and return its identifier."""
        ...

    async def update_by_id(self, document_id: str, fields: dict[str, Any]) -> None:
        """Overwrite the given fields of an existing document."""
        ...

    async def delete_by_id(self, document_id: str) -> None:
        """Remove a document."""
        ...

    async def ping(self) -> None:
        """Raise if the store cannot be reached."""
        ...


@runtime_checkable
class KeyPreloadingStore(Protocol):
    """A store that can resolve the business keys of a whole batch up front."""

    async def preload(self, records: Sequence[Any]) -> None:
        """Resolve every key referenced by ``records`` in set-based lookups."""
        ...


def normalize_store_code(code: str) -> str:
    return code.strip().upper()


class KeyResolver:
    """Resolves business codes (store code, style code) to document IDs."""

    async def resolve_store_codes(self, db: AsyncSession, codes: set[str]) -> dict[str, str]:
        """Resolve store codes to store IDs.

        Args:
            db: Async database session.
            codes: Normalized (trimmed, upper-cased) store codes.

        Returns:
            Dictionary mapping store_code -> store_id for found stores.
        """
        if not codes:
            return {}

        stmt = select(Store.store_code, Store.id).where(Store.store_code.in_(codes))
        result = await db.execute(stmt)
        return {row.store_code: row.id for row in result}

    async def resolve_style_codes(
        self, db: AsyncSession, style_codes: set[str]
    ) -> dict[str, str]:
        """Resolve product style codes to product IDs.

        Args:
            db: Async database session.
            style_codes: Trimmed style codes.

        Returns:
            Dictionary mapping style_code -> product_id for found products.
        """
        if not style_codes:
            return {}

        stmt = select(Product.style_code, Product.id).where(Product.style_code.in_(style_codes))
        result = await db.execute(stmt)
        return {row.style_code: row.id for row in result}


class SqlAlchemyDocumentStore:
    """Generic document store over one ORM model."""

    model: ClassVar[type[Store] | type[Product] | type[Sales]]
    label: ClassVar[str] = "Document"

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    async def prepare(self, db: AsyncSession, fields: dict[str, Any]) -> dict[str, Any]:
        """Map validated record fields to column values.

        Args:
            db: Session of the enclosing transaction.
            fields: Normalized fields from the record validator.

        Returns:
            Column values for the ORM model.
        """
        return dict(fields)

    async def create_one(self, fields: dict[str, Any]) -> str:
        try:
            async with self._session_maker() as session, session.begin():
                values = await self.prepare(session, fields)
                document = self.model(**values)
                session.add(document)
                await session.flush()
                document_id: str = document.id
        except IntegrityError as e:
            raise StoreError(StoreErrorKind.CONSTRAINT, self._constraint_message(e)) from e
        except DataError as e:
            raise StoreError(StoreErrorKind.VALIDATION, self._data_message(e)) from e
        return document_id

    async def update_by_id(self, document_id: str, fields: dict[str, Any]) -> None:
        try:
            async with self._session_maker() as session, session.begin():
                document = await session.get(self.model, document_id)
                if document is None:
                    raise StoreError(
                        StoreErrorKind.NOT_FOUND,
                        f"{self.label} with ID {document_id} not found",
                    )
                values = await self.prepare(session, fields)
                for key, value in values.items():
                    setattr(document, key, value)
                await session.flush()
        except IntegrityError as e:
            raise StoreError(StoreErrorKind.CONSTRAINT, self._constraint_message(e)) from e
        except DataError as e:
            raise StoreError(StoreErrorKind.VALIDATION, self._data_message(e)) from e

    async def delete_by_id(self, document_id: str) -> None:
        """Delete one row; the affected row count decides ``not_found``.

        Two concurrent deletes of the same id serialize on the row lock, and
        only the first one sees a deleted row.
        """
        try:
            async with self._session_maker() as session, session.begin():
                result = await session.execute(
                    delete(self.model).where(self.model.id == document_id)
                )
                if result.rowcount == 0:
                    raise StoreError(
                        StoreErrorKind.NOT_FOUND,
                        f"{self.label} with ID {document_id} not found",
                    )
        except IntegrityError as e:
            # e.g. a store or product still referenced by sales lines
            raise StoreError(StoreErrorKind.CONSTRAINT, self._constraint_message(e)) from e

    async def ping(self) -> None:
        async with self._session_maker() as session:
            await session.execute(text("SELECT 1"))

    def _constraint_message(self, exc: IntegrityError) -> str:
        return (
            f"{self.label} violates a uniqueness or integrity constraint: "
            f"{_server_message(exc)}"
        )

    def _data_message(self, exc: DataError) -> str:
        return f"{self.label} has a value its column cannot store: {_server_message(exc)}"


def _server_message(exc: DBAPIError) -> str:
    detail = str(exc.orig) if exc.orig is not None else str(exc)
    # asyncpg prefixes the driver class; keep only the server message
    return detail.splitlines()[0] if detail else detail


class StoreDocumentStore(SqlAlchemyDocumentStore):
    """Store (plant) master collection."""

    model = Store
    label = "Store"


class ProductDocumentStore(SqlAlchemyDocumentStore):
    """Product master collection."""

    model = Product
    label = "Product"


class SalesDocumentStore(SqlAlchemyDocumentStore):
    """Sales lines; resolves ``plant`` and ``material_code`` to foreign keys.

    Resolved keys are cached for the lifetime of the store, which is one
    request (see ``build_document_stores``). ``preload`` fills the cache for
    a whole batch with one query per key type; codes it missed are looked
    up one at a time in ``prepare``.
    """

    model = Sales
    label = "Sales record"

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        key_resolver: KeyResolver | None = None,
    ) -> None:
        super().__init__(session_maker)
        self._key_resolver = key_resolver or KeyResolver()
        self._store_ids: dict[str, str] = {}
        self._product_ids: dict[str, str] = {}

    async def preload(self, records: Sequence[Any]) -> None:
        store_codes: set[str] = set()
        style_codes: set[str] = set()
        for record in records:
            if not isinstance(record, Mapping):
                continue
            plant = record.get("plant")
            material = record.get("materialCode", record.get("material_code"))
            if isinstance(plant, str) and plant.strip():
                store_codes.add(normalize_store_code(plant))
            if isinstance(material, str) and material.strip():
                style_codes.add(material.strip())

        store_codes -= self._store_ids.keys()
        style_codes -= self._product_ids.keys()
        if not store_codes and not style_codes:
            return

        async with self._session_maker() as session:
            self._store_ids.update(
                await self._key_resolver.resolve_store_codes(session, store_codes)
            )
            self._product_ids.update(
                await self._key_resolver.resolve_style_codes(session, style_codes)
            )

        logger.debug(
            "catalog.sales_keys_preloaded",
            store_codes=len(store_codes),
            style_codes=len(style_codes),
        )

    async def _store_id(self, db: AsyncSession, plant: str) -> str | None:
        code = normalize_store_code(plant)
        if code not in self._store_ids:
            self._store_ids.update(await self._key_resolver.resolve_store_codes(db, {code}))
        return self._store_ids.get(code)

    async def _product_id(self, db: AsyncSession, style_code: str) -> str | None:
        code = style_code.strip()
        if code not in self._product_ids:
            self._product_ids.update(await self._key_resolver.resolve_style_codes(db, {code}))
        return self._product_ids.get(code)

    async def prepare(self, db: AsyncSession, fields: dict[str, Any]) -> dict[str, Any]:
        values = dict(fields)

        if "plant" in values:
            plant = values.pop("plant")
            store_id = await self._store_id(db, plant)
            if store_id is None:
                raise StoreError(StoreErrorKind.VALIDATION, f"Store with ID '{plant}' not found")
            values["store_id"] = store_id

        if "material_code" in values:
            style_code = values.pop("material_code")
            product_id = await self._product_id(db, style_code)
            if product_id is None:
                raise StoreError(
                    StoreErrorKind.VALIDATION,
                    f"Product with style code '{style_code}' not found",
                )
            values["product_id"] = product_id

        return values


def build_document_stores(
    session_maker: async_sessionmaker[AsyncSession],
) -> dict[Collection, DocumentStore]:
    """Create one document store per bulk-enabled collection.

    Args:
        session_maker: Session factory shared by all stores.

    Returns:
        Mapping of collection to its store.
    """
    return {
        Collection.SALES: SalesDocumentStore(session_maker),
        Collection.PRODUCTS: ProductDocumentStore(session_maker),
        Collection.STORES: StoreDocumentStore(session_maker),
    }
