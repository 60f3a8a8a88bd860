"""Catalog ORM models: the Store and Product master collections and Sales lines.

Each table is addressed by an opaque 32-character hex identifier so that the
bulk engine can treat it like a document collection (create / update-by-id /
delete-by-id). Business keys carry their own unique constraints:

- Store: ``store_code`` and ``contact_email``
- Product: ``style_code`` and ``software_code``
- Sales: one line per (date, store_id, product_id)
"""

import datetime
import uuid
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


def new_document_id() -> str:
    """Generate a new opaque document identifier (UUID hex, 32 chars)."""
    return uuid.uuid4().hex


class TimestampMixin:
    """Audit columns stamped by the database clock.

    ``updated_at`` moves on every ORM update, so a bulk re-import shows
    which rows it touched.
    """

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


# ============================================================================
# MASTER COLLECTIONS
# ============================================================================


class Store(TimestampMixin, Base):
    """Store (plant) master record.

    Attributes:
        id: Document identifier.
        store_code: Business store code, upper-cased (e.g., "S001").
        store_name: Display name.
        contact_email: Lower-cased contact e-mail, unique across stores.
        credit_rating: One of A+ .. F.
        hanky_norms, socks_norms, towel_norms, total_norms: Replenishment norms.
    """

    __tablename__ = "store"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_document_id)
    store_code: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    store_name: Mapped[str] = mapped_column(String(200))
    city: Mapped[str] = mapped_column(String(100))
    address_line1: Mapped[str] = mapped_column(String(300))
    address_line2: Mapped[str] = mapped_column(String(300), default="")
    store_number: Mapped[str] = mapped_column(String(50))
    pincode: Mapped[str] = mapped_column(String(10))
    contact_person: Mapped[str] = mapped_column(String(200))
    contact_email: Mapped[str] = mapped_column(String(254), unique=True)
    contact_phone: Mapped[str] = mapped_column(String(20))
    credit_rating: Mapped[str] = mapped_column(String(2), default="C")

    bp_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    old_store_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    bp_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    street: Mapped[str | None] = mapped_column(String(200), nullable=True)
    block: Mapped[str | None] = mapped_column(String(100), nullable=True)
    zip_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    telephone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    internal_sap_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    internal_software_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    brand_grouping: Mapped[str | None] = mapped_column(String(100), nullable=True)
    brand: Mapped[str | None] = mapped_column(String(100), nullable=True)

    hanky_norms: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    socks_norms: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    towel_norms: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    total_norms: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Deleting a store with sales lines is rejected by the foreign key
    sales: Mapped[list["Sales"]] = relationship(back_populates="store", passive_deletes=True)

    __table_args__ = (
        CheckConstraint(
            "credit_rating IN ('A+','A','A-','B+','B','B-','C+','C','C-','D','F')",
            name="ck_store_credit_rating",
        ),
    )


class Product(TimestampMixin, Base):
    """Product master record.

    Attributes:
        id: Document identifier.
        name: Product display name.
        style_code: Business product code referenced by sales lines.
        software_code: Internal code, generated on create when absent.
        category: Free-form category label.
        status: Lifecycle status ("active" on import).
    """

    __tablename__ = "product"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_document_id)
    name: Mapped[str] = mapped_column(String(200))
    style_code: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    software_code: Mapped[str] = mapped_column(String(50), unique=True)
    internal_code: Mapped[str] = mapped_column(String(50), default="")
    vendor_code: Mapped[str] = mapped_column(String(50), default="")
    factory_code: Mapped[str] = mapped_column(String(50), default="")
    ean_code: Mapped[str] = mapped_column(String(50), default="")
    description: Mapped[str] = mapped_column(String(2000), default="")
    category: Mapped[str | None] = mapped_column(String(100), index=True, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="active")

    sales: Mapped[list["Sales"]] = relationship(back_populates="product", passive_deletes=True)


# ============================================================================
# TRANSACTIONS
# ============================================================================


class Sales(TimestampMixin, Base):
    """Sales line for one store, one product, one day.

    CRITICAL: Grain is (date, store_id, product_id). Enforced by a unique
    constraint so that a duplicate create surfaces as a constraint failure.

    Attributes:
        id: Document identifier.
        date: Sales date.
        store_id: Store (FK to store), resolved from the ``plant`` code.
        product_id: Product (FK to product), resolved from ``materialCode``.
        quantity: Units sold.
        mrp: Maximum retail price.
        discount: Discount amount.
        gsv: Gross sales value.
        nsv: Net sales value.
        total_tax: Total tax amount.
    """

    __tablename__ = "sales"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_document_id)
    date: Mapped[datetime.date] = mapped_column(Date, index=True)
    store_id: Mapped[str] = mapped_column(String(32), ForeignKey("store.id"), index=True)
    product_id: Mapped[str] = mapped_column(String(32), ForeignKey("product.id"), index=True)
    quantity: Mapped[int] = mapped_column(Integer)
    mrp: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    gsv: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    nsv: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    total_tax: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))

    store: Mapped["Store"] = relationship(back_populates="sales")
    product: Mapped["Product"] = relationship(back_populates="sales")

    __table_args__ = (
        UniqueConstraint("date", "store_id", "product_id", name="uq_sales_grain"),
        CheckConstraint("quantity >= 0", name="ck_sales_quantity_nonneg"),
        CheckConstraint("mrp >= 0", name="ck_sales_mrp_nonneg"),
        CheckConstraint("discount >= 0", name="ck_sales_discount_nonneg"),
        CheckConstraint("gsv >= 0", name="ck_sales_gsv_nonneg"),
        CheckConstraint("nsv >= 0", name="ck_sales_nsv_nonneg"),
        CheckConstraint("total_tax >= 0", name="ck_sales_total_tax_nonneg"),
        Index("ix_sales_store_date", "store_id", "date"),
    )
