"""create_catalog_tables

Revision ID: e7a1c4b9d210
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "e7a1c4b9d210"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    """Audit timestamp columns shared by every catalog table."""
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Apply migration - create store, product and sales tables."""
    # Create store table
    op.create_table(
        "store",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("store_code", sa.String(length=50), nullable=False),
        sa.Column("store_name", sa.String(length=200), nullable=False),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("address_line1", sa.String(length=300), nullable=False),
        sa.Column("address_line2", sa.String(length=300), nullable=False),
        sa.Column("store_number", sa.String(length=50), nullable=False),
        sa.Column("pincode", sa.String(length=10), nullable=False),
        sa.Column("contact_person", sa.String(length=200), nullable=False),
        sa.Column("contact_email", sa.String(length=254), nullable=False),
        sa.Column("contact_phone", sa.String(length=20), nullable=False),
        sa.Column("credit_rating", sa.String(length=2), nullable=False),
        # Optional master data
        sa.Column("bp_code", sa.String(length=50), nullable=True),
        sa.Column("old_store_code", sa.String(length=50), nullable=True),
        sa.Column("bp_name", sa.String(length=200), nullable=True),
        sa.Column("street", sa.String(length=200), nullable=True),
        sa.Column("block", sa.String(length=100), nullable=True),
        sa.Column("zip_code", sa.String(length=20), nullable=True),
        sa.Column("state", sa.String(length=100), nullable=True),
        sa.Column("country", sa.String(length=100), nullable=True),
        sa.Column("telephone", sa.String(length=20), nullable=True),
        sa.Column("internal_sap_code", sa.String(length=50), nullable=True),
        sa.Column("internal_software_code", sa.String(length=50), nullable=True),
        sa.Column("brand_grouping", sa.String(length=100), nullable=True),
        sa.Column("brand", sa.String(length=100), nullable=True),
        # Replenishment norms
        sa.Column("hanky_norms", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("socks_norms", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("towel_norms", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("total_norms", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        # Constraints
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("contact_email"),
        sa.CheckConstraint(
            "credit_rating IN ('A+','A','A-','B+','B','B-','C+','C','C-','D','F')",
            name="ck_store_credit_rating",
        ),
    )
    op.create_index(op.f("ix_store_store_code"), "store", ["store_code"], unique=True)

    # Create product table
    op.create_table(
        "product",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("style_code", sa.String(length=50), nullable=False),
        sa.Column("software_code", sa.String(length=50), nullable=False),
        sa.Column("internal_code", sa.String(length=50), nullable=False),
        sa.Column("vendor_code", sa.String(length=50), nullable=False),
        sa.Column("factory_code", sa.String(length=50), nullable=False),
        sa.Column("ean_code", sa.String(length=50), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        *_timestamps(),
        # Constraints
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("software_code"),
    )
    op.create_index(op.f("ix_product_style_code"), "product", ["style_code"], unique=True)
    op.create_index(op.f("ix_product_category"), "product", ["category"], unique=False)

    # Create sales table
    op.create_table(
        "sales",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("store_id", sa.String(length=32), nullable=False),
        sa.Column("product_id", sa.String(length=32), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("mrp", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("discount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("gsv", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("nsv", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("total_tax", sa.Numeric(precision=12, scale=2), nullable=False),
        *_timestamps(),
        # Constraints
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["store_id"], ["store.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["product.id"]),
        sa.UniqueConstraint("date", "store_id", "product_id", name="uq_sales_grain"),
        sa.CheckConstraint("quantity >= 0", name="ck_sales_quantity_nonneg"),
        sa.CheckConstraint("mrp >= 0", name="ck_sales_mrp_nonneg"),
        sa.CheckConstraint("discount >= 0", name="ck_sales_discount_nonneg"),
        sa.CheckConstraint("gsv >= 0", name="ck_sales_gsv_nonneg"),
        sa.CheckConstraint("nsv >= 0", name="ck_sales_nsv_nonneg"),
        sa.CheckConstraint("total_tax >= 0", name="ck_sales_total_tax_nonneg"),
    )
    op.create_index(op.f("ix_sales_date"), "sales", ["date"], unique=False)
    op.create_index(op.f("ix_sales_store_id"), "sales", ["store_id"], unique=False)
    op.create_index(op.f("ix_sales_product_id"), "sales", ["product_id"], unique=False)
    op.create_index("ix_sales_store_date", "sales", ["store_id", "date"], unique=False)


def downgrade() -> None:
    """Revert migration - drop sales, product and store tables."""
    op.drop_index("ix_sales_store_date", table_name="sales")
    op.drop_index(op.f("ix_sales_product_id"), table_name="sales")
    op.drop_index(op.f("ix_sales_store_id"), table_name="sales")
    op.drop_index(op.f("ix_sales_date"), table_name="sales")
    op.drop_table("sales")

    op.drop_index(op.f("ix_product_category"), table_name="product")
    op.drop_index(op.f("ix_product_style_code"), table_name="product")
    op.drop_table("product")

    op.drop_index(op.f("ix_store_store_code"), table_name="store")
    op.drop_table("store")
