"""create uploads, record tables and mapping_configs

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def _owned_columns() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("upload_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("row_number", sa.Integer(), nullable=False),
        sa.Column("has_identifier", sa.Boolean(), nullable=False),
        sa.Column("date_is_fallback", sa.Boolean(), nullable=False),
        sa.Column("ingested_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _owned_constraints(table: str) -> list[sa.Constraint]:
    return [
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["upload_id"],
            ["uploads.id"],
            name=f"fk_{table}_upload_id",
            ondelete="CASCADE",
        ),
    ]


def _text(name: str) -> sa.Column:
    # Cell text is stored unbounded; an overlong cell must not fail its batch.
    return sa.Column(name, sa.Text(), nullable=False)


def _number(name: str) -> sa.Column:
    return sa.Column(name, sa.Float(), nullable=False)


def _integer(name: str) -> sa.Column:
    return sa.Column(name, sa.Integer(), nullable=False)


def upgrade() -> None:
    op.create_table(
        "uploads",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("source", sa.String(length=32), nullable=False, comment="ads, shipping, commerce"),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column(
            "status",
            sa.String(length=32),
            nullable=False,
            comment="processing, completed, partial, failed",
        ),
        sa.Column("rows_total", sa.Integer(), nullable=False),
        sa.Column("records_saved", sa.Integer(), nullable=False),
        sa.Column("rows_failed", sa.Integer(), nullable=False),
        sa.Column("rows_with_issues", sa.Integer(), nullable=False),
        sa.Column("batches_failed", sa.Integer(), nullable=False),
        sa.Column("timed_out", sa.Boolean(), nullable=False),
        sa.Column("date_from", sa.DateTime(timezone=False), nullable=True),
        sa.Column("date_to", sa.DateTime(timezone=False), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_uploads_user_source", "uploads", ["user_id", "source"], unique=False)
    op.create_index("ix_uploads_status", "uploads", ["status"], unique=False)

    op.create_table(
        "ad_records",
        *_owned_columns(),
        sa.Column("date", sa.DateTime(timezone=False), nullable=False),
        _text("campaign_name"),
        _text("ad_set_name"),
        _text("objective"),
        _integer("impressions"),
        _integer("clicks"),
        _number("ctr"),
        _number("cpc"),
        _number("spend"),
        _integer("results"),
        _number("cost_per_result"),
        _integer("purchases"),
        _number("purchase_conversion_value"),
        _number("purchase_roas"),
        *_owned_constraints("ad_records"),
    )
    op.create_index("ix_ad_records_upload_id", "ad_records", ["upload_id"], unique=False)
    op.create_index("ix_ad_records_user_date", "ad_records", ["user_id", "date"], unique=False)
    op.create_index("ix_ad_records_user_campaign", "ad_records", ["user_id", "campaign_name"], unique=False)

    op.create_table(
        "shipping_records",
        *_owned_columns(),
        sa.Column("ship_date", sa.DateTime(timezone=False), nullable=False),
        _text("order_id"),
        _text("tracking_id"),
        _text("channel"),
        _text("status"),
        _text("channel_sku"),
        _text("master_sku"),
        _text("product_name"),
        _text("product_category"),
        _integer("product_quantity"),
        _text("customer_name"),
        _text("customer_email"),
        _text("customer_mobile"),
        _text("address_line1"),
        _text("address_line2"),
        _text("address_city"),
        _text("address_state"),
        _text("address_pincode"),
        _text("payment_method"),
        _number("product_price"),
        _number("order_total"),
        _number("discount_value"),
        _number("weight"),
        _number("charged_weight"),
        _text("courier_company"),
        _text("pickup_location_id"),
        _number("cod_payable_amount"),
        _number("remitted_amount"),
        _number("cod_charges"),
        _number("shipping_charges"),
        _number("freight_total_amount"),
        _text("pickup_pincode"),
        *_owned_constraints("shipping_records"),
    )
    op.create_index("ix_shipping_records_upload_id", "shipping_records", ["upload_id"], unique=False)
    op.create_index(
        "ix_shipping_records_user_ship_date",
        "shipping_records",
        ["user_id", "ship_date"],
        unique=False,
    )
    op.create_index("ix_shipping_records_user_status", "shipping_records", ["user_id", "status"], unique=False)
    op.create_index(
        "ix_shipping_records_user_courier",
        "shipping_records",
        ["user_id", "courier_company"],
        unique=False,
    )

    op.create_table(
        "commerce_orders",
        *_owned_columns(),
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        _text("order_id"),
        _text("name"),
        _text("email"),
        _text("financial_status"),
        _text("paid_at"),
        _text("fulfillment_status"),
        _text("fulfilled_at"),
        sa.Column("accepts_marketing", sa.Boolean(), nullable=False),
        _text("currency"),
        _number("subtotal"),
        _number("shipping"),
        _number("taxes"),
        _number("total"),
        _text("discount_code"),
        _number("discount_amount"),
        _text("shipping_method"),
        _integer("lineitem_quantity"),
        _text("lineitem_name"),
        _number("lineitem_price"),
        _text("lineitem_sku"),
        _number("lineitem_discount"),
        _text("billing_province"),
        _text("shipping_city"),
        _text("shipping_province"),
        _text("shipping_country"),
        _text("payment_method"),
        _number("refunded_amount"),
        _text("notes"),
        _text("tags"),
        _text("source"),
        _text("vendor"),
        _text("risk_level"),
        _text("cancelled_at"),
        *_owned_constraints("commerce_orders"),
    )
    op.create_index("ix_commerce_orders_upload_id", "commerce_orders", ["upload_id"], unique=False)
    op.create_index(
        "ix_commerce_orders_user_created_at",
        "commerce_orders",
        ["user_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_commerce_orders_user_fulfillment",
        "commerce_orders",
        ["user_id", "fulfillment_status"],
        unique=False,
    )

    op.create_table(
        "mapping_configs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("source", sa.String(length=32), nullable=False, comment="ads, shipping, commerce"),
        sa.Column("name", sa.String(length=120), nullable=False, comment="Human-readable config name"),
        sa.Column("field_mapping_json", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("alias_overrides_json", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "source", "name", name="uq_mapping_configs_user_source_name"),
    )
    op.create_index(
        "ix_mapping_configs_user_source_active",
        "mapping_configs",
        ["user_id", "source", "is_active"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_mapping_configs_user_source_active", table_name="mapping_configs")
    op.drop_table("mapping_configs")

    op.drop_index("ix_commerce_orders_user_fulfillment", table_name="commerce_orders")
    op.drop_index("ix_commerce_orders_user_created_at", table_name="commerce_orders")
    op.drop_index("ix_commerce_orders_upload_id", table_name="commerce_orders")
    op.drop_table("commerce_orders")

    op.drop_index("ix_shipping_records_user_courier", table_name="shipping_records")
    op.drop_index("ix_shipping_records_user_status", table_name="shipping_records")
    op.drop_index("ix_shipping_records_user_ship_date", table_name="shipping_records")
    op.drop_index("ix_shipping_records_upload_id", table_name="shipping_records")
    op.drop_table("shipping_records")

    op.drop_index("ix_ad_records_user_campaign", table_name="ad_records")
    op.drop_index("ix_ad_records_user_date", table_name="ad_records")
    op.drop_index("ix_ad_records_upload_id", table_name="ad_records")
    op.drop_table("ad_records")

    op.drop_index("ix_uploads_status", table_name="uploads")
    op.drop_index("ix_uploads_user_source", table_name="uploads")
    op.drop_table("uploads")
