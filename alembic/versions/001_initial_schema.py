"""Initial schema — catalog, carts, orders, catering, notifications, settings.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
import uuid
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

DEFAULT_ADDONS = (
    ("Setup Service", "Professional setup and breakdown of catering equipment", 15000, "service"),
    ("Disposable Plates & Utensils", "Eco-friendly disposable dinnerware for all guests", 250, "equipment"),
    ("Chafing Dishes", "Professional warming trays to keep food at optimal temperature", 2500, "equipment"),
    ("Serving Staff (per hour)", "Professional catering staff to serve your guests", 2500, "service"),
    ("Tablecloths & Linens", "Premium linens for buffet tables", 1500, "equipment"),
    ("Beverage Service", "Sweet tea, lemonade, and water service", 300, "beverage"),
)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(),
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(),
    )


def upgrade() -> None:
    # ─── Catalog ─────────────────────────────────────────────────
    op.create_table(
        "products",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("subtitle", sa.String(255), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("handle", sa.String(255), nullable=False, unique=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("thumbnail", sa.String(500), nullable=True),
        sa.Column("metadata", sa.JSON, nullable=False, server_default="{}"),
        sa.Column("discountable", sa.Boolean, nullable=False, server_default="true"),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_products_handle", "products", ["handle"])
    op.create_index("ix_products_status", "products", ["status"])

    op.create_table(
        "product_variants",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "product_id", UUID(as_uuid=True),
            sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(255), nullable=True, unique=True),
        sa.Column("price_cents", sa.Integer, nullable=False),
        sa.Column("inventory_quantity", sa.Integer, nullable=False, server_default="0"),
        sa.Column("allow_backorder", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("manage_inventory", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("variant_rank", sa.Integer, nullable=False, server_default="0"),
        _created_at(),
        sa.CheckConstraint("price_cents >= 0", name="ck_variant_price_non_negative"),
        sa.CheckConstraint("inventory_quantity >= 0", name="ck_variant_inventory_non_negative"),
    )
    op.create_index("ix_product_variants_product_id", "product_variants", ["product_id"])

    op.create_table(
        "product_images",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "product_id", UUID(as_uuid=True),
            sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("url", sa.String(500), nullable=False),
        sa.Column("alt_text", sa.String(255), nullable=True),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
        _created_at(),
    )
    op.create_index("ix_product_images_product_id", "product_images", ["product_id"])

    op.create_table(
        "product_categories",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("handle", sa.String(255), nullable=False, unique=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "parent_id", UUID(as_uuid=True),
            sa.ForeignKey("product_categories.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_product_categories_handle", "product_categories", ["handle"])
    op.create_index("ix_product_categories_parent_id", "product_categories", ["parent_id"])

    op.create_table(
        "product_collections",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("handle", sa.String(255), nullable=False, unique=True),
        _created_at(),
    )
    op.create_index("ix_product_collections_handle", "product_collections", ["handle"])

    op.create_table(
        "product_category_links",
        sa.Column(
            "product_id", UUID(as_uuid=True),
            sa.ForeignKey("products.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "category_id", UUID(as_uuid=True),
            sa.ForeignKey("product_categories.id", ondelete="CASCADE"), primary_key=True,
        ),
    )
    op.create_table(
        "product_collection_links",
        sa.Column(
            "product_id", UUID(as_uuid=True),
            sa.ForeignKey("products.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "collection_id", UUID(as_uuid=True),
            sa.ForeignKey("product_collections.id", ondelete="CASCADE"), primary_key=True,
        ),
    )

    # ─── Carts & orders ──────────────────────────────────────────
    op.create_table(
        "carts",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("fulfillment_type", sa.String(20), nullable=True),
        sa.Column("order_id", UUID(as_uuid=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "cart_line_items",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "cart_id", UUID(as_uuid=True),
            sa.ForeignKey("carts.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "variant_id", UUID(as_uuid=True),
            sa.ForeignKey("product_variants.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("product_id", UUID(as_uuid=True), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("variant_title", sa.String(255), nullable=True),
        sa.Column("sku", sa.String(255), nullable=True),
        sa.Column("unit_price_cents", sa.Integer, nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="1"),
        _created_at(),
        sa.CheckConstraint("quantity >= 1", name="ck_line_item_quantity_positive"),
    )
    op.create_index("ix_cart_line_items_cart_id", "cart_line_items", ["cart_id"])

    op.create_table(
        "orders",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("display_id", sa.String(20), nullable=False, unique=True),
        sa.Column(
            "cart_id", UUID(as_uuid=True),
            sa.ForeignKey("carts.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(32), nullable=True),
        sa.Column("status", sa.String(30), nullable=False, server_default="pending"),
        sa.Column("fulfillment_type", sa.String(20), nullable=False, server_default="pickup"),
        sa.Column("delivery_address", sa.JSON, nullable=True),
        sa.Column("items", sa.JSON, nullable=False, server_default="[]"),
        sa.Column("subtotal_cents", sa.Integer, nullable=False),
        sa.Column("tax_cents", sa.Integer, nullable=False),
        sa.Column("delivery_fee_cents", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_cents", sa.Integer, nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("payment_provider", sa.String(20), nullable=False),
        sa.Column("transaction_id", sa.String(255), nullable=False),
        sa.Column("payment_reference", sa.String(255), nullable=True),
        sa.Column("estimated_ready_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("payment_provider", "transaction_id", name="uq_order_transaction"),
    )
    op.create_index("ix_orders_display_id", "orders", ["display_id"])
    op.create_index("ix_orders_email", "orders", ["email"])
    op.create_index("ix_orders_status", "orders", ["status"])
    op.create_index("ix_orders_payment_reference", "orders", ["payment_reference"])

    op.create_table(
        "order_status_events",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "order_id", UUID(as_uuid=True),
            sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("status", sa.String(30), nullable=False),
        sa.Column("note", sa.Text, nullable=True),
        sa.Column("actor_role", sa.String(20), nullable=False, server_default="system"),
        _created_at(),
    )
    op.create_index("ix_order_status_events_order_id", "order_status_events", ["order_id"])

    # ─── Catering ────────────────────────────────────────────────
    op.create_table(
        "catering_quotes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("customer_email", sa.String(255), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(32), nullable=True),
        sa.Column("event_type", sa.String(20), nullable=False),
        sa.Column("event_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("guest_count", sa.Integer, nullable=False),
        sa.Column("hunger_level", sa.String(20), nullable=False, server_default="normal"),
        sa.Column("location_address", sa.Text, nullable=False),
        sa.Column("distance_miles", sa.Float, nullable=False, server_default="0"),
        sa.Column("menu_selections", sa.JSON, nullable=False, server_default="[]"),
        sa.Column("add_ons", sa.JSON, nullable=False, server_default="[]"),
        sa.Column("pricing", sa.JSON, nullable=False, server_default="{}"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("deposit_order_id", sa.String(255), nullable=True),
        sa.Column("balance_order_id", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint("guest_count BETWEEN 1 AND 1000", name="ck_quote_guest_count"),
        sa.CheckConstraint(
            "distance_miles >= 0 AND distance_miles <= 100", name="ck_quote_distance",
        ),
    )
    op.create_index("ix_catering_quotes_customer_email", "catering_quotes", ["customer_email"])
    op.create_index("ix_catering_quotes_status", "catering_quotes", ["status"])

    addons = op.create_table(
        "catering_addons",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("price_cents", sa.Integer, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("category", sa.String(100), nullable=True),
        _created_at(),
        sa.CheckConstraint("price_cents >= 0", name="ck_addon_price_non_negative"),
    )
    op.create_index("ix_catering_addons_is_active", "catering_addons", ["is_active"])

    op.create_table(
        "quote_payments",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "quote_id", UUID(as_uuid=True),
            sa.ForeignKey("catering_quotes.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("payment_type", sa.String(20), nullable=False),
        sa.Column("provider", sa.String(20), nullable=False),
        sa.Column("transaction_id", sa.String(255), nullable=False),
        sa.Column("payment_reference", sa.String(255), nullable=False),
        sa.Column("order_reference", sa.String(64), nullable=False),
        sa.Column("amount_cents", sa.Integer, nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        _created_at(),
        sa.UniqueConstraint("provider", "transaction_id", name="uq_quote_payment_transaction"),
    )
    op.create_index("ix_quote_payments_quote_id", "quote_payments", ["quote_id"])

    # ─── Email & notifications ───────────────────────────────────
    op.create_table(
        "email_preferences",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("quotes", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("payments", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("order_updates", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("event_reminders", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("marketing", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("newsletters", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("unsubscribed_all", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("unsubscribe_token", sa.String(64), nullable=False, unique=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_email_preferences_email", "email_preferences", ["email"])
    op.create_index(
        "ix_email_preferences_unsubscribe_token", "email_preferences", ["unsubscribe_token"],
    )

    op.create_table(
        "scheduled_notifications",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("trigger", sa.String(50), nullable=False),
        sa.Column("recipient_email", sa.String(255), nullable=False),
        sa.Column("data", sa.JSON, nullable=False, server_default="{}"),
        sa.Column("priority", sa.String(10), nullable=False, server_default="normal"),
        sa.Column("scheduled_for", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        _created_at(),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text, nullable=True),
    )
    op.create_index("ix_scheduled_notifications_trigger", "scheduled_notifications", ["trigger"])
    op.create_index(
        "ix_scheduled_notifications_recipient_email",
        "scheduled_notifications", ["recipient_email"],
    )
    op.create_index(
        "ix_scheduled_notifications_scheduled_for",
        "scheduled_notifications", ["scheduled_for"],
    )
    op.create_index("ix_scheduled_notifications_status", "scheduled_notifications", ["status"])

    # ─── Settings ────────────────────────────────────────────────
    settings = op.create_table(
        "admin_settings",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("config", sa.JSON, nullable=False, server_default="{}"),
        _updated_at(),
    )

    op.bulk_insert(settings, [{"id": 1, "config": {}}])
    op.bulk_insert(addons, [
        {
            "id": uuid.uuid4(), "name": name, "description": description,
            "price_cents": price_cents, "is_active": True, "category": category,
        }
        for name, description, price_cents, category in DEFAULT_ADDONS
    ])


def downgrade() -> None:
    op.drop_table("admin_settings")
    op.drop_table("scheduled_notifications")
    op.drop_table("email_preferences")
    op.drop_table("quote_payments")
    op.drop_table("catering_addons")
    op.drop_table("catering_quotes")
    op.drop_table("order_status_events")
    op.drop_table("orders")
    op.drop_table("cart_line_items")
    op.drop_table("carts")
    op.drop_table("product_collection_links")
    op.drop_table("product_category_links")
    op.drop_table("product_collections")
    op.drop_table("product_categories")
    op.drop_table("product_images")
    op.drop_table("product_variants")
    op.drop_table("products")
