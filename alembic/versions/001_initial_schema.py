"""Initial schema: household, stock, recipe pool, menus, shopping list, notifications

Revision ID: 001_initial_schema
Revises: 
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Products
    op.create_table(
        "products",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(200), unique=True, nullable=False),
        sa.Column("name_key", sa.String(200), unique=True, nullable=False),
        sa.Column("default_unit", sa.String(20), nullable=False, server_default="pcs"),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Family members
    op.create_table(
        "family_members",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("age_group", sa.String(20), nullable=False, server_default="adult"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Inventory batches
    op.create_table(
        "inventory",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("product_id", sa.String(36), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
        sa.Column("quantity", sa.Float, nullable=False, server_default="0"),
        sa.Column("unit", sa.String(20), nullable=False, server_default="pcs"),
        sa.Column("expiry_date", sa.Date, nullable=True),
        sa.Column("minimum_threshold", sa.Float, nullable=False, server_default="0"),
        sa.Column("location", sa.String(50), nullable=True),
        sa.Column("last_updated", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_inventory_product_expiry", "inventory", ["product_id", "expiry_date"])

    # Recipe pool
    op.create_table(
        "recipe_templates",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("meal_type", sa.String(20), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("ingredients", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("suitable_for_toddler", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("prep_time_minutes", sa.Integer, nullable=True),
        sa.Column("cook_time_minutes", sa.Integer, nullable=True),
        sa.Column("difficulty", sa.String(20), nullable=True),
        sa.Column("recipe_url", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_recipe_templates_meal_type", "recipe_templates", ["meal_type"])

    # Menus: one row per (date, meal_type)
    op.create_table(
        "menus",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("recipe_id", sa.String(36), nullable=True),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("meal_type", sa.String(20), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("suitable_for", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("suitable_for_toddler", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("portion_multiplier", sa.Float, nullable=False, server_default="1"),
        sa.Column("stock_status", sa.String(20), nullable=False, server_default="ready"),
        sa.Column("source", sa.String(20), nullable=False, server_default="auto"),
        sa.Column("prep_time_minutes", sa.Integer, nullable=True),
        sa.Column("cook_time_minutes", sa.Integer, nullable=True),
        sa.Column("recipe_url", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("date", "meal_type", name="uq_menus_date_meal_type"),
    )
    op.create_index("ix_menus_date_source", "menus", ["date", "source"])

    op.create_table(
        "menu_ingredients",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("menu_id", sa.String(36), sa.ForeignKey("menus.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.String(36), sa.ForeignKey("products.id", ondelete="SET NULL"), nullable=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("quantity", sa.Float, nullable=False),
        sa.Column("unit", sa.String(20), nullable=False),
        sa.Column("available_qty", sa.Float, nullable=False, server_default="0"),
        sa.Column("missing_qty", sa.Float, nullable=False, server_default="0"),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_index("ix_menu_ingredients_menu_id", "menu_ingredients", ["menu_id"])

    # Shopping list
    op.create_table(
        "shopping_lists",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("product_id", sa.String(36), sa.ForeignKey("products.id", ondelete="SET NULL"), nullable=True),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("quantity", sa.Float, nullable=False, server_default="1"),
        sa.Column("unit", sa.String(20), nullable=False, server_default="pcs"),
        sa.Column("priority", sa.String(10), nullable=False, server_default="medium"),
        sa.Column("added_reason", sa.String(10), nullable=False, server_default="manual"),
        sa.Column("is_purchased", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("added_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("purchased_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_shopping_lists_purchased", "shopping_lists", ["is_purchased"])

    # Notifications
    op.create_table(
        "notifications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("related_product_id", sa.String(36), sa.ForeignKey("products.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("shopping_lists")
    op.drop_table("menu_ingredients")
    op.drop_table("menus")
    op.drop_table("recipe_templates")
    op.drop_table("inventory")
    op.drop_table("family_members")
    op.drop_table("products")
