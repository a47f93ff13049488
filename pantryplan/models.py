"""SQLAlchemy ORM models for PantryPlan.

Tables:
- products: Canonical product identity (unique normalized name key)
- family_members: Household roster used for portions and toddler rules
- inventory: Pantry/fridge batches, several per product, drawn FIFO by expiry
- recipe_templates: Recipe pool for automatic menu selection
- menus / menu_ingredients: One menu per (date, meal_type) slot with its ingredient breakdown
- shopping_lists: Shopping list entries (manual, auto, alexa)
- notifications: Low stock, shopping reminders, expiry warnings
"""

from __future__ import annotations

import uuid
from datetime import datetime, date
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Date,
    Text,
    Integer,
    Boolean,
    Float,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func, false

from .db import Base
from .orm_types import JSONDocument


def generate_uuid() -> str:
    return str(uuid.uuid4())


class Product(Base):
    """Product identity.

    `name_key` is the case/diacritic-insensitive label used for matching
    ingredient names against stock; it is unique so that concurrent
    find-or-create calls collapse onto one row.
    """
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    name_key: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    default_unit: Mapped[str] = mapped_column(String(20), nullable=False, default="pcs")
    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    inventory: Mapped[list["InventoryEntry"]] = relationship(
        "InventoryEntry", back_populates="product", cascade="all, delete-orphan"
    )


class FamilyMember(Base):
    """Household member."""
    __tablename__ = "family_members"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # adult | teenager | toddler
    age_group: Mapped[str] = mapped_column(String(20), nullable=False, default="adult")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class InventoryEntry(Base):
    """One stock batch of a product."""
    __tablename__ = "inventory"
    __table_args__ = (
        Index("ix_inventory_product_expiry", "product_id", "expiry_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )

    quantity: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="pcs")
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    minimum_threshold: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    location: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    product: Mapped["Product"] = relationship("Product", back_populates="inventory")


class RecipeTemplate(Base):
    """Recipe available to the automatic planner.

    Ingredients are a JSON list of {name, quantity, unit} expressed for a
    baseline of four adults.
    """
    __tablename__ = "recipe_templates"
    __table_args__ = (
        Index("ix_recipe_templates_meal_type", "meal_type"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    # breakfast | lunch | dinner | snack
    meal_type: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ingredients: Mapped[list] = mapped_column(JSONDocument, nullable=False, default=list)
    suitable_for_toddler: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    prep_time_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    cook_time_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    difficulty: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    recipe_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class Menu(Base):
    """Single (date, meal_type) slot of the household menu."""
    __tablename__ = "menus"
    __table_args__ = (
        UniqueConstraint("date", "meal_type", name="uq_menus_date_meal_type"),
        Index("ix_menus_date_source", "date", "source"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    recipe_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    date: Mapped[date] = mapped_column(Date, nullable=False)
    meal_type: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    suitable_for: Mapped[list] = mapped_column(JSONDocument, nullable=False, default=list)
    suitable_for_toddler: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    portion_multiplier: Mapped[float] = mapped_column(Float, nullable=False, default=1)

    # ready | missing-partial | missing-all
    stock_status: Mapped[str] = mapped_column(String(20), nullable=False, default="ready")
    # auto | ai | manual
    source: Mapped[str] = mapped_column(String(20), nullable=False, default="auto")

    prep_time_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    cook_time_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    recipe_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    ingredients: Mapped[list["MenuIngredient"]] = relationship(
        "MenuIngredient", back_populates="menu", cascade="all, delete-orphan",
        order_by="MenuIngredient.position"
    )


class MenuIngredient(Base):
    """Ingredient line of a menu; available_qty + missing_qty == quantity."""
    __tablename__ = "menu_ingredients"
    __table_args__ = (
        Index("ix_menu_ingredients_menu_id", "menu_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    menu_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("menus.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="SET NULL"), nullable=True
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    available_qty: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    missing_qty: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    menu: Mapped["Menu"] = relationship("Menu", back_populates="ingredients")
    product: Mapped[Optional["Product"]] = relationship("Product")


class ShoppingListEntry(Base):
    """Shopping list entry, linked to a product or free text."""
    __tablename__ = "shopping_lists"
    __table_args__ = (
        Index("ix_shopping_lists_purchased", "is_purchased"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    product_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="SET NULL"), nullable=True
    )
    name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    quantity: Mapped[float] = mapped_column(Float, nullable=False, default=1)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="pcs")
    # low | medium | high
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")
    # manual | auto | alexa
    added_reason: Mapped[str] = mapped_column(String(10), nullable=False, default="manual")
    is_purchased: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false(), default=False)

    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    purchased_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    product: Mapped[Optional["Product"]] = relationship("Product")


class Notification(Base):
    """In-app notification."""
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    # low_stock | shopping_reminder | expiry_warning
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false(), default=False)
    related_product_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
