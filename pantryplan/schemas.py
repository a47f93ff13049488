"""Pydantic schemas for PantryPlan API.

Request/response models for:
- Family members
- Products and inventory
- Recipe templates
- Menus (generation, proposals)
- Shopping list (manual and voice assistant)
- Notifications
"""

from datetime import datetime, date
from typing import Any, Optional, Literal

from pydantic import BaseModel, ConfigDict, Field


AgeGroup = Literal["adult", "teenager", "toddler"]
Priority = Literal["low", "medium", "high"]


# --- Family ---

class FamilyMemberCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    age_group: AgeGroup = "adult"


class FamilyMemberOut(BaseModel):
    id: str
    name: str
    age_group: str

    class Config:
        from_attributes = True


# --- Products / Inventory ---

class ProductOut(BaseModel):
    id: str
    name: str
    default_unit: str
    category: Optional[str] = None

    class Config:
        from_attributes = True


class InventoryCreate(BaseModel):
    """Either `product_id` or `name` (resolved via find-or-create)."""
    product_id: Optional[str] = None
    name: Optional[str] = None
    qty: Optional[float] = None
    quantity: Optional[float] = None
    unit: Optional[str] = None
    expiry_date: Optional[date] = None
    minimum_threshold: Optional[float] = Field(None, ge=0)
    location: Optional[str] = None


class InventoryUpdate(BaseModel):
    quantity: Optional[float] = Field(None, ge=0)
    unit: Optional[str] = None
    expiry_date: Optional[date] = None
    minimum_threshold: Optional[float] = Field(None, ge=0)
    location: Optional[str] = None


class InventoryOut(BaseModel):
    id: str
    product_id: str
    quantity: float
    unit: str
    expiry_date: Optional[date] = None
    minimum_threshold: float
    location: Optional[str] = None
    last_updated: Optional[datetime] = None
    product: Optional[ProductOut] = None

    class Config:
        from_attributes = True


# --- Recipe templates ---

class IngredientIn(BaseModel):
    name: str = Field(..., min_length=1)
    quantity: Optional[float] = None
    unit: Optional[str] = None


class RecipeTemplateCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    meal_type: str = "lunch"
    description: Optional[str] = None
    ingredients: list[IngredientIn] = []
    suitable_for_toddler: bool = True
    prep_time_minutes: Optional[int] = Field(None, ge=0)
    cook_time_minutes: Optional[int] = Field(None, ge=0)
    difficulty: Optional[str] = None
    recipe_url: Optional[str] = None


class RecipeTemplateOut(BaseModel):
    id: str
    title: str
    meal_type: str
    description: Optional[str] = None
    ingredients: list[dict]
    suitable_for_toddler: bool
    prep_time_minutes: Optional[int] = None
    cook_time_minutes: Optional[int] = None
    difficulty: Optional[str] = None
    recipe_url: Optional[str] = None

    class Config:
        from_attributes = True


# --- Menus ---

class MenuIngredientOut(BaseModel):
    id: str
    product_id: Optional[str] = None
    name: str
    quantity: float
    unit: str
    available_qty: float
    missing_qty: float
    product: Optional[ProductOut] = None

    class Config:
        from_attributes = True


class MenuOut(BaseModel):
    id: str
    recipe_id: Optional[str] = None
    date: date
    meal_type: str
    title: str
    description: Optional[str] = None
    suitable_for: list[str]
    suitable_for_toddler: bool
    portion_multiplier: float
    stock_status: str
    source: str
    prep_time_minutes: Optional[int] = None
    cook_time_minutes: Optional[int] = None
    recipe_url: Optional[str] = None
    ingredients: list[MenuIngredientOut] = []

    class Config:
        from_attributes = True


class MenuGenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: Optional[date] = Field(None, alias="startDate")
    scope: Optional[str] = None
    meal_types: Optional[list[str]] = Field(None, alias="mealTypes")
    # [{date, meals: [{meal_type, title, ingredients, ...}]}], validated leniently
    plan: Optional[list[Any]] = None


class MenuProposalRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: Optional[date] = Field(None, alias="startDate")
    scope: Optional[str] = None
    meal_types: Optional[list[str]] = Field(None, alias="mealTypes")
    preferences: list[str] = []
    restrictions: list[str] = []


class MenuProposalResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan: dict
    start_date: str = Field(..., alias="startDate")
    scope: str
    day_count: int = Field(..., alias="dayCount")
    meal_types: list[str] = Field(..., alias="mealTypes")
    family_size: int = Field(..., alias="familySize")


# --- Shopping list ---

class ShoppingItemCreate(BaseModel):
    product_id: Optional[str] = None
    name: Optional[str] = None
    quantity: float = Field(1, gt=0)
    unit: str = "pcs"
    priority: Priority = "medium"
    added_reason: Literal["manual", "auto", "alexa"] = "manual"


class ShoppingItemUpdate(BaseModel):
    quantity: Optional[float] = Field(None, gt=0)
    unit: Optional[str] = None
    priority: Optional[Priority] = None
    is_purchased: Optional[bool] = None


class ShoppingItemOut(BaseModel):
    id: str
    product_id: Optional[str] = None
    name: Optional[str] = None
    quantity: float
    unit: str
    priority: str
    added_reason: str
    is_purchased: bool
    added_at: Optional[datetime] = None
    purchased_at: Optional[datetime] = None
    product: Optional[ProductOut] = None

    class Config:
        from_attributes = True


class VoiceShoppingRequest(BaseModel):
    item: Optional[str] = None
    quantity: float = Field(1, gt=0)
    unit: str = "pcs"


class VoiceShoppingResponse(BaseModel):
    success: bool
    item: Optional[ShoppingItemOut] = None


# --- Notifications ---

class NotificationOut(BaseModel):
    id: str
    type: str
    title: str
    message: str
    is_read: bool
    related_product_id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# --- Status ---

class StatusOut(BaseModel):
    database_ok: bool
    redis_ok: bool
    ai_mode: str
    ai_available: bool
    alert_configured: bool
