# app/schemas/product_schemas.py

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import datetime

from app.utils.quote_calculator import parse_number, round_half_up


# --------------------------
# Base schema for Product
# --------------------------
class ProductBase(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    unit_type: Optional[str] = None
    price_per_unit_cents: Optional[int] = None
    currency: Optional[str] = None
    show_qty_unit_price: Optional[bool] = None

    @field_validator("price_per_unit_cents", mode="before")
    @classmethod
    def parse_price(cls, value):
        if value is None:
            return None
        return round_half_up(parse_number(value))

    @field_validator("price_per_unit_cents")
    @classmethod
    def non_negative_price(cls, value):
        """
        Ensure the unit price is non-negative.
        """
        if value is not None and value < 0:
            raise ValueError("Must be non-negative")
        return value

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value):
        return value.strip().upper()[:3] if value else value


# --------------------------
# Schema for creating Product
# --------------------------
class ProductCreate(ProductBase):
    name: str = Field(..., min_length=1)
    unit_type: str = "Each"
    price_per_unit_cents: int = 0
    show_qty_unit_price: bool = True

    @field_validator("name")
    @classmethod
    def name_required(cls, value):
        value = value.strip()
        if not value:
            raise ValueError("Product name is required.")
        return value


# --------------------------
# Schema for updating Product
# --------------------------
class ProductUpdate(ProductBase):
    """
    All fields optional for partial updates.
    """
    pass


# --------------------------
# Output schema for single Product
# --------------------------
class ProductOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    unit_type: str
    price_per_unit_cents: int
    currency: str
    show_qty_unit_price: bool

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# --------------------------
# Response schemas
# --------------------------
class ProductResponse(BaseModel):
    message: str
    data: Optional[ProductOut] = None


class ProductListResponse(BaseModel):
    message: str
    total: int
    data: List[ProductOut]
