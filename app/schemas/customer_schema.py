# app/schemas/customer_schema.py
from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from typing import List, Optional
from datetime import datetime

from app.schemas.quote_schema import QuoteSummaryOut


def _blank_to_none(value):
    if isinstance(value, str):
        value = value.strip()
    return value or None


class CustomerBase(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company_name: Optional[str] = None
    billing_address: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None

    @field_validator("last_name", "company_name", "billing_address", "email", "phone", mode="before")
    @classmethod
    def clean_optional(cls, value):
        return _blank_to_none(value)


class CustomerCreate(CustomerBase):
    first_name: str

    @field_validator("first_name")
    @classmethod
    def first_name_required(cls, value):
        value = value.strip()
        if not value:
            raise ValueError("First name is required.")
        return value


class CustomerUpdate(CustomerBase):
    @field_validator("first_name")
    @classmethod
    def first_name_not_blank(cls, value):
        if value is not None and not value.strip():
            raise ValueError("First name cannot be blank.")
        return value.strip() if value else value


class CustomerOut(CustomerBase):
    id: str
    first_name: str
    display_name: str = ""
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Stored rows may predate email validation
    email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CustomerResponse(BaseModel):
    message: str
    data: Optional[CustomerOut] = None


class CustomerListResponse(BaseModel):
    message: str
    total: int
    data: List[CustomerOut]


class CustomerQuoteKpis(BaseModel):
    quote_count: int = 0
    accepted_count: int = 0
    accepted_cents: int = 0
    pipeline_cents: int = 0
    last_quote_at: Optional[datetime] = None


class CustomerQuotesResponse(BaseModel):
    message: str
    customer: CustomerOut
    kpis: CustomerQuoteKpis
    data: List[QuoteSummaryOut]
