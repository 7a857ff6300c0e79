# app/schemas/quote_schema.py
from datetime import datetime
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from app.utils.quote_calculator import (
    normalize_deposit_mode,
    parse_number,
    round_half_up,
)
from app.utils.quote_status import normalize_status


def _safe_str(value: Any) -> str:
    return str(value if value is not None else "").strip()


# --------------------------
# Snapshot sections
# --------------------------
class LineItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    product_id: Optional[str] = None
    name: str = ""
    description: str = ""
    unit_type: str = "Each"
    show_qty_unit_price: bool = True
    qty: float = 1
    unit_price_cents: int = 0
    taxable: bool = True

    @model_validator(mode="before")
    @classmethod
    def fold_legacy_keys(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        legacy = {
            "productId": "product_id",
            "desc": "description",
            "item": "description",
            "unitType": "unit_type",
            "unit": "unit_type",
            "price_per_unit_cents": "unit_price_cents",
        }
        for old, new in legacy.items():
            if old in data and data.get(new) is None:
                data[new] = data.pop(old)
        if data.get("qty") is None:
            data.pop("qty", None)
        for flag in ("taxable", "show_qty_unit_price"):
            if not isinstance(data.get(flag), bool):
                data.pop(flag, None)
        return data

    @field_validator("qty", mode="before")
    @classmethod
    def parse_qty(cls, value):
        return max(0.0, parse_number(value))

    @field_validator("unit_price_cents", mode="before")
    @classmethod
    def parse_price(cls, value):
        return max(0, round_half_up(parse_number(value)))

    @field_validator("name", "description", mode="before")
    @classmethod
    def clean_text(cls, value):
        return _safe_str(value)

    @field_validator("unit_type", mode="before")
    @classmethod
    def default_unit(cls, value):
        return _safe_str(value) or "Each"

    @field_validator("product_id", mode="before")
    @classmethod
    def clean_product_id(cls, value):
        return _safe_str(value) or None

    def is_blank(self) -> bool:
        return not self.name and not self.description and self.unit_price_cents <= 0


class CompanySnapshot(BaseModel):
    """Letterhead captured into the quote at creation time."""
    model_config = ConfigDict(extra="ignore")

    company_id: Optional[str] = None
    name: str = ""
    addr1: str = ""
    addr2: str = ""
    phone: str = ""
    email: str = ""
    web: str = ""
    logo_url: str = ""
    brand_color: str = ""
    currency: str = "CAD"


class QuoteMeta(BaseModel):
    model_config = ConfigDict(extra="ignore")

    quote_date: str = ""
    quote_expires: str = ""
    prepared_by: str = ""
    version_of_quote_id: Optional[str] = None
    version_of_quote_no: Optional[int] = None
    version_type: Optional[str] = None
    version_created_at: Optional[str] = None


class BillTo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    client_name: str = ""
    client_phone: str = ""
    client_email: str = ""
    client_addr: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def clean(cls, value):
        return _safe_str(value)


class ProjectInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    project_location: str = ""

    @field_validator("project_location", mode="before")
    @classmethod
    def clean(cls, value):
        return _safe_str(value)


class Acceptance(BaseModel):
    model_config = ConfigDict(extra="ignore")

    accepted_at: str
    accepted_date: str = ""
    name: str = ""
    email: Optional[str] = None
    signature_image_data_url: Optional[str] = None
    signature_text: Optional[str] = None


class ComputedTotals(BaseModel):
    line_totals: List[int] = []
    subtotal_cents: int = 0
    taxable_base_cents: int = 0
    tax_cents: int = 0
    fees_cents: int = 0
    total_cents: int = 0
    deposit_cents: int = 0


class QuoteData(BaseModel):
    """
    Typed quote snapshot stored in ``quotes.data``.

    Unknown keys from older rows are dropped on read. ``acceptance`` is the
    only place a signature lives, so a new version simply omits it.
    """
    model_config = ConfigDict(extra="ignore")

    customer_id: Optional[str] = None
    company: CompanySnapshot = Field(default_factory=CompanySnapshot)
    meta: QuoteMeta = Field(default_factory=QuoteMeta)
    bill_to: BillTo = Field(default_factory=BillTo)
    project: ProjectInfo = Field(default_factory=ProjectInfo)
    items: List[LineItem] = []

    tax_name: str = "Tax"
    tax_rate: float = 13
    fees_cents: int = 0
    deposit_mode: Literal["auto", "custom"] = "auto"
    deposit_cents: int = 0

    terms: str = ""
    notes: str = ""

    acceptance: Optional[Acceptance] = None
    computed: Optional[ComputedTotals] = None
    quote_code: str = ""

    @field_validator("tax_rate", mode="before")
    @classmethod
    def parse_rate(cls, value):
        return parse_number(value)

    @field_validator("fees_cents", "deposit_cents", mode="before")
    @classmethod
    def parse_cents(cls, value):
        return round_half_up(parse_number(value))

    @field_validator("deposit_mode", mode="before")
    @classmethod
    def parse_mode(cls, value):
        return normalize_deposit_mode(value)

    @field_validator("items", mode="before")
    @classmethod
    def items_list(cls, value):
        return value if isinstance(value, list) else []

    @field_validator("tax_name", mode="before")
    @classmethod
    def default_tax_name(cls, value):
        return _safe_str(value) or "Tax"

    @field_validator("terms", "notes", "quote_code", mode="before")
    @classmethod
    def clean_text(cls, value):
        return str(value) if value is not None else ""


# --------------------------
# Requests
# --------------------------
class QuoteCreate(BaseModel):
    customer_name: str
    customer_email: Optional[EmailStr] = None
    customer_id: Optional[str] = None
    currency: Optional[str] = None

    @field_validator("customer_name")
    @classmethod
    def name_required(cls, value):
        value = value.strip()
        if not value:
            raise ValueError("Customer name is required.")
        return value

    @field_validator("customer_email", mode="before")
    @classmethod
    def blank_email(cls, value):
        return _safe_str(value) or None


class QuoteMetaUpdate(BaseModel):
    quote_date: Optional[str] = None
    quote_expires: Optional[str] = None
    prepared_by: Optional[str] = None


class QuoteUpdate(BaseModel):
    customer_name: Optional[str] = None
    customer_email: Optional[EmailStr] = None
    customer_id: Optional[str] = None
    currency: Optional[str] = None

    meta: Optional[QuoteMetaUpdate] = None
    bill_to: Optional[BillTo] = None
    project: Optional[ProjectInfo] = None
    items: Optional[List[LineItem]] = None

    tax_name: Optional[str] = None
    tax_rate: Optional[Union[float, str]] = None
    fees_cents: Optional[Union[int, float, str]] = None
    deposit_mode: Optional[str] = None
    deposit_cents: Optional[Union[int, float, str]] = None

    terms: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("customer_email", mode="before")
    @classmethod
    def blank_email(cls, value):
        return _safe_str(value) or None


# --------------------------
# Output
# --------------------------
class QuoteSummaryOut(BaseModel):
    id: str
    quote_no: int
    quote_code: str
    customer_id: Optional[str] = None
    customer_name: str
    customer_email: Optional[str] = None
    status: str
    total_cents: int
    currency: str
    version_of: Optional[str] = None
    created_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("status", mode="before")
    @classmethod
    def canonical_status(cls, value):
        return normalize_status(value).value


class QuoteOut(QuoteSummaryOut):
    data: QuoteData
    updated_at: Optional[datetime] = None


class QuoteResponse(BaseModel):
    message: str
    data: Optional[QuoteOut] = None


class QuoteListResponse(BaseModel):
    message: str
    total: int
    data: List[QuoteSummaryOut] = []


class AddProductLine(BaseModel):
    product_id: str
    qty: float = 1

    @field_validator("qty", mode="before")
    @classmethod
    def parse_qty(cls, value):
        return max(0.0, parse_number(value))
