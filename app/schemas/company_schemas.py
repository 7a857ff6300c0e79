# app/schemas/company_schemas.py
import re
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

from app.utils.quote_calculator import parse_number

_HEX6 = re.compile(r"^#?([0-9a-fA-F]{6})$")
_HEX3 = re.compile(r"^#?([0-9a-fA-F]{3})$")


def normalize_brand_color(value: Optional[str]) -> Optional[str]:
    """'#abc' / 'AABBCC' -> '#AABBCC'; blank -> None; anything else raises ValueError."""
    raw = (value or "").strip()
    if not raw:
        return None
    match = _HEX6.match(raw)
    if match:
        return f"#{match.group(1).upper()}"
    match = _HEX3.match(raw)
    if match:
        return "#" + "".join(ch * 2 for ch in match.group(1).upper())
    raise ValueError("Brand colour must be a hex colour like #1A2B3C.")


def clamp_tax_rate(value) -> float:
    return min(100.0, max(0.0, parse_number(value)))


# --------------------------
# Company settings
# --------------------------
class CompanyUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    billing_email: Optional[EmailStr] = None
    default_currency: Optional[str] = None
    brand_color: Optional[str] = None
    payment_terms: Optional[str] = None
    tax_name: Optional[str] = None
    tax_rate: Optional[Union[float, str]] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value):
        if value is not None and not value.strip():
            raise ValueError("Company name cannot be blank.")
        return value.strip() if value else value

    @field_validator("billing_email", mode="before")
    @classmethod
    def blank_email(cls, value):
        return (value or "").strip() or None

    @field_validator("default_currency")
    @classmethod
    def upper_currency(cls, value):
        return value.strip().upper()[:3] if value else value

    @field_validator("tax_rate")
    @classmethod
    def clamp_rate(cls, value):
        return None if value is None else clamp_tax_rate(value)


class CompanyOut(BaseModel):
    id: str
    name: str
    phone: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    billing_email: Optional[str] = None
    owner_email: Optional[str] = None
    default_currency: str
    brand_color: Optional[str] = None
    logo_url: Optional[str] = None
    payment_terms: Optional[str] = None
    tax_name: Optional[str] = None
    tax_rate: Optional[float] = None
    plan: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CompanyResponse(BaseModel):
    message: str
    role: Optional[str] = None
    data: Optional[CompanyOut] = None


# --------------------------
# Team
# --------------------------
class MemberOut(BaseModel):
    id: str
    user_id: str
    email: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MemberRoleUpdate(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def normalize_role(cls, value):
        return (value or "").strip().lower()


class MemberResponse(BaseModel):
    message: str
    data: Optional[MemberOut] = None


class TeamListResponse(BaseModel):
    message: str
    total: int
    data: List[MemberOut]


class InviteRequest(BaseModel):
    email: Optional[str] = None
    role: Optional[str] = "sales"

    @field_validator("email", mode="before")
    @classmethod
    def clean_email(cls, value):
        return (value or "").strip().lower()

    @field_validator("role", mode="before")
    @classmethod
    def clean_role(cls, value):
        return (value or "sales").strip().lower()


class InviteResponse(BaseModel):
    ok: bool = True
    user_id: str
    role: str
    email_sent: bool = True
