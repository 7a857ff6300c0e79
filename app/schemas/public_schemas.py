# app/schemas/public_schemas.py
from typing import Any, Dict, Optional

from pydantic import BaseModel


class AcceptQuoteRequest(BaseModel):
    quote_id: Optional[str] = None
    signature_data_url: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    accepted_date: Optional[str] = None


class EmailResult(BaseModel):
    attempted: bool = False
    ok: bool = False


class AcceptQuoteResponse(BaseModel):
    ok: bool = True
    accepted_at: str
    accepted_date: Optional[str] = None
    already_accepted: Optional[bool] = None
    emails: Optional[Dict[str, EmailResult]] = None


class SendQuoteLinkRequest(BaseModel):
    quote_id: Optional[str] = None


class SendQuoteLinkResponse(BaseModel):
    ok: bool = True
    status: str
    view_url: str


class PublicQuote(BaseModel):
    id: str
    status: str
    customer_name: str
    customer_email: Optional[str] = None
    quote_no: int
    quote_code: str
    total_cents: int
    currency: str
    data: Dict[str, Any]


class PublicQuoteResponse(BaseModel):
    ok: bool = True
    quote: PublicQuote
