# app/routers/admin/quotes_router.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.public_schemas import SendQuoteLinkRequest, SendQuoteLinkResponse
from app.schemas.quote_schema import (
    AddProductLine,
    QuoteCreate,
    QuoteListResponse,
    QuoteResponse,
    QuoteUpdate,
)
from app.services.email_service import PostmarkClient, get_email_client
from app.services.email_templates import public_origin
from app.services.quote_services import quote_service
from app.utils.check_roles import ALL_ROLES, require_role
from app.utils.get_user import get_tenant

router = APIRouter(prefix="/quotes", tags=["Quotes"])
links_router = APIRouter(tags=["Quotes"])


# --------------------------
# CREATE QUOTE
# --------------------------
@router.post("", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED)
@require_role(ALL_ROLES)
async def create_quote_route(
    data: QuoteCreate,
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant)
):
    return await quote_service.create_quote(db, _ctx, data)


# --------------------------
# LIST QUOTES
# --------------------------
@router.get("", response_model=QuoteListResponse)
@require_role(ALL_ROLES)
async def list_quotes_route(
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant),
    status: Optional[str] = Query(None, description="Draft, Sent, Viewed, Accepted, Cancelled or all"),
    search: Optional[str] = Query(None, description="Quote number, customer name, email or status"),
    limit: int = Query(200, ge=1, le=1000),
):
    return await quote_service.list_quotes(db, _ctx, limit=limit, status=status, search=search)


# --------------------------
# GET QUOTE
# --------------------------
@router.get("/{quote_id}", response_model=QuoteResponse)
@require_role(ALL_ROLES)
async def get_quote_route(
    quote_id: str,
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant)
):
    return await quote_service.get_quote(db, _ctx, quote_id)


# --------------------------
# UPDATE QUOTE
# --------------------------
@router.put("/{quote_id}", response_model=QuoteResponse)
@require_role(ALL_ROLES)
async def update_quote_route(
    quote_id: str,
    data: QuoteUpdate,
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant)
):
    return await quote_service.update_quote(db, _ctx, quote_id, data)


# --------------------------
# ADD CATALOG PRODUCT
# --------------------------
@router.post("/{quote_id}/items", response_model=QuoteResponse)
@require_role(ALL_ROLES)
async def add_product_line_route(
    quote_id: str,
    data: AddProductLine,
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant)
):
    return await quote_service.add_product_line(db, _ctx, quote_id, data.product_id, data.qty)


# --------------------------
# CANCEL QUOTE
# --------------------------
@router.post("/{quote_id}/cancel", response_model=QuoteResponse)
@require_role(ALL_ROLES)
async def cancel_quote_route(
    quote_id: str,
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant)
):
    return await quote_service.cancel_quote(db, _ctx, quote_id)


# --------------------------
# NEW VERSION
# --------------------------
@router.post("/{quote_id}/duplicate", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED)
@require_role(ALL_ROLES)
async def duplicate_quote_route(
    quote_id: str,
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant)
):
    return await quote_service.duplicate_quote(db, _ctx, quote_id)


# --------------------------
# SEND LINK TO CUSTOMER
# --------------------------
@links_router.post("/send-quote-link", response_model=SendQuoteLinkResponse)
@require_role(ALL_ROLES)
async def send_quote_link_route(
    data: SendQuoteLinkRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    email_client: Optional[PostmarkClient] = Depends(get_email_client),
    _ctx=Depends(get_tenant)
):
    return await quote_service.send_quote_link(db, _ctx, data.quote_id, email_client, public_origin(request))
