# app/routers/public/quote_public_router.py
"""
Routes reachable from the customer's quote link. No session: the quote id
in the link is the only credential.
"""
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.public_schemas import AcceptQuoteRequest, AcceptQuoteResponse, PublicQuoteResponse
from app.services.email_service import PostmarkClient, get_email_client
from app.services.email_templates import public_origin
from app.services.quote_services import acceptance_service, public_service
from app.services.supabase_admin import SupabaseAdmin, get_supabase_admin

router = APIRouter(tags=["Public"])


@router.post("/accept-quote", response_model=AcceptQuoteResponse, response_model_exclude_none=True)
async def accept_quote_route(
    data: AcceptQuoteRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    email_client: Optional[PostmarkClient] = Depends(get_email_client),
):
    return await acceptance_service.accept_quote(db, data, email_client, public_origin(request))


@router.get("/public-quote", response_model=PublicQuoteResponse)
async def public_quote_route(
    id: Optional[str] = Query(None, description="Quote id from the customer link"),
    db: AsyncSession = Depends(get_db),
):
    return await public_service.get_public_quote(db, id)


def _ids_from_referer(request: Request):
    """<img src="/company-logo"> with no query still carries the page's ?id= in the referer."""
    referer = request.headers.get("referer") or ""
    if "?" not in referer:
        return None, None
    params = parse_qs(urlsplit(referer).query)
    quote_id = (params.get("id") or params.get("quote_id") or params.get("quote") or [None])[0]
    company_id = (params.get("company_id") or [None])[0]
    return quote_id, company_id


@router.get("/company-logo")
async def company_logo_route(
    request: Request,
    quote_id: Optional[str] = Query(None),
    quote: Optional[str] = Query(None),
    id: Optional[str] = Query(None),
    company_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    storage: Optional[SupabaseAdmin] = Depends(get_supabase_admin),
):
    quote_id = quote_id or quote or id
    if not quote_id and not company_id:
        quote_id, company_id = _ids_from_referer(request)

    logo = await public_service.resolve_company_logo(db, storage, quote_id=quote_id, company_id=company_id)
    return Response(
        content=logo.content,
        media_type=logo.content_type,
        headers={
            "Cache-Control": logo.cache_control,
            "Access-Control-Allow-Origin": "*",
            "X-Content-Type-Options": "nosniff",
        },
    )
