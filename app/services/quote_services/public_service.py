# app/services/quote_services/public_service.py
import logging
import re
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.models.company_models import Company
from app.models.quote_models import Quote
from app.schemas.public_schemas import PublicQuote, PublicQuoteResponse
from app.services.company_service import company_to_snapshot
from app.services.quote_services.quote_service import format_quote_code, load_quote_data, update_if_status
from app.services.supabase_admin import (
    IMAGE_EXTENSIONS,
    StoredObject,
    SupabaseAdmin,
    parse_storage_url,
)
from app.utils.quote_status import QuoteStatus, advance, normalize_status

logger = logging.getLogger(__name__)

CACHE_HIT = "public, max-age=3600, s-maxage=3600, stale-while-revalidate=86400"
CACHE_PLACEHOLDER = "public, max-age=600, s-maxage=600"
CACHE_NONE = "no-store"
SVG_TYPE = "image/svg+xml; charset=utf-8"


# --------------------------
# Public quote page
# --------------------------
async def mark_viewed(db: AsyncSession, quote: Quote) -> bool:
    """
    Sent -> Viewed the first time the customer opens the page. A failed write
    is logged, not raised. A status another request moved on in the meantime
    is left alone.
    """
    quote_id, stored_status = quote.id, quote.status
    if normalize_status(stored_status) != QuoteStatus.sent:
        return False
    viewed = advance(stored_status, QuoteStatus.viewed).value
    try:
        moved = await update_if_status(db, quote, stored_status, status=viewed)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.warning("Could not mark quote %s as viewed: %s", quote_id, exc)
        moved = False
    # Re-read so the page shows whatever status actually won
    await db.refresh(quote)
    return moved


async def get_public_quote(db: AsyncSession, quote_id: Optional[str]) -> PublicQuoteResponse:
    if not quote_id:
        raise HTTPException(status_code=400, detail="Missing id")

    quote = await db.get(Quote, quote_id)
    if quote is None:
        raise HTTPException(status_code=404, detail="Quote not found")

    await mark_viewed(db, quote)

    data = load_quote_data(quote).model_dump(mode="json")
    # Live company fields only fill what the stored snapshot lacks (older quotes)
    company = await db.get(Company, quote.company_id)
    if company is not None:
        stored = (quote.data or {}).get("company") or {}
        live = company_to_snapshot(company)
        data["company"] = {**live, **{k: v for k, v in stored.items() if v is not None}}

    return PublicQuoteResponse(
        ok=True,
        quote=PublicQuote(
            id=quote.id,
            status=normalize_status(quote.status).value,
            customer_name=quote.customer_name,
            customer_email=quote.customer_email,
            quote_no=quote.quote_no,
            quote_code=data.get("quote_code") or format_quote_code(quote.quote_no),
            total_cents=quote.total_cents,
            currency=quote.currency,
            data=data,
        ),
    )


# --------------------------
# Company logo
# --------------------------
@dataclass
class LogoResult:
    content: bytes
    content_type: str
    cache_control: str


def svg_placeholder(text: str = "LOGO") -> bytes:
    label = (text or "LOGO")[:4].upper()
    label = label.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<svg xmlns="http://www.w3.org/2000/svg" width="300" height="200" viewBox="0 0 300 200">\n'
        '  <rect x="0" y="0" width="300" height="200" rx="24" fill="#f8fafc" stroke="#d9dee8"/>\n'
        '  <text x="150" y="112" text-anchor="middle"\n'
        '        font-family="ui-sans-serif, system-ui, -apple-system, Segoe UI, Roboto, Helvetica, Arial"\n'
        f'        font-size="48" font-weight="800" fill="#1d4ed8">{label}</text>\n'
        "</svg>"
    ).encode("utf-8")


def initials_from_name(name: str) -> str:
    """'Endura Metal Roofing' -> 'ER', 'Acme' -> 'AC'"""
    parts = re.split(r"\s+", (name or "").strip())
    parts = [p for p in parts if p]
    if not parts:
        return "LOGO"
    first = parts[0][0]
    second = parts[-1][0] if len(parts) > 1 else parts[0][1:2]
    return (first + second).upper() or "LOGO"


def _placeholder(text: str, cache_control: str = CACHE_PLACEHOLDER) -> LogoResult:
    return LogoResult(svg_placeholder(text), SVG_TYPE, cache_control)


async def _find_logo(storage: SupabaseAdmin, company_id: str, logo_url: str) -> Optional[StoredObject]:
    bucket = config.COMPANY_LOGO_BUCKET

    if logo_url.startswith("http"):
        parsed = parse_storage_url(logo_url)
        if parsed:
            hit = await storage.download(*parsed)
            if hit:
                return hit
    elif logo_url and not logo_url.startswith("data:"):
        # Raw storage path left over from older settings pages
        hit = await storage.download(bucket, logo_url)
        if hit:
            return hit

    for ext in ("png", "jpg", "jpeg", "svg", "webp"):
        hit = await storage.download(bucket, f"{company_id}/logo.{ext}")
        if hit:
            return hit

    for name in await storage.list_names(bucket, company_id):
        if name.lower().endswith(IMAGE_EXTENSIONS):
            hit = await storage.download(bucket, f"{company_id}/{name}")
            if hit:
                return hit
            break

    if logo_url.startswith("http"):
        return await storage.fetch_remote(logo_url)
    return None


async def resolve_company_logo(
    db: AsyncSession,
    storage: Optional[SupabaseAdmin],
    quote_id: Optional[str] = None,
    company_id: Optional[str] = None,
) -> LogoResult:
    """
    Logo bytes for a quote's (or company's) letterhead. Always produces an
    image: an SVG placeholder stands in when nothing can be found.
    """
    if storage is None:
        return _placeholder("ENV", CACHE_NONE)

    try:
        if not company_id:
            if not quote_id:
                return _placeholder("NOID")
            quote = await db.get(Quote, quote_id)
            company_id = quote.company_id if quote is not None else ""
            if not company_id:
                return _placeholder("404")

        company = await db.get(Company, company_id)
        company_name = ((company.name if company else "") or "").strip() or "Company"
        logo_url = ((company.logo_url if company else "") or "").strip()

        hit = await _find_logo(storage, company_id, logo_url)
        if hit is not None:
            return LogoResult(hit.content, hit.content_type or "image/png", CACHE_HIT)
        return _placeholder(initials_from_name(company_name))
    except Exception:
        logger.exception("Company logo lookup failed (quote=%s, company=%s)", quote_id, company_id)
        return _placeholder("ERR", CACHE_NONE)
