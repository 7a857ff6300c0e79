# app/services/quote_services/quote_service.py
import logging
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy import desc, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.config import DEFAULT_CURRENCY, QUOTE_VALIDITY_DAYS
from app.core.exceptions import QuoteStateError, UpstreamError
from app.models.customer_models import Customer
from app.models.product_models import Product
from app.models.quote_models import Quote
from app.schemas.quote_schema import (
    BillTo,
    CompanySnapshot,
    ComputedTotals,
    LineItem,
    QuoteCreate,
    QuoteData,
    QuoteListResponse,
    QuoteMeta,
    QuoteOut,
    QuoteResponse,
    QuoteSummaryOut,
    QuoteUpdate,
)
from app.schemas.public_schemas import SendQuoteLinkResponse
from app.services.company_service import company_to_snapshot
from app.services.email_service import PostmarkClient
from app.services.email_templates import quote_ready_email, quote_view_url
from app.services.product_service import product_to_line_item
from app.utils.activity_helpers import log_tenant_activity
from app.utils.date_helpers import local_today, utc_now, utc_now_iso, ymd, ymd_plus_days
from app.utils.quote_calculator import DEPOSIT_AUTO, DEPOSIT_CUSTOM, calculate_totals, normalize_deposit_mode
from app.utils.quote_status import QuoteStatus, advance, can_edit, cancel, normalize_status

logger = logging.getLogger(__name__)

QUOTE_NO_ATTEMPTS = 3


def format_quote_code(quote_no) -> str:
    n = str(quote_no if quote_no is not None else "").strip()
    return f"Q-{n}" if n else ""


def quote_code_for(quote: Quote, data: Optional[QuoteData] = None) -> str:
    if data is not None and data.quote_code:
        return data.quote_code
    return format_quote_code(quote.quote_no)


def load_quote_data(quote: Quote) -> QuoteData:
    return QuoteData.model_validate(quote.data or {})


def apply_totals(quote: Quote, data: QuoteData) -> QuoteData:
    """
    Drop blank lines, recompute every figure and write the snapshot and the
    row total together, so ``quotes.total_cents`` never drifts from
    ``data.computed.total_cents``.
    """
    data.items = [item for item in data.items if not item.is_blank()]
    totals = calculate_totals(
        data.items,
        tax_rate=data.tax_rate,
        fees_cents=data.fees_cents,
        deposit_mode=data.deposit_mode,
        deposit_cents=data.deposit_cents,
    )
    data.computed = ComputedTotals(**totals.as_dict())
    quote.total_cents = totals.total_cents
    quote.data = data.model_dump(mode="json")
    return data


async def next_quote_no(db: AsyncSession, company_id: str) -> int:
    """Sequential per company: highest existing number + 1."""
    result = await db.execute(select(func.max(Quote.quote_no)).where(Quote.company_id == company_id))
    return (result.scalar() or 0) + 1


async def insert_numbered_quote(db: AsyncSession, company_id: str, build) -> Quote:
    """
    Add the quote made by ``build(quote_no)`` under the next free number.
    Two requests that pick the same number collide on
    ``uq_quote_company_number``; the loser rolls back and takes the next one.
    Anything read through the session before this call is expired on retry.
    """
    for attempt in range(1, QUOTE_NO_ATTEMPTS + 1):
        quote = build(await next_quote_no(db, company_id))
        db.add(quote)
        try:
            await db.flush()
            return quote
        except IntegrityError:
            await db.rollback()
            logger.info("Quote number taken for company %s (attempt %s)", company_id, attempt)
    raise HTTPException(status_code=409, detail="Could not assign a quote number. Please try again.")


async def update_if_status(db: AsyncSession, quote: Quote, expected_status, **values) -> bool:
    """Write ``values`` only while the row still holds ``expected_status``. False if another request moved it first."""
    result = await db.execute(
        update(Quote)
        .where(Quote.id == quote.id, Quote.status == expected_status)
        .values(**values)
    )
    return result.rowcount == 1


async def get_owned_quote(db: AsyncSession, ctx, quote_id: str) -> Quote:
    quote = await db.get(Quote, quote_id)
    if not quote or quote.company_id != ctx.company_id:
        raise HTTPException(status_code=404, detail="Quote not found")
    return quote


async def _get_owned_customer(db: AsyncSession, ctx, customer_id: str) -> Customer:
    customer = await db.get(Customer, customer_id)
    if not customer or customer.company_id != ctx.company_id:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


def _state_error(exc: QuoteStateError) -> HTTPException:
    return HTTPException(status_code=400, detail=str(exc))


def new_quote_data(ctx, customer_name: str, customer_email: Optional[str], customer: Optional[Customer] = None) -> QuoteData:
    """Default template filled from company settings, the customer and today's date."""
    company = ctx.company
    today = local_today()
    bill_to = BillTo(client_name=customer_name, client_email=customer_email or "")
    if customer is not None:
        bill_to.client_phone = customer.phone or ""
        bill_to.client_addr = customer.billing_address or ""

    return QuoteData(
        customer_id=customer.id if customer is not None else None,
        company=CompanySnapshot(**company_to_snapshot(company)),
        meta=QuoteMeta(
            quote_date=ymd(today),
            quote_expires=ymd_plus_days(today, QUOTE_VALIDITY_DAYS),
            prepared_by=ctx.user_name,
        ),
        bill_to=bill_to,
        tax_name=company.tax_name or "Tax",
        tax_rate=company.tax_rate if company.tax_rate is not None else 13,
        terms=company.payment_terms or "",
    )


# --------------------------
# CREATE QUOTE
# --------------------------
async def create_quote(db: AsyncSession, ctx, payload: QuoteCreate) -> QuoteResponse:
    customer = None
    if payload.customer_id:
        customer = await _get_owned_customer(db, ctx, payload.customer_id)

    customer_email = payload.customer_email or (customer.email if customer is not None else None)
    data = new_quote_data(ctx, payload.customer_name, customer_email, customer)

    customer_id = customer.id if customer is not None else None
    currency = (payload.currency or ctx.company.default_currency or DEFAULT_CURRENCY).upper()

    def build(quote_no: int) -> Quote:
        data.quote_code = format_quote_code(quote_no)
        quote = Quote(
            company_id=ctx.company_id,
            quote_no=quote_no,
            customer_id=customer_id,
            customer_name=payload.customer_name,
            customer_email=customer_email,
            status=QuoteStatus.draft.value,
            currency=currency,
            created_by=ctx.user_id,
        )
        apply_totals(quote, data)
        return quote

    quote = await insert_numbered_quote(db, ctx.company_id, build)

    await log_tenant_activity(db, ctx, f"Created quote {data.quote_code} for {quote.customer_name}")
    await db.commit()
    await db.refresh(quote)
    logger.info("Quote %s created for company %s", quote.id, ctx.company_id)
    return QuoteResponse(message="Quote created successfully", data=QuoteOut.model_validate(quote))


# --------------------------
# GET / LIST
# --------------------------
async def get_quote(db: AsyncSession, ctx, quote_id: str) -> QuoteResponse:
    quote = await get_owned_quote(db, ctx, quote_id)
    return QuoteResponse(message="Quote retrieved successfully", data=QuoteOut.model_validate(quote))


def _matches_search(quote: Quote, term: str) -> bool:
    haystack = [
        format_quote_code(quote.quote_no),
        str(quote.quote_no or ""),
        quote.customer_name or "",
        quote.customer_email or "",
        normalize_status(quote.status).value,
    ]
    return any(term in value.lower() for value in haystack)


async def list_quotes(
    db: AsyncSession,
    ctx,
    limit: int = 200,
    status: Optional[str] = None,
    search: Optional[str] = None,
) -> QuoteListResponse:
    """
    Newest first. Stored statuses are not uniform ("sent", "Signed", ...),
    so filtering happens after normalization rather than in SQL.
    """
    result = await db.execute(
        select(Quote)
        .where(Quote.company_id == ctx.company_id)
        .order_by(desc(Quote.created_at), desc(Quote.quote_no))
    )
    quotes: List[Quote] = list(result.scalars().all())

    if status and status.strip().lower() != "all":
        wanted = normalize_status(status)
        quotes = [q for q in quotes if normalize_status(q.status) == wanted]

    term = (search or "").strip().lower()
    if term:
        quotes = [q for q in quotes if _matches_search(q, term)]

    return QuoteListResponse(
        message="Quotes retrieved successfully",
        total=len(quotes),
        data=[QuoteSummaryOut.model_validate(q) for q in quotes[:limit]],
    )


# --------------------------
# UPDATE QUOTE
# --------------------------
async def update_quote(db: AsyncSession, ctx, quote_id: str, patch: QuoteUpdate) -> QuoteResponse:
    quote = await get_owned_quote(db, ctx, quote_id)
    if not can_edit(quote.status):
        raise HTTPException(status_code=400, detail="A cancelled quote cannot be edited.")

    changes = patch.model_dump(exclude_unset=True)
    data = load_quote_data(quote)

    # Row fields
    if "customer_name" in changes:
        name = (patch.customer_name or "").strip()
        if not name:
            raise HTTPException(status_code=400, detail="Customer name is required.")
        quote.customer_name = name
    if "customer_email" in changes:
        quote.customer_email = patch.customer_email
    if "customer_id" in changes:
        if patch.customer_id:
            customer = await _get_owned_customer(db, ctx, patch.customer_id)
            quote.customer_id = customer.id
        else:
            quote.customer_id = None
        data.customer_id = quote.customer_id
    if patch.currency:
        quote.currency = patch.currency.strip().upper()[:3]

    # Snapshot sections are merged as plain data and re-validated as a whole
    raw = data.model_dump()
    if patch.meta is not None:
        for key, value in patch.meta.model_dump(exclude_unset=True).items():
            raw["meta"][key] = value if value is not None else ""
    if patch.bill_to is not None:
        for key in patch.bill_to.model_fields_set:
            raw["bill_to"][key] = getattr(patch.bill_to, key)
    if patch.project is not None:
        raw["project"] = patch.project.model_dump()
    if patch.items is not None:
        raw["items"] = [item.model_dump() for item in patch.items]

    if "tax_name" in changes:
        raw["tax_name"] = changes["tax_name"]
    for key in ("tax_rate", "fees_cents", "terms", "notes"):
        if key in changes:
            raw[key] = changes[key]

    if "deposit_mode" in changes:
        new_mode = normalize_deposit_mode(patch.deposit_mode)
        if data.deposit_mode == DEPOSIT_AUTO and new_mode == DEPOSIT_CUSTOM and "deposit_cents" not in changes:
            # Seed the custom figure with the last auto deposit; nothing recomputes it afterwards
            raw["deposit_cents"] = data.computed.deposit_cents if data.computed else 0
        raw["deposit_mode"] = new_mode
    if "deposit_cents" in changes:
        raw["deposit_cents"] = changes["deposit_cents"]

    # Acceptance is carried over from the stored snapshot; the patch has no way to set it
    data = QuoteData.model_validate(raw)
    apply_totals(quote, data)

    await log_tenant_activity(db, ctx, f"Updated quote {quote_code_for(quote, data)}")
    await db.commit()
    await db.refresh(quote)
    return QuoteResponse(message="Quote updated successfully", data=QuoteOut.model_validate(quote))


async def add_product_line(db: AsyncSession, ctx, quote_id: str, product_id: str, qty=1) -> QuoteResponse:
    """Append a catalog product to the quote as a snapshot line."""
    quote = await get_owned_quote(db, ctx, quote_id)
    if not can_edit(quote.status):
        raise HTTPException(status_code=400, detail="A cancelled quote cannot be edited.")

    product = await db.get(Product, product_id)
    if not product or product.company_id != ctx.company_id:
        raise HTTPException(status_code=404, detail="Product not found")

    line = product_to_line_item(product)
    line["qty"] = qty
    data = load_quote_data(quote)
    data.items.append(LineItem.model_validate(line))
    apply_totals(quote, data)

    await log_tenant_activity(db, ctx, f"Added '{product.name}' to quote {quote_code_for(quote, data)}")
    await db.commit()
    await db.refresh(quote)
    return QuoteResponse(message="Product added to quote", data=QuoteOut.model_validate(quote))


# --------------------------
# CANCEL QUOTE
# --------------------------
async def cancel_quote(db: AsyncSession, ctx, quote_id: str) -> QuoteResponse:
    quote = await get_owned_quote(db, ctx, quote_id)
    try:
        quote.status = cancel(quote.status).value
    except QuoteStateError as exc:
        raise _state_error(exc)
    quote.cancelled_at = utc_now()

    await log_tenant_activity(db, ctx, f"Cancelled quote {format_quote_code(quote.quote_no)}")
    await db.commit()
    await db.refresh(quote)
    return QuoteResponse(message="Quote cancelled successfully", data=QuoteOut.model_validate(quote))


# --------------------------
# NEW VERSION
# --------------------------
async def duplicate_quote(db: AsyncSession, ctx, quote_id: str) -> QuoteResponse:
    """
    Copy a quote into a fresh Draft. The copy points at the root of the
    chain (``source.version_of or source.id``) so lineage never nests, and
    it never carries the source's signature.
    """
    source = await get_owned_quote(db, ctx, quote_id)
    data = load_quote_data(source).model_copy(deep=True)
    data.acceptance = None

    today = local_today()
    data.meta.quote_date = ymd(today)
    data.meta.quote_expires = ymd_plus_days(today, QUOTE_VALIDITY_DAYS)
    data.meta.version_of_quote_id = source.id
    data.meta.version_of_quote_no = source.quote_no
    data.meta.version_type = "new_version"
    data.meta.version_created_at = utc_now_iso()

    copied = dict(
        customer_id=source.customer_id,
        customer_name=source.customer_name,
        customer_email=source.customer_email,
        currency=source.currency,
        version_of=source.version_of or source.id,
    )
    source_code = format_quote_code(source.quote_no)

    def build(quote_no: int) -> Quote:
        data.quote_code = format_quote_code(quote_no)
        quote = Quote(
            company_id=ctx.company_id,
            quote_no=quote_no,
            status=QuoteStatus.draft.value,
            created_by=ctx.user_id,
            **copied,
        )
        apply_totals(quote, data)
        return quote

    quote = await insert_numbered_quote(db, ctx.company_id, build)

    await log_tenant_activity(db, ctx, f"Created {data.quote_code} as a new version of {source_code}")
    await db.commit()
    await db.refresh(quote)
    return QuoteResponse(message="New version created successfully", data=QuoteOut.model_validate(quote))


# --------------------------
# SEND LINK
# --------------------------
async def send_quote_link(
    db: AsyncSession,
    ctx,
    quote_id: Optional[str],
    email_client: Optional[PostmarkClient],
    origin: str,
) -> SendQuoteLinkResponse:
    """Email the customer their view link and move the quote forward to Sent."""
    if not quote_id:
        raise HTTPException(status_code=400, detail="Missing quote_id")

    quote = await get_owned_quote(db, ctx, quote_id)
    status = normalize_status(quote.status)
    if status == QuoteStatus.cancelled:
        raise HTTPException(status_code=400, detail="This quote has been cancelled.")

    to_email = (quote.customer_email or "").strip()
    if not to_email:
        raise HTTPException(status_code=400, detail="Quote has no customer email")
    if email_client is None:
        raise HTTPException(status_code=500, detail="Missing POSTMARK_SERVER_TOKEN or POSTMARK_FROM_EMAIL")

    data = load_quote_data(quote)
    quote_code = quote_code_for(quote, data)
    view_url = quote_view_url(origin, quote.id)
    message = quote_ready_email(
        to=to_email,
        company=data.company.model_dump(),
        customer_name=quote.customer_name,
        quote_code=quote_code,
        total_cents=quote.total_cents,
        currency=quote.currency,
        expires=data.meta.quote_expires,
        prepared_by=data.meta.prepared_by,
        view_url=view_url,
        origin=origin,
    )

    try:
        await email_client.send(message)
    except UpstreamError as exc:
        logger.error("Sending %s to %s failed: %s", quote_code, to_email, exc)
        raise HTTPException(status_code=502, detail="Postmark send failed")

    quote.status = advance(status, QuoteStatus.sent).value
    await log_tenant_activity(db, ctx, f"Sent quote {quote_code} to {to_email}")
    await db.commit()

    return SendQuoteLinkResponse(ok=True, status=quote.status, view_url=view_url)
