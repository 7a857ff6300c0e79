# app/services/customer_service.py
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func, or_, desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.models.customer_models import Customer
from app.models.quote_models import Quote
from app.schemas.customer_schema import (
    CustomerCreate,
    CustomerListResponse,
    CustomerOut,
    CustomerQuoteKpis,
    CustomerQuotesResponse,
    CustomerResponse,
    CustomerUpdate,
)
from app.schemas.quote_schema import QuoteSummaryOut
from app.utils.activity_helpers import log_tenant_activity
from app.utils.quote_status import QuoteStatus, is_open, normalize_status

SEARCH_MAX_LEN = 80


def clean_search(term: Optional[str]) -> str:
    """Commas split filter expressions upstream, so they are dropped from free text."""
    return (term or "").replace(",", " ").strip()[:SEARCH_MAX_LEN]


def _out(customer: Customer) -> CustomerOut:
    out = CustomerOut.model_validate(customer)
    out.display_name = customer.display_name
    return out


async def _get_owned(db: AsyncSession, ctx, customer_id: str) -> Customer:
    customer = await db.get(Customer, customer_id)
    # Another tenant's row is reported exactly like a missing one
    if not customer or customer.company_id != ctx.company_id:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


# CREATE
async def create_customer(db: AsyncSession, ctx, data: CustomerCreate) -> CustomerResponse:
    customer = Customer(**data.model_dump(), company_id=ctx.company_id, created_by=ctx.user_id)
    db.add(customer)
    await db.flush()
    await log_tenant_activity(db, ctx, f"Created customer '{customer.display_name}'")
    await db.commit()
    await db.refresh(customer)
    return CustomerResponse(message="Customer created successfully", data=_out(customer))


# GET SINGLE CUSTOMER
async def get_customer(db: AsyncSession, ctx, customer_id: str) -> CustomerResponse:
    customer = await _get_owned(db, ctx, customer_id)
    return CustomerResponse(message="Customer retrieved successfully", data=_out(customer))


# GET ALL WITH SEARCH
async def list_customers(db: AsyncSession, ctx, search: Optional[str] = None, limit: int = 50) -> CustomerListResponse:
    query = select(Customer).where(Customer.company_id == ctx.company_id)

    term = clean_search(search)
    if term:
        pattern = f"%{term}%"
        query = query.where(
            or_(
                Customer.first_name.ilike(pattern),
                Customer.last_name.ilike(pattern),
                Customer.company_name.ilike(pattern),
                Customer.email.ilike(pattern),
                Customer.phone.ilike(pattern),
                Customer.billing_address.ilike(pattern),
            )
        )

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = total_result.scalar() or 0

    result = await db.execute(query.order_by(desc(Customer.created_at)).limit(limit))
    customers = result.scalars().all()

    return CustomerListResponse(
        message="Customers retrieved successfully",
        total=total,
        data=[_out(c) for c in customers],
    )


# UPDATE CUSTOMER
async def update_customer(db: AsyncSession, ctx, customer_id: str, data: CustomerUpdate) -> CustomerResponse:
    customer = await _get_owned(db, ctx, customer_id)
    changes = data.model_dump(exclude_unset=True)
    if "first_name" in changes and not changes["first_name"]:
        changes.pop("first_name")
    for key, value in changes.items():
        setattr(customer, key, value)
    await log_tenant_activity(db, ctx, f"Updated customer '{customer.display_name}'")
    await db.commit()
    await db.refresh(customer)
    return CustomerResponse(message="Customer updated successfully", data=_out(customer))


# DELETE CUSTOMER
async def delete_customer(db: AsyncSession, ctx, customer_id: str) -> CustomerResponse:
    """Hard delete. Quotes keep their own customer snapshot; only the link is cleared."""
    customer = await _get_owned(db, ctx, customer_id)
    response = CustomerResponse(message="Customer deleted successfully", data=_out(customer))

    result = await db.execute(
        select(Quote).where(Quote.company_id == ctx.company_id, Quote.customer_id == customer.id)
    )
    for quote in result.scalars().all():
        quote.customer_id = None

    await db.delete(customer)
    await log_tenant_activity(db, ctx, f"Deleted customer '{customer.display_name}'")
    await db.commit()
    return response


# --------------------------
# Quote history + KPIs
# --------------------------
def customer_quote_kpis(quotes) -> CustomerQuoteKpis:
    kpis = CustomerQuoteKpis(quote_count=len(quotes))
    for quote in quotes:
        status = normalize_status(quote.status)
        cents = int(quote.total_cents or 0)
        if status == QuoteStatus.accepted:
            kpis.accepted_count += 1
            kpis.accepted_cents += cents
        elif is_open(status):
            kpis.pipeline_cents += cents
        if quote.created_at and (kpis.last_quote_at is None or quote.created_at > kpis.last_quote_at):
            kpis.last_quote_at = quote.created_at
    return kpis


async def get_customer_quotes(db: AsyncSession, ctx, customer_id: str, limit: int = 200) -> CustomerQuotesResponse:
    """
    Quotes linked by ``customer_id``, plus older rows that were never linked
    but carry the customer's email (case-insensitive).
    """
    customer = await _get_owned(db, ctx, customer_id)

    linkage = [Quote.customer_id == customer.id]
    email = (customer.email or "").strip().lower()
    if email:
        linkage.append(
            (Quote.customer_id.is_(None)) & (func.lower(Quote.customer_email) == email)
        )

    result = await db.execute(
        select(Quote)
        .where(Quote.company_id == ctx.company_id, or_(*linkage))
        .order_by(desc(Quote.created_at))
        .limit(limit)
    )
    quotes = result.scalars().all()

    return CustomerQuotesResponse(
        message="Customer quotes retrieved successfully",
        customer=_out(customer),
        kpis=customer_quote_kpis(quotes),
        data=[QuoteSummaryOut.model_validate(q) for q in quotes],
    )
