# app/services/quote_services/acceptance_service.py
"""
Customer acceptance over the public link.

The signature is the only write the public channel can make. Accepting is
idempotent: once ``data.acceptance.accepted_at`` is set, later calls return
the stored acceptance and send nothing.
"""
import asyncio
import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.models.company_models import Company
from app.models.quote_models import Quote
from app.schemas.public_schemas import AcceptQuoteRequest, AcceptQuoteResponse, EmailResult
from app.schemas.quote_schema import Acceptance
from app.services.email_service import EmailMessage, PostmarkClient, send_best_effort
from app.services.email_templates import (
    quote_admin_url,
    quote_signed_admin_email,
    quote_signed_customer_email,
    quote_view_url,
)
from app.services.quote_services.quote_service import load_quote_data, quote_code_for, update_if_status
from app.utils.activity_helpers import log_user_activity
from app.utils.date_helpers import is_ymd, local_today, utc_now_iso, ymd
from app.utils.quote_status import QuoteStatus, advance, normalize_status

logger = logging.getLogger(__name__)

ACCEPT_ATTEMPTS = 3


def validate_signature(payload: AcceptQuoteRequest) -> tuple:
    """Returns (signature_data_url, typed_name); exactly one kind of signature is required."""
    signature = payload.signature_data_url
    typed_name = (payload.name or "").strip()

    if signature:
        if not isinstance(signature, str) or not signature.startswith("data:image/"):
            raise HTTPException(status_code=400, detail="Invalid signature format")
        if len(signature) > config.MAX_SIGNATURE_BYTES:
            raise HTTPException(status_code=400, detail="Signature is too large. Please try again.")
        return signature, typed_name
    if typed_name:
        return None, typed_name
    raise HTTPException(status_code=400, detail="Missing signature_data_url")


def signer_name_for(quote: Quote, data, typed_name: str = "") -> str:
    return (
        typed_name
        or (data.bill_to.client_name or "").strip()
        or (quote.customer_name or "").strip()
        or "Client"
    )


async def _admin_recipient(db: AsyncSession, quote: Quote, data) -> str:
    if config.ADMIN_NOTIFY_EMAIL:
        return config.ADMIN_NOTIFY_EMAIL
    if data.company.email:
        return data.company.email
    company = await db.get(Company, quote.company_id)
    if company is None:
        return ""
    return company.billing_email or company.owner_email or ""


async def _send_acceptance_emails(
    db: AsyncSession,
    quote: Quote,
    data,
    signer_name: str,
    accepted_date: str,
    email_client: Optional[PostmarkClient],
    origin: str,
) -> dict:
    results = {"admin": EmailResult(), "customer": EmailResult()}
    if email_client is None or not origin:
        return results

    quote_code = quote_code_for(quote, data)
    company = data.company.model_dump()
    view_url = quote_view_url(origin, quote.id)
    admin_to = await _admin_recipient(db, quote, data)

    admin_message = quote_signed_admin_email(
        to=admin_to,
        company=company,
        signer_name=signer_name,
        customer_email=quote.customer_email or "",
        quote_code=quote_code,
        accepted_date=accepted_date,
        view_url=view_url,
        admin_url=quote_admin_url(origin, quote.id),
        origin=origin,
    )
    customer_message = EmailMessage(to="", subject="", html_body="", text_body="")
    if quote.customer_email:
        customer_message = quote_signed_customer_email(
            to=quote.customer_email,
            company=company,
            signer_name=signer_name,
            quote_code=quote_code,
            accepted_date=accepted_date,
            view_url=view_url,
            origin=origin,
        )

    admin_result, customer_result = await asyncio.gather(
        send_best_effort(email_client, admin_message),
        send_best_effort(email_client, customer_message),
    )
    results["admin"] = EmailResult(attempted=admin_result["attempted"], ok=admin_result["ok"])
    results["customer"] = EmailResult(attempted=customer_result["attempted"], ok=customer_result["ok"])
    return results


def _already_accepted(quote: Quote, data) -> AcceptQuoteResponse:
    if data.acceptance and data.acceptance.accepted_at:
        return AcceptQuoteResponse(
            ok=True,
            accepted_at=data.acceptance.accepted_at,
            accepted_date=data.acceptance.accepted_date or None,
            already_accepted=True,
        )
    # Accepted before signatures were stored on the snapshot
    stamp = quote.updated_at or quote.created_at
    return AcceptQuoteResponse(ok=True, accepted_at=stamp.isoformat() if stamp else "", already_accepted=True)


async def accept_quote(
    db: AsyncSession,
    payload: AcceptQuoteRequest,
    email_client: Optional[PostmarkClient],
    origin: str,
) -> AcceptQuoteResponse:
    """
    The acceptance is written with a status compare-and-set, so of two
    overlapping calls exactly one signs; the other re-reads the row and
    reports the stored acceptance.
    """
    if not payload.quote_id:
        raise HTTPException(status_code=400, detail="Missing quote_id")
    signature, typed_name = validate_signature(payload)

    for _ in range(ACCEPT_ATTEMPTS):
        quote = await db.get(Quote, payload.quote_id, populate_existing=True)
        if quote is None:
            raise HTTPException(status_code=404, detail="Quote not found")

        stored_status = quote.status
        status = normalize_status(stored_status)
        if status == QuoteStatus.cancelled:
            raise HTTPException(status_code=400, detail="This quote has been cancelled.")

        data = load_quote_data(quote)
        if status == QuoteStatus.accepted or (data.acceptance and data.acceptance.accepted_at):
            return _already_accepted(quote, data)

        accepted_at = utc_now_iso()
        # A client-supplied local date avoids a UTC day rollover on late signatures
        accepted_date = payload.accepted_date if is_ymd(payload.accepted_date) else ymd(local_today())
        signer_name = signer_name_for(quote, data, typed_name)

        data.acceptance = Acceptance(
            accepted_at=accepted_at,
            accepted_date=accepted_date,
            name=signer_name,
            email=(payload.email or "").strip() or None,
            signature_image_data_url=signature,
            signature_text=None if signature else typed_name,
        )
        claimed = await update_if_status(
            db,
            quote,
            stored_status,
            status=advance(status, QuoteStatus.accepted).value,
            data=data.model_dump(mode="json"),
        )
        if claimed:
            break
        await db.rollback()
        logger.info("Quote %s changed while accepting; re-reading", payload.quote_id)
    else:
        raise HTTPException(status_code=409, detail="This quote changed while signing. Please try again.")

    await log_user_activity(
        db,
        company_id=quote.company_id,
        username=signer_name,
        message=f"Quote {quote_code_for(quote, data)} accepted by {signer_name}",
    )
    await db.commit()
    logger.info("Quote %s accepted by %s", quote.id, signer_name)

    emails = await _send_acceptance_emails(db, quote, data, signer_name, accepted_date, email_client, origin)
    return AcceptQuoteResponse(ok=True, accepted_at=accepted_at, accepted_date=accepted_date, emails=emails)
