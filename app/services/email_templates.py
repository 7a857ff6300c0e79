# app/services/email_templates.py
import os
from datetime import date, datetime
from typing import Optional
from urllib.parse import quote as url_quote

from jinja2 import Environment, FileSystemLoader
from starlette.requests import Request

from app.core import config
from app.services.email_service import EmailMessage


_templates_dir = os.path.join(os.path.dirname(__file__), "..", "templates")
_env = Environment(loader=FileSystemLoader(os.path.abspath(_templates_dir)), autoescape=True)

DEFAULT_BRAND_COLOR = "#0267b5"


# --------------------------
# Formatting helpers
# --------------------------
def format_money(cents, currency: str = "CAD") -> str:
    """125050 -> '$1,250.50 CAD'"""
    try:
        amount = int(cents or 0) / 100
    except (TypeError, ValueError):
        amount = 0
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f} {(currency or 'CAD').upper()}"


def format_ymd_pretty(ymd: Optional[str]) -> str:
    """'2026-01-05' -> 'Jan 05, 2026'; unparseable input is returned as is."""
    if not ymd:
        return "-"
    try:
        return datetime.strptime(str(ymd)[:10], "%Y-%m-%d").strftime("%b %d, %Y")
    except ValueError:
        return str(ymd)


def public_origin(request: Optional[Request]) -> str:
    if config.PUBLIC_BASE_URL:
        return config.PUBLIC_BASE_URL
    if request is None:
        return ""
    proto = request.headers.get("x-forwarded-proto") or "https"
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or ""
    return f"{proto}://{host}".rstrip("/") if host else ""


def quote_view_url(origin: str, quote_id: str) -> str:
    return f"{origin}/customer/quote.html?id={url_quote(str(quote_id))}"


def quote_admin_url(origin: str, quote_id: str) -> str:
    return f"{origin}/admin/quote.html?id={url_quote(str(quote_id))}"


def _brand(company: dict, origin: str) -> dict:
    company = company or {}
    company_id = company.get("company_id")
    logo_url = ""
    if origin and company_id:
        logo_url = f"{origin}/company-logo?company_id={url_quote(str(company_id))}"
    return {
        "company_name": company.get("name") or "Our team",
        "brand_color": company.get("brand_color") or DEFAULT_BRAND_COLOR,
        "logo_url": logo_url,
        "phone": company.get("phone") or "",
        "company_email": company.get("email") or "",
        "web": company.get("web") or "",
        "year": date.today().year,
    }


def _render(name: str, **context) -> str:
    return _env.get_template(f"email/{name}").render(**context)


def _reply_to(company: dict) -> Optional[str]:
    return config.REPLY_TO_EMAIL or (company or {}).get("email") or None


# --------------------------
# Messages
# --------------------------
def quote_ready_email(
    to: str,
    company: dict,
    customer_name: str,
    quote_code: str,
    total_cents: int,
    currency: str,
    expires: str,
    prepared_by: str,
    view_url: str,
    origin: str = "",
) -> EmailMessage:
    brand = _brand(company, origin)
    customer_name = customer_name or "there"
    total = format_money(total_cents, currency)
    expires_pretty = format_ymd_pretty(expires)

    html_body = _render(
        "quote_ready.html",
        customer_name=customer_name,
        quote_code=quote_code,
        total=total,
        expires=expires_pretty,
        prepared_by=prepared_by or brand["company_name"],
        view_url=view_url,
        **brand,
    )
    text_body = (
        f"Hi {customer_name},\n\n"
        f"Your quote ({quote_code}) is ready.\n\n"
        f"View, download a PDF, and accept/sign online:\n{view_url}\n\n"
        f"Total: {total}\n"
        f"Expires: {expires_pretty}\n"
        f"Prepared by: {prepared_by or brand['company_name']}\n\n"
        f"Thank you,\n{brand['company_name']}"
    )
    return EmailMessage(
        to=to,
        subject=f"{brand['company_name']} Quote Ready - {quote_code}",
        html_body=html_body,
        text_body=text_body,
        reply_to=_reply_to(company),
    )


def quote_signed_customer_email(
    to: str,
    company: dict,
    signer_name: str,
    quote_code: str,
    accepted_date: str,
    view_url: str,
    origin: str = "",
) -> EmailMessage:
    brand = _brand(company, origin)
    pretty = format_ymd_pretty(accepted_date)
    html_body = _render(
        "quote_signed_customer.html",
        signer_name=signer_name,
        quote_code=quote_code,
        accepted_date_pretty=pretty,
        view_url=view_url,
        **brand,
    )
    contact = f" or call {brand['phone']}" if brand["phone"] else ""
    text_body = (
        f"Hi {signer_name},\n\n"
        f"Your acceptance has been received for quote {quote_code}.\n"
        f"Signed: {pretty}\n\n"
        f"View your signed quote:\n{view_url}\n\n"
        f"Questions? Reply to this email{contact}\n\n"
        f"{brand['company_name']}"
    )
    return EmailMessage(
        to=to,
        subject=f"Acceptance confirmed - {quote_code}",
        html_body=html_body,
        text_body=text_body,
        reply_to=_reply_to(company),
    )


def quote_signed_admin_email(
    to: str,
    company: dict,
    signer_name: str,
    customer_email: str,
    quote_code: str,
    accepted_date: str,
    view_url: str,
    admin_url: str,
    origin: str = "",
) -> EmailMessage:
    brand = _brand(company, origin)
    pretty = format_ymd_pretty(accepted_date)
    html_body = _render(
        "quote_signed_admin.html",
        signer_name=signer_name,
        customer_email=customer_email,
        quote_code=quote_code,
        accepted_date_pretty=pretty,
        view_url=view_url,
        admin_url=admin_url,
        **brand,
    )
    text_body = (
        f"SIGNED: {quote_code}\n\n"
        f"Customer: {signer_name}\n"
        f"Email: {customer_email or '-'}\n"
        f"Signed: {pretty}\n\n"
        f"Admin: {admin_url}\n"
        f"Customer link: {view_url}"
    )
    return EmailMessage(
        to=to,
        subject=f"SIGNED - {quote_code} - {signer_name}",
        html_body=html_body,
        text_body=text_body,
        reply_to=_reply_to(company),
    )


def team_invite_email(
    to: str,
    company: dict,
    inviter_name: str,
    role: str,
    invite_url: str,
    origin: str = "",
) -> EmailMessage:
    brand = _brand(company, origin)
    html_body = _render(
        "team_invite.html",
        inviter_name=inviter_name,
        role=role,
        invite_url=invite_url,
        **brand,
    )
    text_body = (
        f"{inviter_name} invited you to the {brand['company_name']} quoting workspace as {role}.\n\n"
        f"Accept the invitation:\n{invite_url}\n\n"
        f"If you weren't expecting this invitation you can ignore this email."
    )
    return EmailMessage(
        to=to,
        subject=f"You're invited to {brand['company_name']}",
        html_body=html_body,
        text_body=text_body,
        reply_to=_reply_to(company),
    )
