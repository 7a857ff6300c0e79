# app/services/company_service.py
import logging
import time
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.exceptions import UpstreamError
from app.models.company_models import Company
from app.schemas.company_schemas import CompanyOut, CompanyResponse, CompanyUpdate, normalize_brand_color
from app.services.supabase_admin import SupabaseAdmin
from app.utils.activity_helpers import log_tenant_activity

logger = logging.getLogger(__name__)

_LOGO_TYPES = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/svg+xml": "svg",
    "image/webp": "webp",
}


def company_to_snapshot(company: Company) -> dict:
    """Letterhead fields copied into a quote when it is created."""
    lines = [line.strip() for line in (company.address or "").splitlines() if line.strip()]
    return {
        "company_id": company.id,
        "name": company.name or "",
        "addr1": lines[0] if lines else "",
        "addr2": ", ".join(lines[1:]),
        "phone": company.phone or "",
        "email": company.billing_email or company.owner_email or "",
        "web": company.website or "",
        "logo_url": company.logo_url or "",
        "brand_color": company.brand_color or "#000000",
        "currency": company.default_currency or config.DEFAULT_CURRENCY,
    }


# --------------------------
# Read
# --------------------------
async def get_company(ctx) -> CompanyResponse:
    return CompanyResponse(
        message="Company retrieved successfully",
        role=ctx.role,
        data=CompanyOut.model_validate(ctx.company),
    )


# --------------------------
# Update (owner only, enforced by the router)
# --------------------------
async def update_company(db: AsyncSession, ctx, data: CompanyUpdate) -> CompanyResponse:
    company = await db.get(Company, ctx.company_id)
    if company is None:
        raise HTTPException(status_code=404, detail="Company not found")

    changes = data.model_dump(exclude_unset=True)
    if "brand_color" in changes:
        try:
            changes["brand_color"] = normalize_brand_color(changes["brand_color"])
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
    # Clearing a nullable field is allowed, clearing the name or currency is not
    for required in ("name", "default_currency"):
        if required in changes and not changes[required]:
            changes.pop(required)

    for key, value in changes.items():
        setattr(company, key, value)

    if changes:
        await log_tenant_activity(db, ctx, f"Updated company settings ({', '.join(sorted(changes))})")
    await db.commit()
    await db.refresh(company)

    return CompanyResponse(
        message="Company updated successfully",
        role=ctx.role,
        data=CompanyOut.model_validate(company),
    )


# --------------------------
# Logo upload
# --------------------------
def logo_extension(content_type: Optional[str]) -> str:
    ext = _LOGO_TYPES.get((content_type or "").split(";")[0].strip().lower())
    if not ext:
        raise HTTPException(status_code=400, detail="Logo must be a PNG, JPEG, SVG or WebP image.")
    return ext


async def upload_logo(
    db: AsyncSession,
    ctx,
    content: bytes,
    content_type: Optional[str],
    storage: Optional[SupabaseAdmin],
) -> CompanyResponse:
    ext = logo_extension(content_type)
    if not content:
        raise HTTPException(status_code=400, detail="Logo file is empty.")
    if len(content) > config.MAX_LOGO_BYTES:
        raise HTTPException(status_code=400, detail="Logo is too large.")
    if storage is None:
        raise HTTPException(status_code=500, detail="Storage is not configured.")

    path = f"{ctx.company_id}/logo.{ext}"
    try:
        public_url = await storage.upload(config.COMPANY_LOGO_BUCKET, path, content, content_type.split(";")[0].strip())
    except UpstreamError as exc:
        logger.error("Logo upload for company %s failed: %s", ctx.company_id, exc)
        raise HTTPException(status_code=502, detail="Logo upload failed.")

    company = await db.get(Company, ctx.company_id)
    company.logo_url = f"{public_url}?v={int(time.time())}"
    await log_tenant_activity(db, ctx, "Updated company logo")
    await db.commit()
    await db.refresh(company)

    return CompanyResponse(
        message="Logo updated successfully",
        role=ctx.role,
        data=CompanyOut.model_validate(company),
    )
