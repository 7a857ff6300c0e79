# app/routers/admin/company_router.py
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.company_schemas import CompanyResponse, CompanyUpdate
from app.services import company_service
from app.services.supabase_admin import SupabaseAdmin, get_supabase_admin
from app.utils.check_roles import ALL_ROLES, OWNER_ONLY, require_role
from app.utils.get_user import get_tenant

router = APIRouter(prefix="/company", tags=["Company"])


@router.get("", response_model=CompanyResponse)
@require_role(ALL_ROLES)
async def get_company_route(_ctx=Depends(get_tenant)):
    return await company_service.get_company(_ctx)


@router.put("", response_model=CompanyResponse)
@require_role(OWNER_ONLY)
async def update_company_route(
    data: CompanyUpdate,
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant),
):
    return await company_service.update_company(db, _ctx, data)


@router.put("/logo", response_model=CompanyResponse)
@require_role(OWNER_ONLY)
async def upload_logo_route(
    request: Request,
    db: AsyncSession = Depends(get_db),
    storage: Optional[SupabaseAdmin] = Depends(get_supabase_admin),
    _ctx=Depends(get_tenant),
):
    """
    Raw image body (``Content-Type: image/png`` etc.), stored as
    ``{company_id}/logo.{ext}`` in the logo bucket.
    """
    content = await request.body()
    return await company_service.upload_logo(db, _ctx, content, request.headers.get("content-type"), storage)
