# app/routers/admin/team_router.py
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.company_schemas import (
    InviteRequest,
    InviteResponse,
    MemberResponse,
    MemberRoleUpdate,
    TeamListResponse,
)
from app.services import team_service
from app.services.email_service import PostmarkClient, get_email_client
from app.services.email_templates import public_origin
from app.services.supabase_admin import SupabaseAdmin, get_supabase_admin
from app.utils.check_roles import ADMIN_ROLES, ALL_ROLES, require_role
from app.utils.get_user import get_tenant

router = APIRouter(tags=["Team"])


@router.get("/team", response_model=TeamListResponse)
@require_role(ALL_ROLES)
async def list_team_route(db: AsyncSession = Depends(get_db), _ctx=Depends(get_tenant)):
    return await team_service.list_members(db, _ctx)


@router.put("/team/{user_id}", response_model=MemberResponse)
@require_role(ADMIN_ROLES)
async def change_role_route(
    user_id: str,
    data: MemberRoleUpdate,
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant),
):
    return await team_service.change_role(db, _ctx, user_id, data.role)


@router.delete("/team/{user_id}", response_model=MemberResponse)
@require_role(ADMIN_ROLES)
async def remove_member_route(user_id: str, db: AsyncSession = Depends(get_db), _ctx=Depends(get_tenant)):
    return await team_service.remove_member(db, _ctx, user_id)


@router.post("/invite-user", response_model=InviteResponse)
@require_role(ADMIN_ROLES)
async def invite_user_route(
    data: InviteRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    auth_admin: Optional[SupabaseAdmin] = Depends(get_supabase_admin),
    email_client: Optional[PostmarkClient] = Depends(get_email_client),
    _ctx=Depends(get_tenant),
):
    return await team_service.invite_user(db, _ctx, data, auth_admin, email_client, public_origin(request))
