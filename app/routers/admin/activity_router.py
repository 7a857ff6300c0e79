# app/routers/admin/activity_router.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.activity_schemas import UserActivityListResponse
from app.services import activity_service
from app.utils.check_roles import ADMIN_ROLES, require_role
from app.utils.get_user import get_tenant

router = APIRouter(prefix="/activity", tags=["Activity"])


@router.get("", response_model=UserActivityListResponse)
@require_role(ADMIN_ROLES)
async def company_activity_route(
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant),
    user_id: Optional[str] = Query(None, description="Only entries written by this user"),
    username: Optional[str] = Query(None, description="Partial match on the recorded name or email"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: str = Query("created_at", description="id, user_id, username or created_at"),
    order: str = Query("desc", description="asc or desc"),
):
    """The company's audit trail, newest first by default."""
    return await activity_service.list_company_activity(
        db, _ctx, user_id=user_id, username=username, page=page, page_size=page_size, sort_by=sort_by, order=order
    )
