# app/routers/admin/dashboard_router.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.dashboard_schemas import DashboardSummaryResponse
from app.services import dashboard_service
from app.utils.check_roles import ALL_ROLES, require_role
from app.utils.get_user import get_tenant

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/summary", response_model=DashboardSummaryResponse)
@require_role(ALL_ROLES)
async def dashboard_summary_route(db: AsyncSession = Depends(get_db), _ctx=Depends(get_tenant)):
    return await dashboard_service.get_summary(db, _ctx)
