# app/services/activity_service.py
from sqlalchemy import select, desc, asc, func
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional, Tuple
from app.models.activity_models import UserActivity
from app.schemas.activity_schemas import UserActivityListResponse, UserActivityOut

ALLOWED_SORT_FIELDS = {"id", "user_id", "username", "created_at"}

async def get_user_activities(
    db: AsyncSession,
    company_id: str,
    user_id: Optional[str] = None,
    username: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "created_at",
    order: str = "desc"
) -> Tuple[int, List[UserActivity]]:
    # Validate sort field
    if sort_by not in ALLOWED_SORT_FIELDS:
        sort_by = "created_at"

    sort_column = getattr(UserActivity, sort_by)
    sort_order = desc(sort_column) if order.lower() == "desc" else asc(sort_column)

    # Build filters (always tenant-scoped)
    filters = [UserActivity.company_id == company_id]
    if user_id:
        filters.append(UserActivity.user_id == user_id)
    if username:
        filters.append(UserActivity.username.ilike(f"%{username}%"))

    # Count total
    total_result = await db.execute(select(func.count(UserActivity.id)).where(*filters))
    total = total_result.scalar() or 0

    # Pagination + sorting; id breaks ties between rows written in the same instant
    stmt = (
        select(UserActivity)
        .where(*filters)
        .order_by(sort_order, desc(UserActivity.id))
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(stmt)
    activities = result.scalars().all()

    return total, activities


async def list_company_activity(db: AsyncSession, ctx, **filters) -> UserActivityListResponse:
    total, activities = await get_user_activities(db, ctx.company_id, **filters)
    return UserActivityListResponse(
        message="Company activity retrieved successfully",
        total=total,
        data=[UserActivityOut.model_validate(a) for a in activities],
    )
