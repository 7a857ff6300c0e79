# app/utils/activity_helpers.py
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.activity_models import UserActivity


async def log_user_activity(
    db: AsyncSession,
    company_id: Optional[str] = None,
    user_id: Optional[str] = None,
    username: Optional[str] = None,
    message: str = "",
    commit: bool = False,
):
    """
    Adds a user activity log to the session. The caller is responsible for the commit.
    """
    activity = UserActivity(
        company_id=company_id,
        user_id=user_id,
        username=username or "system",
        message=message
    )
    db.add(activity)
    if commit:
        await db.commit()


async def log_tenant_activity(db: AsyncSession, ctx, message: str, commit: bool = False):
    """Shortcut for activity performed by the caller of a tenant-scoped request."""
    await log_user_activity(
        db,
        company_id=ctx.company_id,
        user_id=ctx.user_id,
        username=ctx.email or ctx.user_name,
        message=message,
        commit=commit,
    )
