# app/services/team_service.py
import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.exceptions import UpstreamError
from app.models.company_models import MEMBER_ROLES, CompanyMember
from app.schemas.company_schemas import (
    InviteRequest,
    InviteResponse,
    MemberOut,
    MemberResponse,
    TeamListResponse,
)
from app.services.company_service import company_to_snapshot
from app.services.email_service import PostmarkClient
from app.services.email_templates import team_invite_email
from app.services.supabase_admin import SupabaseAdmin
from app.utils.activity_helpers import log_tenant_activity

logger = logging.getLogger(__name__)

ASSIGNABLE_ROLES = tuple(r for r in MEMBER_ROLES if r != "owner")


async def _get_member(db: AsyncSession, company_id: str, user_id: str) -> Optional[CompanyMember]:
    result = await db.execute(
        select(CompanyMember).where(
            CompanyMember.company_id == company_id,
            CompanyMember.user_id == user_id,
        )
    )
    return result.scalars().first()


async def list_members(db: AsyncSession, ctx) -> TeamListResponse:
    result = await db.execute(
        select(CompanyMember)
        .where(CompanyMember.company_id == ctx.company_id)
        .order_by(CompanyMember.created_at)
    )
    members = result.scalars().all()
    return TeamListResponse(
        message="Team retrieved successfully",
        total=len(members),
        data=[MemberOut.model_validate(m) for m in members],
    )


async def change_role(db: AsyncSession, ctx, user_id: str, role: str) -> MemberResponse:
    if role not in ASSIGNABLE_ROLES:
        raise HTTPException(status_code=400, detail="Invalid role.")

    member = await _get_member(db, ctx.company_id, user_id)
    if member is None:
        raise HTTPException(status_code=404, detail="Team member not found")
    if member.role == "owner":
        raise HTTPException(status_code=400, detail="The owner's role cannot be changed.")

    previous = member.role
    member.role = role
    await log_tenant_activity(db, ctx, f"Changed role of {member.email or member.user_id} from {previous} to {role}")
    await db.commit()
    await db.refresh(member)
    return MemberResponse(message="Role updated successfully", data=MemberOut.model_validate(member))


async def remove_member(db: AsyncSession, ctx, user_id: str) -> MemberResponse:
    if user_id == ctx.user_id:
        raise HTTPException(status_code=400, detail="You cannot remove yourself.")

    member = await _get_member(db, ctx.company_id, user_id)
    if member is None:
        raise HTTPException(status_code=404, detail="Team member not found")
    if member.role == "owner":
        raise HTTPException(status_code=400, detail="The owner cannot be removed.")

    out = MemberOut.model_validate(member)
    await db.delete(member)
    await log_tenant_activity(db, ctx, f"Removed {member.email or member.user_id} from the team")
    await db.commit()
    return MemberResponse(message="Team member removed successfully", data=out)


# --------------------------
# Invites
# --------------------------
async def invite_user(
    db: AsyncSession,
    ctx,
    data: InviteRequest,
    auth_admin: Optional[SupabaseAdmin],
    email_client: Optional[PostmarkClient],
    origin: str = "",
) -> InviteResponse:
    """
    Create (or re-use) the invited auth account, attach it to the caller's
    company with the requested role, then mail the sign-up link. The
    membership is written before the email goes out, so a failed send can be
    retried by inviting again.
    """
    if not data.email:
        raise HTTPException(status_code=400, detail="Email is required.")
    if data.role not in ASSIGNABLE_ROLES:
        raise HTTPException(status_code=400, detail="Invalid role.")
    if auth_admin is None:
        raise HTTPException(status_code=500, detail="Missing Supabase env vars.")

    redirect_to = f"{origin}/index.html" if origin else None
    try:
        link = await auth_admin.generate_invite_link(
            data.email,
            {"invited_by": ctx.user_id, "company_id": ctx.company_id},
            redirect_to=redirect_to,
        )
    except UpstreamError as exc:
        logger.warning("Invite of %s by %s failed: %s", data.email, ctx.user_id, exc)
        raise HTTPException(status_code=502, detail=f"Invite failed: {exc}")

    member = await _get_member(db, ctx.company_id, link.user_id)
    if member is None:
        member = CompanyMember(company_id=ctx.company_id, user_id=link.user_id, email=data.email, role=data.role)
        db.add(member)
    elif member.role != "owner":
        member.role = data.role
        member.email = member.email or data.email

    await log_tenant_activity(db, ctx, f"Invited {data.email} as {data.role}")
    await db.commit()

    if email_client is None:
        logger.warning("Invite for %s recorded but email is not configured", data.email)
        return InviteResponse(user_id=link.user_id, role=member.role, email_sent=False)

    message = team_invite_email(
        to=data.email,
        company=company_to_snapshot(ctx.company),
        inviter_name=ctx.user_name,
        role=data.role,
        invite_url=link.action_link,
        origin=origin,
    )
    try:
        await email_client.send(message)
    except UpstreamError as exc:
        logger.error("Invite email to %s failed: %s", data.email, exc)
        raise HTTPException(status_code=502, detail="Invite recorded but the invitation email could not be sent.")

    return InviteResponse(user_id=link.user_id, role=member.role, email_sent=True)
