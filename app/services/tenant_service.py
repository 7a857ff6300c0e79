# app/services/tenant_service.py
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.config import DEFAULT_CURRENCY
from app.models.company_models import Company, CompanyMember
from app.utils.activity_helpers import log_user_activity
from app.utils.get_user import AuthUser

logger = logging.getLogger(__name__)

ADMIN_ROLES = {"owner", "admin"}

_WORKSPACE_KEYS = ("company_name", "company", "workspace", "business_name", "org", "organization")


@dataclass
class TenantContext:
    """Who is calling and which company every query must be scoped to."""
    user_id: str
    email: str
    user_name: str
    company_id: str
    role: str
    company: Company

    @property
    def is_admin(self) -> bool:
        return is_admin_role(self.role)


def is_admin_role(role: Optional[str]) -> bool:
    return (role or "").strip().lower() in ADMIN_ROLES


def derive_name_from_email(email: Optional[str]) -> str:
    """'jacob.docherty@x.ca' -> 'Jacob Docherty'"""
    email = (email or "").strip()
    if "@" not in email:
        return ""
    local = email.split("@")[0]
    for sep in "._-":
        local = local.replace(sep, " ")
    return " ".join(w[:1].upper() + w[1:] for w in local.split() if w).strip()


def user_display_name(user: AuthUser) -> str:
    md = user.user_metadata or {}
    first = str(md.get("first_name") or "").strip()
    last = str(md.get("last_name") or "").strip()
    return (
        f"{first} {last}".strip()
        or str(md.get("full_name") or "").strip()
        or str(md.get("name") or "").strip()
        or derive_name_from_email(user.email)
        or user.email
        or "User"
    )


def infer_workspace_name(user: AuthUser) -> str:
    md = user.user_metadata or {}
    for key in _WORKSPACE_KEYS:
        value = str(md.get(key) or "").strip()
        if value:
            return value
    if "@" in (user.email or ""):
        domain = user.email.split("@", 1)[1]
        if domain.startswith("www."):
            domain = domain[4:]
        if domain:
            return domain
    return "Workspace"


async def get_membership(db: AsyncSession, user_id: str) -> Optional[CompanyMember]:
    result = await db.execute(
        select(CompanyMember)
        .where(CompanyMember.user_id == user_id)
        .order_by(CompanyMember.created_at)
        .limit(1)
    )
    return result.scalars().first()


# --------------------------
# First-login bootstrap
# --------------------------
async def bootstrap_membership(db: AsyncSession, user: AuthUser) -> CompanyMember:
    """
    Give a user with no membership a company: reuse one they already own,
    otherwise create one. Safe to race: ``companies.owner_user_id`` and
    ``(company_id, user_id)`` are unique, so the losing request's insert
    fails, rolls back and returns the winner's membership instead.
    """
    result = await db.execute(
        select(Company)
        .where(Company.owner_user_id == user.id)
        .order_by(Company.created_at)
        .limit(1)
    )
    company = result.scalars().first()

    try:
        if company is None:
            company = Company(
                name=infer_workspace_name(user),
                owner_user_id=user.id,
                owner_email=user.email or None,
                billing_email=user.email or None,
                default_currency=DEFAULT_CURRENCY,
            )
            db.add(company)
            await db.flush()
            logger.info("Bootstrapped company %s for user %s", company.id, user.id)

        member = CompanyMember(company_id=company.id, user_id=user.id, email=user.email or None, role="owner")
        db.add(member)
        await db.flush()
        await log_user_activity(
            db,
            company_id=company.id,
            user_id=user.id,
            username=user.email,
            message=f"Workspace '{company.name}' set up for {user.email or user.id}",
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("Membership for user %s already created concurrently", user.id)
        member = await get_membership(db, user.id)
        if member is None:
            raise HTTPException(status_code=500, detail="Could not set up company membership")

    return member


async def resolve_tenant(db: AsyncSession, user: AuthUser) -> TenantContext:
    membership = await get_membership(db, user.id)
    if membership is None:
        membership = await bootstrap_membership(db, user)

    company = await db.get(Company, membership.company_id)
    if company is None:
        raise HTTPException(
            status_code=403,
            detail="No company membership found for this account. Create a company (owner) or ask an admin to invite you.",
        )

    return TenantContext(
        user_id=user.id,
        email=user.email,
        user_name=user_display_name(user),
        company_id=company.id,
        role=(membership.role or "sales").lower(),
        company=company,
    )
