# app/utils/get_user.py
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Header
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from app.core.db import get_db
from app.core.security import decode_token


class AuthUser(BaseModel):
    """The caller as described by a verified Supabase Auth access token."""
    id: str
    email: str = ""
    user_metadata: Dict[str, Any] = {}


def extract_bearer_token(token: Optional[str], authorization: Optional[str]) -> Optional[str]:
    # Support either header
    raw_token = token
    if not raw_token and authorization and authorization.startswith("Bearer "):
        raw_token = authorization[len("Bearer "):].strip()
    return raw_token or None


async def get_current_user(
    request: Request,
    token: Optional[str] = Header(default=None),
    authorization: Optional[str] = Header(default=None),
) -> AuthUser:
    raw_token = extract_bearer_token(token, authorization)
    if not raw_token:
        raise HTTPException(status_code=401, detail="Missing access token")

    try:
        payload = decode_token(raw_token)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=str(exc))

    user = AuthUser(
        id=str(payload["sub"]),
        email=str(payload.get("email") or "").strip().lower(),
        user_metadata=payload.get("user_metadata") or {},
    )
    request.state.user = user
    return user


async def get_tenant(
    request: Request,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Resolve (and on first use bootstrap) the caller's company context."""
    from app.services.tenant_service import resolve_tenant

    ctx = await resolve_tenant(db, user)
    request.state.tenant = ctx
    return ctx
