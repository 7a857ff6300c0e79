# app/utils/check_roles.py
from fastapi import HTTPException
from typing import Callable
from functools import wraps


def require_role(roles: list[str]):
    """Decorator to validate the caller's company role; expects the tenant context as `_ctx`."""
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, _ctx, **kwargs):
            if _ctx is None:
                raise HTTPException(status_code=401, detail="User not authenticated")
            if (_ctx.role or "").lower() not in [r.lower() for r in roles]:
                raise HTTPException(status_code=403, detail="Permission denied")
            return await func(*args, _ctx=_ctx, **kwargs)
        return wrapper
    return decorator


ALL_ROLES = ["owner", "admin", "sales"]
ADMIN_ROLES = ["owner", "admin"]
OWNER_ONLY = ["owner"]
