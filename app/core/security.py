# app/core/security.py
from typing import Dict
from jose import jwt, JWTError
from app.core.config import JWT_SECRET, JWT_ALGORITHM, JWT_AUDIENCE


def decode_token(token: str) -> Dict:
    """Verify a Supabase Auth access token and return its claims."""
    try:
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=JWT_AUDIENCE,
        )
    except JWTError:
        raise ValueError("Invalid or expired token")
    if not payload.get("sub"):
        raise ValueError("Invalid token payload")
    return payload
