from __future__ import annotations

from typing import Dict, Optional

from fastapi import Header, HTTPException, status
from jose import JWTError, jwt

from . import config


def verify_jwt(authorization: Optional[str]) -> Dict:
    """Verify a Supabase access token and return its claims."""
    if config.DEV_BYPASS_AUTH:
        return {"sub": config.DEV_USER_ID, "role": "authenticated"}

    if not authorization:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token format")

    if not config.SUPABASE_JWT_SECRET:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Token verification not configured")

    try:
        claims = jwt.decode(
            parts[1],
            config.SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            audience=config.SUPABASE_JWT_AUDIENCE or None,
            options={"verify_aud": bool(config.SUPABASE_JWT_AUDIENCE)},
        )
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    if not claims.get("sub"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has no subject")
    return claims


def current_user(authorization: Optional[str] = Header(None)) -> Dict:
    return verify_jwt(authorization)
