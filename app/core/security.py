# app/core/security.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt

from app.core.config import get_settings

# claims the engine cannot authorize without
_REQUIRED_CLAIMS = {"require_sub": True, "require_exp": True}


def create_access_token(subject: str, claims: Dict[str, Any], expires_minutes: Optional[int] = None) -> str:
    """
    Mint a token the way the identity provider does.
    Used by tests and local tooling; the engine itself only decodes.
    """
    settings = get_settings()
    issued = datetime.now(timezone.utc)
    lifetime = timedelta(minutes=expires_minutes or settings.jwt_access_token_minutes)

    payload = dict(claims)
    payload.update(sub=subject, iat=int(issued.timestamp()), exp=int((issued + lifetime).timestamp()))
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry. Raises jose.JWTError (or a subclass) on failure.
    """
    settings = get_settings()
    return jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm],
        options=_REQUIRED_CLAIMS,
    )
