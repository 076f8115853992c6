#app/core/auth_deps.py
from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError

from app.core.security import decode_token
from app.models.enums import ActorRole
from app.policies.rbac import Principal

bearer = HTTPBearer(auto_error=True)


def get_current_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials = Depends(bearer),
) -> Principal:
    """
    Canonical authentication dependency.

    Guarantees:
    - JWT is valid
    - actor id (sub) and role are present
    - role is a valid ActorRole
    """

    try:
        payload = decode_token(creds.credentials)
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired.")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token.")

    role = payload.get("role")
    actor_id = payload.get("sub")
    display_name = payload.get("display_name") or "Unknown"

    if not role or not actor_id:
        raise HTTPException(status_code=401, detail="Token missing required claims.")

    try:
        role_enum = ActorRole(role)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid role in token.")

    principal = Principal(
        actor_id=str(actor_id),
        role=role_enum,
        display_name=str(display_name),
    )

    # Make principal available to downstream middleware / handlers
    request.state.principal = principal

    return principal
