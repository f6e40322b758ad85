from __future__ import annotations

from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from meeting_platform.models import ROLE_ADMIN, ROLE_ENTITY, ROLES

from .security import decode_access_token


_bearer = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Dict[str, Any]:
    """Authenticate a request from its `Authorization: Bearer <jwt>` header.

    Tokens are not stored server side: a token is valid while its signature
    checks out and it has not expired. The returned dict is built from the
    token claims.
    """

    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None:
        raise HTTPException(status_code=500, detail="server_config_missing")

    if credentials is None or not credentials.credentials:
        raise _unauthorized("missing_token")

    try:
        payload = decode_access_token(token=credentials.credentials, secret=cfg.AUTH_JWT_SECRET)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("token_expired")
    except (jwt.InvalidTokenError, ValueError):
        raise _unauthorized("token_invalid")

    role = payload.get("role")
    if role not in ROLES:
        raise _unauthorized("token_invalid")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise _unauthorized("token_invalid")

    entity_id = payload.get("entity_id")
    return {
        "id": user_id,
        "email": payload.get("email"),
        "role": role,
        "entity_id": int(entity_id) if entity_id is not None else None,
        "is_admin": role == ROLE_ADMIN,
        "expires_at": int(payload["exp"]),
    }


def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != ROLE_ADMIN:
        raise HTTPException(status_code=403, detail="admin_required")
    return user


def require_entity_access(entity_id: int, user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    """Admins see every entity; entity users only their own."""
    if user.get("role") == ROLE_ADMIN:
        return user
    if user.get("role") == ROLE_ENTITY and user.get("entity_id") == int(entity_id):
        return user
    raise HTTPException(status_code=403, detail="entity_forbidden")
