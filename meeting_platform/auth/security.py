from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext

from meeting_platform.util.time import utcnow


_pwd = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
_JWT_ALG = "HS256"
TOKEN_LIFETIME = timedelta(hours=24)


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("password_blank")
    return _pwd.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return _pwd.verify(password, password_hash)
    except ValueError:
        # Stored value is not a hash passlib recognizes.
        return False


def create_access_token(
    *,
    secret: str,
    user_id: int,
    email: str,
    role: str,
    entity_id: Optional[int],
    now: Optional[datetime] = None,
) -> str:
    """Sign an access token for a verified account.

    `jti` is random so two logins within the same second still get
    different tokens.
    """
    if not secret:
        raise ValueError("jwt_secret_blank")

    issued = now or utcnow()
    exp = issued + TOKEN_LIFETIME

    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "entity_id": entity_id,
        "iat": int(issued.timestamp()),
        "exp": int(exp.timestamp()),
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, secret, algorithm=_JWT_ALG)


def decode_access_token(*, token: str, secret: str) -> Dict[str, Any]:
    if not token:
        raise ValueError("token_blank")
    if not secret:
        raise ValueError("jwt_secret_blank")
    return jwt.decode(
        token,
        secret,
        algorithms=[_JWT_ALG],
        options={"require": ["sub", "role", "iat", "exp"]},
    )
