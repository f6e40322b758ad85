"""Authentication / authorization helpers.

Two credential tables, one login endpoint:

- admin_accounts (platform administrators)
- entity_users   (the login created when an entity signs up)

Login checks admin_accounts first, then entity_users, and answers with a JWT
access token. Protected routes read it from `Authorization: Bearer <token>`.
"""

from .crud import bootstrap_admin_if_needed, create_admin, create_entity_user
from .deps import get_current_user, require_admin, require_entity_access
from .errors import AuthFailure, InvalidCredentials, StoreUnavailable
from .service import authenticate, resolve_account

__all__ = [
    "AuthFailure",
    "InvalidCredentials",
    "StoreUnavailable",
    "authenticate",
    "bootstrap_admin_if_needed",
    "create_admin",
    "create_entity_user",
    "get_current_user",
    "require_admin",
    "require_entity_access",
    "resolve_account",
]
