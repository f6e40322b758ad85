"""Login: find the account behind an email/password pair and sign a token.

Admin accounts are checked before entity users. If the same email exists in
both tables and the password matches the admin row, the caller is an admin.

Each table is queried on its own connection. A lookup that fails (database
down, table missing, ...) is logged and skipped so the next table still gets
a chance; only when nothing matched does the attempt fail, as
StoreUnavailable if any lookup faulted and InvalidCredentials otherwise.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

from meeting_platform.config import Config
from meeting_platform.db import connect
from meeting_platform.models import Account, Profile

from .crud import ADMIN_TABLE, ENTITY_USER_TABLE, get_admin_by_email, get_entity_user_by_email
from .errors import InvalidCredentials, StoreUnavailable
from .security import create_access_token, verify_password


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


Lookup = Callable[[Any, str], Optional[Account]]

# Table order is the tie-break: first verified match wins.
CREDENTIAL_TABLES: Tuple[Tuple[str, Lookup], ...] = (
    (ADMIN_TABLE, get_admin_by_email),
    (ENTITY_USER_TABLE, get_entity_user_by_email),
)


def resolve_account(db_dsn: str, email: str, password: str) -> Account:
    """Return the first account (in table order) whose password verifies.

    Raises InvalidCredentials or StoreUnavailable.
    """
    faults: List[Tuple[str, str]] = []

    for table, lookup in CREDENTIAL_TABLES:
        try:
            with connect(db_dsn) as conn:
                account = lookup(conn, email)
        except Exception as e:
            faults.append((table, f"{type(e).__name__}: {e}"))
            _debug(f"store fault table={table} email={email!r}: {type(e).__name__}: {e}")
            continue

        if account is None:
            continue
        if verify_password(password, account.password_hash):
            _debug(f"login ok table={table} id={account.id} role={account.role}")
            return account
        _debug(f"password mismatch table={table} id={account.id}")

    if faults:
        _debug(f"login failed email={email!r} reason=store_unavailable")
        raise StoreUnavailable(faults)
    _debug(f"login failed email={email!r} reason=invalid_credentials")
    raise InvalidCredentials()


def issue_token(profile: Profile, cfg: Config) -> str:
    return create_access_token(
        secret=cfg.AUTH_JWT_SECRET,
        user_id=profile.id,
        email=profile.email,
        role=profile.role,
        entity_id=profile.entity_id,
    )


def authenticate(cfg: Config, email: str, password: str) -> Dict[str, Any]:
    """Verify credentials and return {"token", "user"} for the login response."""
    _debug(f"login attempt email={email!r}")
    account = resolve_account(cfg.DB_DSN, email, password)
    profile = Profile.from_account(account)
    token = issue_token(profile, cfg)
    return {"token": token, "user": profile.to_dict()}
