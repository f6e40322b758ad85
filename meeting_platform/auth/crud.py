from __future__ import annotations

from typing import Any, Dict, Optional

from meeting_platform.config import Config
from meeting_platform.db import connect, insert_returning
from meeting_platform.models import AdminAccount, EntityUserAccount
from meeting_platform.util.time import utcnow_iso

from .security import hash_password

ADMIN_TABLE = "admin_accounts"
ENTITY_USER_TABLE = "entity_users"


def normalize_email(email: str) -> str:
    """Trim an email before it is stored. Case is kept: lookups match exactly."""
    return (email or "").strip()


def public_admin(row: Any) -> Dict[str, Any]:
    """Admin row as returned by /auth/register-admin (never includes the hash)."""
    return {
        "id": int(row["id"]),
        "nome": row["display_name"],
        "email": row["email"],
        "celular": row["phone"],
        "tipo_acesso": row["access_level"],
        "created_at": row["created_at"],
    }


def public_entity_user(row: Any) -> Dict[str, Any]:
    d = dict(row)
    d.pop("password_hash", None)
    return d


def get_admin_by_email(conn: Any, email: str) -> Optional[AdminAccount]:
    if not email:
        return None
    row = conn.execute(
        f"SELECT * FROM {ADMIN_TABLE} WHERE email=?",
        (email,),
    ).fetchone()
    if row is None:
        return None
    return AdminAccount(
        id=int(row["id"]),
        display_name=str(row["display_name"]),
        email=str(row["email"]),
        password_hash=str(row["password_hash"]),
        access_level=str(row["access_level"]),
        created_at=str(row["created_at"]),
        phone=row["phone"],
    )


def get_entity_user_by_email(conn: Any, email: str) -> Optional[EntityUserAccount]:
    """Look up an entity user and the entity it belongs to.

    The entity is the one whose email equals the user's email. It is not
    required: an unmatched user still comes back, with entity_id None.
    """
    if not email:
        return None
    row = conn.execute(
        f"""
        SELECT
            u.id,
            u.display_name,
            u.email,
            u.password_hash,
            e.id AS entity_id,
            e.name AS entity_name
        FROM {ENTITY_USER_TABLE} u
        LEFT JOIN entities e ON e.email = u.email
        WHERE u.email=?
        ORDER BY u.id ASC, e.id ASC
        LIMIT 1
        """,
        (email,),
    ).fetchone()
    if row is None:
        return None
    return EntityUserAccount(
        id=int(row["id"]),
        display_name=str(row["display_name"]),
        email=str(row["email"]),
        password_hash=str(row["password_hash"]),
        entity_id=int(row["entity_id"]) if row["entity_id"] is not None else None,
        entity_name=row["entity_name"],
    )


def create_admin(
    conn: Any,
    *,
    display_name: str,
    email: str,
    password: str,
    access_level: str,
    phone: str | None = None,
) -> Dict[str, Any]:
    """Insert an administrator with a hashed password.

    Email uniqueness is left to the table's UNIQUE constraint; callers map the
    resulting integrity error (see db.is_unique_violation).
    """
    name = (display_name or "").strip()
    e = normalize_email(email)
    level = (access_level or "").strip()
    if not name:
        raise ValueError("name_blank")
    if not e:
        raise ValueError("email_blank")
    if not level:
        raise ValueError("access_level_blank")

    row = insert_returning(
        conn,
        f"""
        INSERT INTO {ADMIN_TABLE} (display_name, email, phone, password_hash, access_level, created_at)
        VALUES (?,?,?,?,?,?)
        RETURNING id, display_name, email, phone, access_level, created_at
        """,
        (name, e, (phone or "").strip() or None, hash_password(password), level, utcnow_iso()),
    )
    return public_admin(row)


def create_entity_user(
    conn: Any,
    *,
    display_name: str,
    email: str,
    password: str,
) -> Dict[str, Any]:
    """Insert an entity user. Its entity is whichever entity shares its email."""
    name = (display_name or "").strip()
    e = normalize_email(email)
    if not name:
        raise ValueError("user_name_blank")
    if not e:
        raise ValueError("user_email_blank")

    row = insert_returning(
        conn,
        f"""
        INSERT INTO {ENTITY_USER_TABLE} (display_name, email, password_hash, created_at)
        VALUES (?,?,?,?)
        RETURNING id, display_name, email, created_at
        """,
        (name, e, hash_password(password), utcnow_iso()),
    )
    return public_entity_user(row)


def bootstrap_admin_if_needed(cfg: Config) -> Optional[Dict[str, Any]]:
    """Create the first admin account if admin_accounts is empty.

    Controlled via environment variables so a new deployment has a
    deterministic way to log in:

    - AUTH_BOOTSTRAP_ADMIN_EMAIL
    - AUTH_BOOTSTRAP_ADMIN_PASSWORD
    - AUTH_BOOTSTRAP_ADMIN_NAME (optional)

    Nothing happens unless email and password are both set.
    """

    email = normalize_email(cfg.AUTH_BOOTSTRAP_ADMIN_EMAIL)
    password = cfg.AUTH_BOOTSTRAP_ADMIN_PASSWORD
    if not email or not password:
        return None

    with connect(cfg.DB_DSN) as conn:
        n = conn.execute(f"SELECT COUNT(*) AS n FROM {ADMIN_TABLE}").fetchone()["n"]
        if int(n) > 0:
            return None
        return create_admin(
            conn,
            display_name=cfg.AUTH_BOOTSTRAP_ADMIN_NAME or email,
            email=email,
            password=password,
            access_level="admin",
        )
