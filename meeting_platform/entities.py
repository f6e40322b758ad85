"""Entities (tenant companies) and entity sign-up.

Signing an entity up inserts the entity row and its login account in the
same transaction. The account belongs to the entity while their emails
match; an account created with a different email has no entity.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from meeting_platform.auth.crud import create_entity_user, normalize_email
from meeting_platform.db import insert_returning
from meeting_platform.util.time import utcnow_iso


def _debug(msg: str) -> None:
    print(f"[entities] {msg}")


# API field name -> column name
ENTITY_FIELDS: Dict[str, str] = {
    "nome": "name",
    "email": "email",
    "cnpj": "cnpj",
    "telefone1": "phone1",
    "celular1": "mobile1",
    "cep": "postal_code",
    "logradouro": "street",
    "numero": "street_number",
    "complemento": "complement",
    "bairro": "district",
    "cidade": "city",
    "uf": "state",
}


def public_entity(row: Any) -> Dict[str, Any]:
    out: Dict[str, Any] = {"id": int(row["id"])}
    for field, col in ENTITY_FIELDS.items():
        out[field] = row[col]
    out["created_at"] = row["created_at"]
    out["updated_at"] = row["updated_at"]
    return out


def _entity_values(data: Dict[str, Any]) -> List[Any]:
    name = (data.get("nome") or "").strip()
    if not name:
        raise ValueError("name_blank")
    values: List[Any] = []
    for field in ENTITY_FIELDS:
        if field == "nome":
            values.append(name)
        elif field == "email":
            values.append(normalize_email(data.get("email") or "") or None)
        else:
            v = data.get(field)
            values.append(v.strip() if isinstance(v, str) else v)
    return values


def get_entity(conn: Any, entity_id: int) -> Optional[Dict[str, Any]]:
    row = conn.execute("SELECT * FROM entities WHERE id=?", (int(entity_id),)).fetchone()
    return public_entity(row) if row is not None else None


def list_entities(conn: Any) -> List[Dict[str, Any]]:
    rows = conn.execute("SELECT * FROM entities ORDER BY created_at DESC, id DESC").fetchall()
    return [public_entity(r) for r in rows]


def create_entity_with_user(
    conn: Any,
    entity: Dict[str, Any],
    *,
    user_name: str,
    user_email: str,
    user_password: str,
) -> Dict[str, Any]:
    """Insert an entity and the entity user that logs in for it.

    Runs on the caller's connection; `connect()` commits both rows or neither.
    """
    values = _entity_values(entity)
    now = utcnow_iso()
    cols = ", ".join(ENTITY_FIELDS.values())
    marks = ",".join("?" for _ in ENTITY_FIELDS)
    row = insert_returning(
        conn,
        f"""
        INSERT INTO entities ({cols}, created_at, updated_at)
        VALUES ({marks},?,?)
        RETURNING id
        """,
        (*values, now, now),
    )
    entity_id = int(row["id"])

    user = create_entity_user(
        conn,
        display_name=user_name,
        email=user_email,
        password=user_password,
    )
    _debug(f"Signed up entity id={entity_id} user_id={user['id']}")

    created = get_entity(conn, entity_id)
    assert created is not None
    return created


def update_entity(conn: Any, entity_id: int, entity: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    values = _entity_values(entity)
    sets = ", ".join(f"{col}=?" for col in ENTITY_FIELDS.values())
    cur = conn.execute(
        f"UPDATE entities SET {sets}, updated_at=? WHERE id=?",
        (*values, utcnow_iso(), int(entity_id)),
    )
    if cur.rowcount == 0:
        return None
    return get_entity(conn, entity_id)


def delete_entity(conn: Any, entity_id: int) -> bool:
    """Delete an entity. Its users stay and log in with no entity."""
    cur = conn.execute("DELETE FROM entities WHERE id=?", (int(entity_id),))
    deleted = cur.rowcount > 0
    if deleted:
        _debug(f"Deleted entity id={entity_id}")
    return deleted
