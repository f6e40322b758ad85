from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

ROLE_ADMIN = "admin"
ROLE_ENTITY = "entity"
ROLE_USER = "user"

ROLES = (ROLE_ADMIN, ROLE_ENTITY, ROLE_USER)


@dataclass(frozen=True)
class AdminAccount:
    id: int
    display_name: str
    email: str
    password_hash: str
    access_level: str
    created_at: str
    phone: Optional[str] = None

    role = ROLE_ADMIN

    @property
    def entity_id(self) -> None:
        return None


@dataclass(frozen=True)
class EntityUserAccount:
    id: int
    display_name: str
    email: str
    password_hash: str
    # From the entity whose email equals this user's email, if any.
    entity_id: Optional[int] = None
    entity_name: Optional[str] = None

    role = ROLE_ENTITY


Account = Union[AdminAccount, EntityUserAccount]


@dataclass(frozen=True)
class Profile:
    """What a successful login tells the client about who signed in."""

    id: int
    name: str
    email: str
    role: str
    entity_id: Optional[int]

    @classmethod
    def from_account(cls, account: Account) -> "Profile":
        return cls(
            id=int(account.id),
            name=account.display_name,
            email=account.email,
            role=account.role,
            entity_id=account.entity_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "entity_id": self.entity_id,
        }
