from __future__ import annotations

from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from meeting_platform.api.server import create_app
from meeting_platform.auth.crud import create_admin, create_entity_user
from meeting_platform.config import Config
from meeting_platform.db import connect, init_db
from meeting_platform.entities import create_entity_with_user

SECRET = "test-signing-secret"

ADMIN_EMAIL = "admin@sistema.com"
ADMIN_PASSWORD = "admin123"
ENTITY_EMAIL = "contato@acme.com.br"
ENTITY_PASSWORD = "entidade123"


@pytest.fixture
def cfg(tmp_path) -> Config:
    c = Config(
        DB_DSN=str(tmp_path / "meetings.sqlite"),
        AUTH_JWT_SECRET=SECRET,
        AUTH_BOOTSTRAP_ADMIN_EMAIL="",
        AUTH_BOOTSTRAP_ADMIN_PASSWORD="",
        CORS_ALLOW_ORIGINS="",
    )
    init_db(c.DB_DSN)
    return c


@pytest.fixture
def admin(cfg):
    with connect(cfg.DB_DSN) as conn:
        return create_admin(
            conn,
            display_name="Administrador do Sistema",
            email=ADMIN_EMAIL,
            password=ADMIN_PASSWORD,
            phone="11999990000",
            access_level="admin",
        )


@pytest.fixture
def entity(cfg):
    """An entity signed up with a login whose email equals the entity's."""
    with connect(cfg.DB_DSN) as conn:
        return create_entity_with_user(
            conn,
            {"nome": "Acme Ltda", "email": ENTITY_EMAIL, "cnpj": "12.345.678/0001-90", "cidade": "Recife", "uf": "PE"},
            user_name="Usuário da Entidade",
            user_email=ENTITY_EMAIL,
            user_password=ENTITY_PASSWORD,
        )


@pytest.fixture
def orphan_user(cfg):
    """An entity user whose email matches no entity."""
    with connect(cfg.DB_DSN) as conn:
        return create_entity_user(
            conn,
            display_name="Sem Empresa",
            email="solto@example.com",
            password="orphan-pass",
        )


@pytest.fixture
def client(cfg):
    with TestClient(create_app(cfg)) as c:
        yield c


@pytest.fixture
def no_secret_cfg(cfg) -> Config:
    return replace(cfg, AUTH_JWT_SECRET="")


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
