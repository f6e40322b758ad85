from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

from fastapi.testclient import TestClient

from meeting_platform.api.server import create_app
from meeting_platform.auth.security import create_access_token
from meeting_platform.db import connect
from meeting_platform.util.time import utcnow

from tests.conftest import (
    ADMIN_EMAIL,
    ADMIN_PASSWORD,
    ENTITY_EMAIL,
    ENTITY_PASSWORD,
    SECRET,
    bearer,
)


def _login(client, email, password):
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["token"]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


# -----------------------------
# Login
# -----------------------------


def test_login_admin(client, admin):
    r = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})

    assert r.status_code == 200
    body = r.json()
    assert body["token_type"] == "bearer"
    assert body["user"] == {
        "id": admin["id"],
        "name": "Administrador do Sistema",
        "email": ADMIN_EMAIL,
        "role": "admin",
        "entity_id": None,
    }


def test_login_entity(client, entity):
    r = client.post("/auth/login", json={"email": ENTITY_EMAIL, "password": ENTITY_PASSWORD})

    assert r.status_code == 200
    assert r.json()["user"]["role"] == "entity"
    assert r.json()["user"]["entity_id"] == entity["id"]


def test_failed_logins_look_identical(client, cfg, admin):
    unknown = client.post("/auth/login", json={"email": "nobody@example.com", "password": "x"})
    wrong_pw = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": "x"})

    with connect(cfg.DB_DSN) as conn:
        conn.execute("DROP TABLE entity_users")
    store_down = client.post("/auth/login", json={"email": "nobody@example.com", "password": "x"})

    for r in (unknown, wrong_pw, store_down):
        assert r.status_code == 401
        assert r.json() == {"error": "Invalid credentials"}


def test_login_without_secret_is_internal_error(no_secret_cfg, admin):
    with TestClient(create_app(no_secret_cfg), raise_server_exceptions=False) as c:
        r = c.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})

    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error"}


def test_login_body_is_validated(client):
    r = client.post("/auth/login", json={"email": ADMIN_EMAIL})

    assert r.status_code == 400
    assert r.json() == {"error": "validation_error", "fields": ["password"]}


# -----------------------------
# Admin registration
# -----------------------------


def test_register_admin(client, cfg):
    r = client.post(
        "/auth/register-admin",
        json={
            "nome": "Maria Souza",
            "email": "maria@example.com",
            "celular": "81988887777",
            "senha": "maria-pass",
            "tipo_acesso": "master",
        },
    )

    assert r.status_code == 201
    body = r.json()
    assert body["message"]
    user = body["user"]
    assert set(user) == {"id", "nome", "email", "celular", "tipo_acesso", "created_at"}
    assert user["nome"] == "Maria Souza"
    assert user["tipo_acesso"] == "master"

    with connect(cfg.DB_DSN) as conn:
        stored = conn.execute("SELECT password_hash FROM admin_accounts WHERE id=?", (user["id"],)).fetchone()
    assert stored["password_hash"] != "maria-pass"

    # The new account can log in right away.
    _login(client, "maria@example.com", "maria-pass")


def test_register_admin_duplicate_email(client, admin):
    r = client.post(
        "/auth/register-admin",
        json={"nome": "Outro", "email": ADMIN_EMAIL, "senha": "x1"},
    )
    assert r.status_code == 409
    assert r.json() == {"error": "email_exists"}


def test_register_admin_rejects_blank_fields(client):
    r = client.post("/auth/register-admin", json={"nome": "Sem Senha", "email": "a@b.com", "senha": ""})
    assert r.status_code == 400
    assert r.json() == {"error": "password_blank"}

    r = client.post("/auth/register-admin", json={"nome": " ", "email": "a@b.com", "senha": "x"})
    assert r.status_code == 400
    assert r.json() == {"error": "name_blank"}


def test_register_admin_missing_fields(client):
    r = client.post("/auth/register-admin", json={"email": "a@b.com"})
    assert r.status_code == 400
    assert sorted(r.json()["fields"]) == ["nome", "senha"]


# -----------------------------
# Bearer verification
# -----------------------------


def test_me_returns_token_identity(client, entity):
    token = _login(client, ENTITY_EMAIL, ENTITY_PASSWORD)

    r = client.get("/auth/me", headers=bearer(token))

    assert r.status_code == 200
    user = r.json()["user"]
    assert user["email"] == ENTITY_EMAIL
    assert user["role"] == "entity"
    assert user["entity_id"] == entity["id"]
    assert user["is_admin"] is False


def test_me_without_token(client):
    r = client.get("/auth/me")
    assert r.status_code == 401
    assert r.json() == {"error": "missing_token"}
    assert r.headers["www-authenticate"] == "Bearer"


def test_me_with_expired_token(client, admin):
    token = create_access_token(
        secret=SECRET,
        user_id=admin["id"],
        email=ADMIN_EMAIL,
        role="admin",
        entity_id=None,
        now=utcnow() - timedelta(hours=25),
    )
    r = client.get("/auth/me", headers=bearer(token))
    assert r.status_code == 401
    assert r.json() == {"error": "token_expired"}


def test_me_with_forged_token(client, admin):
    token = create_access_token(
        secret="not-the-server-secret",
        user_id=admin["id"],
        email=ADMIN_EMAIL,
        role="admin",
        entity_id=None,
    )
    r = client.get("/auth/me", headers=bearer(token))
    assert r.status_code == 401
    assert r.json() == {"error": "token_invalid"}


def test_me_with_garbage_token(client):
    r = client.get("/auth/me", headers=bearer("definitely.not.a-jwt"))
    assert r.status_code == 401
    assert r.json() == {"error": "token_invalid"}


# -----------------------------
# Entities
# -----------------------------

SIGNUP = {
    "nome": "Beta Serviços",
    "email": "contato@beta.com",
    "cnpj": "98.765.432/0001-10",
    "cidade": "Olinda",
    "uf": "PE",
    "usuario_nome": "Gestor Beta",
    "usuario_email": "gestor@beta.com",
    "usuario_senha": "beta-pass",
}


def test_entity_signup_then_entity_login(client, admin):
    admin_token = _login(client, ADMIN_EMAIL, ADMIN_PASSWORD)

    r = client.post("/entities", json=SIGNUP, headers=bearer(admin_token))

    assert r.status_code == 201
    empresa = r.json()["empresa"]
    assert empresa["nome"] == "Beta Serviços"
    assert empresa["email"] == "contato@beta.com"
    assert empresa["cidade"] == "Olinda"

    # The login email differs from the entity email, so there is no entity.
    r = client.post("/auth/login", json={"email": "gestor@beta.com", "password": "beta-pass"})
    assert r.status_code == 200
    assert r.json()["user"]["entity_id"] is None


def test_entity_signup_with_matching_email_resolves_entity(client, admin):
    admin_token = _login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    body = {**SIGNUP, "usuario_email": "contato@beta.com"}

    empresa = client.post("/entities", json=body, headers=bearer(admin_token)).json()["empresa"]

    r = client.post("/auth/login", json={"email": "contato@beta.com", "password": "beta-pass"})
    assert r.status_code == 200
    assert r.json()["user"]["entity_id"] == empresa["id"]


def test_entity_email_change_follows_the_login(client, admin):
    admin_token = _login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    body = {**SIGNUP, "usuario_email": "contato@beta.com"}
    empresa = client.post("/entities", json=body, headers=bearer(admin_token)).json()["empresa"]
    login = {"email": "contato@beta.com", "password": "beta-pass"}

    update = {"nome": SIGNUP["nome"], "email": "novo@beta.com"}
    assert client.put(f"/entities/{empresa['id']}", json=update, headers=bearer(admin_token)).status_code == 200
    r = client.post("/auth/login", json=login)
    assert r.status_code == 200
    assert r.json()["user"]["entity_id"] is None

    update["email"] = "contato@beta.com"
    assert client.put(f"/entities/{empresa['id']}", json=update, headers=bearer(admin_token)).status_code == 200
    r = client.post("/auth/login", json=login)
    assert r.json()["user"]["entity_id"] == empresa["id"]


def test_entity_signup_with_taken_login_email(client, cfg, admin):
    admin_token = _login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    assert client.post("/entities", json=SIGNUP, headers=bearer(admin_token)).status_code == 201

    second = {**SIGNUP, "nome": "Beta Filial", "email": "filial@beta.com", "usuario_senha": "other-pass"}
    r = client.post("/entities", json=second, headers=bearer(admin_token))

    assert r.status_code == 409
    assert r.json() == {"error": "email_exists"}
    with connect(cfg.DB_DSN) as conn:
        assert conn.execute("SELECT COUNT(*) AS n FROM entities").fetchone()["n"] == 1
    r = client.post("/auth/login", json={"email": "gestor@beta.com", "password": "beta-pass"})
    assert r.status_code == 200


def test_entity_signup_requires_admin(client, entity):
    entity_token = _login(client, ENTITY_EMAIL, ENTITY_PASSWORD)

    assert client.post("/entities", json=SIGNUP).status_code == 401
    r = client.post("/entities", json=SIGNUP, headers=bearer(entity_token))
    assert r.status_code == 403
    assert r.json() == {"error": "admin_required"}


def test_entity_signup_is_atomic(client, cfg, admin):
    admin_token = _login(client, ADMIN_EMAIL, ADMIN_PASSWORD)

    r = client.post("/entities", json={**SIGNUP, "usuario_senha": ""}, headers=bearer(admin_token))

    assert r.status_code == 400
    assert r.json() == {"error": "password_blank"}
    with connect(cfg.DB_DSN) as conn:
        assert conn.execute("SELECT COUNT(*) AS n FROM entities").fetchone()["n"] == 0


def test_entity_visibility(client, admin, entity):
    admin_token = _login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    entity_token = _login(client, ENTITY_EMAIL, ENTITY_PASSWORD)
    other = client.post("/entities", json=SIGNUP, headers=bearer(admin_token)).json()["empresa"]

    listed = client.get("/entities", headers=bearer(admin_token)).json()
    assert [e["id"] for e in listed] == [other["id"], entity["id"]]

    assert client.get(f"/entities/{entity['id']}", headers=bearer(entity_token)).status_code == 200
    r = client.get(f"/entities/{other['id']}", headers=bearer(entity_token))
    assert r.status_code == 403
    assert client.get("/entities", headers=bearer(entity_token)).status_code == 403
    assert client.get("/entities/9999", headers=bearer(admin_token)).status_code == 404


def test_entity_update_and_delete(client, cfg, admin, entity):
    admin_token = _login(client, ADMIN_EMAIL, ADMIN_PASSWORD)

    r = client.put(
        f"/entities/{entity['id']}",
        json={"nome": "Acme S.A.", "email": ENTITY_EMAIL, "cidade": "Recife", "uf": "PE"},
        headers=bearer(admin_token),
    )
    assert r.status_code == 200
    assert r.json()["nome"] == "Acme S.A."
    assert client.put("/entities/9999", json={"nome": "x"}, headers=bearer(admin_token)).status_code == 404

    r = client.delete(f"/entities/{entity['id']}", headers=bearer(admin_token))
    assert r.status_code == 200
    assert client.delete(f"/entities/{entity['id']}", headers=bearer(admin_token)).status_code == 404

    # The entity's login survives, now without an entity.
    r = client.post("/auth/login", json={"email": ENTITY_EMAIL, "password": ENTITY_PASSWORD})
    assert r.status_code == 200
    assert r.json()["user"]["entity_id"] is None


def test_bootstrap_admin(cfg):
    boot_cfg = replace(
        cfg,
        AUTH_BOOTSTRAP_ADMIN_EMAIL=" root@example.com ",
        AUTH_BOOTSTRAP_ADMIN_PASSWORD="root-pass",
    )
    with TestClient(create_app(boot_cfg)) as c:
        _login(c, "root@example.com", "root-pass")

    # Only runs while admin_accounts is empty.
    again = replace(boot_cfg, AUTH_BOOTSTRAP_ADMIN_EMAIL="other@example.com")
    with TestClient(create_app(again)) as c:
        r = c.post("/auth/login", json={"email": "other@example.com", "password": "root-pass"})
        assert r.status_code == 401
