from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from meeting_platform import __version__
from meeting_platform.config import Config, load_config
from meeting_platform.db import connect, init_db, is_unique_violation
from meeting_platform.entities import (
    create_entity_with_user,
    delete_entity,
    get_entity,
    list_entities,
    update_entity,
)

from meeting_platform.auth import (
    AuthFailure,
    authenticate,
    bootstrap_admin_if_needed,
    create_admin,
    get_current_user,
    require_admin,
    require_entity_access,
)


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


# -----------------------------
# Request bodies
# -----------------------------


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterAdminRequest(BaseModel):
    nome: str
    email: str
    senha: str
    celular: Optional[str] = None
    tipo_acesso: str = "admin"


class EntityRequest(BaseModel):
    nome: str
    email: Optional[str] = None
    cnpj: Optional[str] = None
    telefone1: Optional[str] = None
    celular1: Optional[str] = None
    cep: Optional[str] = None
    logradouro: Optional[str] = None
    numero: Optional[str] = None
    complemento: Optional[str] = None
    bairro: Optional[str] = None
    cidade: Optional[str] = None
    uf: Optional[str] = None


class EntitySignupRequest(EntityRequest):
    usuario_nome: str
    usuario_email: str
    usuario_senha: str


_ENTITY_KEYS = tuple(EntityRequest.model_fields)


def _entity_data(payload: EntityRequest) -> Dict[str, Any]:
    data = payload.model_dump()
    return {k: data.get(k) for k in _ENTITY_KEYS}


def _bad_request(e: ValueError) -> HTTPException:
    return HTTPException(status_code=400, detail=str(e))


# -----------------------------
# App
# -----------------------------


def create_app(cfg: Optional[Config] = None) -> FastAPI:
    cfg = cfg or load_config()
    app = FastAPI(title="Meeting Platform", version=__version__)
    # Auth deps read the config from here.
    app.state.cfg = cfg

    # CORS is mainly needed for local development (dashboard dev server -> API).
    cors_origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.on_event("startup")
    def _on_startup() -> None:
        init_db(cfg.DB_DSN)

        if not cfg.AUTH_JWT_SECRET:
            _debug("AUTH_JWT_SECRET is not set; every login will fail until it is")

        boot = bootstrap_admin_if_needed(cfg)
        if boot:
            _debug(f"Bootstrapped initial admin account: email={boot.get('email')}")

    # -----------------------------
    # Error rendering: {"error": ...}
    # -----------------------------

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields: List[str] = []
        for err in exc.errors():
            loc = [str(p) for p in err.get("loc", ()) if p != "body"]
            if loc:
                fields.append(".".join(loc))
        return JSONResponse(status_code=400, content={"error": "validation_error", "fields": fields})

    @app.exception_handler(Exception)
    async def _internal_error(request: Request, exc: Exception) -> JSONResponse:
        _debug(f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}: {exc}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    # -----------------------------
    # Health
    # -----------------------------

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok"}

    # -----------------------------
    # Auth
    # -----------------------------

    @app.post("/auth/login")
    def auth_login(payload: LoginRequest) -> Dict[str, Any]:
        try:
            result = authenticate(cfg, payload.email, payload.password)
        except AuthFailure as e:
            # One response for every cause of failure.
            raise HTTPException(
                status_code=401,
                detail=AuthFailure.public_message,
                headers={"WWW-Authenticate": "Bearer"},
            ) from e
        return {"token": result["token"], "token_type": "bearer", "user": result["user"]}

    @app.post("/auth/register-admin", status_code=201)
    def auth_register_admin(payload: RegisterAdminRequest) -> Dict[str, Any]:
        try:
            with connect(cfg.DB_DSN) as conn:
                user = create_admin(
                    conn,
                    display_name=payload.nome,
                    email=payload.email,
                    phone=payload.celular,
                    password=payload.senha,
                    access_level=payload.tipo_acesso,
                )
        except ValueError as e:
            raise _bad_request(e)
        except Exception as e:
            if is_unique_violation(e):
                raise HTTPException(status_code=409, detail="email_exists")
            raise
        return {"message": "Admin user created", "user": user}

    @app.get("/auth/me")
    def auth_me(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        return {"user": user}

    # -----------------------------
    # Entities
    # -----------------------------

    @app.get("/entities")
    def entities_list(_admin: Dict[str, Any] = Depends(require_admin)) -> List[Dict[str, Any]]:
        with connect(cfg.DB_DSN) as conn:
            return list_entities(conn)

    @app.post("/entities", status_code=201)
    def entities_create(
        payload: EntitySignupRequest,
        _admin: Dict[str, Any] = Depends(require_admin),
    ) -> Dict[str, Any]:
        try:
            with connect(cfg.DB_DSN) as conn:
                entity = create_entity_with_user(
                    conn,
                    _entity_data(payload),
                    user_name=payload.usuario_nome,
                    user_email=payload.usuario_email,
                    user_password=payload.usuario_senha,
                )
        except ValueError as e:
            raise _bad_request(e)
        except Exception as e:
            if is_unique_violation(e):
                raise HTTPException(status_code=409, detail="email_exists")
            raise
        return {"message": "Entity and user created", "empresa": entity}

    @app.get("/entities/{entity_id}")
    def entities_get(
        entity_id: int,
        _user: Dict[str, Any] = Depends(require_entity_access),
    ) -> Dict[str, Any]:
        with connect(cfg.DB_DSN) as conn:
            entity = get_entity(conn, entity_id)
        if entity is None:
            raise HTTPException(status_code=404, detail="entity_not_found")
        return entity

    @app.put("/entities/{entity_id}")
    def entities_update(
        entity_id: int,
        payload: EntityRequest,
        _admin: Dict[str, Any] = Depends(require_admin),
    ) -> Dict[str, Any]:
        try:
            with connect(cfg.DB_DSN) as conn:
                entity = update_entity(conn, entity_id, _entity_data(payload))
        except ValueError as e:
            raise _bad_request(e)
        if entity is None:
            raise HTTPException(status_code=404, detail="entity_not_found")
        return entity

    @app.delete("/entities/{entity_id}")
    def entities_delete(
        entity_id: int,
        _admin: Dict[str, Any] = Depends(require_admin),
    ) -> Dict[str, Any]:
        with connect(cfg.DB_DSN) as conn:
            deleted = delete_entity(conn, entity_id)
        if not deleted:
            raise HTTPException(status_code=404, detail="entity_not_found")
        return {"message": "Entity deleted"}

    return app


app = create_app()
