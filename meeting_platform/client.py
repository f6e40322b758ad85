"""HTTP client for the meeting platform API.

The logged-in state lives in a `Session` object that the caller holds and
passes to every call; the client itself keeps no token.

    api = ApiClient("http://localhost:3000")
    session = api.login("admin@example.com", "secret")
    api.me(session)
    api.logout(session)

A 401 from a protected route means the token is no longer accepted: the
session is cleared and SessionInvalid is raised so the caller can log in
again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests


class ApiError(RuntimeError):
    def __init__(self, status_code: int, error: str):
        super().__init__(f"API error {status_code}: {error}")
        self.status_code = int(status_code)
        self.error = error


class SessionInvalid(ApiError):
    """The server rejected the session token; log in again."""


@dataclass
class Session:
    token: Optional[str] = None
    user: Dict[str, Any] = field(default_factory=dict)

    @property
    def active(self) -> bool:
        return bool(self.token)

    @property
    def role(self) -> Optional[str]:
        return self.user.get("role")

    def auth_headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def clear(self) -> None:
        self.token = None
        self.user = {}


def _error_text(r: Any) -> str:
    try:
        body = r.json()
    except ValueError:
        return r.text or ""
    if isinstance(body, dict) and body.get("error") is not None:
        return str(body["error"])
    return str(body)


class ApiClient:
    def __init__(self, base_url: str, *, http: Any = None, timeout: float = 30):
        self.base_url = (base_url or "").rstrip("/")
        # Anything with requests' request(method, url, json=, headers=, timeout=) works.
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout

    def _send(self, method: str, path: str, *, json: Any = None, headers: Optional[Dict[str, str]] = None) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        return self.http.request(method, url, json=json, headers=headers or {}, timeout=self.timeout)

    def request(
        self,
        method: str,
        path: str,
        *,
        session: Optional[Session] = None,
        json: Any = None,
    ) -> Any:
        """Call a route, with the session's bearer token when one is given."""
        headers = session.auth_headers() if session is not None else {}
        r = self._send(method, path, json=json, headers=headers)
        if r.status_code == 401 and session is not None:
            session.clear()
            raise SessionInvalid(401, _error_text(r))
        if r.status_code >= 400:
            raise ApiError(r.status_code, _error_text(r))
        return r.json() if r.content else None

    # -----------------------------
    # Auth
    # -----------------------------

    def login(self, email: str, password: str) -> Session:
        r = self._send("POST", "/auth/login", json={"email": email, "password": password})
        if r.status_code != 200:
            raise ApiError(r.status_code, _error_text(r))
        body = r.json()
        return Session(token=body["token"], user=dict(body.get("user") or {}))

    def logout(self, session: Session) -> None:
        # Tokens are stateless; logging out only forgets them.
        session.clear()

    def register_admin(
        self,
        *,
        name: str,
        email: str,
        password: str,
        phone: Optional[str] = None,
        access_level: str = "admin",
    ) -> Dict[str, Any]:
        body = self.request(
            "POST",
            "/auth/register-admin",
            json={
                "nome": name,
                "email": email,
                "celular": phone,
                "senha": password,
                "tipo_acesso": access_level,
            },
        )
        return body["user"]

    def me(self, session: Session) -> Dict[str, Any]:
        return self.request("GET", "/auth/me", session=session)["user"]

    # -----------------------------
    # Entities
    # -----------------------------

    def list_entities(self, session: Session) -> Any:
        return self.request("GET", "/entities", session=session)

    def get_entity(self, session: Session, entity_id: int) -> Dict[str, Any]:
        return self.request("GET", f"/entities/{int(entity_id)}", session=session)

    def create_entity(self, session: Session, entity: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", "/entities", session=session, json=entity)["empresa"]
