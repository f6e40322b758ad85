import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load a local .env file if present (no-op otherwise).
load_dotenv()


def _env_str(*names: str, default: str = "") -> str:
    for name in names:
        v = os.environ.get(name)
        if v is not None and v.strip():
            return v.strip()
    return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    IMPORTANT: Provide secrets via environment variables or a .env file.
    Do not hardcode secrets in source code.
    """

    # -----------------
    # Core
    # -----------------
    # Preferred: set MEETING_DATABASE_URL (or DATABASE_URL) to use Postgres.
    # Fallback: MEETING_DB_PATH for SQLite.
    DB_DSN: str = _env_str(
        "MEETING_DATABASE_URL",
        "DATABASE_URL",
        "MEETING_DB_PATH",
        default="./meeting_platform.sqlite",
    )

    # -----------------
    # Auth (JWT)
    # -----------------
    # No fallback value: token issuance fails while this is unset.
    AUTH_JWT_SECRET: str = _env_str("AUTH_JWT_SECRET", "JWT_SECRET")

    # Bootstrap first admin account if admin_accounts is empty.
    # Nothing is created unless both email and password are set.
    AUTH_BOOTSTRAP_ADMIN_EMAIL: str = _env_str("AUTH_BOOTSTRAP_ADMIN_EMAIL")
    AUTH_BOOTSTRAP_ADMIN_PASSWORD: str = _env_str("AUTH_BOOTSTRAP_ADMIN_PASSWORD")
    AUTH_BOOTSTRAP_ADMIN_NAME: str = _env_str("AUTH_BOOTSTRAP_ADMIN_NAME", default="Administrador do Sistema")

    # -----------------
    # CORS (development)
    # -----------------
    # The dashboard dev server runs on its own port; in production (same origin
    # behind a reverse proxy) CORS is not required.
    CORS_ALLOW_ORIGINS: str = os.environ.get(
        "CORS_ALLOW_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:8080",
    )


def load_config() -> Config:
    return Config()
