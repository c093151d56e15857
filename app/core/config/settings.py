"""Application settings loaded from environment with safe fallbacks.

Environment precedence:
- Loads `.env` from the repo root before reading process env vars.
- Most values are pulled straight from env; booleans go through `_env_flag` so `"0"/"false"` work.
- CORS is normalized from `CORS_ORIGINS` (comma-separated) with a conservative default allowlist.

Key expectations (defaults in parentheses):
- `APP_ENV` controls settings class selection (`production` default).
- Database: `DATABASE_URL` or component parts (`DATABASE_*`), with `_test` suffix enforced in tests.
- Ledger: `LEDGER_ENABLED` (false), `LEDGER_URL`, `LEDGER_TIMEOUT_SECONDS` (5),
  `LEDGER_CORROBORATION` (false) makes retrieval require a matching ledger hash.
- Uploads: `MAX_UPLOAD_BYTES` (50 MiB), `THUMBNAIL_SIZE` (300), `FALLBACK_IMAGES_DIR`.
- TLS/hosts: `ALLOWED_HOSTS` (JSON or comma list), `FORCE_HTTPS` (true in production if unset).
"""

import json
import logging
import os
from pathlib import Path
from typing import ClassVar, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# (__file__ is app/core/config/settings.py, so we need to traverse three levels up)
BASE_DIR = Path(__file__).resolve().parents[3]


load_dotenv(BASE_DIR / ".env")

logger = logging.getLogger(__name__)


def _env_flag(name: str, *, default: Optional[bool] = False) -> Optional[bool]:
    """
    Helper to parse boolean-like environment variables.
    """
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Behavior highlights:
    - Loads `.env` at repo root, then lets process env override.
    - Enforces safe DB URLs (prefers `DATABASE_URL`, ensures `_test` suffix for test DBs).
    - Ledger attestation is optional; when disabled every ledger call reports `disabled`.
    - CORS/hosts normalized once to avoid mutation side effects in settings instances.
    """

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: Optional[str] = os.getenv("DATABASE_URL")
    test_database_url: Optional[str] = os.getenv("TEST_DATABASE_URL")
    database_hostname: Optional[str] = os.getenv("DATABASE_HOSTNAME")
    database_port: str = os.getenv("DATABASE_PORT", "5432")
    database_password: Optional[str] = os.getenv("DATABASE_PASSWORD")
    database_name: Optional[str] = os.getenv("DATABASE_NAME")
    database_username: Optional[str] = os.getenv("DATABASE_USERNAME")
    database_ssl_mode: str = os.getenv("DATABASE_SSL_MODE", "require")
    environment: str = os.getenv("APP_ENV", "production")
    force_https: bool = False
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_dir: str = os.getenv("LOG_DIR", "logs")
    use_json_logs: bool = _env_flag("USE_JSON_LOGS", default=True)
    # Accept raw string from env to avoid JSON parse errors; we normalize to list in __init__
    allowed_hosts: Optional[str] = os.getenv("ALLOWED_HOSTS")
    cors_origins: list[str] = []
    SITE_NAME: str = os.getenv("SITE_NAME", "Academic Materials Service")

    ledger_enabled: bool = bool(_env_flag("LEDGER_ENABLED", default=False))
    ledger_url: str = os.getenv("LEDGER_URL", "http://localhost:8545")
    ledger_api_key: Optional[str] = os.getenv("LEDGER_API_KEY")
    ledger_timeout_seconds: float = float(os.getenv("LEDGER_TIMEOUT_SECONDS", "5"))
    ledger_corroboration: bool = bool(_env_flag("LEDGER_CORROBORATION", default=False))

    max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", 50 * 1024 * 1024))
    thumbnail_size: int = int(os.getenv("THUMBNAIL_SIZE", 300))
    fallback_images_dir: str = os.getenv(
        "FALLBACK_IMAGES_DIR", str(BASE_DIR / "static" / "material_images")
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        env_override = os.getenv("APP_ENV")
        if env_override:
            object.__setattr__(self, "environment", env_override)

        cors_env = os.getenv("CORS_ORIGINS")
        if cors_env:
            origins = [
                origin.strip() for origin in cors_env.split(",") if origin.strip()
            ]
        elif self.cors_origins:
            origins = self.cors_origins
        else:
            origins = [
                "http://localhost:4000",
                "http://localhost:4001",
            ]
        object.__setattr__(self, "cors_origins", origins)

        hosts_raw = self.allowed_hosts or os.getenv("ALLOWED_HOSTS", "")
        hosts: list[str]
        if hosts_raw:
            try:
                hosts = [h.strip() for h in json.loads(hosts_raw)]
            except Exception:
                hosts = [h.strip() for h in str(hosts_raw).split(",") if h.strip()]
        else:
            hosts = ["localhost", "127.0.0.1", "testserver"]
        # Only force-add testserver when running tests to keep prod lists intact.
        if self.environment.lower() == "test" and "testserver" not in hosts:
            hosts.append("testserver")
        object.__setattr__(self, "allowed_hosts", hosts)

        env_force_https = os.getenv("FORCE_HTTPS")
        if self.environment.lower() == "production":
            if env_force_https is None or env_force_https.strip() == "":
                object.__setattr__(self, "force_https", True)
            else:
                lowered = env_force_https.lower()
                object.__setattr__(
                    self,
                    "force_https",
                    lowered not in {"0", "false", "no", "off"},
                )

        if self.ledger_corroboration and not self.ledger_enabled:
            logger.warning(
                "LEDGER_CORROBORATION is set but LEDGER_ENABLED is off; "
                "retrievals will be denied until the ledger is enabled."
            )

    def get_database_url(self, *, use_test: bool = False) -> str:
        """Resolve the SQLAlchemy database URL for runtime or tests.

        Priority: explicit `DATABASE_URL` (or `_test` variant when requested),
        then composed Postgres parts, then `TEST_DATABASE_URL`.
        Enforces dedicated test DB names to avoid destructive writes to prod data.
        """
        if use_test:
            test_url = self._resolve_test_database_url()
            if test_url.startswith("sqlite"):
                return test_url
            if "_test" not in test_url:
                raise ValueError(
                    "Test database URL must point to a dedicated test database (contains '_test')."
                )
            return test_url

        if self.database_url:
            return self.database_url

        if (
            self.database_hostname
            and self.database_username
            and self.database_password
            and self.database_name
        ):
            base_url = (
                f"postgresql+psycopg2://{self.database_username}:{self.database_password}"
                f"@{self.database_hostname}:{self.database_port}/{self.database_name}"
            )
            if self.database_ssl_mode:
                return f"{base_url}?sslmode={self.database_ssl_mode}"
            return base_url

        if self.test_database_url:
            return self.test_database_url

        raise ValueError(
            "Database configuration is incomplete; please set DATABASE_URL or the individual components."
        )

    def _resolve_test_database_url(self) -> str:
        """
        Build a test database URL.
        Priority:
        1) Explicit TEST_DATABASE_URL env.
        2) Derive from DATABASE_URL with a *_test suffix (or reuse sqlite).
        3) Derive from Postgres components with a *_test suffix.
        4) Fallback to sqlite for ad-hoc local runs.
        """
        if self.test_database_url:
            return self.test_database_url

        if self.database_url:
            from sqlalchemy.engine import make_url

            url = make_url(self.database_url)
            if url.drivername.startswith("sqlite"):
                return str(url)
            db_name = url.database or ""
            suffix_name = db_name if db_name.endswith("_test") else f"{db_name}_test"
            return url.set(database=suffix_name).render_as_string(hide_password=False)

        if (
            self.database_hostname
            and self.database_username
            and self.database_password
            and self.database_name
        ):
            test_db_name = f"{self.database_name}_test"
            base_url = (
                f"postgresql+psycopg2://{self.database_username}:{self.database_password}"
                f"@{self.database_hostname}:{self.database_port}/{test_db_name}"
            )
            if self.database_ssl_mode:
                return f"{base_url}?sslmode={self.database_ssl_mode}"
            return base_url

        return "sqlite:///./test.db"

    @property
    def fallback_images_path(self) -> Path:
        return Path(self.fallback_images_dir)
