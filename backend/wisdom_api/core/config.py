from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger("wisdom_api.core.config")

# backend/ directory; .env files are looked up here
_PROJECT_ROOT = Path(__file__).parent.parent.parent
_ENV_LOCAL = _PROJECT_ROOT / ".env.local"
_ENV_FILE = _PROJECT_ROOT / ".env"

# Existing environment variables win over file values (CI/CD, containers)
if _ENV_LOCAL.exists():
    load_dotenv(_ENV_LOCAL, override=False)
    log.info("[config] Loaded .env.local from %s", _ENV_LOCAL)
if _ENV_FILE.exists():
    load_dotenv(_ENV_FILE, override=False)
    log.info("[config] Loaded .env from %s", _ENV_FILE)

_PROD_ENVS = {"prod", "production", "stage", "staging"}
_DEV_ENVS = {"dev", "development", "local", "test", "testing"}

MIN_SECRET_KEY_LENGTH = 16
MIN_BCRYPT_ROUNDS = 10


class Settings(BaseSettings):
    # --- Core Infrastructure ---
    APP_ENV: str = Field(
        default="dev",
        validation_alias=AliasChoices("APP_ENV", "ENV", "PYTHON_ENV"),
    )
    DATABASE_URL: str = ""
    SECRET_KEY: str = ""  # Used for signing session tokens
    PORT: int = 8080
    # Proxies whose X-Forwarded-For uvicorn trusts when resolving the client address
    FORWARDED_ALLOW_IPS: str = "127.0.0.1"

    # --- Database pool ---
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 180
    DB_POOL_TIMEOUT: int = 30

    # --- Stripe Billing ---
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_WEBHOOK_TOLERANCE: int = 300
    DEFAULT_CURRENCY: str = "usd"

    # --- SMTP ---
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASS: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SMTP_PASS", "SMTP_PASSWORD"),
    )
    SMTP_FROM: str = "no-reply@wisdomhub.app"
    SMTP_FROM_NAME: str = "Wisdom Hub"

    # --- Application Behavior ---
    ADMIN_EMAIL: str = ""
    APP_BASE_URL: str = "https://wisdomhub.app"
    CORS_ALLOWED_ORIGINS: str = "http://127.0.0.1:5173,http://localhost:5173"
    SENTRY_DSN: Optional[str] = None

    # --- Auth ---
    ALGORITHM: str = "HS256"
    BCRYPT_ROUNDS: int = 12

    model_config = SettingsConfigDict(
        env_file=(str(_ENV_LOCAL), str(_ENV_FILE)),
        extra="ignore",
    )

    @property
    def is_dev_mode(self) -> bool:
        env = (self.APP_ENV or "dev").strip().lower()
        return env in _DEV_ENVS

    @property
    def is_production(self) -> bool:
        return (self.APP_ENV or "").strip().lower() in _PROD_ENVS

    @property
    def cors_allowed_origin_list(self) -> list[str]:
        raw = (self.CORS_ALLOWED_ORIGINS or "").replace(";", ",")
        seen: set[str] = set()
        merged: list[str] = []
        for origin in raw.split(","):
            cleaned = origin.strip().rstrip("/")
            if cleaned and cleaned not in seen:
                seen.add(cleaned)
                merged.append(cleaned)
        return merged

    @field_validator("DATABASE_URL")
    @classmethod
    def _normalize_database_url(cls, value: str) -> str:
        value = (value or "").strip()
        # Heroku/Render style URLs use the legacy scheme and no driver
        if value.startswith("postgres://"):
            value = "postgresql+psycopg://" + value[len("postgres://"):]
        elif value.startswith("postgresql://"):
            value = "postgresql+psycopg://" + value[len("postgresql://"):]
        return value

    @model_validator(mode="after")
    def _validate_required(self):
        if not self.DATABASE_URL:
            raise ValueError("DATABASE_URL must be configured")
        if len(self.SECRET_KEY or "") < MIN_SECRET_KEY_LENGTH:
            raise ValueError(
                f"SECRET_KEY must be configured (at least {MIN_SECRET_KEY_LENGTH} characters)"
            )
        if self.BCRYPT_ROUNDS < MIN_BCRYPT_ROUNDS:
            raise ValueError(f"BCRYPT_ROUNDS must be at least {MIN_BCRYPT_ROUNDS}")

        # Surface optional secrets that default to blanks so operators know what's absent.
        optional_keys = ["STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "SMTP_HOST"]
        missing_optional = [key for key in optional_keys if not (getattr(self, key) or "").strip()]
        if missing_optional:
            log.warning(
                "Missing optional settings%s: %s",
                " (dev allowed)" if self.is_dev_mode else "",
                ", ".join(sorted(missing_optional)),
            )
        return self


# Process-wide settings; construction errors abort startup.
settings = Settings()
