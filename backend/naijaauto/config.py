from __future__ import annotations

import os
from dataclasses import dataclass


PRODUCTION_ENVS = ("prod", "production")


def _env_text(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return bool(default)
    return raw in ("1", "true", "yes", "on")


def _env_int(name: str, default: int, *, minimum: int = 1, maximum: int = 100000) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        value = int(default)
    else:
        try:
            value = int(raw)
        except ValueError:
            value = int(default)
    if value < minimum:
        value = minimum
    if value > maximum:
        value = maximum
    return value


@dataclass(frozen=True)
class Settings:
    env: str = "dev"
    secret_key: str = "dev-secret"
    database_url: str = ""
    store_backend: str = "sql"
    app_url: str = "http://localhost:3000"
    paystack_secret_key: str = ""
    termii_api_key: str = ""
    termii_sender_id: str = "NaijaAuto"
    resend_api_key: str = ""
    email_from: str = "noreply@naijaauto.app"
    email_queue_enabled: bool = False
    seed_on_startup: bool = True
    cors_origins: str = ""
    otp_ttl_minutes: int = 10
    otp_max_attempts: int = 5

    @property
    def is_production(self) -> bool:
        return self.env in PRODUCTION_ENVS

    @classmethod
    def from_env(cls) -> "Settings":
        env = (_env_text("NAIJAAUTO_ENV", "dev") or "dev").lower()
        is_prod = env in PRODUCTION_ENVS
        return cls(
            env=env,
            secret_key=_env_text("SECRET_KEY", "dev-secret"),
            database_url=_env_text("SQLALCHEMY_DATABASE_URI") or _env_text("DATABASE_URL"),
            store_backend=(_env_text("NAIJAAUTO_STORE", "sql") or "sql").lower(),
            app_url=_env_text("APP_URL", "http://localhost:3000").rstrip("/"),
            paystack_secret_key=_env_text("PAYSTACK_SECRET_KEY"),
            termii_api_key=_env_text("TERMII_API_KEY"),
            termii_sender_id=_env_text("TERMII_SENDER_ID", "NaijaAuto") or "NaijaAuto",
            resend_api_key=_env_text("RESEND_API_KEY"),
            email_from=_env_text("EMAIL_FROM", "noreply@naijaauto.app") or "noreply@naijaauto.app",
            email_queue_enabled=_env_bool("EMAIL_QUEUE_ENABLED", False),
            seed_on_startup=_env_bool("SEED_ON_STARTUP", not is_prod),
            cors_origins=_env_text("CORS_ORIGINS"),
            otp_ttl_minutes=_env_int("OTP_TTL_MINUTES", 10, minimum=1, maximum=60),
            otp_max_attempts=_env_int("OTP_MAX_ATTEMPTS", 5, minimum=1, maximum=20),
        )

    def validate_for_production(self) -> None:
        if not self.is_production:
            return
        if not self.secret_key or len(self.secret_key) < 16 or self.secret_key == "dev-secret":
            raise RuntimeError("SECRET_KEY must be set and at least 16 chars in production")
        if self.store_backend == "sql" and not self.database_url:
            raise RuntimeError("DATABASE_URL (or SQLALCHEMY_DATABASE_URI) must be set in production")
