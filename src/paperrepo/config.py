from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv

from paperrepo.infrastructure.stores.sqlalchemy_db import DEFAULT_DB_URL

DEFAULT_MAX_UPLOAD_BYTES = 16 * 1024 * 1024
DEFAULT_MAIL_FROM = "noreply@paperrepo.local"
MAIL_PROVIDERS = ("smtp", "resend", "none")


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_list(name: str, default: str = "") -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


@dataclass
class Settings:
    db_url: str = DEFAULT_DB_URL

    # mail
    mail_provider: str = "none"
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_use_ssl: bool = False
    resend_api_key: str = ""
    mail_from: str = DEFAULT_MAIL_FROM
    mail_timeout_seconds: float = 15.0

    # application
    site_name: str = "Research Repository"
    otp_ttl_minutes: int = 10
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    bcrypt_rounds: int = 12
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls, *, load_env_file: bool = True) -> "Settings":
        if load_env_file:
            load_dotenv(find_dotenv(usecwd=True), override=False)

        smtp_host = os.getenv("PAPERREPO_SMTP_HOST", "").strip()
        smtp_username = os.getenv("PAPERREPO_SMTP_USERNAME", "").strip()
        resend_api_key = os.getenv("PAPERREPO_RESEND_API_KEY", "").strip()

        return cls(
            db_url=os.getenv("PAPERREPO_DB_URL", "").strip() or DEFAULT_DB_URL,
            mail_provider=_resolve_provider(
                os.getenv("PAPERREPO_MAIL_PROVIDER"), smtp_host, resend_api_key
            ),
            smtp_host=smtp_host,
            smtp_port=_env_int("PAPERREPO_SMTP_PORT", 587),
            smtp_username=smtp_username,
            smtp_password=os.getenv("PAPERREPO_SMTP_PASSWORD", "").strip(),
            smtp_use_tls=_env_bool("PAPERREPO_SMTP_USE_TLS", True),
            smtp_use_ssl=_env_bool("PAPERREPO_SMTP_USE_SSL", False),
            resend_api_key=resend_api_key,
            mail_from=os.getenv("PAPERREPO_MAIL_FROM", "").strip()
            or smtp_username
            or DEFAULT_MAIL_FROM,
            mail_timeout_seconds=float(os.getenv("PAPERREPO_MAIL_TIMEOUT_SECONDS", "15")),
            site_name=os.getenv("PAPERREPO_SITE_NAME", "").strip() or "Research Repository",
            otp_ttl_minutes=_env_int("PAPERREPO_OTP_TTL_MINUTES", 10),
            max_upload_bytes=_env_int("PAPERREPO_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES),
            bcrypt_rounds=_env_int("PAPERREPO_BCRYPT_ROUNDS", 12),
            cors_origins=_env_list("PAPERREPO_CORS_ORIGINS", "*"),
        )


def _resolve_provider(raw: Optional[str], smtp_host: str, resend_api_key: str) -> str:
    provider = (raw or "").strip().lower()
    if provider:
        if provider not in MAIL_PROVIDERS:
            raise ValueError(
                f"PAPERREPO_MAIL_PROVIDER must be one of {', '.join(MAIL_PROVIDERS)}, got {raw!r}"
            )
        return provider
    if smtp_host:
        return "smtp"
    if resend_api_key:
        return "resend"
    return "none"
