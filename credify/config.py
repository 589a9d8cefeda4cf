import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> list[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


PORT = int(os.getenv("PORT", "5000"))
BRAND_NAME = os.getenv("BRAND_NAME", "Credify")

# Email transport: "smtp", "brevo" or "resend"
EMAIL_TRANSPORT = os.getenv("EMAIL_TRANSPORT", "brevo").lower()
EMAIL_USER = os.getenv("EMAIL_USER")
EMAIL_PASS = os.getenv("EMAIL_PASS")
EMAIL_TO = os.getenv("EMAIL_TO") or EMAIL_USER

# SMTP relay (port 465 = implicit TLS, anything else = STARTTLS)
SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT = int(os.getenv("SMTP_PORT", "465"))
SMTP_USER = os.getenv("SMTP_USER") or EMAIL_USER
SMTP_SECURE = _env_bool("SMTP_SECURE", "true" if SMTP_PORT == 465 else "false")

# Brevo transactional email API
BREVO_API_KEY = os.getenv("BREVO_API_KEY")
BREVO_API_URL = os.getenv("BREVO_API_URL", "https://api.brevo.com/v3/smtp/email")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")

# "sync" waits for delivery before responding, "background" responds first
DISPATCH_MODE = os.getenv("DISPATCH_MODE", "sync").lower()

# Career form resume upload
CAREER_RESUME_REQUIRED = _env_bool("CAREER_RESUME_REQUIRED", "true")
RESUME_ALLOWED_TYPES = [t.lower() for t in _env_list("RESUME_ALLOWED_TYPES", "application/pdf")]
RESUME_MAX_BYTES = int(os.getenv("RESUME_MAX_BYTES", str(5 * 1024 * 1024)))

# Rate limiting for /api/* (30 requests per 10 minutes per IP)
RATE_LIMIT_MAX = int(os.getenv("RATE_LIMIT_MAX", "30"))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "600"))
REDIS_URL = os.getenv("REDIS_URL")

ALLOWED_ORIGINS = _env_list("ALLOWED_ORIGINS", "*")
SECURITY_HEADERS_ENABLED = _env_bool("SECURITY_HEADERS_ENABLED", "true")
STATIC_DIR = os.getenv("STATIC_DIR", str(Path(__file__).resolve().parent.parent / "public"))


class AppConfig(BaseModel):
    """Read-only settings snapshot handed to the application factory."""

    brand_name: str = "Credify"
    email_transport: str = "brevo"
    email_user: Optional[str] = None
    email_pass: Optional[str] = None
    email_to: Optional[str] = None
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465
    smtp_user: Optional[str] = None
    smtp_secure: bool = True
    brevo_api_key: Optional[str] = None
    brevo_api_url: str = "https://api.brevo.com/v3/smtp/email"
    resend_api_key: Optional[str] = None
    dispatch_mode: str = "sync"
    career_resume_required: bool = True
    resume_allowed_types: list[str] = ["application/pdf"]
    resume_max_bytes: int = 5 * 1024 * 1024
    rate_limit_max: int = 30
    rate_limit_window_seconds: int = 600
    redis_url: Optional[str] = None
    allowed_origins: list[str] = ["*"]
    security_headers_enabled: bool = True
    static_dir: Optional[str] = None

    model_config = {"frozen": True}

    @field_validator("resume_allowed_types")
    @classmethod
    def lowercase_mime_types(cls, v):
        # Upload content types are compared lowercased
        return [t.strip().lower() for t in v]

    @property
    def background_dispatch(self) -> bool:
        return self.dispatch_mode == "background"

    @property
    def recipient(self) -> Optional[str]:
        return self.email_to or self.email_user

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            brand_name=BRAND_NAME,
            email_transport=EMAIL_TRANSPORT,
            email_user=EMAIL_USER,
            email_pass=EMAIL_PASS,
            email_to=EMAIL_TO,
            smtp_host=SMTP_HOST,
            smtp_port=SMTP_PORT,
            smtp_user=SMTP_USER,
            smtp_secure=SMTP_SECURE,
            brevo_api_key=BREVO_API_KEY,
            brevo_api_url=BREVO_API_URL,
            resend_api_key=RESEND_API_KEY,
            dispatch_mode=DISPATCH_MODE,
            career_resume_required=CAREER_RESUME_REQUIRED,
            resume_allowed_types=RESUME_ALLOWED_TYPES,
            resume_max_bytes=RESUME_MAX_BYTES,
            rate_limit_max=RATE_LIMIT_MAX,
            rate_limit_window_seconds=RATE_LIMIT_WINDOW_SECONDS,
            redis_url=REDIS_URL,
            allowed_origins=ALLOWED_ORIGINS,
            security_headers_enabled=SECURITY_HEADERS_ENABLED,
            static_dir=STATIC_DIR,
        )
