import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tazk.db")

# Auth - tokens are issued by the identity provider and signed with a shared secret
JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    import warnings

    warnings.warn(
        "JWT_SECRET not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    JWT_SECRET = "INSECURE-DEV-SECRET-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "authenticated")

# Key used by the scheduler and other trusted callers of /functions/*
SERVICE_ROLE_KEY = os.getenv("SERVICE_ROLE_KEY")

# Frontend base URL for links in emails and notifications
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "onboarding@resend.dev")
EMAIL_DEFAULT_FROM_NAME = os.getenv("EMAIL_DEFAULT_FROM_NAME", "Tazk")

# Web Push (VAPID) Configuration
# Generate a key pair with: vapid --gen  (py-vapid, installed with pywebpush)
VAPID_PUBLIC_KEY = os.getenv("VAPID_PUBLIC_KEY")
VAPID_PRIVATE_KEY = os.getenv("VAPID_PRIVATE_KEY")
VAPID_SUBJECT = os.getenv("VAPID_SUBJECT", "mailto:hello@tazk.app")
PUSH_ICON_URL = os.getenv("PUSH_ICON_URL", "/tazk.svg")
PUSH_TTL_SECONDS = int(os.getenv("PUSH_TTL_SECONDS", "86400"))

# Team invitations
INVITATION_EXPIRY_DAYS = int(os.getenv("INVITATION_EXPIRY_DAYS", "7"))

# Recurring tasks - time_of_day is interpreted as wall-clock time in this zone
SCHEDULER_TIMEZONE = os.getenv("SCHEDULER_TIMEZONE", "UTC")
RECURRING_TASKS_CRON_MINUTES = {
    int(m) for m in os.getenv("RECURRING_TASKS_CRON_MINUTES", "0,15,30,45").split(",")
}

# Rate limiting (Redis-backed, fails open when Redis is unreachable)
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"

# Redis (rate limiter and arq worker) - REDIS_URL wins over the individual settings
REDIS_URL = os.getenv("REDIS_URL")
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD")
REDIS_DB = int(os.getenv("REDIS_DB", "0"))
REDIS_SSL = os.getenv("REDIS_SSL", "false").lower() == "true"

# CORS
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if origin.strip()
]
