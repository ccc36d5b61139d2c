import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./barbershop.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Evolution API (WhatsApp gateway) Configuration
# Per-unit instance name and API key live in the units table; only the base URL is global
EVOLUTION_API_URL = os.getenv("EVOLUTION_API_URL")
EVOLUTION_API_TIMEOUT = float(os.getenv("EVOLUTION_API_TIMEOUT", "30"))

# Business calendar - fixed offset from UTC (Brasília = -3), not the host locale
BUSINESS_UTC_OFFSET_HOURS = int(os.getenv("BUSINESS_UTC_OFFSET_HOURS", "-3"))

# Prefixed to phone numbers that arrive without a country code (<= 11 digits)
DEFAULT_COUNTRY_CODE = os.getenv("DEFAULT_COUNTRY_CODE", "55")

# Shared secret expected in X-Cron-Secret by the automation trigger endpoints
# Leave unset to accept unauthenticated triggers (local development only)
AUTOMATION_CRON_SECRET = os.getenv("AUTOMATION_CRON_SECRET")

# How often the ARQ worker fires both automations (minutes, must divide 60)
AUTOMATION_CRON_INTERVAL_MINUTES = int(os.getenv("AUTOMATION_CRON_INTERVAL_MINUTES", "5"))

# CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000",
).split(",")
