"""
Application configuration from environment variables.

All settings have sensible defaults for local development.
A .env file in the project root is loaded automatically (if present).
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file before reading any env vars
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ── Environment ───────────────────────────────────────────────────────────

ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info").upper()
APP_VERSION = "0.1.0"

# uvicorn settings used by the root main.py
API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))
API_RELOAD: bool = os.getenv("API_RELOAD", "false").lower() == "true"

# ── Paths ─────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"

# SQLite database file
DB_PATH: str = os.getenv("DB_PATH", str(DATA_DIR / "sports_arena.db"))

# Insert demo sports, grounds, plans and users when the catalog is empty
SEED_DEMO_DATA: bool = os.getenv("SEED_DEMO_DATA", "true").lower() == "true"

# ── JWT ───────────────────────────────────────────────────────────────────

JWT_SECRET: str = os.getenv("JWT_SECRET", "dev-secret-change-me-in-production")
JWT_ALGORITHM: str = "HS256"
JWT_EXPIRY_DAYS: int = int(os.getenv("JWT_EXPIRY_DAYS", "7"))

# ── Arena ─────────────────────────────────────────────────────────────────

ARENA_NAME: str = os.getenv("ARENA_NAME", "Aryen Sports Arena")
CURRENCY_SYMBOL: str = os.getenv("CURRENCY_SYMBOL", "₹")

# Bookable hours for every ground, [OPENING_HOUR, CLOSING_HOUR)
OPENING_HOUR: int = int(os.getenv("OPENING_HOUR", "6"))
CLOSING_HOUR: int = int(os.getenv("CLOSING_HOUR", "22"))

# Used when a ground has no max_capacity configured
DEFAULT_MAX_CAPACITY: int = int(os.getenv("DEFAULT_MAX_CAPACITY", "10"))

# ── SMTP ──────────────────────────────────────────────────────────────────

SMTP_HOST: str = os.getenv("SMTP_HOST", "")
SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
SMTP_FROM_EMAIL: str = os.getenv("SMTP_FROM_EMAIL", "noreply@sportsarena.local")
SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

# Set to "false" to force console-only mode even when SMTP credentials are present.
_SMTP_ENABLED_OVERRIDE: str = os.getenv("SMTP_ENABLED", "auto")


def smtp_enabled() -> bool:
    """True when SMTP should actually send emails.

    Controlled by SMTP_ENABLED env var:
      • "auto" (default): send if credentials are configured
      • "true": always send (will fail if credentials are missing)
      • "false": never send, log to console instead
    """
    if _SMTP_ENABLED_OVERRIDE.lower() == "false":
        return False
    if _SMTP_ENABLED_OVERRIDE.lower() == "true":
        return True
    return bool(SMTP_HOST and SMTP_USERNAME and SMTP_PASSWORD)


# ── Maintenance ───────────────────────────────────────────────────────────

# How often the maintenance worker runs the booking housekeeping jobs (seconds).
MAINTENANCE_INTERVAL: float = float(os.getenv("MAINTENANCE_INTERVAL", "900"))
