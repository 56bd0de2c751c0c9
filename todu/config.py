from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DEV_JWT_SECRET = "your-secret-key-change-this-in-production"

_DURATION_RE = re.compile(r"^(\d+)\s*([smhd]?)$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


@dataclass(frozen=True)
class EmailSettings:
    host: str
    port: int
    username: str
    password: str
    from_address: str
    from_name: str


@dataclass(frozen=True)
class Settings:
    env: str
    db_path: Path
    jwt_secret: str
    jwt_expires_in: timedelta
    client_url: str
    google_client_id: str
    google_client_secret: str
    email: EmailSettings
    scheduler_enabled: bool
    timezone: str
    upload_dir: Path
    host: str
    port: int
    rate_limit_per_window: int
    auth_rate_limit_per_window: int

    @property
    def is_production(self) -> bool:
        return self.env == "production"


def parse_duration(raw: str) -> timedelta:
    """Parse a jsonwebtoken-style lifetime such as ``7d``, ``12h`` or ``3600``."""
    m = _DURATION_RE.match(raw.strip().lower())
    if not m:
        raise RuntimeError(f"Invalid duration: {raw!r}")
    return timedelta(seconds=int(m.group(1)) * _DURATION_UNITS[m.group(2)])


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() != "false"


def load_settings() -> Settings:
    env = os.getenv("APP_ENV", "development").strip() or "development"
    is_prod = env == "production"

    jwt_secret = os.getenv("JWT_SECRET", "").strip()
    if not jwt_secret:
        if is_prod:
            raise RuntimeError("JWT_SECRET missing in .env")
        jwt_secret = DEV_JWT_SECRET

    email_user = os.getenv("EMAIL_USERNAME", "").strip()
    email = EmailSettings(
        host=os.getenv("EMAIL_HOST", "smtp.gmail.com").strip(),
        port=int(os.getenv("EMAIL_PORT", "587").strip()),
        username=email_user,
        password=os.getenv("EMAIL_PASSWORD", "").strip(),
        from_address=os.getenv("EMAIL_FROM", email_user).strip(),
        from_name=os.getenv("EMAIL_FROM_NAME", "Todu").strip(),
    )

    default_auth_limit = "5" if is_prod else "1000"

    # db_path and upload_dir stay relative here; the entry point anchors them
    return Settings(
        env=env,
        db_path=Path(os.getenv("DB_PATH", "data/todu.db").strip()),
        jwt_secret=jwt_secret,
        jwt_expires_in=parse_duration(os.getenv("JWT_EXPIRES_IN", "7d")),
        client_url=os.getenv("CLIENT_URL", "http://localhost:5173").strip().rstrip("/"),
        google_client_id=os.getenv("GOOGLE_CLIENT_ID", "").strip(),
        google_client_secret=os.getenv("GOOGLE_CLIENT_SECRET", "").strip(),
        email=email,
        scheduler_enabled=_flag("NOTIFICATIONS_SCHEDULER_ENABLED", "true"),
        timezone=os.getenv("TZ", "UTC").strip() or "UTC",
        upload_dir=Path(os.getenv("UPLOAD_DIR", "uploads").strip()),
        host=os.getenv("HOST", "0.0.0.0").strip(),
        port=int(os.getenv("PORT", "5000").strip()),
        rate_limit_per_window=int(os.getenv("RATE_LIMIT_PER_WINDOW", "100").strip()),
        auth_rate_limit_per_window=int(os.getenv("AUTH_RATE_LIMIT_PER_WINDOW", default_auth_limit).strip()),
    )
