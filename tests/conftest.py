"""
Shared fixtures: a migrated temp-file database, a settable clock and a
mailer that records what it would have sent.
"""
import asyncio
import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from todu.api.container import build_container
from todu.config import EmailSettings, Settings
from todu.domain.common.ports import Clock, Mailer
from todu.infra.db.schema_version import MIGRATIONS_DIR, apply_migrations


class FakeClock(Clock):
    def __init__(self, start: datetime) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def local_now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


class FakeMailer(Mailer):
    def __init__(self) -> None:
        self.sent = []
        self.fail = False

    async def send(self, to, subject, text, html=None) -> None:
        if self.fail:
            raise RuntimeError("smtp down")
        self.sent.append({"to": to, "subject": subject, "text": text})


def make_settings(db_path: str, upload_dir: str, env: str = "development") -> Settings:
    return Settings(
        env=env,
        db_path=Path(db_path),
        jwt_secret="test-secret",
        jwt_expires_in=timedelta(days=7),
        client_url="http://localhost:5173",
        google_client_id="",
        google_client_secret="",
        email=EmailSettings(
            host="", port=587, username="", password="", from_address="", from_name="Todu"
        ),
        scheduler_enabled=False,
        timezone="UTC",
        upload_dir=Path(upload_dir),
        host="127.0.0.1",
        port=5000,
        rate_limit_per_window=10000,
        auth_rate_limit_per_window=10000,
    )


@pytest.fixture
def db_path():
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as tmp:
        path = tmp.name
    try:
        yield path
    finally:
        for suffix in ("", "-wal", "-shm"):
            if os.path.exists(path + suffix):
                os.unlink(path + suffix)


@pytest.fixture
def clock():
    # tokens are checked against the real time, so start from it
    return FakeClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def settings(db_path, tmp_path):
    return make_settings(db_path, str(tmp_path / "uploads"))


@pytest.fixture
def container(settings, clock, mailer):
    c = build_container(settings, clock=clock, mailer=mailer, bcrypt_rounds=4)
    asyncio.run(apply_migrations(c.db, str(MIGRATIONS_DIR), clock.now().isoformat()))
    return c
