from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Dict, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from todu.api.container import Container, build_container
from todu.api.errors import error_response, install_error_handlers
from todu.api.routes import activities, auth, comments, invites, lists, messages, notifications, tasks
from todu.config import Settings
from todu.infra.db.schema_version import MIGRATIONS_DIR, apply_migrations

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW_SECONDS = 15 * 60
DEV_ORIGINS = ("http://localhost:5173", "http://localhost:5174", "http://localhost:3000")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "X-XSS-Protection": "0",
    "Cross-Origin-Resource-Policy": "cross-origin",
}


class FixedWindowLimiter:
    """Per-key request counter that resets every ``window`` seconds."""

    def __init__(self, limit: int, window: int = RATE_LIMIT_WINDOW_SECONDS) -> None:
        self.limit = limit
        self.window = window
        self._hits: Dict[str, Tuple[float, int]] = {}
        self._next_sweep: Optional[float] = None

    def __len__(self) -> int:
        return len(self._hits)

    def hit(self, key: str, now: Optional[float] = None) -> bool:
        """Count one request; False once the key is over its limit for this window."""
        now = time.monotonic() if now is None else now
        self._drop_expired(now)
        started, count = self._hits.get(key, (now, 0))
        if now - started >= self.window:
            started, count = now, 0
        count += 1
        self._hits[key] = (started, count)
        return count <= self.limit

    def _drop_expired(self, now: float) -> None:
        # at most one full scan per window
        if self._next_sweep is not None and now < self._next_sweep:
            return
        self._next_sweep = now + self.window
        stale = [k for k, (started, _) in self._hits.items() if now - started >= self.window]
        for k in stale:
            del self._hits[k]


def create_app(settings: Settings, container: Optional[Container] = None) -> FastAPI:
    container = container or build_container(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings.db_path.parent.mkdir(parents=True, exist_ok=True)
        settings.upload_dir.mkdir(parents=True, exist_ok=True)
        await apply_migrations(container.db, str(MIGRATIONS_DIR), container.clock.now().isoformat())
        logger.info(f"Database ready: {settings.db_path}")

        scheduler_task = None
        if settings.scheduler_enabled:
            scheduler_task = asyncio.create_task(container.scheduler.run_forever())
            logger.info("Notification scheduler started")
        try:
            yield
        finally:
            if scheduler_task is not None:
                container.scheduler.stop()
                await scheduler_task
                logger.info("Notification scheduler stopped")

    app = FastAPI(title="Todu API", version="1.0.0", lifespan=lifespan)
    app.state.container = container

    install_error_handlers(app, settings.is_production)

    origins = [settings.client_url, *[o for o in DEV_ORIGINS if o != settings.client_url]]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_limiter = FixedWindowLimiter(settings.rate_limit_per_window)
    auth_limiter = FixedWindowLimiter(settings.auth_rate_limit_per_window)

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        path = request.url.path
        if path.startswith("/api/") and request.method != "OPTIONS":
            ip = request.client.host if request.client else "unknown"
            if path.startswith("/api/auth/"):
                if not auth_limiter.hit(ip):
                    logger.warning(f"Auth rate limit exceeded: ip={ip}")
                    return error_response(429, "Too many authentication attempts, please try again later.")
            elif not api_limiter.hit(ip):
                logger.warning(f"Rate limit exceeded: ip={ip}")
                return error_response(429, "Too many requests from this IP, please try again later.")
        return await call_next(request)

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    for module in (auth, tasks, lists, comments, notifications, activities, messages, invites):
        app.include_router(module.router, prefix="/api")

    app.mount("/uploads", StaticFiles(directory=str(settings.upload_dir), check_dir=False), name="uploads")

    @app.get("/")
    async def root():
        return {"message": "Welcome to Todu API", "version": "1.0.0"}

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "timestamp": container.clock.now().isoformat()}

    return app
