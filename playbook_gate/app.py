"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from playbook_gate import config
from playbook_gate.routers import admin, playbook, send_playbook
from playbook_gate.services.notifier import Notifier, build_notifier
from playbook_gate.services.rate_limit import RateLimiter
from playbook_gate.services.signup_store import SignupStore, StoreCorruptedError
from playbook_gate.services.storage import build_backend

logger = logging.getLogger(__name__)


def build_store() -> SignupStore:
    """Signup store over the configured storage backend."""
    backend = build_backend(
        config.STORAGE_BACKEND,
        signups_file=config.SIGNUPS_FILE,
        signups_key=config.SIGNUPS_KEY,
        kv_table=config.SUPABASE_KV_TABLE,
    )
    return SignupStore(backend, key=config.SIGNUPS_KEY, ttl_days=config.ACCESS_TOKEN_TTL_DAYS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info(
        "Playbook gate ready: storage=%s, notifier=%s",
        app.state.store.backend.name,
        app.state.notifier.mode,
    )
    yield


def create_app(
    store: SignupStore | None = None,
    notifier: Notifier | None = None,
    admin_secret: str | None = None,
    rate_limiter: RateLimiter | None = None,
) -> FastAPI:
    app = FastAPI(
        title="PRISM Playbook Gate",
        description="Lead-capture gate for the PRISM Framework Strategic Playbook.",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.store = store or build_store()
    app.state.notifier = notifier or build_notifier(
        mode=config.NOTIFIER,
        send_endpoint=config.SEND_ENDPOINT,
        home_url=f"{config.PUBLIC_URL}/",
        timeout=config.NOTIFY_TIMEOUT,
        redirect_seconds=config.SIMULATED_REDIRECT_SECONDS,
    )
    app.state.admin_secret = config.ADMIN_SECRET if admin_secret is None else admin_secret
    app.state.rate_limiter = rate_limiter or RateLimiter(config.RATE_LIMIT, config.RATE_WINDOW)

    # Static files
    app.mount("/static", StaticFiles(directory=str(config.STATIC_DIR)), name="static")

    @app.exception_handler(StoreCorruptedError)
    async def store_corrupted(request: Request, exc: StoreCorruptedError):
        logger.error("%s", exc)
        return JSONResponse({"error": "Signup storage is unavailable"}, status_code=500)

    @app.get("/health", include_in_schema=False)
    async def health():
        return {"status": "ok"}

    app.include_router(playbook.router)
    app.include_router(send_playbook.router)
    app.include_router(admin.router, include_in_schema=False)

    return app
