import logging
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .auth import IdentityVerifier
from .config import settings
from .db import apply_migrations, create_pool
from .logging_utils import setup_logging
from .middleware.request_context import RequestContextMiddleware
from .repositories import Store, StorePort
from .routes import admin, lessons, payments, social, stripe_webhooks, users

logger = logging.getLogger(__name__)


def _init_sentry() -> None:
    if not settings.sentry_dsn:
        return
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        traces_sample_rate=settings.sentry_traces_sample_rate,
        send_default_pii=False,
    )


def create_app(
    *,
    store: StorePort | None = None,
    identity_verifier: IdentityVerifier | None = None,
) -> FastAPI:
    """Build the API. Passing ``store`` skips the PostgreSQL pool entirely."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        pool = None
        if store is None:
            pool = create_pool()
            await pool.open(wait=True)
            if settings.auto_migrate:
                await apply_migrations(pool)
            app.state.store = Store(pool)
        else:
            app.state.store = store
        app.state.identity_verifier = identity_verifier or IdentityVerifier.from_settings(settings)
        logger.info("Life Lessons API started")
        try:
            yield
        finally:
            if pool is not None:
                await pool.close()

    app = FastAPI(title="Life Lessons API", version="0.1.0", lifespan=lifespan)
    # Also set eagerly so ASGI transports that skip lifespan events still work.
    if store is not None:
        app.state.store = store
        app.state.identity_verifier = identity_verifier or IdentityVerifier.from_settings(settings)

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_origin_regex=settings.cors_allow_origin_regex,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=[
            "Authorization",
            "Content-Type",
            "Accept",
            "X-Requested-With",
            "X-Request-ID",
        ],
    )

    app.include_router(users.router)
    app.include_router(lessons.router)
    app.include_router(social.router)
    app.include_router(payments.router)
    app.include_router(stripe_webhooks.router)
    app.include_router(admin.router)

    @app.get("/")
    async def root():
        return {"message": "Life Lessons API is running"}

    @app.get("/healthz")
    async def healthz():
        return {"ok": True, "message": "Backend responding"}

    @app.get("/readyz")
    async def readyz(request: Request):
        try:
            await request.app.state.store.ping()
        except Exception as exc:
            logger.warning("Readiness check failed: %s", exc)
            raise HTTPException(status_code=503, detail="database unavailable") from exc
        return {"ok": True, "database": "ready"}

    @app.get("/metrics")
    def metrics_endpoint():
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    return app


setup_logging()
_init_sentry()

app = create_app()
