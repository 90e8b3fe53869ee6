from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.artifacts.router import router as dashboard_router
from app.artifacts.workspace import WorkspaceRegistry
from app.auth.router import router as auth_router
from app.core.config import get_settings
from app.core.limiter import limiter
from app.core.middleware import RequestIdMiddleware, SecurityHeadersMiddleware


def create_app() -> FastAPI:
    settings = get_settings()

    _app = FastAPI(
        title="Artifact Janitor API",
        description="Review and bulk-delete GitHub Actions artifacts across your repositories",
        version="0.1.0",
    )

    # ---------------------------------------------------------------------------
    # Per-user dashboard state: in memory, one registry per app instance
    # ---------------------------------------------------------------------------
    _app.state.workspaces = WorkspaceRegistry()

    # ---------------------------------------------------------------------------
    # Rate limiter state: SlowAPI reads limiter from app.state
    # ---------------------------------------------------------------------------
    _app.state.limiter = limiter
    _app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # ---------------------------------------------------------------------------
    # Middleware (registered outermost → innermost; executed innermost → outermost)
    # ---------------------------------------------------------------------------

    # CORS: the dashboard calls us cross-origin with the session cookie.
    _app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # SlowAPI: before security headers so 429s also get security headers
    _app.add_middleware(SlowAPIMiddleware)

    _app.add_middleware(SecurityHeadersMiddleware)

    # Request ID: inject / forward X-Request-ID and bind to ContextVar
    _app.add_middleware(RequestIdMiddleware)

    # ---------------------------------------------------------------------------
    # Sentry: initialised here so it captures startup errors too
    # ---------------------------------------------------------------------------
    from app.core.sentry import init_sentry

    init_sentry(
        dsn=settings.sentry_dsn,
        environment="development" if settings.debug else "production",
    )

    # ---------------------------------------------------------------------------
    # Logging: configure structlog before any routers log anything
    # ---------------------------------------------------------------------------
    from app.core.logging import configure_structlog

    configure_structlog(debug=settings.debug)

    # ---------------------------------------------------------------------------
    # Routes
    # ---------------------------------------------------------------------------

    @_app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    _app.include_router(auth_router)
    _app.include_router(dashboard_router)

    return _app


app = create_app()
