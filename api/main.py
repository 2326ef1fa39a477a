"""
FastAPI Main Application
========================

Application factory wiring middleware, routes and the injected services.

Run with:
    uvicorn api.main:create_app --factory
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware.error_handler import setup_error_handling
from api.middleware.rate_limiter import setup_rate_limiting
from api.routes import auth, health
from config import Settings, get_settings
from core.auth_service import AuthService
from core.rate_limiter import RateLimiter
from core.token_issuer import TokenIssuer
from core.user_store import UserStore, create_user_store
from core.users_service import UsersService


logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def setup_logging(settings: Settings) -> None:
    """Configure root logging from settings."""
    logging.basicConfig(
        level=getattr(logging, settings.effective_log_level, logging.INFO),
        format=settings.log_format,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan event handler for startup and shutdown.

    The services are already built by ``create_app``; this only reports
    what was wired and releases the database engine on shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(f"Starting AuthGate API ({settings.environment})")
    logger.info(f"User store: {type(app.state.user_store).__name__}")
    logger.info(f"Rate limiting: {'enabled' if settings.rate_limit_enabled else 'disabled'}")

    yield  # Application runs here

    logger.info("Shutting down AuthGate API")
    engine = getattr(app.state.user_store, "engine", None)
    if engine is not None:
        engine.dispose()


def create_app(
    settings: Optional[Settings] = None,
    user_store: Optional[UserStore] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings (defaults to environment settings)
        user_store: User store handle (defaults to one built from DATABASE_URL)
        rate_limiter: Rate limiter (defaults to one built from settings)

    Returns:
        FastAPI: The configured application

    Raises:
        ConfigurationError: If JWT_SECRET is not set
    """
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title="AuthGate API",
        description="""
        Credential and session issuance service.

        ## Features
        - Registration and login with salted PBKDF2 password hashes
        - Signed access and refresh tokens
        - Per-client rate limiting on authentication endpoints

        ## Authentication
        Protected endpoints require `Authorization: Bearer <accessToken>`.
        """,
        version=API_VERSION,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json"
    )

    # Services are built once and injected through app state
    if user_store is None:
        user_store = create_user_store(settings.database_url)
    users_service = UsersService(user_store)
    auth_service = AuthService(users_service, TokenIssuer.from_settings(settings))

    app.state.settings = settings
    app.state.user_store = user_store
    app.state.users_service = users_service
    app.state.auth_service = auth_service

    # =========================================================================
    # Middleware Setup (order matters - last added = outermost)
    # =========================================================================

    # Innermost: converts unexpected exceptions to the uniform 500 body
    setup_error_handling(app, settings)

    # Sees every final response, including error responses, to charge
    # failures and attach quota headers
    setup_rate_limiting(app, settings, rate_limiter)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["RateLimit-Limit", "RateLimit-Remaining", "RateLimit-Reset", "Retry-After"],
    )

    # =========================================================================
    # Router Registration
    # =========================================================================

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(health.router, prefix="/api", tags=["health"])

    @app.get("/", tags=["root"])
    async def root():
        """API information and links."""
        return {
            "message": "AuthGate API",
            "version": API_VERSION,
            "docs": "/api/docs",
            "health": "/api/health"
        }

    return app
