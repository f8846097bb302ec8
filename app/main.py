from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api_routers.v1 import api_router
from app.features.health.routes.health import router as health_router
from app.middlewares.rate_limit import RateLimitMiddleware
from app.middlewares.security_headers import SecurityHeadersMiddleware
from app.platform.config import settings
from app.platform.db.session import Database
from app.platform.exceptions import add_exception_handlers
from app.platform.logger import get_logger

logger = get_logger(__name__)


def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Build the application. The database handle is created here (or passed
    in) and shared through ``app.state.db``.
    """
    db = database or Database(settings.DATABASE_URL, echo=settings.DB_ECHO)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await db.create_all()
        logger.info(f"{settings.APP_NAME} started ({settings.ENVIRONMENT})")
        yield
        await db.dispose()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Wallet tracking and referral bookkeeping API",
        version="1.0.0",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )
    app.state.db = db

    # Root endpoint for basic info
    @app.get("/", tags=["Info"])
    def root():
        return {
            "app_name": settings.APP_NAME,
            "version": "1.0.0",
            "docs_url": "/docs",
            "api_base": "/api",
        }

    # Last added runs first: CORS, then security headers, then the limiter
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    add_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(api_router, prefix="/api")

    return app


app = create_app()
