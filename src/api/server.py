"""FastAPI application setup"""
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.api.routes import router
from src.api.middleware import setup_cors, setup_metrics, setup_rate_limiting
from src.db.connection import Database
from src.exceptions import DatabaseError, RecordNotFoundError, ValidationError, YasukeError
from src.observability.metrics import errors_total, init_metrics
from src.services.container import init_container

logger = logging.getLogger(__name__)


def status_code_for(exc: YasukeError) -> int:
    """HTTP status for an application error"""
    if isinstance(exc, ValidationError):
        return 422
    if isinstance(exc, RecordNotFoundError):
        return 404
    if isinstance(exc, DatabaseError):
        return 503
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI application"""
    # Startup
    logger.info("Starting API server...")
    db = app.state.db
    await db.init_pool()
    logger.info("Database pool initialized")

    app.state.container = init_container(db)
    init_metrics()

    yield

    # Shutdown
    logger.info("Shutting down API server...")
    await db.close_pool()
    logger.info("Database pool closed")


def create_api_application(db: Optional[Database] = None) -> FastAPI:
    """
    Create and configure FastAPI application

    Args:
        db: Database to serve from; a pool on DATABASE_URL when omitted
    """
    app = FastAPI(
        title="Path of Yasuke API",
        description="XP, levels, streaks and notifications for Path of Yasuke",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.db = db or Database()

    # Setup middleware
    setup_cors(app)
    setup_rate_limiting(app)
    setup_metrics(app)

    # Include routes
    app.include_router(router)

    @app.exception_handler(YasukeError)
    async def yasuke_exception_handler(request: Request, exc: YasukeError):
        status_code = status_code_for(exc)
        errors_total.labels(error_type=exc.__class__.__name__, component="api").inc()
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        errors_total.labels(error_type=exc.__class__.__name__, component="api").inc()
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error", "detail": str(exc)}
        )

    logger.info("FastAPI application created")

    return app
