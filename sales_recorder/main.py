"""
Sales Call Recorder - FastAPI Backend
Call recording, Twilio voice bridge and AI follow-up generation
"""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from sales_recorder.api.v1 import api_router
from sales_recorder.core.config import settings
from sales_recorder.core.database import close_db, create_engine_for, create_session_factory, init_db
from sales_recorder.core.exceptions import AppException
from sales_recorder.core.middleware import RequestContextMiddleware


# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan events for startup and shutdown
    """
    # Startup
    logger.info(f"Starting {settings.PROJECT_NAME} API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"OpenAI configured: {settings.openai_configured}")
    logger.info(f"Twilio configured: {settings.twilio_configured}")
    await init_db(app.state.engine)

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.PROJECT_NAME} API")
    await close_db(app.state.engine)


def create_app(engine: Optional[AsyncEngine] = None) -> FastAPI:
    """
    Build the application. Tests pass their own engine; otherwise one is
    created from DATABASE_URL.
    """
    app = FastAPI(
        title=f"{settings.PROJECT_NAME} API",
        description="Sales call recording, transcription and AI analysis",
        version=settings.PROJECT_VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan
    )

    app.state.engine = engine or create_engine_for(settings.DATABASE_URL)
    app.state.session_factory = create_session_factory(app.state.engine)

    # ========================================================================
    # MIDDLEWARE
    # ========================================================================

    app.add_middleware(RequestContextMiddleware)

    # Browser and PWA clients call from any origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ========================================================================
    # EXCEPTION HANDLERS
    # ========================================================================

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        """Handle custom application exceptions"""
        if exc.status_code >= 500:
            logger.error(f"{exc.error_code}: {exc.message} {exc.details}")
        else:
            logger.warning(f"{exc.error_code}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": exc.error_code,
                "message": exc.message,
                "details": exc.details
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions"""
        logger.error(f"Unhandled exception on {request.url.path}: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "internal_error",
                "message": "An unexpected error occurred"
            }
        )

    # ========================================================================
    # ROOT ENDPOINTS
    # ========================================================================

    @app.get("/")
    async def root():
        """API root endpoint"""
        return {
            "name": f"{settings.PROJECT_NAME} API",
            "version": settings.PROJECT_VERSION,
            "status": "operational",
            "docs": "/api/docs"
        }

    # ========================================================================
    # API ROUTERS
    # ========================================================================

    app.include_router(api_router, prefix=settings.API_V1_STR)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "sales_recorder.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
