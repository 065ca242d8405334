"""
Main FastAPI application
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import json
import logging
import time

from app.config.settings import settings
from app.database.response_store import ResponseStore, create_store
from app.routes import submission
from app.utils.errors import IngestionError, InvalidPayload

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(store: ResponseStore = None) -> FastAPI:
    """Build the application; pass a store to skip connecting from settings"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan - startup and shutdown events"""
        # Startup
        owns_store = store is None
        app.state.store = await create_store() if owns_store else store
        logger.info("🚀 %s v%s started", settings.APP_NAME, settings.VERSION)
        yield
        # Shutdown
        if owns_store:
            await app.state.store.close()
        logger.info("👋 Application shutdown")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        lifespan=lifespan
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(IngestionError)
    async def ingestion_exception_handler(request: Request, exc: IngestionError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "error": exc.error},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Round-trip through json with default=str to handle non-serializable objects (e.g. ValueError)
        safe_errors = json.loads(json.dumps(exc.errors(), default=str))
        logger.warning("❌ Invalid body on %s %s: %s", request.method, request.url.path, safe_errors)
        error = InvalidPayload("Request body must be a JSON object with an 'answers' object")
        return JSONResponse(
            status_code=error.status_code,
            content={"detail": error.detail, "error": error.error, "errors": safe_errors},
        )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time
        logger.info("🌐 %s %s - %s (%.2fs)", request.method, request.url.path, response.status_code, duration)
        return response

    # Include routers
    app.include_router(submission.router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "app": settings.APP_NAME,
            "version": settings.VERSION,
            "status": "running"
        }

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint"""
        store_ok = await request.app.state.store.ping()
        return {"status": "healthy" if store_ok else "degraded", "store": store_ok}

    return app


app = create_app()
