"""
FastAPI Main Application
Website ingestion, namespaced retrieval and API-key gating
"""
import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
import time
import uuid

from siteassist.core.config import get_settings
from siteassist.core.errors import SiteAssistError
from siteassist.core.logging import setup_logging
from siteassist.db.session import init_db, close_db
from siteassist.vectorstore.vector_store import IndexState, VectorStore, get_vector_store

# Import centralized routes
from siteassist.api.routes import register_all_routes, get_store

settings = get_settings()

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info(f"Starting {settings.APP_NAME} v{app.version}")
    logger.info(f"Environment: {settings.APP_ENV}")

    if settings.KEY_STORE_BACKEND == "database":
        try:
            await init_db()
        except Exception as e:
            logger.error(f"Database initialization failed: {e}")
            raise

    # A durable index failure is not fatal: the store falls back to memory
    state = await get_vector_store().initialize()
    logger.info(f"Vector store state: {state.value}")

    logger.info(f"{settings.APP_NAME} started successfully")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}")

    if settings.KEY_STORE_BACKEND == "database":
        await close_db()

    logger.info(f"{settings.APP_NAME} shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="""
## Grounded answers for any website.

Register a site, ingest its content into per-project vector namespaces,
then retrieve ranked fragments with a rate-limited, feature-gated API key.
    """,
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan
)


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing"""
    start_time = time.time()
    request_id = getattr(request.state, "request_id", "unknown")

    logger.info(
        f"Request started: method={request.method}, "
        f"path={request.url.path}, request_id={request_id}"
    )

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000

    logger.info(
        f"Request completed: method={request.method}, "
        f"path={request.url.path}, status={response.status_code}, "
        f"duration_ms={duration_ms:.2f}, request_id={request_id}"
    )

    return response


# Request ID middleware (registered last so it runs first)
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add request ID to all requests for tracing"""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    return response


# Exception handlers
@app.exception_handler(SiteAssistError)
async def service_exception_handler(request: Request, exc: SiteAssistError):
    """Map service errors to their HTTP status"""
    request_id = getattr(request.state, "request_id", None)

    if exc.status_code >= 500:
        logger.error(
            f"{type(exc).__name__}: {exc.message}, request_id={request_id}",
            exc_info=exc.__cause__ is not None
        )
    else:
        logger.warning(f"{type(exc).__name__}: {exc.message}, request_id={request_id}")

    content = exc.to_dict()
    content["request_id"] = request_id

    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(content))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors"""
    logger.warning(f"Validation error: {exc.errors()}")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder({
            "success": False,
            "error": "Validation error",
            "details": exc.errors(),
            "request_id": getattr(request.state, "request_id", None)
        })
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors"""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}, "
        f"request_id={request_id}",
        exc_info=True
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later.",
            "request_id": request_id
        }
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check(vector_store: VectorStore = Depends(get_store)):
    """
    Health check endpoint.
    Fallback mode still serves requests, so it reports degraded rather than unhealthy.
    """
    state = vector_store.state

    return {
        "status": "healthy" if state is IndexState.DURABLE else "degraded",
        "app": settings.APP_NAME,
        "version": "1.0.0",
        "environment": settings.APP_ENV,
        "services": {
            "vector_store": state.value,
            "key_store": settings.KEY_STORE_BACKEND,
        }
    }


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information"""
    return {
        "app": settings.APP_NAME,
        "version": "1.0.0",
        "description": "Website ingestion and grounded retrieval service",
        "docs": "/docs" if settings.DEBUG else "Documentation disabled in production",
        "health": "/health"
    }


# Register all routes from centralized routes module
register_all_routes(app)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "siteassist.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
