"""
Social Service
Main FastAPI application with users, posts and ephemeral messages
"""
from contextlib import asynccontextmanager
from datetime import datetime
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .domain.exceptions import ServiceError, UnauthenticatedError
from .infrastructure.database.connection import db_connection
from .api.dependencies import get_storage
from .api.routes import users_router, posts_router, messages_router

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Starting Social Service...")
    await db_connection.connect()
    get_storage().ensure_bucket_exists()
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} started")

    yield

    # Shutdown
    logger.info("Shutting down Social Service...")
    await db_connection.disconnect()


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Social posting service with soft-deletable posts and expiring messages",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.exception_handler(ServiceError)
async def service_exception_handler(request: Request, exc: ServiceError):
    headers = None
    if isinstance(exc, UnauthenticatedError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "message": exc.message},
        headers=headers,
    )


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint"""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat()
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat()
    }


app.include_router(users_router)
app.include_router(posts_router)
app.include_router(messages_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "social_service.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
