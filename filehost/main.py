"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from filehost.api import auth, files
from filehost.config import DEFAULT_JWT_SECRET, get_settings
from filehost.database import init_db
from filehost.errors import register_exception_handlers
from filehost.services.storage import FileStorage

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and the upload directory; failures abort startup."""
    init_db()
    FileStorage.from_settings(settings).ensure_directory()
    if settings.jwt_secret == DEFAULT_JWT_SECRET:
        logger.warning("Using the default JWT secret; set JWT_SECRET outside development")
    logger.info(f"Storing uploads in {settings.upload_dir}")
    yield


app = FastAPI(
    title="File Host API",
    description="Multi-user file hosting with per-account storage",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for development
if settings.is_development:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

register_exception_handlers(app)

# Register routers
app.include_router(auth.router)
app.include_router(files.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "environment": settings.environment}


def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    uvicorn.run("filehost.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
