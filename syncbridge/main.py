"""Main FastAPI application"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from syncbridge import __version__
from syncbridge.api import sync, user_mappings, webhooks
from syncbridge.config import settings
from syncbridge.models.base import init_db
from syncbridge.security import BasicAuthMiddleware
from syncbridge.services.engine import shutdown_workers

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting Linear to GitHub Sync Service")
    init_db()
    yield
    logger.info("Stopping Linear to GitHub Sync Service")
    shutdown_workers()


app = FastAPI(
    title="Linear to GitHub Sync Service",
    description="Mirror public Linear tickets to GitHub issues from Linear webhooks",
    version=__version__,
    lifespan=lifespan,
)

# Optional built-in auth (recommended if exposed beyond localhost/private networks)
if settings.auth_enabled:
    if not settings.auth_username or not settings.auth_password:
        raise RuntimeError("AUTH_ENABLED=true requires AUTH_USERNAME and AUTH_PASSWORD to be set")
    app.add_middleware(
        BasicAuthMiddleware,
        username=settings.auth_username,
        password=settings.auth_password,
        allow_paths={"/health", "/api/linear/webhook"},
    )

# Include API routers
app.include_router(webhooks.router)
app.include_router(user_mappings.router)
app.include_router(sync.router)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "Linear to GitHub Sync"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "syncbridge.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
