"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from techblog.core.config import settings
from techblog.core.exceptions import TechBlogError
from techblog.core.middleware import setup_middleware

from techblog.api.auth import router as auth_router
from techblog.api.permissions import router as permissions_router
from techblog.api.roles import router as roles_router
from techblog.api.users import router as users_router
from techblog.api.admin import router as admin_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("techblog")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info(f"Starting {settings.APP_NAME} API")
    yield
    logger.info(f"Shutting down {settings.APP_NAME} API")


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Back office API for the tech blog: roles, permissions and access control",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

setup_middleware(app)


@app.exception_handler(TechBlogError)
async def techblog_exception_handler(request: Request, exc: TechBlogError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
    )


# Register routers
app.include_router(auth_router, prefix="/api")
app.include_router(permissions_router, prefix="/api")
app.include_router(roles_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Quick health check endpoint."""
    return {"status": "ok"}
