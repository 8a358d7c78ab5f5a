"""SiteGrade API - Website Grading Service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import analyses_router, debug_router, health_router
from config import configure_logging, settings
from exceptions import setup_exception_handlers

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Code before `yield` runs on startup.
    Code after `yield` runs on shutdown.
    """
    logger.info(f"Starting {settings.app_name}...")
    yield
    logger.info(f"Shutting down {settings.app_name}...")


app = FastAPI(
    title="SiteGrade API",
    description="Website grading across performance, design, responsiveness, SEO, security, compliance and analytics.",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS (adjust origins for production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)

# Register routers
app.include_router(health_router, prefix="/api/v1")
app.include_router(analyses_router, prefix="/api/v1")
if settings.debug:
    app.include_router(debug_router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root():
    """Point callers at the API docs."""
    return {
        "service": "SiteGrade API",
        "docs": "/docs",
        "health": "/api/v1/health",
    }
