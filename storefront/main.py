"""
Storefront Checkout Service

Cart pricing, checkout and order orchestration in front of the store's
REST backend.
"""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables before settings are read
load_dotenv(os.path.join(os.path.dirname(__file__), "..", "config", ".env"))

from .core.config import settings  # noqa: E402
from .routes import cart_router, checkout_router, payments_router, sessions_router  # noqa: E402
from .routes.deps import get_session_manager  # noqa: E402

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Storefront checkout starting up...")
    logger.info(f"Store API: {settings.api_base_url}")
    logger.info(f"Environment: {settings.environment}")

    yield

    logger.info("Storefront checkout shutting down...")
    await get_session_manager().close_all()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Checkout pricing and order orchestration for the storefront",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(sessions_router)
app.include_router(cart_router)
app.include_router(checkout_router)
app.include_router(payments_router)


@app.get("/")
async def home():
    """Service index"""
    return {
        "message": "Storefront Checkout API",
        "docs": "/docs",
        "endpoints": {
            "sessions": "/api/sessions",
            "cart": "/api/sessions/{session_id}/cart",
            "checkout": "/api/sessions/{session_id}/checkout",
            "payments": "/api/payments",
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "storefront-checkout",
        "backend_configured": bool(settings.api_base_url),
        "environment": settings.environment,
        "active_sessions": len(get_session_manager().sessions),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storefront.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
