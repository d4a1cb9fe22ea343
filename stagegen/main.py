"""Main FastAPI application entry point."""

import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from stagegen import __version__
from stagegen.config import settings
from stagegen.routers import generate_router, proxy_router
from stagegen.services.session import get_session, close_session


# Configure loguru
logger.remove()
logger.add(
    sys.stdout,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    level="INFO",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info(f"Starting stagegen v{__version__}")
    logger.info(f"Server running on {settings.host}:{settings.port}")
    logger.info(f"Proxy: {settings.proxy or 'None'}")
    logger.info(f"Timeout: {settings.timeout}s")
    logger.info(
        f"Retries: max={settings.max_retry}, base delay={settings.retry_base_delay}s"
    )
    logger.info(
        f"Image proxy fallback: {settings.local_origin or 'disabled'}{settings.image_proxy_path}"
    )
    logger.info(f"Models: {', '.join(m.id for m in settings.image_models) or 'None'}")

    await get_session()

    yield

    logger.info("Shutting down...")
    await close_session()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="stagegen",
    description="Generates storyboard images through Gemini-compatible APIs and returns them as data URIs",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(generate_router, tags=["Generate"])
app.include_router(proxy_router, tags=["Proxy"])


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint for health check."""
    return {
        "service": "stagegen",
        "version": __version__,
        "status": "healthy",
    }


@app.get("/health", tags=["Health"])
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


def run():
    """Run the application with uvicorn."""
    import uvicorn

    uvicorn.run(
        "stagegen.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    run()
