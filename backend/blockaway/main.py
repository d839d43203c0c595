"""FastAPI application entry point."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .api.routes import analyze, codec, generate, solve

# Get settings
settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Solvability checks, deadlock diagnosis and level generation for Block Away puzzles",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(solve.router)
app.include_router(analyze.router)
app.include_router(generate.router)
app.include_router(codec.router)

logger.info("%s %s ready", settings.app_name, settings.app_version)


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Block Away Level Engine API",
        "endpoints": {
            "path": "/api/path",
            "solve": "/api/solve",
            "deadlock": "/api/deadlock",
            "play": "/api/play",
            "analyze": "/api/analyze",
            "generate": "/api/generate",
            "adjust": "/api/generate/adjust",
            "export_reference": "/api/export/reference",
            "import_reference": "/api/import/reference",
            "validate": "/api/validate",
            "docs": "/docs",
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.app_version,
    }


if __name__ == "__main__":
    import os
    import uvicorn

    # Multi-worker: reload mode (debug) doesn't support workers
    worker_count = 1 if settings.debug else min(4, os.cpu_count() or 4)

    uvicorn.run(
        "blockaway.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=worker_count,
    )
