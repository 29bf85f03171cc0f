"""
FastAPI main application for Bug Whisperer.

This application provides a REST API for analyzing JavaScript snippets:
located issues, an automatically repaired version and a short lesson.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import traceback
import logging

from .api import analyze, system
from .config import config
from ._version import __version__

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Bug Whisperer API",
    description="API for analyzing JavaScript snippets, repairing them and explaining the dominant defect",
    version=__version__
)

# Add request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"🌐 HTTP {request.method} {request.url.path}")
    response = await call_next(request)
    logger.info(f"🌐 Response: {response.status_code}")
    return response

# Global exception handler for anything the endpoints did not map themselves
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log the full stack trace and return a JSON 500."""

    full_traceback = traceback.format_exc()

    logger.error(f"🚨 UNHANDLED ERROR in {request.method} {request.url}")
    logger.error(f"🚨 Exception: {exc}")
    logger.error(f"🚨 FULL STACK TRACE:\n{full_traceback}")

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error during code analysis",
            "details": f"{type(exc).__name__}: {exc}",
        }
    )

# Configure CORS (ENV > config.json > "*")
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(analyze.router, prefix="/api", tags=["analyze"])
app.include_router(system.router, prefix="/api/system", tags=["system"])

@app.get("/")
async def root():
    """Service banner with the main endpoints."""
    return {
        "message": "Bug Whisperer API is running",
        "api": "/api/analyze",
        "health": "/api/health",
        "version": __version__,
    }

@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "OK", "service": analyze.SERVICE_NAME, "version": __version__}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
