# jewelcraft/main.py - AI CUSTOM JEWELRY DESIGN API
# Handles: design generation, pricing, saved/shared designs, GDPR, orders, image sharing

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import settings
from .errors import ConfigurationError
from .routers import design, designs, images, orders, user
from .services.database import get_supabase_client
from .services.image_storage import initialize_storage_bucket
from .utils.secure_logger import PIIScrubbingFilter, secure_logger

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
for handler in logging.getLogger().handlers:
    handler.addFilter(PIIScrubbingFilter())

logger = logging.getLogger(__name__)


def prepare_storage() -> Optional[Dict[str, Any]]:
    """
    Make sure the image bucket exists
    Returns:
        Bucket initialization result, or None when Supabase is not configured
    """
    if not settings.supabase_configured:
        logger.info("Supabase not configured, skipping storage bucket check")
        return None
    try:
        result = initialize_storage_bucket(get_supabase_client())
    except ConfigurationError as e:
        logger.error(f"Storage bucket check skipped: {e}")
        return None
    if not result["success"]:
        logger.warning(result["message"])
    return result


@asynccontextmanager
async def lifespan(app: FastAPI):
    await asyncio.to_thread(prepare_storage)
    yield


# Create FastAPI app
app = FastAPI(
    title="Jewelcraft",
    description="AI custom jewelry design backend",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(design.router)
app.include_router(designs.router)
app.include_router(user.router)
app.include_router(orders.router)
app.include_router(images.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """One scrubbed log line per API request"""
    started = time.perf_counter()
    response = await call_next(request)
    if request.url.path.startswith("/api/"):
        secure_logger.api_request(
            request.method,
            request.url.path,
            duration=round((time.perf_counter() - started) * 1000, 1),
            status_code=response.status_code,
        )
    return response


# ============================================================
# HEALTH CHECK
# ============================================================

@app.get("/healthz")
async def healthz():
    """Health check endpoint"""
    return {
        "status": "ok",
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "openai_configured": bool(settings.OPENAI_API_KEY),
        "supabase_configured": settings.supabase_configured,
    }


# ============================================================
# ERROR HANDLERS
# ============================================================

@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """Handle HTTP exceptions"""
    logger.error(f"HTTP {exc.status_code}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
        }
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    """Malformed request bodies are client errors"""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    logger.warning(f"Request validation failed: {field} {message}")
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": f"{field}: {message}" if field else message,
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    """Handle general exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
