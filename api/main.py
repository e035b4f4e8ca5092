"""
FastAPI application for the Constituant API.

Provides the citizen vote endpoints, the public bill listing and the
admin routes (manual bills, review queue, import logs).

Responsibility: Main API application setup and configuration
"""

# Load .env BEFORE importing settings (critical for pydantic-settings)
from dotenv import load_dotenv
load_dotenv('.env', override=True)

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from constituant.bootstrap import configure_logging
from constituant.config import settings
from constituant.db.session import db
from constituant.services.admin_service import AdminError
from constituant.services.review_service import ReviewError
from constituant.services.vote_service import VoteError

configure_logging(settings.app.log_level)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Constituant API",
    description="Citizen votes on French and European bills",
    version=settings.app.app_version,
    docs_url="/docs",
    redoc_url="/redoc"
)

logger.info(f"CORS Origins configured: {settings.app.cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.app.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*", "X-Admin-Password"],
    max_age=3600,  # Cache preflight for 1 hour
)


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup"""
    logger.info("Starting Constituant API...")
    logger.info(f"Environment: {settings.app.environment}")
    logger.info(f"Debug mode: {settings.app.debug}")
    if not settings.app.admin_password:
        logger.warning("APP_ADMIN_PASSWORD is empty; admin endpoints will refuse every request")
    await db.initialize()


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down Constituant API...")
    await db.close()


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "Constituant API",
        "version": settings.app.app_version,
        "status": "operational",
        "endpoints": {
            "bills": "/api/v1/bills",
            "votes": "/api/v1/votes",
            "results": "/api/v1/results",
            "admin": "/api/v1/admin",
            "docs": "/docs"
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "service": "constituant-api"
    }


def error_response(status_code: int, category: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": category, "message": message}
    )


@app.exception_handler(VoteError)
async def vote_error_handler(request: Request, exc: VoteError):
    return error_response(exc.status_code, exc.category, exc.message)


@app.exception_handler(ReviewError)
async def review_error_handler(request: Request, exc: ReviewError):
    return error_response(exc.status_code, exc.category, exc.message)


@app.exception_handler(AdminError)
async def admin_error_handler(request: Request, exc: AdminError):
    return error_response(exc.status_code, exc.category, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and query parameters."""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg', 'invalid value')}" if location else "Requête invalide"
    return error_response(400, "invalid_request", message)


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return error_response(
        500,
        "internal_error",
        str(exc) if settings.app.debug else "An unexpected error occurred"
    )


# Import and include routers
from api.v1.endpoints import admin, bills, votes

app.include_router(
    votes.router,
    prefix="/api/v1",
    tags=["votes"]
)

app.include_router(
    bills.router,
    prefix="/api/v1",
    tags=["bills"]
)

app.include_router(
    admin.router,
    prefix="/api/v1",
    tags=["admin"]
)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=settings.app.api_host,
        port=settings.app.api_port,
        reload=settings.app.debug
    )
