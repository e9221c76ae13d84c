"""
Auto Insurance Backend: FastAPI application, logging setup and error mapping.

Run with `uvicorn app.main:app` or `python -m app.main`.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import re

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import auth, claims, payments, policies, quotes, vehicles
from app.config import settings
from app.db import init_db, close_db
from app.domain.exceptions import AppError
from app.version import __version__

APP_NAME = "Auto Insurance Backend"

# (pattern, replacement) pairs applied in order to every log message
_REDACTIONS = (
    (re.compile(r'eyJ[A-Za-z0-9_-]*\.eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]*'), '[JWT_REDACTED]'),
    (re.compile(r'\$2[aby]\$\d{2}\$[./A-Za-z0-9]{53}'), '[HASH_REDACTED]'),
    (
        re.compile(
            r"(['\"]?(?:password|refresh_token|access_token|token)['\"]?\s*[:=]\s*['\"]?)([^'\",\s}]+)",
            re.IGNORECASE,
        ),
        r'\1[REDACTED]',
    ),
)

# Local frontend dev servers, allowed outside production
DEV_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
]


class SensitiveDataFilter(logging.Filter):
    """Masks JWTs, bcrypt hashes and password/token values before a record is emitted"""

    def filter(self, record):
        if hasattr(record, 'msg'):
            text = str(record.msg)
            for pattern, replacement in _REDACTIONS:
                text = pattern.sub(replacement, text)
            record.msg = text
        return True


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    redactor = SensitiveDataFilter()
    for handler in logging.root.handlers:
        handler.addFilter(redactor)


def cors_origins() -> list:
    """CORS_ORIGINS (comma-separated), plus the dev servers outside production"""
    configured = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
    if settings.environment == "production":
        return configured
    return DEV_ORIGINS + configured


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database on startup and dispose of it on shutdown"""
    logger.info(f"🚀 {APP_NAME} {__version__} starting ({settings.environment})")
    await init_db()

    yield

    logger.info("Shutting down...")
    await close_db()


app = FastAPI(
    title=APP_NAME,
    description="Users, vehicles, quotes, policies, claims and payments for an auto insurer",
    version=__version__,
    lifespan=lifespan,
)

allowed_origins = cors_origins()
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.info(f"CORS origins: {allowed_origins}")


# ============================================
# Error Handlers
# ============================================

def _format_validation_error(error: dict) -> dict:
    # Drop the "body"/"query" prefix so the client sees just the field path
    location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(location) or "request"
    message = error.get("msg", "is invalid")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return {"field": field, "message": f"{field} {message}"}


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Reject malformed requests with 400 and a message per invalid field"""
    errors = [_format_validation_error(error) for error in exc.errors()]
    logger.warning(
        f"Validation error for {request.method} {request.url.path}: "
        f"{[error['field'] for error in errors]}"
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": "Validation failed",
            "errors": errors,
        }
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Map domain errors onto their HTTP status codes"""
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message}
    )


# Register API routes
app.include_router(auth.router, tags=["auth"])
app.include_router(vehicles.router, tags=["vehicles"])
app.include_router(quotes.router, tags=["quotes"])
app.include_router(policies.router, tags=["policies"])
app.include_router(claims.router, tags=["claims"])
app.include_router(payments.router, tags=["payments"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "app": APP_NAME,
        "version": __version__,
        "status": "running",
        "environment": settings.environment,
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.host, port=settings.port, reload=settings.environment == "development")
