"""
Business Licensing Portal - Main Application Entry Point
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import re

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from licensing.api import admin, applications, auth, events, licenses, profiles
from licensing.config import settings
from licensing.db import close_db, init_db
from licensing.domain.entities import (
    AccessDenied,
    AuthenticationRequired,
    DomainError,
    EmailAlreadyRegistered,
    InvalidCredentials,
    InvalidStatusTransition,
    NotFoundError,
    StoreOperationFailed,
    ValidationFailed,
)
from licensing.version import __version__


class SensitiveDataFilter(logging.Filter):
    """Filter to redact sensitive data from logs"""

    _JWT = re.compile(r'eyJ[A-Za-z0-9_-]*\.eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]*')
    _BCRYPT = re.compile(r'\$2[abxy]?\$\d{2}\$[./A-Za-z0-9]{53}')
    _PASSWORD = re.compile(r"(['\"]?password['\"]?\s*[:=]\s*['\"]?)([^'\"\s,}]+)", re.IGNORECASE)

    def filter(self, record):
        if hasattr(record, 'msg'):
            msg = str(record.msg)
            if 'eyJ' in msg:
                msg = self._JWT.sub('[JWT_REDACTED]', msg)
            if '$2' in msg:
                msg = self._BCRYPT.sub('[HASH_REDACTED]', msg)
            if 'password' in msg.lower():
                msg = self._PASSWORD.sub(r'\1[REDACTED]', msg)
            record.msg = msg
        return True


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

for handler in logging.root.handlers:
    handler.addFilter(SensitiveDataFilter())

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - handles startup and shutdown"""
    logger.info("🚀 Starting Business Licensing Portal")
    logger.info(f"📦 Version: {__version__}")
    logger.info(f"📝 Environment: {settings.environment}")

    await init_db()

    if getattr(settings, '_using_ephemeral_secret', False):
        logger.warning("⚠️  Using an ephemeral SESSION_SECRET - all sessions end on restart")

    logger.info("✅ Configuration loaded successfully")

    yield

    logger.info("Shutting down...")
    await close_db()


app = FastAPI(
    title="Business Licensing Portal",
    description="License applications, admin review and public license verification",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)


# ============================================
# CORS Middleware Configuration
# ============================================

dev_origins = [
    "http://localhost:5173",  # Vite dev server
    "http://127.0.0.1:5173",
]
production_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
allowed_origins = dev_origins + production_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info(f"✅ CORS configured for origins: {allowed_origins}")


# ============================================
# Error handling
# ============================================

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred."

# Most specific first
_ERROR_RESPONSES = [
    (AuthenticationRequired, status.HTTP_401_UNAUTHORIZED, "Authentication Required"),
    (InvalidCredentials, status.HTTP_401_UNAUTHORIZED, "Sign In Failed"),
    (ValidationFailed, status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation Failed"),
    (AccessDenied, status.HTTP_403_FORBIDDEN, "Access Denied"),
    (NotFoundError, status.HTTP_404_NOT_FOUND, "Not Found"),
    (InvalidStatusTransition, status.HTTP_409_CONFLICT, "Invalid Status Change"),
    (EmailAlreadyRegistered, status.HTTP_409_CONFLICT, "Sign Up Failed"),
    (StoreOperationFailed, status.HTTP_502_BAD_GATEWAY, "Error"),
]


def notification(title: str, detail: str, errors=None) -> dict:
    """Transient notification payload rendered by the client"""
    content = {"title": title, "detail": detail}
    if errors is not None:
        content["errors"] = errors
    return content


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    for error_type, status_code, title in _ERROR_RESPONSES:
        if isinstance(exc, error_type):
            break
    else:
        logger.error(f"Unmapped domain error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=notification("Error", UNEXPECTED_ERROR_MESSAGE),
        )

    if isinstance(exc, StoreOperationFailed) and request.method == "POST" \
            and request.url.path.endswith("/applications"):
        title = "Submission Failed"

    errors = exc.by_field() if isinstance(exc, ValidationFailed) else None
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None

    logger.warning(f"{request.method} {request.url.path} -> {status_code} {type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=status_code,
        content=notification(title, str(exc), errors),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log request validation errors and answer in the notification format"""
    logger.error(f"Validation error for {request.method} {request.url.path}")
    logger.error(f"Validation errors: {exc.errors()}")

    errors = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part != "body") or "body"
        errors.setdefault(field, []).append(error["msg"])

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=notification("Validation Failed", "Request validation failed", errors),
    )


@app.exception_handler(Exception)
async def unexpected_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=notification("Error", UNEXPECTED_ERROR_MESSAGE),
    )


# Register API routes
app.include_router(auth.router, prefix="/api/v1", tags=["auth"])
app.include_router(events.router, prefix="/api/v1", tags=["events"])
app.include_router(applications.router, prefix="/api/v1", tags=["applications"])
app.include_router(licenses.router, prefix="/api/v1", tags=["licenses"])
app.include_router(profiles.router, prefix="/api/v1", tags=["profiles"])
app.include_router(admin.router, prefix="/api/v1", tags=["admin"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "app": "Business Licensing Portal",
        "version": __version__,
        "status": "running",
        "environment": settings.environment,
        "verify_url": "/api/v1/licenses/verify",
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment
    }
