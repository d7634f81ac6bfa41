"""
FactoryFlow - Main FastAPI Application
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime

from app.core.limiter import apply_rate_limiting
from app.api.v1 import router as api_v1_router
from app.api.v1.deps import shutdown_operation_tracker
from app.core.config import settings
from app.core.status_config import StatusTransitionError
from app.exceptions import DatabaseError, FactoryFlowException, ServiceUnavailableError
from app.logging_config import setup_logging, get_logger
from app.services.webhook_service import shutdown_delivery

# Setup structured logging
setup_logging()
logger = get_logger(__name__)


# ===================
# Security Headers Middleware
# ===================

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


def init_database():
    """Create missing tables on startup (idempotent). Migrations own schema changes."""
    try:
        from app.db.session import engine
        from app.db.base import Base
        import app.models  # noqa: F401
        logger.info("Checking database tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ready")
    except SQLAlchemyError as e:
        logger.error(f"Database initialization failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(
        "Starting FactoryFlow API",
        extra={
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
            "debug": settings.DEBUG,
        }
    )
    init_database()
    yield
    shutdown_operation_tracker()
    shutdown_delivery()
    logger.info("Shutting down FactoryFlow API")


# Create FastAPI app
app = FastAPI(
    title="FactoryFlow API",
    description="Customer order fulfillment and production routing for a learning factory",
    version=settings.VERSION,
    lifespan=lifespan,
)

apply_rate_limiting(app)

# Security headers middleware (outermost)
app.add_middleware(SecurityHeadersMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "Origin", "X-Requested-With"],
)


def _timestamp() -> str:
    return datetime.utcnow().isoformat() + "Z"


# ===================
# Exception Handlers
# ===================

@app.exception_handler(FactoryFlowException)
async def factoryflow_exception_handler(request: Request, exc: FactoryFlowException):
    logger.warning(
        f"FactoryFlow Exception: {exc.error_code} - {exc.message}",
        extra={"error_code": exc.error_code, "details": exc.details, "path": request.url.path}
    )
    error_dict = exc.to_dict()
    error_dict["timestamp"] = _timestamp()
    return JSONResponse(status_code=exc.status_code, content=error_dict)


@app.exception_handler(StatusTransitionError)
async def status_transition_handler(request: Request, exc: StatusTransitionError):
    logger.warning(f"Rejected transition on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=400,
        content={
            "error": "INVALID_TRANSITION",
            "message": str(exc),
            "details": {
                "entity": exc.entity,
                "current_state": exc.current,
                "requested_state": exc.requested,
                "allowed_states": exc.allowed,
            },
            "timestamp": _timestamp(),
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        errors.append({"field": field, "message": error["msg"], "type": error["type"]})
    logger.warning("Validation error on %s", request.url.path, extra={"errors": errors})
    return JSONResponse(
        status_code=422,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": {"errors": errors},
            "timestamp": _timestamp(),
        },
    )


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.url.path}: {str(exc)}", exc_info=True)
    error = DatabaseError("A database error occurred. Please try again.")
    error_dict = error.to_dict()
    error_dict["timestamp"] = _timestamp()
    return JSONResponse(status_code=error.status_code, content=error_dict)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error on {request.url.path}: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred. Please try again later.",
            "timestamp": _timestamp(),
        },
    )


# Include API routes
app.include_router(api_v1_router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    return {"message": "FactoryFlow API", "version": settings.VERSION, "status": "online"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/health/ready")
def readiness_check():
    """Database reachable; 503 otherwise."""
    from app.db.session import engine
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Readiness check failed: {e}")
        raise ServiceUnavailableError("Database", retry_after=30) from e
    return {"status": "ready"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8015, reload=True)
