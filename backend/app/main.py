"""
HPM Patient Service - patient registration and record management API.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import settings
from .core.exceptions import PatientServiceError
from .core.audit_middleware import AuditMiddleware
from .models.base import Base, engine
from .models import patient, audit_log  # noqa: F401 - register tables
from .api import patients, admin
from .schemas.patient import ApiResponse

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please contact support."

# Create all database tables
# NOTE: In production, use Alembic migrations instead of create_all()
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="HPM Patient Service API",
    description="Hospital management system - patient registration and record management microservice.",
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(AuditMiddleware)

app.include_router(patients.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")


def _error_response(status_code: int, message: str, data=None) -> JSONResponse:
    body = ApiResponse.error(message, data=data)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


@app.exception_handler(PatientServiceError)
async def patient_service_error_handler(request: Request, exc: PatientServiceError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
        message = GENERIC_ERROR_MESSAGE if exc.status_code == 500 else exc.message
        return _error_response(exc.status_code, message)
    if exc.status_code == status.HTTP_409_CONFLICT:
        logger.warning("%s: %s", type(exc).__name__, exc.message)
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "header")]
        field = ".".join(loc) or "request"
        message = error.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, message)
    return _error_response(status.HTTP_400_BAD_REQUEST, "Validation failed", data=errors)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    # Full detail stays in the server log; the caller gets nothing internal
    logger.exception("Unexpected error on %s %s", request.method, request.url.path)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_ERROR_MESSAGE)


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": settings.APP_NAME, "version": settings.VERSION}
