"""
Access audit middleware.
Records who touched which patient record (PHI) for every request to the patient endpoints.
"""
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from ..models.audit_log import AuditLog
from ..models.base import SessionLocal, generate_uuid
from .config import settings

logger = logging.getLogger(__name__)

# Endpoints that touch PHI - requests to these paths are logged
PHI_PATH_PREFIXES = (
    "/api/v1/patients",
)

ACTION_MAP = {
    "GET": "view",
    "POST": "create",
    "PUT": "update",
    "PATCH": "update",
    "DELETE": "delete",
}


class AuditMiddleware(BaseHTTPMiddleware):
    """Middleware that auto-logs access to PHI endpoints."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        if not settings.AUDIT_ENABLED:
            return response

        path = request.url.path
        if not any(path.startswith(prefix) for prefix in PHI_PATH_PREFIXES):
            return response

        if request.method not in ACTION_MAP:
            return response

        user_id = request.headers.get("X-User-ID", "").strip() or settings.DEFAULT_ACTOR

        # /api/v1/patients/{patient_id}[/action]
        parts = [p for p in path.split("/") if p]
        resource_type = parts[2] if len(parts) >= 3 else "unknown"
        resource_id = parts[3] if len(parts) >= 4 else "*"

        ip_address = request.client.host if request.client else None

        db = SessionLocal()
        try:
            db.add(
                AuditLog(
                    id=generate_uuid(),
                    user_id=user_id,
                    action=ACTION_MAP[request.method],
                    resource_type=resource_type,
                    resource_id=resource_id,
                    ip_address=ip_address,
                    request_method=request.method,
                    request_path=path,
                    response_status=str(response.status_code),
                )
            )
            db.commit()
        except Exception as exc:
            db.rollback()
            logger.warning(
                "Audit log write failed for %s %s (user=%s): %s",
                request.method, path, user_id, type(exc).__name__,
            )
        finally:
            db.close()

        return response
