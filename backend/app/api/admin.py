"""Admin endpoints: patient access audit log viewer."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel, ConfigDict
from datetime import datetime

from ..models.base import get_db
from ..models.audit_log import AuditLog
from ..schemas.patient import ApiResponse

router = APIRouter(prefix="/admin", tags=["admin"])


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    action: str
    resource_type: str
    resource_id: str
    ip_address: Optional[str]
    request_method: Optional[str]
    request_path: Optional[str]
    response_status: Optional[str]
    created_at: datetime


@router.get("/audit-logs", response_model=ApiResponse[List[AuditLogResponse]])
def get_audit_logs(
    user_id: Optional[str] = Query(None, description="Filter by acting user"),
    action: Optional[str] = Query(None, description="Filter by action type"),
    resource_id: Optional[str] = Query(None, description="Filter by patient ID"),
    since: Optional[datetime] = Query(None, description="Filter records after this datetime"),
    until: Optional[datetime] = Query(None, description="Filter records before this datetime"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Searchable access log, newest first. Filterable by user, patient, date range, action type."""
    q = db.query(AuditLog)
    if user_id:
        q = q.filter(AuditLog.user_id == user_id)
    if action:
        q = q.filter(AuditLog.action == action)
    if resource_id:
        q = q.filter(AuditLog.resource_id == resource_id)
    if since:
        q = q.filter(AuditLog.created_at >= since)
    if until:
        q = q.filter(AuditLog.created_at <= until)
    rows = q.order_by(AuditLog.created_at.desc()).offset(skip).limit(limit).all()
    return ApiResponse[List[AuditLogResponse]].ok([AuditLogResponse.model_validate(r) for r in rows])
