from sqlalchemy import Column, String
from .base import Base, TimestampMixin, generate_uuid


class AuditLog(Base, TimestampMixin):
    """Access trail for patient endpoints: who touched which record, and how."""
    __tablename__ = "audit_logs"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String(100), nullable=False, index=True)
    action = Column(String(50), nullable=False)  # view, create, update
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(String, nullable=False, index=True)
    ip_address = Column(String(45), nullable=True)
    request_method = Column(String(10), nullable=True)
    request_path = Column(String(500), nullable=True)
    response_status = Column(String(3), nullable=True)
