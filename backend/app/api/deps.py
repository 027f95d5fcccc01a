"""Shared FastAPI dependencies: acting user, ID allocator, patient service."""
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.base import get_db
from ..services.id_allocator import IdentifierAllocator, SerializableIdAllocator
from ..services.patient_service import PatientService


def get_actor_id(x_user_id: Optional[str] = Header(None, alias="X-User-ID")) -> str:
    """Audit identity of the caller. There is no authentication layer; the gateway sets this header."""
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    return settings.DEFAULT_ACTOR


def get_id_allocator(db: Session = Depends(get_db)) -> IdentifierAllocator:
    # Same engine as the request session, but its own connection and transaction
    return SerializableIdAllocator(bind=db.get_bind())


def get_patient_service(
    db: Session = Depends(get_db),
    id_allocator: IdentifierAllocator = Depends(get_id_allocator),
) -> PatientService:
    return PatientService(db, id_allocator)
