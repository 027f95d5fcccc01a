from fastapi import APIRouter, Depends, Query, status
from typing import Optional

from ..core.config import settings
from ..models.patient import BloodGroup, Gender, PatientStatusFilter
from ..schemas.patient import (
    ApiResponse,
    PagedResponse,
    PatientRegistrationRequest,
    PatientResponse,
    PatientSummaryResponse,
    PatientUpdateRequest,
    to_patient_response,
)
from ..services.patient_service import PatientService
from .deps import get_actor_id, get_patient_service

router = APIRouter(prefix="/patients", tags=["patients"])


@router.post(
    "",
    response_model=ApiResponse[PatientResponse],
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def register_patient(
    patient_in: PatientRegistrationRequest,
    service: PatientService = Depends(get_patient_service),
    actor_id: str = Depends(get_actor_id),
):
    """Register a new patient. A shared phone number is reported as a warning, never rejected."""
    patient, duplicate_phone = service.register_patient(patient_in, actor_id)
    return ApiResponse[PatientResponse].ok(
        to_patient_response(patient, duplicate_phone_warning=duplicate_phone),
        message="Patient registered successfully",
    )


@router.get("", response_model=ApiResponse[PagedResponse[PatientSummaryResponse]])
def search_patients(
    search: Optional[str] = Query(None, description="Match patient ID, name, phone or email"),
    status: PatientStatusFilter = Query(PatientStatusFilter.ALL, description="ACTIVE, INACTIVE or ALL"),
    gender: Optional[Gender] = Query(None),
    blood_group: Optional[BloodGroup] = Query(None),
    page: int = Query(0, ge=0),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    service: PatientService = Depends(get_patient_service),
):
    """List and search patients with filtering and pagination, newest first."""
    result = service.search_patients(
        search=search,
        status=status,
        gender=gender.value if gender else None,
        blood_group=blood_group.value if blood_group else None,
        page=page,
        size=size,
    )
    return ApiResponse[PagedResponse[PatientSummaryResponse]].ok(result)


@router.get("/{patient_id}", response_model=ApiResponse[PatientResponse], response_model_exclude_none=True)
def get_patient(
    patient_id: str,
    service: PatientService = Depends(get_patient_service),
):
    patient = service.get_patient(patient_id)
    return ApiResponse[PatientResponse].ok(to_patient_response(patient))


@router.put("/{patient_id}", response_model=ApiResponse[PatientResponse], response_model_exclude_none=True)
def update_patient(
    patient_id: str,
    patient_in: PatientUpdateRequest,
    service: PatientService = Depends(get_patient_service),
    actor_id: str = Depends(get_actor_id),
):
    """Update demographic and medical information. Status is changed via activate/deactivate only."""
    patient, duplicate_phone = service.update_patient(patient_id, patient_in, actor_id)
    return ApiResponse[PatientResponse].ok(
        to_patient_response(patient, duplicate_phone_warning=duplicate_phone),
        message="Patient updated successfully",
    )


@router.patch("/{patient_id}/deactivate", response_model=ApiResponse[PatientResponse], response_model_exclude_none=True)
def deactivate_patient(
    patient_id: str,
    service: PatientService = Depends(get_patient_service),
    actor_id: str = Depends(get_actor_id),
):
    patient = service.deactivate_patient(patient_id, actor_id)
    return ApiResponse[PatientResponse].ok(
        to_patient_response(patient), message="Patient deactivated successfully"
    )


@router.patch("/{patient_id}/activate", response_model=ApiResponse[PatientResponse], response_model_exclude_none=True)
def activate_patient(
    patient_id: str,
    service: PatientService = Depends(get_patient_service),
    actor_id: str = Depends(get_actor_id),
):
    patient = service.activate_patient(patient_id, actor_id)
    return ApiResponse[PatientResponse].ok(
        to_patient_response(patient), message="Patient activated successfully"
    )
