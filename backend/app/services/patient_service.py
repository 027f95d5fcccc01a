"""
Patient registration and record maintenance.

Registration flow:
  1. advisory duplicate-phone check on the request session (never blocks)
  2. patient ID from the injected allocator (its own SERIALIZABLE transaction)
  3. insert; a primary-key collision comes back as AllocationConflict and
     steps 2-3 are retried with exponential backoff, a bounded number of times

Phone numbers are PHI and are never written to the log; log lines carry the
patient ID and acting user only.
"""
import logging
import math
import random
import time
from datetime import datetime
from typing import Callable, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import (
    AllocationConflict,
    AllocationExhausted,
    PatientNotFound,
    StatusConflict,
    ConcurrentModification,
)
from ..models.base import utc_now
from ..models.patient import BloodGroup, Patient, PatientStatus, PatientStatusFilter
from ..repositories.patient_repository import PatientRepository
from ..schemas.patient import (
    PagedResponse,
    PatientDetails,
    PatientRegistrationRequest,
    PatientSummaryResponse,
    PatientUpdateRequest,
    to_summary_response,
)
from .id_allocator import IdentifierAllocator

logger = logging.getLogger(__name__)


class PatientService:
    def __init__(
        self,
        db: Session,
        id_allocator: IdentifierAllocator,
        max_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.repository = PatientRepository(db)
        self.id_allocator = id_allocator
        self.max_attempts = max(1, max_attempts or settings.ID_ALLOCATION_MAX_ATTEMPTS)
        self.backoff_seconds = (
            settings.ID_ALLOCATION_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        )
        self.sleep = sleep
        self.now = now

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_patient(self, request: PatientRegistrationRequest, actor_id: str) -> Tuple[Patient, bool]:
        """Create a patient; returns the stored record and the duplicate-phone warning flag."""
        logger.info("Registering new patient by user=%s", actor_id)

        duplicate_phone = self._phone_in_use(request.phone_number)
        patient = self._insert_with_fresh_id(request, actor_id)

        if duplicate_phone:
            logger.warning("Duplicate phone detected for new registration, patient_id=%s", patient.patient_id)
        logger.info("Patient registered successfully with ID: %s", patient.patient_id)
        return patient, duplicate_phone

    def _insert_with_fresh_id(self, request: PatientRegistrationRequest, actor_id: str) -> Patient:
        last_conflict = None
        for attempt in range(self.max_attempts):
            # Hand the request connection back to the pool; the allocator checks out its own
            self.db.rollback()
            try:
                patient_id = self.id_allocator.allocate()
                return self.repository.insert(self._build_patient(request, patient_id, actor_id))
            except AllocationConflict as exc:
                last_conflict = exc
                logger.warning(
                    "Patient ID allocation conflict (attempt %d/%d): %s",
                    attempt + 1, self.max_attempts, exc.message,
                )
                if attempt + 1 < self.max_attempts:
                    self.sleep(self._backoff(attempt))

        logger.error("Patient ID allocation failed after %d attempts", self.max_attempts)
        raise AllocationExhausted(
            "Could not allocate a patient ID. Please retry the registration."
        ) from last_conflict

    def _backoff(self, attempt: int) -> float:
        # Jitter keeps racing registrations from retrying in lockstep
        return self.backoff_seconds * (2 ** attempt) * (1 + random.random())

    def _build_patient(self, request: PatientRegistrationRequest, patient_id: str, actor_id: str) -> Patient:
        now = self.now()
        patient = Patient(
            patient_id=patient_id,
            status=PatientStatus.ACTIVE.value,
            created_at=now,
            created_by=actor_id,
            updated_at=now,
            updated_by=actor_id,
        )
        self._apply_details(patient, request)
        return patient

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_patient(self, patient_id: str) -> Patient:
        return self._find_or_raise(patient_id)

    def search_patients(
        self,
        search: Optional[str] = None,
        status: Optional[PatientStatusFilter] = None,
        gender: Optional[str] = None,
        blood_group: Optional[str] = None,
        page: int = 0,
        size: Optional[int] = None,
    ) -> PagedResponse[PatientSummaryResponse]:
        page = max(page, 0)
        size = min(max(size or settings.DEFAULT_PAGE_SIZE, 1), settings.MAX_PAGE_SIZE)

        rows, total = self.repository.search(
            search=search,
            status=status or PatientStatusFilter.ALL,
            gender=gender,
            blood_group=blood_group,
            offset=page * size,
            limit=size,
        )
        total_pages = math.ceil(total / size) if total else 0
        return PagedResponse[PatientSummaryResponse](
            content=[to_summary_response(p) for p in rows],
            page=page,
            size=size,
            total_elements=total,
            total_pages=total_pages,
            first=page == 0,
            last=page >= total_pages - 1,
        )

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def update_patient(self, patient_id: str, request: PatientUpdateRequest, actor_id: str) -> Tuple[Patient, bool]:
        """Replace demographic/medical fields. Status is only changed via activate/deactivate."""
        logger.info("Updating patient: %s by user: %s", patient_id, actor_id)
        patient = self._find_or_raise(patient_id)
        if request.version is not None and request.version != patient.version:
            raise ConcurrentModification(patient_id)

        # Checked before the record is touched: a failed lookup rolls the session back
        duplicate_phone = self._phone_in_use(request.phone_number, exclude_id=patient_id)
        if duplicate_phone:
            logger.warning("Duplicate phone detected during update, patient_id=%s", patient_id)

        self._apply_details(patient, request)
        patient.updated_at = self.now()
        patient.updated_by = actor_id

        saved = self.repository.update(patient)
        logger.info("Patient %s updated successfully", patient_id)
        return saved, duplicate_phone

    def deactivate_patient(self, patient_id: str, actor_id: str) -> Patient:
        logger.info("Deactivating patient: %s by user: %s", patient_id, actor_id)
        patient = self._find_or_raise(patient_id)
        if patient.status == PatientStatus.INACTIVE:
            raise StatusConflict(f"Patient {patient_id} is already inactive")

        now = self.now()
        patient.status = PatientStatus.INACTIVE.value
        patient.deactivated_at = now
        patient.deactivated_by = actor_id
        patient.updated_at = now
        patient.updated_by = actor_id

        saved = self.repository.update(patient)
        logger.info("Patient %s deactivated successfully", patient_id)
        return saved

    def activate_patient(self, patient_id: str, actor_id: str) -> Patient:
        logger.info("Activating patient: %s by user: %s", patient_id, actor_id)
        patient = self._find_or_raise(patient_id)
        if patient.status == PatientStatus.ACTIVE:
            raise StatusConflict(f"Patient {patient_id} is already active")

        now = self.now()
        patient.status = PatientStatus.ACTIVE.value
        patient.activated_at = now
        patient.activated_by = actor_id
        patient.updated_at = now
        patient.updated_by = actor_id

        saved = self.repository.update(patient)
        logger.info("Patient %s activated successfully", patient_id)
        return saved

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _find_or_raise(self, patient_id: str) -> Patient:
        patient = self.repository.find_by_patient_id(patient_id)
        if patient is None:
            raise PatientNotFound(patient_id)
        return patient

    def _phone_in_use(self, phone_number: str, exclude_id: Optional[str] = None) -> bool:
        """
        Advisory duplicate-phone lookup. Fails open: a storage error means
        "no warning", never a failed registration or update.
        """
        try:
            if exclude_id is None:
                return self.repository.exists_by_phone(phone_number)
            return self.repository.exists_by_phone_excluding(phone_number, exclude_id)
        except SQLAlchemyError as exc:
            # Statement parameters would include the phone number; log the error type only
            logger.warning("Duplicate phone check failed (%s); continuing without warning", type(exc).__name__)
            self.db.rollback()
            return False

    @staticmethod
    def _apply_details(patient: Patient, details: PatientDetails) -> None:
        patient.first_name = details.first_name.strip()
        patient.last_name = details.last_name.strip()
        patient.date_of_birth = details.date_of_birth
        patient.gender = details.gender.value
        patient.phone_number = details.phone_number.strip()
        patient.email = details.email
        patient.address = details.address
        patient.city = details.city
        patient.state = details.state
        patient.zip_code = details.zip_code
        patient.emergency_contact_name = details.emergency_contact_name
        patient.emergency_contact_phone = details.emergency_contact_phone
        patient.emergency_contact_relationship = details.emergency_contact_relationship
        patient.blood_group = (details.blood_group or BloodGroup.UNKNOWN).value
        patient.known_allergies = details.known_allergies
        patient.chronic_conditions = details.chronic_conditions
