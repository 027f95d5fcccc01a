"""
Storage access for patient records.

All queries go through a caller-supplied SQLAlchemy session, so the same
repository works on a request session (read-committed, default isolation)
and on the allocator's independent serializable unit of work.
"""
from typing import List, Optional, Tuple

from sqlalchemy import Integer, cast, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..core.exceptions import AllocationConflict, ConcurrentModification
from ..models.patient import Patient, PatientStatusFilter

PATIENT_ID_PREFIX = "P"


class PatientRepository:
    def __init__(self, db: Session):
        self.db = db

    # ── reads ────────────────────────────────────────────────────────────────

    def find_by_patient_id(self, patient_id: str) -> Optional[Patient]:
        return self.db.query(Patient).filter(Patient.patient_id == patient_id).first()

    def exists_by_patient_id(self, patient_id: str) -> bool:
        return self._exists(Patient.patient_id == patient_id)

    def exists_by_phone(self, phone_number: str) -> bool:
        return self._exists(Patient.phone_number == phone_number)

    def exists_by_phone_excluding(self, phone_number: str, exclude_id: str) -> bool:
        """Does a *different* patient already hold this phone number?"""
        return self._exists(Patient.phone_number == phone_number, Patient.patient_id != exclude_id)

    def max_counter_for_year(self, year: str) -> Optional[int]:
        """Highest counter among IDs shaped P<year>NNN, or None when the year has none yet."""
        prefix = f"{PATIENT_ID_PREFIX}{year}"
        counter = cast(func.substr(Patient.patient_id, len(prefix) + 1), Integer)
        return (
            self.db.query(func.max(counter))
            .filter(Patient.patient_id.like(f"{prefix}%"))
            .scalar()
        )

    def search(
        self,
        search: Optional[str] = None,
        status: PatientStatusFilter = PatientStatusFilter.ALL,
        gender: Optional[str] = None,
        blood_group: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Patient], int]:
        """Filtered page of patients, newest first, plus the total match count."""
        q = self.db.query(Patient)
        if status and status != PatientStatusFilter.ALL:
            q = q.filter(Patient.status == status.value)
        if gender:
            q = q.filter(Patient.gender == gender)
        if blood_group:
            q = q.filter(Patient.blood_group == blood_group)
        if search and search.strip():
            term = f"%{search.strip().lower()}%"
            q = q.filter(
                or_(
                    func.lower(Patient.patient_id).like(term),
                    func.lower(Patient.first_name).like(term),
                    func.lower(Patient.last_name).like(term),
                    func.lower(Patient.phone_number).like(term),
                    func.lower(Patient.email).like(term),
                )
            )
        total = q.count()
        rows = (
            q.order_by(Patient.created_at.desc(), Patient.patient_id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return rows, total

    # ── writes ───────────────────────────────────────────────────────────────

    def insert(self, patient: Patient) -> Patient:
        """
        Persist a new patient. The primary key on patient_id is the last line of
        defence against two allocators handing out the same ID: a collision is
        reported as AllocationConflict so the caller can allocate again.
        """
        self.db.add(patient)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            if self.exists_by_patient_id(patient.patient_id):
                raise AllocationConflict(f"Patient ID {patient.patient_id} is already taken")
            raise
        self.db.refresh(patient)
        return patient

    def update(self, patient: Patient) -> Patient:
        """Flush changes; the mapper's version column rejects writes based on a stale read."""
        patient_id = patient.patient_id
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            raise ConcurrentModification(patient_id)
        self.db.refresh(patient)
        return patient

    def _exists(self, *criteria) -> bool:
        return self.db.query(self.db.query(Patient).filter(*criteria).exists()).scalar()
