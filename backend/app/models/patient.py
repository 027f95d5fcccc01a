from enum import Enum

from sqlalchemy import Column, String, Date, Text, DateTime, Integer
from .base import Base


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class BloodGroup(str, Enum):
    A_POS = "A_POS"
    A_NEG = "A_NEG"
    B_POS = "B_POS"
    B_NEG = "B_NEG"
    AB_POS = "AB_POS"
    AB_NEG = "AB_NEG"
    O_POS = "O_POS"
    O_NEG = "O_NEG"
    UNKNOWN = "UNKNOWN"

    @property
    def display(self) -> str:
        if self is BloodGroup.UNKNOWN:
            return "Unknown"
        group, sign = self.value.split("_")
        return group + ("+" if sign == "POS" else "-")


class PatientStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class PatientStatusFilter(str, Enum):
    """Query-side status filter; ALL never reaches the patients table."""
    ALL = "ALL"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class Patient(Base):
    __tablename__ = "patients"

    # Business key, e.g. P2026001. Allocated by the ID allocator, never by the database.
    patient_id = Column(String(12), primary_key=True)

    # Demographics (PHI)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    gender = Column(String(10), nullable=False)
    phone_number = Column("phone", String(20), nullable=False, index=True)  # not unique
    email = Column(String(100), nullable=True)

    # Address
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    zip_code = Column(String(20), nullable=True)

    # Emergency contact
    emergency_contact_name = Column(String(100), nullable=True)
    emergency_contact_phone = Column(String(20), nullable=True)
    emergency_contact_relationship = Column(String(50), nullable=True)

    # Medical summary
    blood_group = Column(String(10), nullable=False, default=BloodGroup.UNKNOWN.value)
    known_allergies = Column(Text, nullable=True)
    chronic_conditions = Column(Text, nullable=True)

    status = Column(String(10), nullable=False, default=PatientStatus.ACTIVE.value, index=True)

    # Audit fields - updated_* are NOT NULL and start equal to created_*
    created_at = Column(DateTime, nullable=False, index=True)
    created_by = Column(String(100), nullable=False)
    updated_at = Column(DateTime, nullable=False)
    updated_by = Column(String(100), nullable=False)
    deactivated_at = Column(DateTime, nullable=True)
    deactivated_by = Column(String(100), nullable=True)
    activated_at = Column(DateTime, nullable=True)
    activated_by = Column(String(100), nullable=True)

    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        # PHI stays out of reprs and therefore out of logs
        return f"<Patient {self.patient_id} status={self.status} v{self.version}>"
