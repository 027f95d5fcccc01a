import re
from datetime import date, datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..models.patient import BloodGroup, Gender, Patient, PatientStatus

T = TypeVar("T")

# +1-XXX-XXX-XXXX | (XXX) XXX-XXXX | XXX-XXX-XXXX
PHONE_PATTERN = re.compile(r"^(\+1-\d{3}-\d{3}-\d{4}|\(\d{3}\) \d{3}-\d{4}|\d{3}-\d{3}-\d{4})$")
PHONE_FORMAT_MESSAGE = (
    "Invalid phone number format. Accepted: +1-XXX-XXX-XXXX, (XXX) XXX-XXXX, XXX-XXX-XXXX"
)


def is_valid_phone(value: Optional[str]) -> bool:
    if value is None or not value.strip():
        return False
    return PHONE_PATTERN.match(value.strip()) is not None


# ── Envelope ─────────────────────────────────────────────────────────────────

class ApiResponse(BaseModel, Generic[T]):
    success: bool
    message: Optional[str] = None
    data: Optional[T] = None

    @classmethod
    def ok(cls, data=None, message: Optional[str] = None):
        return cls(success=True, message=message, data=data)

    @classmethod
    def error(cls, message: str, data=None):
        return cls(success=False, message=message, data=data)


class PagedResponse(BaseModel, Generic[T]):
    content: List[T]
    page: int
    size: int
    total_elements: int
    total_pages: int
    first: bool
    last: bool


# ── Requests ─────────────────────────────────────────────────────────────────

class PatientDetails(BaseModel):
    """Fields shared by registration and update; both replace the full record."""

    first_name: str = Field(..., max_length=50)
    last_name: str = Field(..., max_length=50)
    date_of_birth: date
    gender: Gender
    phone_number: str
    email: Optional[EmailStr] = None

    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)

    emergency_contact_name: Optional[str] = Field(None, max_length=100)
    emergency_contact_phone: Optional[str] = Field(None, max_length=20)
    emergency_contact_relationship: Optional[str] = Field(None, max_length=50)

    blood_group: Optional[BloodGroup] = None
    known_allergies: Optional[str] = None
    chronic_conditions: Optional[str] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("phone_number")
    @classmethod
    def _valid_phone(cls, value: str) -> str:
        if not is_valid_phone(value):
            raise ValueError(PHONE_FORMAT_MESSAGE)
        return value.strip()

    @field_validator("email")
    @classmethod
    def _email_length(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and len(value) > 100:
            raise ValueError("Email must not exceed 100 characters")
        return value

    @field_validator("date_of_birth")
    @classmethod
    def _not_in_future(cls, value: date) -> date:
        if value > date.today():
            raise ValueError("Date of birth must not be in the future")
        return value


class PatientRegistrationRequest(PatientDetails):
    pass


class PatientUpdateRequest(PatientDetails):
    # Version the client last read; a mismatch is rejected as a concurrent modification
    version: Optional[int] = None


# ── Responses ────────────────────────────────────────────────────────────────

class PatientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    patient_id: str
    first_name: str
    last_name: str
    date_of_birth: date
    age: int = 0
    gender: Gender
    phone_number: str
    email: Optional[str] = None

    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None

    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    emergency_contact_relationship: Optional[str] = None

    blood_group: BloodGroup
    blood_group_display: Optional[str] = None  # "A+", "O-", "Unknown"
    known_allergies: Optional[str] = None
    chronic_conditions: Optional[str] = None

    status: PatientStatus
    created_at: datetime
    created_by: str
    updated_at: datetime
    updated_by: str
    deactivated_at: Optional[datetime] = None
    deactivated_by: Optional[str] = None
    activated_at: Optional[datetime] = None
    activated_by: Optional[str] = None
    version: int

    # Only ever set to True; absent otherwise
    duplicate_phone_warning: Optional[bool] = None


class PatientSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    patient_id: str
    first_name: str
    last_name: str
    age: int = 0
    gender: Gender
    phone_number: str
    status: PatientStatus


# ── Mapping ──────────────────────────────────────────────────────────────────

def calculate_age(date_of_birth: Optional[date], today: Optional[date] = None) -> int:
    if date_of_birth is None:
        return 0
    today = today or date.today()
    had_birthday = (today.month, today.day) >= (date_of_birth.month, date_of_birth.day)
    return today.year - date_of_birth.year - (0 if had_birthday else 1)


def to_patient_response(patient: Patient, duplicate_phone_warning: bool = False) -> PatientResponse:
    response = PatientResponse.model_validate(patient)
    response.age = calculate_age(patient.date_of_birth)
    response.blood_group_display = response.blood_group.display
    if duplicate_phone_warning:
        response.duplicate_phone_warning = True
    return response


def to_summary_response(patient: Patient) -> PatientSummaryResponse:
    summary = PatientSummaryResponse.model_validate(patient)
    summary.age = calculate_age(patient.date_of_birth)
    return summary
