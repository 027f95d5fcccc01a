"""
Domain errors raised by the patient service.
Each error carries the HTTP status the API layer maps it to.
"""


class PatientServiceError(Exception):
    """Base class for errors the API surfaces to the caller."""

    status_code = 500
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AllocationConflict(PatientServiceError):
    """Two allocators raced: serialization failure or patient ID collision on insert."""

    status_code = 409
    retryable = True


class AllocationExhausted(PatientServiceError):
    """Patient ID allocation kept conflicting until the retry budget ran out."""

    status_code = 503


class ClockError(PatientServiceError):
    """The system clock could not be read while allocating a patient ID."""

    status_code = 500


class PatientNotFound(PatientServiceError):
    status_code = 404

    def __init__(self, patient_id: str):
        super().__init__(f"Patient not found: {patient_id}")
        self.patient_id = patient_id


class StatusConflict(PatientServiceError):
    """Activate/deactivate requested on a record already in the target state."""

    status_code = 409


class ConcurrentModification(PatientServiceError):
    """Optimistic version check failed; the caller may reload and resubmit."""

    status_code = 409
    retryable = True

    def __init__(self, patient_id: str):
        super().__init__("The patient record was modified concurrently. Please retry.")
        self.patient_id = patient_id
