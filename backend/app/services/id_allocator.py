"""
Year-scoped sequential patient ID allocation.

IDs look like P2026001: prefix, four-digit year, three-digit counter. The
counter is not stored anywhere; it is derived from the highest ID already
persisted for the year. The read runs in its own SERIALIZABLE transaction,
separate from the caller's request session, and the primary key on
patients.patient_id catches whatever the isolation level lets through.
"""
import logging
from datetime import datetime
from typing import Callable, Optional, Protocol

from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError

from ..core.config import settings
from ..core.exceptions import AllocationConflict, ClockError
from ..models.base import unit_of_work, utc_now
from ..repositories.patient_repository import PATIENT_ID_PREFIX, PatientRepository

logger = logging.getLogger(__name__)

COUNTER_WIDTH = 3
MAX_PADDED_COUNTER = 10 ** COUNTER_WIDTH - 1

# serialization_failure, deadlock_detected
SERIALIZATION_FAILURE_SQLSTATES = {"40001", "40P01"}


class IdentifierAllocator(Protocol):
    def allocate(self) -> str:
        ...


def format_patient_id(year: str, counter: int) -> str:
    return f"{PATIENT_ID_PREFIX}{year}{counter:0{COUNTER_WIDTH}d}"


def is_serialization_failure(exc: DBAPIError) -> bool:
    """True when the database aborted the transaction because of a concurrent writer."""
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in SERIALIZATION_FAILURE_SQLSTATES:
        return True
    # SQLite has no SQLSTATE; lock contention is its way of refusing to interleave
    return "database is locked" in str(orig).lower()


class SerializableIdAllocator:
    """Computes the next patient ID for the current year in an isolated unit of work."""

    def __init__(
        self,
        bind: Optional[Engine] = None,
        clock: Optional[Callable[[], datetime]] = None,
        isolation_level: Optional[str] = None,
    ):
        self.bind = bind
        self.clock = clock or utc_now
        self.isolation_level = isolation_level or settings.ID_ISOLATION_LEVEL

    def allocate(self) -> str:
        year = self._current_year()
        try:
            with unit_of_work(self.bind, isolation_level=self.isolation_level) as session:
                max_counter = PatientRepository(session).max_counter_for_year(year)
                next_counter = (max_counter or 0) + 1
                patient_id = format_patient_id(year, next_counter)
        except DBAPIError as exc:
            if is_serialization_failure(exc):
                raise AllocationConflict(f"Concurrent patient ID allocation for {year}") from exc
            raise

        if next_counter > MAX_PADDED_COUNTER:
            logger.warning(
                "Patient ID counter for %s exceeded %d digits; issued %s",
                year, COUNTER_WIDTH, patient_id,
            )
        return patient_id

    def _current_year(self) -> str:
        try:
            now = self.clock()
        except Exception as exc:
            raise ClockError("System clock unavailable") from exc
        return f"{now.year:04d}"
