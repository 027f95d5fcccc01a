"""Tests for year-scoped patient ID allocation."""
import logging

import pytest
from sqlalchemy.exc import OperationalError, ProgrammingError

from app.core.exceptions import AllocationConflict, ClockError
from app.models.patient import Patient
from app.repositories.patient_repository import PatientRepository
from app.services.id_allocator import (
    SerializableIdAllocator,
    format_patient_id,
    is_serialization_failure,
)
from conftest import clock_at


class FakeDriverError(Exception):
    def __init__(self, message, pgcode=None):
        super().__init__(message)
        self.pgcode = pgcode


def _db_error(message, pgcode=None, cls=OperationalError):
    return cls("SELECT max(...) FROM patients", {}, FakeDriverError(message, pgcode))


class TestFormatPatientId:
    def test_pads_counter_to_three_digits(self):
        assert format_patient_id("2026", 1) == "P2026001"
        assert format_patient_id("2026", 42) == "P2026042"
        assert format_patient_id("2026", 999) == "P2026999"

    def test_counter_past_999_widens(self):
        assert format_patient_id("2026", 1000) == "P20261000"


class TestAllocate:
    def test_first_id_of_the_year(self, engine):
        allocator = SerializableIdAllocator(bind=engine, clock=clock_at(2026))
        assert allocator.allocate() == "P2026001"

    def test_follows_highest_existing_id(self, engine, make_patient):
        make_patient("P2026001")
        make_patient("P2026002")

        allocator = SerializableIdAllocator(bind=engine, clock=clock_at(2026))
        assert allocator.allocate() == "P2026003"

    def test_counter_compared_numerically(self, engine, make_patient):
        make_patient("P2026009")
        make_patient("P2026010")

        allocator = SerializableIdAllocator(bind=engine, clock=clock_at(2026))
        assert allocator.allocate() == "P2026011"

    def test_gaps_are_not_refilled(self, engine, make_patient):
        make_patient("P2026001")
        make_patient("P2026007")

        allocator = SerializableIdAllocator(bind=engine, clock=clock_at(2026))
        assert allocator.allocate() == "P2026008"

    def test_years_are_independent(self, engine, make_patient):
        for counter in range(1, 6):
            make_patient(format_patient_id("2025", counter))

        assert SerializableIdAllocator(bind=engine, clock=clock_at(2026)).allocate() == "P2026001"
        assert SerializableIdAllocator(bind=engine, clock=clock_at(2025)).allocate() == "P2025006"

    def test_allocation_does_not_consume_an_id(self, engine):
        allocator = SerializableIdAllocator(bind=engine, clock=clock_at(2026))
        # Nothing was inserted, so the same ID comes back
        assert allocator.allocate() == "P2026001"
        assert allocator.allocate() == "P2026001"

    def test_counter_overflow_widens_and_warns(self, engine, make_patient, caplog):
        make_patient("P2026999")
        allocator = SerializableIdAllocator(bind=engine, clock=clock_at(2026))

        with caplog.at_level(logging.WARNING, logger="app.services.id_allocator"):
            patient_id = allocator.allocate()

        assert patient_id == "P20261000"
        assert "exceeded 3 digits" in caplog.text

    def test_continues_after_widened_ids(self, engine, make_patient):
        make_patient("P2026999")
        make_patient("P20261000")

        allocator = SerializableIdAllocator(bind=engine, clock=clock_at(2026))
        assert allocator.allocate() == "P20261001"

    def test_ignores_callers_uncommitted_work(self, engine, db):
        db.add(Patient(
            patient_id="P2026001", first_name="Pending", last_name="Row",
            date_of_birth=clock_at(1990)().date(), gender="FEMALE",
            phone_number="555-111-2222", blood_group="UNKNOWN", status="ACTIVE",
            created_at=clock_at(2026)(), created_by="t",
            updated_at=clock_at(2026)(), updated_by="t", version=1,
        ))
        db.flush()

        allocator = SerializableIdAllocator(bind=engine, clock=clock_at(2026))
        assert allocator.allocate() == "P2026001"

        # The caller's transaction is still intact and can be finished
        db.commit()
        assert db.query(Patient).count() == 1

    def test_clock_failure_raises_clock_error(self, engine):
        def broken_clock():
            raise OSError("clock unavailable")

        allocator = SerializableIdAllocator(bind=engine, clock=broken_clock)
        with pytest.raises(ClockError):
            allocator.allocate()

    def test_serialization_failure_becomes_conflict(self, engine, monkeypatch):
        def fail(self, year):
            raise _db_error("could not serialize access due to read/write dependencies", pgcode="40001")

        monkeypatch.setattr(PatientRepository, "max_counter_for_year", fail)
        allocator = SerializableIdAllocator(bind=engine, clock=clock_at(2026))

        with pytest.raises(AllocationConflict) as exc_info:
            allocator.allocate()
        assert exc_info.value.retryable is True

    def test_other_database_errors_propagate(self, engine, monkeypatch):
        def fail(self, year):
            raise _db_error("relation \"patients\" does not exist", pgcode="42P01", cls=ProgrammingError)

        monkeypatch.setattr(PatientRepository, "max_counter_for_year", fail)
        allocator = SerializableIdAllocator(bind=engine, clock=clock_at(2026))

        with pytest.raises(ProgrammingError):
            allocator.allocate()


class TestIsSerializationFailure:
    @pytest.mark.parametrize("pgcode", ["40001", "40P01"])
    def test_postgres_sqlstates(self, pgcode):
        assert is_serialization_failure(_db_error("conflict", pgcode=pgcode))

    def test_sqlite_lock_contention(self):
        assert is_serialization_failure(_db_error("database is locked"))

    def test_unrelated_error(self):
        assert not is_serialization_failure(_db_error("disk I/O error"))
