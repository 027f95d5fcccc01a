"""Shared fixtures: an isolated SQLite database per test and patient/request factories."""
import os
import tempfile
from datetime import date, datetime

# Point the app at a throwaway database before anything imports app.models.base
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(tempfile.mkdtemp(prefix="hpm-tests-"), "app.db")

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from app.models.base import Base  # noqa: E402
from app.models.patient import Patient, PatientStatus  # noqa: E402
import app.models.audit_log  # noqa: F401, E402 - registers audit_logs with Base.metadata
from app.schemas.patient import PatientRegistrationRequest, PatientUpdateRequest  # noqa: E402


def clock_at(year: int):
    """A clock frozen inside the given year."""
    return lambda: datetime(year, 3, 1, 9, 30)


@pytest.fixture()
def engine(tmp_path):
    # A file database rather than :memory: so that the allocator's own
    # connection sees exactly what other sessions have committed
    test_engine = create_engine(
        f"sqlite:///{tmp_path / 'patients.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def make_patient(session_factory):
    """Insert a patient row directly, bypassing the service."""

    def _make(patient_id, phone_number="555-000-0000", status=PatientStatus.ACTIVE, **overrides):
        now = datetime(2026, 1, 1, 8, 0)
        fields = dict(
            patient_id=patient_id,
            first_name="Test",
            last_name="Patient",
            date_of_birth=date(1990, 5, 17),
            gender="MALE",
            phone_number=phone_number,
            blood_group="UNKNOWN",
            status=status.value,
            created_at=now,
            created_by="seed",
            updated_at=now,
            updated_by="seed",
        )
        fields.update(overrides)
        session = session_factory()
        try:
            session.add(Patient(**fields))
            session.commit()
        finally:
            session.close()
        return patient_id

    return _make


def _request_fields(overrides):
    fields = dict(
        first_name="John",
        last_name="Doe",
        date_of_birth=date(1990, 5, 17),
        gender="MALE",
        phone_number="555-867-5309",
        email="john.doe@example.com",
    )
    fields.update(overrides)
    return fields


@pytest.fixture()
def registration_request():
    def _make(**overrides):
        return PatientRegistrationRequest(**_request_fields(overrides))

    return _make


@pytest.fixture()
def update_request():
    def _make(**overrides):
        return PatientUpdateRequest(**_request_fields(overrides))

    return _make
