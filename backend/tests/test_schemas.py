from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from app.models.patient import BloodGroup
from app.schemas.patient import PatientRegistrationRequest, calculate_age, is_valid_phone


class TestPhoneValidation:
    @pytest.mark.parametrize("phone", ["+1-555-867-5309", "(555) 867-5309", "555-867-5309", " 555-867-5309 "])
    def test_accepted(self, phone):
        assert is_valid_phone(phone)

    @pytest.mark.parametrize(
        "phone",
        [None, "", "   ", "5558675309", "555.867.5309", "+44-555-867-5309", "(555)867-5309", "555-867-530"],
    )
    def test_rejected(self, phone):
        assert not is_valid_phone(phone)

    def test_request_strips_phone(self, registration_request):
        assert registration_request(phone_number=" (555) 867-5309 ").phone_number == "(555) 867-5309"


class TestRegistrationRequest:
    def test_blank_name_rejected(self, registration_request):
        with pytest.raises(ValidationError):
            registration_request(first_name="   ")

    def test_birth_date_today_allowed(self, registration_request):
        assert registration_request(date_of_birth=date.today()).date_of_birth == date.today()

    def test_birth_date_tomorrow_rejected(self, registration_request):
        with pytest.raises(ValidationError):
            registration_request(date_of_birth=date.today() + timedelta(days=1))

    def test_invalid_email_rejected(self, registration_request):
        with pytest.raises(ValidationError):
            registration_request(email="not-an-email")

    def test_email_optional(self):
        request = PatientRegistrationRequest(
            first_name="Ann", last_name="Lee", date_of_birth=date(1985, 2, 3),
            gender="FEMALE", phone_number="555-123-4567",
        )
        assert request.email is None
        assert request.blood_group is None


class TestCalculateAge:
    def test_before_birthday(self):
        assert calculate_age(date(1990, 5, 17), today=date(2026, 5, 16)) == 35

    def test_on_birthday(self):
        assert calculate_age(date(1990, 5, 17), today=date(2026, 5, 17)) == 36

    def test_missing_birth_date(self):
        assert calculate_age(None) == 0


def test_blood_group_display():
    assert BloodGroup.AB_NEG.display == "AB-"
    assert BloodGroup.O_POS.display == "O+"
    assert BloodGroup.UNKNOWN.display == "Unknown"
