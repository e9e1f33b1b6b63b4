import pytest
from pydantic import ValidationError

from student_records.schemas.student_schemas import StudentCreateRequest
from student_records.services.record_validator import (
    ensure_valid_record,
    format_error_from_validation,
    is_valid_email,
    is_valid_faculty,
    is_valid_phone,
    validate_record,
)
from student_records.utils.errors import FormatError


pytestmark = pytest.mark.unit


class TestFieldPredicates:
    """Test the individual field format checks."""

    @pytest.mark.parametrize(
        "email",
        ["a.b+c@sub.example.co", "an.nguyen@example.edu.vn", "X_Y@EXAMPLE.COM"],
    )
    def test_valid_emails(self, email):
        assert is_valid_email(email)

    @pytest.mark.parametrize(
        "email",
        ["no-at-sign.example.com", "a@b", "a@@example.com", "a b@example.com", "", None],
    )
    def test_invalid_emails(self, email):
        assert not is_valid_email(email)

    @pytest.mark.parametrize("phone", ["0123456789", "84901234567"])
    def test_valid_phones(self, phone):
        assert is_valid_phone(phone)

    @pytest.mark.parametrize("phone", ["123456789", "09012345a7", "+84901234567", "", 901234567])
    def test_invalid_phones(self, phone):
        assert not is_valid_phone(phone)

    def test_faculty_must_match_exactly(self):
        assert is_valid_faculty("Khoa Tiếng Nhật")
        assert not is_valid_faculty("khoa tiếng nhật")
        assert not is_valid_faculty("Khoa Toán")


class TestValidateRecord:
    """Test whole-record validation and its partial semantics."""

    def test_complete_valid_record(self, student_data):
        assert validate_record(student_data()) is None

    def test_first_failing_field_is_reported(self, student_data):
        """Fields are checked email, phone, faculty, status in that order"""
        error = validate_record(
            student_data(phone="123", faculty="Khoa Toán", status="?")
        )

        assert isinstance(error, FormatError)
        assert error.field == "phone"
        assert error.reason == "Invalid phone number format"
        assert error.error_code == "FORMAT_ERROR"

    @pytest.mark.parametrize(
        "field,value,reason",
        [
            ("email", "not-an-email", "Invalid email format"),
            ("faculty", "Khoa Toán", "Invalid faculty"),
            ("status", "Tạm dừng học", "Invalid status"),
        ],
    )
    def test_single_invalid_field(self, student_data, field, value, reason):
        error = validate_record(student_data(**{field: value}))

        assert error.field == field
        assert error.reason == reason

    def test_absent_fields_are_not_checked(self):
        """A partial update only validates what it carries"""
        assert validate_record({"full_name": "Lê Văn Bình"}) is None
        assert validate_record({"phone": "0912345678"}) is None

    def test_present_but_empty_field_is_rejected(self):
        error = validate_record({"email": ""})
        assert error.field == "email"

    def test_fields_present_overrides_payload_keys(self, student_data):
        payload = student_data(email="broken")

        assert validate_record(payload, fields_present=["phone"]) is None
        assert validate_record(payload, fields_present=["email"]).field == "email"

    def test_email_domain_allow_list(self):
        payload = {"email": "someone@gmail.com"}

        assert validate_record(payload) is None
        error = validate_record(payload, allowed_email_domains=["example.edu.vn"])
        assert error.field == "email"
        assert error.reason == "Email domain is not allowed"

        assert (
            validate_record(
                {"email": "An@Example.EDU.vn"}, allowed_email_domains=["example.edu.vn"]
            )
            is None
        )

    def test_ensure_valid_record_raises(self):
        with pytest.raises(FormatError) as exc_info:
            ensure_valid_record({"faculty": "Khoa Toán"})
        assert exc_info.value.field == "faculty"

        ensure_valid_record({"faculty": "Khoa Luật"})


class TestFormatErrorFromValidation:
    """Test pydantic schema errors are reported on the offending field."""

    def test_field_name_is_snake_case(self, student_data):
        with pytest.raises(ValidationError) as exc_info:
            StudentCreateRequest.model_validate(student_data(gender="Other"))

        error = format_error_from_validation(exc_info.value)
        assert error.field == "gender"

    def test_bad_date(self, student_data):
        with pytest.raises(ValidationError) as exc_info:
            StudentCreateRequest.model_validate(
                student_data(date_of_birth="not a date")
            )

        assert format_error_from_validation(exc_info.value).field == "date_of_birth"


class TestWholeValueMatching:
    """Test the patterns must cover the entire value."""

    @pytest.mark.parametrize("phone", ["0123456789\n", "0123456789 ", " 0123456789"])
    def test_phone_with_surrounding_whitespace(self, phone):
        assert not is_valid_phone(phone)
        assert validate_record({"phone": phone}).field == "phone"

    @pytest.mark.parametrize("email", ["a@b.co\n", "a@b.co ", "\na@b.co"])
    def test_email_with_surrounding_whitespace(self, email):
        assert not is_valid_email(email)
        assert validate_record({"email": email}).field == "email"


class TestEmailDomainOrdering:
    """Test the domain allow-list is checked as part of the email rule."""

    def test_domain_reported_before_later_fields(self):
        error = validate_record(
            {"email": "a@evil.com", "faculty": "nope"},
            allowed_email_domains=["example.edu.vn"],
        )

        assert error.field == "email"
        assert error.reason == "Email domain is not allowed"

    def test_allowed_domain_moves_on_to_faculty(self):
        error = validate_record(
            {"email": "a@example.edu.vn", "faculty": "nope"},
            allowed_email_domains=["example.edu.vn"],
        )

        assert error.field == "faculty"


class TestPhonePattern:
    """Test a configured country phone format replaces the default rule."""

    VIETNAM = r"^(0[35789]\d{8})$|^(\+84[35789]\d{8})$"

    @pytest.mark.parametrize("phone", ["0912345678", "+84912345678"])
    def test_valid_for_country(self, phone):
        assert validate_record({"phone": phone}, phone_pattern=self.VIETNAM) is None

    @pytest.mark.parametrize("phone", ["0123456789", "09123456789", "+84912345678\n"])
    def test_invalid_for_country(self, phone):
        error = validate_record({"phone": phone}, phone_pattern=self.VIETNAM)

        assert error.field == "phone"
        assert error.reason == "Invalid phone number format"

    def test_default_rule_without_pattern(self):
        # Accepted by the default digit rule, rejected by the Vietnamese format
        assert validate_record({"phone": "0123456789"}) is None
