import re
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional, Pattern, Tuple, Union

from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from student_records.config.status_rules import is_valid_status
from student_records.db.models import Faculty
from student_records.utils.errors import FormatError

# Applied with fullmatch, so a trailing newline never passes
EMAIL_REGEX = re.compile(
    r"[a-z0-9!#$%&'*+/=?^_`{|}~-]+(?:\.[a-z0-9!#$%&'*+/=?^_`{|}~-]+)*"
    r"@(?:[a-z0-9](?:[a-z0-9-]*[a-z0-9])?\.)+[a-z]{2,}",
    re.IGNORECASE,
)
PHONE_REGEX = re.compile(r"[0-9]{10,}")

VALID_FACULTIES = frozenset(f.value for f in Faculty)


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and EMAIL_REGEX.fullmatch(value) is not None


def is_valid_phone(value: Any, pattern: Union[str, Pattern, None] = None) -> bool:
    """Check a phone number against `pattern` (a country's format), or the default digit rule"""
    regex = PHONE_REGEX if pattern is None else re.compile(pattern)
    return isinstance(value, str) and regex.fullmatch(value) is not None


def is_valid_faculty(value: Any) -> bool:
    return isinstance(value, str) and value in VALID_FACULTIES


def is_valid_status_value(value: Any) -> bool:
    return isinstance(value, str) and is_valid_status(value)


# Checked in this order; the first failing field is reported
FIELD_RULES: Mapping[str, Tuple[Callable[[Any], bool], str]] = MappingProxyType(
    {
        "email": (is_valid_email, "Invalid email format"),
        "phone": (is_valid_phone, "Invalid phone number format"),
        "faculty": (is_valid_faculty, "Invalid faculty"),
        "status": (is_valid_status_value, "Invalid status"),
    }
)


def email_domain(email: str) -> str:
    return email.rsplit("@", 1)[-1].lower()


def validate_record(
    payload: Mapping[str, Any],
    fields_present: Optional[Iterable[str]] = None,
    allowed_email_domains: Iterable[str] = (),
    phone_pattern: Optional[str] = None,
) -> Optional[FormatError]:
    """
    Check the format of the fields present in a create/update payload.

    Only fields listed in `fields_present` (by default, the payload's own
    keys) are checked, so a partial update never fails on an absent field.
    A field marked present with an empty value is rejected.

    A non-empty `allowed_email_domains` is part of the email rule.
    `phone_pattern` replaces the default digit rule for phone numbers.

    Returns:
        None if the payload is accepted, otherwise a FormatError naming the
        first failing field.
    """
    present = set(payload.keys() if fields_present is None else fields_present)

    domains = {d.lower() for d in allowed_email_domains}

    for field, (predicate, reason) in FIELD_RULES.items():
        if field not in present:
            continue

        value = payload.get(field)
        if field == "phone" and phone_pattern is not None:
            valid = is_valid_phone(value, phone_pattern)
        else:
            valid = predicate(value)
        if not valid:
            return FormatError(field, reason)

        if field == "email" and domains and email_domain(value) not in domains:
            return FormatError("email", "Email domain is not allowed")

    return None


def ensure_valid_record(
    payload: Mapping[str, Any],
    fields_present: Optional[Iterable[str]] = None,
    allowed_email_domains: Iterable[str] = (),
    phone_pattern: Optional[str] = None,
) -> None:
    """Same as validate_record, but raises the FormatError"""
    error = validate_record(payload, fields_present, allowed_email_domains, phone_pattern)
    if error is not None:
        raise error


def format_error_from_validation(exc: ValidationError) -> FormatError:
    """Turn the first pydantic error into a FormatError on that field"""
    first = exc.errors()[0]
    field = to_snake(str(first["loc"][0])) if first.get("loc") else "record"
    return FormatError(field, first["msg"])
