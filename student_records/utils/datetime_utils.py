import re
from datetime import date, datetime, timezone
from typing import Any

from dateutil import parser as date_parser

ISO_TIMESTAMP = re.compile(
    r"\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(:\d{2}(\.\d{1,6})?)?(Z|[+-]\d{2}:?\d{2})?"
)
DAY_FIRST_DATE = re.compile(r"\d{1,2}[/.-]\d{1,2}[/.-]\d{4}")


def naive_utc_now() -> datetime:
    """
    Get current UTC datetime as a naive datetime (no timezone info).
    Timestamps are stored in DateTime columns without timezone info.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_date(value: Any) -> date:
    """
    Leniently parse a date of birth coming from an imported file.

    Accepts date/datetime objects, ISO dates and timestamps ("2001-05-04",
    "2001-05-04T00:00:00.000Z") and day-first dates ("04/05/2001"). The
    whole string must be a date; trailing text is rejected.

    Raises:
        ValueError: if the value cannot be read as a date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid date: {value!r}")

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    if ISO_TIMESTAMP.fullmatch(text):
        try:
            return date_parser.isoparse(text).date()
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Invalid date: {value!r}") from e

    if DAY_FIRST_DATE.fullmatch(text):
        try:
            return date_parser.parse(text, dayfirst=True).date()
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Invalid date: {value!r}") from e

    raise ValueError(f"Invalid date: {value!r}")
