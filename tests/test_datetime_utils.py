from datetime import date, datetime

import pytest

from student_records.utils.datetime_utils import parse_date


pytestmark = pytest.mark.unit


class TestParseDate:
    """Test lenient date-of-birth parsing."""

    @pytest.mark.parametrize(
        "value",
        [
            "2001-05-04",
            " 2001-05-04 ",
            "2001-05-04T00:00:00.000Z",
            "2001-05-04T08:30:00+07:00",
            "04/05/2001",
            "4.5.2001",
            date(2001, 5, 4),
            datetime(2001, 5, 4, 12, 0),
        ],
    )
    def test_accepted_values(self, value):
        assert parse_date(value) == date(2001, 5, 4)

    @pytest.mark.parametrize(
        "value",
        ["2001-05-04xyz", "2001-05-04 and more", "04/05/2001 abc", "2001-13-40", "", None, 20010504],
    )
    def test_rejected_values(self, value):
        with pytest.raises(ValueError):
            parse_date(value)
