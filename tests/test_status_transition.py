import pytest

from student_records.config.status_rules import (
    DEFERRED,
    DROPPED_OUT,
    GRADUATED,
    STATUS_TRANSITION_RULES,
    STUDYING,
    SUSPENDED,
    VALID_STATUSES,
)
from student_records.services.status_transition import can_transition, check_transition
from student_records.utils.errors import IllegalTransitionError, UnknownStatusError


pytestmark = pytest.mark.unit

ALL_PAIRS = [(a, b) for a in sorted(VALID_STATUSES) for b in sorted(VALID_STATUSES)]


class TestCheckTransition:
    """Test the transition guard against the full status table."""

    @pytest.mark.parametrize("current,requested", ALL_PAIRS)
    def test_every_pair_follows_the_table(self, current, requested):
        """A pair is accepted exactly when it is a self-transition or a table edge"""
        expected = requested == current or requested in STATUS_TRANSITION_RULES[current]

        if expected:
            check_transition(current, requested)
        else:
            with pytest.raises(IllegalTransitionError):
                check_transition(current, requested)

        assert can_transition(current, requested) is expected

    @pytest.mark.parametrize(
        "current,requested",
        [
            (STUDYING, DEFERRED),
            (STUDYING, GRADUATED),
            (DEFERRED, STUDYING),
            (SUSPENDED, STUDYING),
            (SUSPENDED, DROPPED_OUT),
        ],
    )
    def test_allowed_transitions(self, current, requested):
        check_transition(current, requested)

    def test_graduated_cannot_go_back_to_studying(self):
        with pytest.raises(IllegalTransitionError) as exc_info:
            check_transition(GRADUATED, STUDYING)

        error = exc_info.value
        assert error.error_code == "ILLEGAL_TRANSITION"
        assert error.field == "status"
        assert error.current_status == GRADUATED
        assert error.requested_status == STUDYING
        assert str(error) == "illegal transition from Đã tốt nghiệp to Đang học"

    @pytest.mark.parametrize("status", [GRADUATED, DROPPED_OUT])
    def test_terminal_status_keeps_itself(self, status):
        """Resending the stored status is accepted even for terminal statuses"""
        check_transition(status, status)

    def test_deferred_cannot_graduate(self):
        with pytest.raises(IllegalTransitionError):
            check_transition(DEFERRED, GRADUATED)

    def test_unknown_current_status(self):
        with pytest.raises(UnknownStatusError) as exc_info:
            check_transition("Tạm dừng học", STUDYING)
        assert exc_info.value.status_code == 409

    def test_unknown_current_status_propagates_from_boolean_form(self):
        with pytest.raises(UnknownStatusError):
            can_transition("Tạm dừng học", STUDYING)

    def test_unknown_status_kept_as_is(self):
        """Equal statuses are accepted before the table is consulted"""
        check_transition("Tạm dừng học", "Tạm dừng học")

    def test_invalid_requested_status_is_illegal(self):
        with pytest.raises(IllegalTransitionError):
            check_transition(STUDYING, "On leave")
