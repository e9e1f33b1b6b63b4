from student_records.config.status_rules import allowed_transitions
from student_records.utils.errors import IllegalTransitionError


def check_transition(current_status: str, requested_status: str) -> None:
    """
    Accept or reject a status change on an existing record.

    Keeping the current status is always accepted, so idempotent updates that
    resend the stored status never fail here.

    Raises:
        UnknownStatusError: the stored status is not in the status table
        IllegalTransitionError: the table has no edge current -> requested
    """
    if requested_status == current_status:
        return

    if requested_status not in allowed_transitions(current_status):
        raise IllegalTransitionError(current_status, requested_status)


def can_transition(current_status: str, requested_status: str) -> bool:
    """Boolean form of check_transition; UnknownStatusError still propagates"""
    try:
        check_transition(current_status, requested_status)
    except IllegalTransitionError:
        return False
    return True
