"""
Enrollment status vocabulary and the allowed transitions between statuses.

The table is built once at import time and exposed read-only. A status whose
set of next statuses is empty is terminal. Staying in the same status is
always allowed and is therefore not listed in the table.
"""

from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping

from student_records.db.models import StudentStatus
from student_records.utils.errors import UnknownStatusError

STUDYING = StudentStatus.STUDYING.value
GRADUATED = StudentStatus.GRADUATED.value
DROPPED_OUT = StudentStatus.DROPPED_OUT.value
DEFERRED = StudentStatus.DEFERRED.value
SUSPENDED = StudentStatus.SUSPENDED.value

VALID_STATUSES: FrozenSet[str] = frozenset(s.value for s in StudentStatus)

STATUS_TRANSITION_RULES: Mapping[str, FrozenSet[str]] = MappingProxyType(
    {
        STUDYING: frozenset({DEFERRED, GRADUATED, SUSPENDED, DROPPED_OUT}),
        DEFERRED: frozenset({STUDYING, SUSPENDED, DROPPED_OUT}),
        SUSPENDED: frozenset({DROPPED_OUT, STUDYING}),
        GRADUATED: frozenset(),
        DROPPED_OUT: frozenset(),
    }
)


def _check_rule_table() -> None:
    missing = VALID_STATUSES - STATUS_TRANSITION_RULES.keys()
    if missing:
        raise RuntimeError(f"Statuses without transition rules: {sorted(missing)}")

    for source, targets in STATUS_TRANSITION_RULES.items():
        unknown = ({source} | targets) - VALID_STATUSES
        if unknown:
            raise RuntimeError(
                f"Transition rules for '{source}' reference unknown statuses: {sorted(unknown)}"
            )


_check_rule_table()


def is_valid_status(status: str) -> bool:
    return status in VALID_STATUSES


def allowed_transitions(status: str) -> FrozenSet[str]:
    """
    Statuses a record in `status` may move to.

    Raises:
        UnknownStatusError: if `status` is not a valid status. An empty result
            means the status is terminal, never that it is unknown.
    """
    try:
        return STATUS_TRANSITION_RULES[status]
    except (KeyError, TypeError):
        raise UnknownStatusError(status)


def is_terminal(status: str) -> bool:
    return not allowed_transitions(status)


def describe_rules() -> List[Dict[str, object]]:
    """Serializable view of the transition table, in declaration order"""
    return [
        {
            "status": status.value,
            "terminal": is_terminal(status.value),
            "allowedTransitions": sorted(allowed_transitions(status.value)),
        }
        for status in StudentStatus
    ]
