"""Status vocabularies and the parking request transition table."""

from __future__ import annotations

from enum import Enum


class StructureKind(str, Enum):
    TOWER = "Tower"
    PUZZLE = "Puzzle"


class SlotStatus(str, Enum):
    RELEASED = "Released"
    ASSIGNED = "Assigned"


class RequestStatus(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    COMPLETED = "Completed"


class ApprovalStatus(str, Enum):
    """Approval state of customer and operator profiles."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class UserRole(str, Enum):
    ADMIN = "admin"
    OPERATOR = "operator"
    CUSTOMER = "customer"


# Pending may skip straight to Completed.  Completed is terminal.
REQUEST_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.ACCEPTED, RequestStatus.COMPLETED}),
    RequestStatus.ACCEPTED: frozenset({RequestStatus.COMPLETED}),
    RequestStatus.COMPLETED: frozenset(),
}


def allowed_transitions(current: RequestStatus | str) -> frozenset[RequestStatus]:
    """Return the statuses reachable from ``current``."""

    try:
        status = RequestStatus(current)
    except ValueError:
        return frozenset()
    return REQUEST_TRANSITIONS[status]


def can_transition(current: RequestStatus | str, requested: RequestStatus | str) -> bool:
    try:
        target = RequestStatus(requested)
    except ValueError:
        return False
    return target in allowed_transitions(current)
