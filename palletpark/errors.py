"""Exceptions raised by inventory, allocation and request operations.

Every error here is caller-correctable.  None of them are retried and none
leave partial state behind; the web layer maps each class to an HTTP status.
"""

from __future__ import annotations

from typing import Any


class ParkingError(Exception):
    """Base class for failures surfaced to API callers."""

    kind = "error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"detail": self.message, "error": self.kind}
        payload.update(self.context)
        return payload


class NotFoundError(ParkingError):
    """Entity is missing or outside the caller's scope."""

    kind = "not_found"


class ConflictError(ParkingError):
    """Operation would break an invariant that already holds."""

    kind = "conflict"


class ValidationError(ParkingError):
    """Structurally invalid input."""

    kind = "validation"


class StateTransitionError(ParkingError):
    """Requested status change is not allowed from the current status."""

    kind = "state_transition"

    def __init__(
        self, current: str, requested: str, request_id: int | None = None
    ) -> None:
        super().__init__(
            f"Invalid status transition from {current} to {requested}",
            current=current,
            requested=requested,
            request_id=request_id,
        )
        self.current = current
        self.requested = requested
        self.request_id = request_id
