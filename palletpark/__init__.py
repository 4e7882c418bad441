"""Core parking allocation rules shared by the web API."""

from .errors import (
    ConflictError,
    NotFoundError,
    ParkingError,
    StateTransitionError,
    ValidationError,
)
from .geometry import SlotCoordinate, slot_coordinates, total_slots
from .states import (
    ApprovalStatus,
    RequestStatus,
    SlotStatus,
    StructureKind,
    UserRole,
)

__all__ = [
    "ApprovalStatus",
    "ConflictError",
    "NotFoundError",
    "ParkingError",
    "RequestStatus",
    "SlotCoordinate",
    "SlotStatus",
    "StateTransitionError",
    "StructureKind",
    "UserRole",
    "ValidationError",
    "slot_coordinates",
    "total_slots",
]
