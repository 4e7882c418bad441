"""Database models for the web API."""

import datetime as dt
from typing import Optional

from sqlalchemy import Index, UniqueConstraint, text
from sqlmodel import Field, SQLModel

from palletpark.states import ApprovalStatus, RequestStatus, SlotStatus, UserRole


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class User(SQLModel, table=True):
    """Registered API user."""

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    hashed_password: str
    role: str = Field(default=UserRole.CUSTOMER.value, index=True)
    created_at: dt.datetime = Field(default_factory=utcnow)


class Project(SQLModel, table=True):
    """Residential project owning one or more parking structures."""

    id: Optional[int] = Field(default=None, primary_key=True)
    project_name: str = Field(index=True, unique=True)
    society_name: str
    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime = Field(default_factory=utcnow)


class Structure(SQLModel, table=True):
    """Tower or Puzzle parking system.  Geometry is fixed once created."""

    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="project.id", index=True)
    wing_name: Optional[str] = Field(default=None)
    kind: str
    levels_above_ground: int = Field(ge=1)
    levels_below_ground: Optional[int] = Field(default=None, ge=0)
    columns: int = Field(ge=1)
    total_slots: Optional[int] = Field(default=None)
    # Stored for clients, never interpreted here.
    time_per_level: int = Field(default=0, ge=0)
    horizontal_move_time: int = Field(default=0, ge=0)
    buffer_time: int = Field(default=0, ge=0)
    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime = Field(default_factory=utcnow)


class InventoryRun(SQLModel, table=True):
    """The single slot generation event of a structure."""

    id: Optional[int] = Field(default=None, primary_key=True)
    structure_id: int = Field(foreign_key="structure.id", unique=True)
    starting_number: int
    ending_number: int
    total_created: int
    created_at: dt.datetime = Field(default_factory=utcnow)


class Slot(SQLModel, table=True):
    """Pallet position inside a structure."""

    __table_args__ = (
        UniqueConstraint(
            "structure_id", "display_number", name="uq_slot_display_number"
        ),
        Index(
            "uq_slot_active_car",
            "car_id",
            unique=True,
            sqlite_where=text(f"status = '{SlotStatus.ASSIGNED.value}'"),
            postgresql_where=text(f"status = '{SlotStatus.ASSIGNED.value}'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    structure_id: int = Field(foreign_key="structure.id", index=True)
    project_id: int = Field(foreign_key="project.id", index=True)
    level: Optional[int] = Field(default=None)
    below_ground_level: Optional[int] = Field(default=None)
    column: int
    display_number: int
    status: str = Field(default=SlotStatus.RELEASED.value, index=True)
    car_id: Optional[int] = Field(default=None, foreign_key="car.id")
    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime = Field(default_factory=utcnow)


class Car(SQLModel, table=True):
    """Vehicle registered by a customer user."""

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    car_type: Optional[str] = Field(default=None)
    car_model: Optional[str] = Field(default=None)
    car_company: Optional[str] = Field(default=None)
    car_number: Optional[str] = Field(default=None, index=True)
    created_at: dt.datetime = Field(default_factory=utcnow)


class Customer(SQLModel, table=True):
    """Resident profile scoped to one project and structure."""

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", unique=True)
    project_id: int = Field(foreign_key="project.id", index=True)
    structure_id: int = Field(foreign_key="structure.id", index=True)
    first_name: str
    last_name: Optional[str] = Field(default=None)
    email: Optional[str] = Field(default=None)
    mobile_number: Optional[str] = Field(default=None)
    flat_number: Optional[str] = Field(default=None)
    profession: Optional[str] = Field(default=None)
    status: str = Field(default=ApprovalStatus.PENDING.value, index=True)
    approved_at: Optional[dt.datetime] = Field(default=None)
    approved_by: Optional[int] = Field(default=None, foreign_key="user.id")
    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime = Field(default_factory=utcnow)


class Operator(SQLModel, table=True):
    """Staff member running one structure of one project."""

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", unique=True)
    project_id: int = Field(foreign_key="project.id", index=True)
    structure_id: int = Field(foreign_key="structure.id", index=True)
    first_name: str
    last_name: Optional[str] = Field(default=None)
    email: Optional[str] = Field(default=None)
    mobile_number: Optional[str] = Field(default=None)
    status: str = Field(default=ApprovalStatus.PENDING.value, index=True)
    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime = Field(default_factory=utcnow)


class ParkingRequest(SQLModel, table=True):
    """Customer request handled by the operator of their structure."""

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    operator_id: int = Field(foreign_key="operator.id", index=True)
    car_id: int = Field(foreign_key="car.id", index=True)
    status: str = Field(default=RequestStatus.PENDING.value, index=True)
    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime = Field(default_factory=utcnow)
