"""Pydantic/SQLModel schemas for the web API."""

from __future__ import annotations

import datetime as dt
from typing import List, Literal, Optional

from sqlmodel import Field, SQLModel

from palletpark.states import ApprovalStatus, RequestStatus, StructureKind


class Token(SQLModel):
    access_token: str
    token_type: str = "bearer"


class UserCreate(SQLModel):
    username: str = Field(min_length=1, max_length=150)
    password: str = Field(min_length=1)


class UserLogin(SQLModel):
    username: str
    password: str


class UserRead(SQLModel):
    id: int
    username: str
    role: str
    created_at: dt.datetime


class ProjectCreate(SQLModel):
    project_name: str = Field(min_length=1, max_length=150)
    society_name: str = Field(min_length=1, max_length=150)


class ProjectRead(SQLModel):
    id: int
    project_name: str
    society_name: str


class StructureCreate(SQLModel):
    project_id: int
    wing_name: Optional[str] = Field(default=None, max_length=100)
    kind: StructureKind
    levels_above_ground: int = Field(ge=1)
    levels_below_ground: Optional[int] = Field(default=None, ge=0)
    columns: int = Field(ge=1)
    time_per_level: int = Field(default=0, ge=0)
    horizontal_move_time: int = Field(default=0, ge=0)
    buffer_time: int = Field(default=0, ge=0)


class StructureRead(SQLModel):
    id: int
    project_id: int
    wing_name: Optional[str] = None
    kind: str
    levels_above_ground: int
    levels_below_ground: Optional[int] = None
    columns: int
    total_slots: Optional[int] = None
    time_per_level: int = 0
    horizontal_move_time: int = 0
    buffer_time: int = 0


class InventoryCreate(SQLModel):
    # Range checks happen in the generator so they surface as validation errors.
    starting_number: int = 1


class SlotRead(SQLModel):
    id: int
    structure_id: int
    project_id: int
    level: Optional[int] = None
    below_ground_level: Optional[int] = None
    column: int
    display_number: int
    status: str
    car_id: Optional[int] = None


class InventoryRead(SQLModel):
    slots: List[SlotRead] = Field(default_factory=list)
    total_created: int
    starting_number: int
    ending_number: int


class CarCreate(SQLModel):
    car_type: Optional[str] = Field(default=None, max_length=50)
    car_model: Optional[str] = Field(default=None, max_length=100)
    car_company: Optional[str] = Field(default=None, max_length=100)
    car_number: Optional[str] = Field(default=None, max_length=50)


class CarRead(SQLModel):
    id: int
    user_id: int
    car_type: Optional[str] = None
    car_model: Optional[str] = None
    car_company: Optional[str] = None
    car_number: Optional[str] = None


class CustomerCreate(SQLModel):
    project_id: int
    structure_id: int
    first_name: str = Field(min_length=1, max_length=100)
    last_name: Optional[str] = None
    email: Optional[str] = None
    mobile_number: Optional[str] = None
    flat_number: Optional[str] = None
    profession: Optional[str] = None


class CustomerRead(SQLModel):
    id: int
    user_id: int
    project_id: int
    structure_id: int
    first_name: str
    last_name: Optional[str] = None
    email: Optional[str] = None
    mobile_number: Optional[str] = None
    flat_number: Optional[str] = None
    profession: Optional[str] = None
    status: str


class ApprovalUpdate(SQLModel):
    status: ApprovalStatus


class CustomerDecision(SQLModel):
    status: Literal["Approved", "Rejected"]


class OperatorCreate(SQLModel):
    username: str = Field(min_length=1, max_length=150)
    password: str = Field(min_length=1)
    project_id: int
    structure_id: int
    first_name: str = Field(min_length=1, max_length=100)
    last_name: Optional[str] = None
    email: Optional[str] = None
    mobile_number: Optional[str] = None
    status: ApprovalStatus = ApprovalStatus.APPROVED


class OperatorRead(SQLModel):
    id: int
    user_id: int
    project_id: int
    structure_id: int
    first_name: str
    last_name: Optional[str] = None
    email: Optional[str] = None
    mobile_number: Optional[str] = None
    status: str


class SlotAssign(SQLModel):
    slot_id: int = Field(ge=1)
    customer_id: int = Field(ge=1)
    car_id: Optional[int] = Field(default=None, ge=1)


class SlotDetail(SQLModel):
    slot: SlotRead
    car: Optional[CarRead] = None
    owner: Optional[UserRead] = None
    customer: Optional[CustomerRead] = None
    structure: StructureRead
    project: ProjectRead


class ParkingRequestCreate(SQLModel):
    car_id: int = Field(ge=1)


class ParkingRequestStatusUpdate(SQLModel):
    status: RequestStatus


class ParkingRequestRead(SQLModel):
    id: int
    user_id: int
    operator_id: int
    car_id: int
    status: str
    created_at: dt.datetime
    updated_at: dt.datetime
    car: Optional[CarRead] = None


class CustomerWithCars(CustomerRead):
    cars: List[CarRead] = Field(default_factory=list)


class PalletStatusEntry(SQLModel):
    slot: SlotRead
    car: Optional[CarRead] = None
    structure: StructureRead
    project: ProjectRead
    request: Optional[ParkingRequestRead] = None


class PalletStatusRead(SQLModel):
    pallets: List[PalletStatusEntry] = Field(default_factory=list)
    count: int
    park_requests: List[ParkingRequestRead] = Field(default_factory=list)
