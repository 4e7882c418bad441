"""Conversion of service results into response schemas."""

from __future__ import annotations

from typing import Any

from sqlmodel import Session

from . import models, schemas
from .allocation import CustomerCars, PalletStatus, SlotAssignment


def slot_detail(assignment: SlotAssignment) -> schemas.SlotDetail:
    return schemas.SlotDetail(
        slot=schemas.SlotRead.model_validate(assignment.slot),
        car=schemas.CarRead.model_validate(assignment.car) if assignment.car else None,
        owner=(
            schemas.UserRead.model_validate(assignment.owner)
            if assignment.owner
            else None
        ),
        customer=(
            schemas.CustomerRead.model_validate(assignment.customer)
            if assignment.customer
            else None
        ),
        structure=schemas.StructureRead.model_validate(assignment.structure),
        project=schemas.ProjectRead.model_validate(assignment.project),
    )


def parking_request_read(
    session: Session, parking_request: models.ParkingRequest
) -> schemas.ParkingRequestRead:
    car = session.get(models.Car, parking_request.car_id)
    payload = schemas.ParkingRequestRead.model_validate(parking_request)
    if car is not None:
        payload.car = schemas.CarRead.model_validate(car)
    return payload


def customer_with_cars(entry: CustomerCars) -> schemas.CustomerWithCars:
    payload = schemas.CustomerWithCars.model_validate(entry.customer)
    payload.cars = [schemas.CarRead.model_validate(car) for car in entry.cars]
    return payload


def pallet_status(
    session: Session,
    statuses: list[PalletStatus],
    pending: list[models.ParkingRequest],
) -> schemas.PalletStatusRead:
    pallets = []
    for status in statuses:
        assignment = status.assignment
        pallets.append(
            schemas.PalletStatusEntry(
                slot=schemas.SlotRead.model_validate(assignment.slot),
                car=schemas.CarRead.model_validate(assignment.car) if assignment.car else None,
                structure=schemas.StructureRead.model_validate(assignment.structure),
                project=schemas.ProjectRead.model_validate(assignment.project),
                request=(
                    parking_request_read(session, status.request)
                    if status.request is not None
                    else None
                ),
            )
        )
    return schemas.PalletStatusRead(
        pallets=pallets,
        count=len(pallets),
        park_requests=[parking_request_read(session, req) for req in pending],
    )


def public_fields(model: Any) -> dict[str, Any]:
    """JSON-ready dump used as notification payload."""

    return model.model_dump(mode="json")
