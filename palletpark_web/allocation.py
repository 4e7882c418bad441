"""Binding pallet slots to customer cars.

An operator may only touch slots of the project and structure they run, and
may only bind approved customers of that same scope.  A car holds at most one
assigned slot anywhere; :meth:`SlotStore.claim` is the single write that
enforces it.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional

from sqlmodel import Session, select

from palletpark.errors import ConflictError, NotFoundError
from palletpark.states import ApprovalStatus, SlotStatus

from . import lookups, models, workflow
from .slots import SlotStore

logger = logging.getLogger(__name__)


@dataclass
class SlotAssignment:
    """A slot together with the entities its binding refers to."""

    slot: models.Slot
    structure: models.Structure
    project: models.Project
    car: Optional[models.Car] = None
    customer: Optional[models.Customer] = None
    owner: Optional[models.User] = None


def _ensure_operator_scope(operator: models.Operator, slot: models.Slot) -> None:
    if operator.project_id != slot.project_id:
        raise NotFoundError(
            "Operator does not have access to this project", slot_id=slot.id
        )
    if operator.structure_id != slot.structure_id:
        raise NotFoundError(
            "Pallet does not belong to your parking system", slot_id=slot.id
        )


def _hydrate(
    session: Session,
    slot: models.Slot,
    car: Optional[models.Car] = None,
    customer: Optional[models.Customer] = None,
) -> SlotAssignment:
    owner = lookups.resolve_user_by_id(session, car.user_id) if car is not None else None
    if car is not None and customer is None:
        customer = lookups.find_customer_by_user(session, car.user_id)
    return SlotAssignment(
        slot=slot,
        structure=lookups.resolve_structure(session, slot.structure_id),
        project=lookups.resolve_project(session, slot.project_id),
        car=car,
        customer=customer,
        owner=owner,
    )


def assign_slot(
    session: Session,
    operator_user_id: int,
    slot_id: int,
    customer_id: int,
    car_id: Optional[int] = None,
) -> SlotAssignment:
    """Assign ``slot_id`` to a car of ``customer_id``.

    Without ``car_id`` the customer's earliest registered car is used.
    """

    store = SlotStore(session)
    operator = lookups.resolve_operator_by_user(session, operator_user_id)
    slot = store.get(slot_id)

    if slot.status == SlotStatus.ASSIGNED.value:
        raise ConflictError(
            "Pallet is already assigned to another customer", slot_id=slot_id
        )
    _ensure_operator_scope(operator, slot)

    customer = lookups.resolve_customer(session, customer_id)
    if customer.status != ApprovalStatus.APPROVED.value:
        raise ConflictError(
            "Customer is not approved. Only approved customers can be assigned to pallets",
            customer_id=customer_id,
            status=customer.status,
        )
    if customer.project_id != slot.project_id:
        raise NotFoundError(
            "Customer does not belong to this project", customer_id=customer_id
        )
    if customer.structure_id != slot.structure_id:
        raise NotFoundError(
            "Customer does not belong to this parking system",
            customer_id=customer_id,
        )

    if car_id is not None:
        car = session.get(models.Car, car_id)
        if car is None or car.user_id != customer.user_id:
            raise NotFoundError(
                "Car does not belong to customer",
                car_id=car_id,
                customer_id=customer_id,
            )
    else:
        car = lookups.earliest_car_for_user(session, customer.user_id)

    if store.active_slot_for_car(car.id, exclude_slot_id=slot_id) is not None:
        raise ConflictError(
            "Car is already assigned to another pallet", car_id=car.id
        )

    slot = store.claim(slot_id, car.id)
    logger.info(
        "Operator %s assigned slot %s to customer %s (car %s)",
        operator.id,
        slot.id,
        customer.id,
        car.id,
    )
    return _hydrate(session, slot, car, customer)


def release_slot(
    session: Session, operator_user_id: int, slot_id: int
) -> SlotAssignment:
    """Release an assigned slot in the operator's structure.

    The returned assignment describes the binding that was just removed while
    ``slot`` itself is already released.
    """

    store = SlotStore(session)
    operator = lookups.resolve_operator_by_user(session, operator_user_id)
    slot = store.get(slot_id)
    _ensure_operator_scope(operator, slot)

    car = lookups.resolve_car(session, slot.car_id) if slot.car_id is not None else None
    slot = store.release(slot_id)
    logger.info(
        "Operator %s released slot %s (car %s)",
        operator.id,
        slot.id,
        car.id if car is not None else None,
    )
    return _hydrate(session, slot, car)


def list_operator_slots(session: Session, operator_user_id: int) -> list[models.Slot]:
    operator = lookups.resolve_operator_by_user(session, operator_user_id)
    return SlotStore(session).list_by_structure(operator.structure_id)


@dataclass
class CustomerCars:
    customer: models.Customer
    cars: list[models.Car] = field(default_factory=list)


@dataclass
class PalletStatus:
    """An assigned slot of a customer and the open request of its car."""

    assignment: SlotAssignment
    request: Optional[models.ParkingRequest] = None


def list_operator_customers(
    session: Session, operator_user_id: int
) -> list[CustomerCars]:
    """Customers of the operator's structure with their cars, newest first."""

    operator = lookups.resolve_operator_by_user(session, operator_user_id)
    customers = session.exec(
        select(models.Customer)
        .where(
            (models.Customer.project_id == operator.project_id)
            & (models.Customer.structure_id == operator.structure_id)
        )
        .order_by(models.Customer.created_at.desc(), models.Customer.id.desc())
    ).all()

    cars_by_user: dict[int, list[models.Car]] = defaultdict(list)
    user_ids = [customer.user_id for customer in customers]
    if user_ids:
        cars = session.exec(
            select(models.Car)
            .where(models.Car.user_id.in_(user_ids))
            .order_by(models.Car.created_at.desc(), models.Car.id.desc())
        ).all()
        for car in cars:
            cars_by_user[car.user_id].append(car)

    return [
        CustomerCars(customer=customer, cars=cars_by_user.get(customer.user_id, []))
        for customer in customers
    ]


def customer_pallets(session: Session, customer_user_id: int) -> list[PalletStatus]:
    """Slots currently holding one of the user's cars."""

    store = SlotStore(session)
    statuses = []
    for car in lookups.cars_for_user(session, customer_user_id):
        slot = store.active_slot_for_car(car.id)
        if slot is None:
            continue
        statuses.append(
            PalletStatus(
                assignment=_hydrate(session, slot, car),
                request=workflow.latest_open_request_for_car(session, car.id),
            )
        )
    return statuses


def available_cars(session: Session, customer_user_id: int) -> list[models.Car]:
    """Cars of the user that do not hold an assigned slot."""

    store = SlotStore(session)
    return [
        car
        for car in lookups.cars_for_user(session, customer_user_id)
        if store.active_slot_for_car(car.id) is None
    ]
