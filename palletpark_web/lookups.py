"""Entity lookups used by the allocation and request services.

The ``resolve_*`` functions return the entity or raise
:class:`~palletpark.errors.NotFoundError`.  None of the functions here write.
"""

from __future__ import annotations

from sqlmodel import Session, select

from palletpark.errors import NotFoundError
from palletpark.states import ApprovalStatus

from . import models


def resolve_user_by_id(session: Session, user_id: int) -> models.User:
    user = session.get(models.User, user_id)
    if user is None:
        raise NotFoundError("User not found", user_id=user_id)
    return user


def resolve_car(session: Session, car_id: int) -> models.Car:
    car = session.get(models.Car, car_id)
    if car is None:
        raise NotFoundError("Car not found", car_id=car_id)
    return car


def resolve_car_for_user(session: Session, car_id: int, user_id: int) -> models.Car:
    car = session.exec(
        select(models.Car).where(
            (models.Car.id == car_id) & (models.Car.user_id == user_id)
        )
    ).first()
    if car is None:
        raise NotFoundError("Car not found for this user", car_id=car_id)
    return car


def cars_for_user(session: Session, user_id: int) -> list[models.Car]:
    return list(
        session.exec(
            select(models.Car)
            .where(models.Car.user_id == user_id)
            .order_by(models.Car.created_at, models.Car.id)
        ).all()
    )


def earliest_car_for_user(session: Session, user_id: int) -> models.Car:
    car = session.exec(
        select(models.Car)
        .where(models.Car.user_id == user_id)
        .order_by(models.Car.created_at, models.Car.id)
    ).first()
    if car is None:
        raise NotFoundError("Customer has no cars", user_id=user_id)
    return car


def resolve_customer(session: Session, customer_id: int) -> models.Customer:
    customer = session.get(models.Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found", customer_id=customer_id)
    return customer


def resolve_customer_by_user(session: Session, user_id: int) -> models.Customer:
    customer = session.exec(
        select(models.Customer).where(models.Customer.user_id == user_id)
    ).first()
    if customer is None:
        raise NotFoundError("Customer profile not found", user_id=user_id)
    return customer


def find_customer_by_user(session: Session, user_id: int) -> models.Customer | None:
    return session.exec(
        select(models.Customer).where(models.Customer.user_id == user_id)
    ).first()


def resolve_operator_by_user(session: Session, user_id: int) -> models.Operator:
    operator = session.exec(
        select(models.Operator).where(models.Operator.user_id == user_id)
    ).first()
    if operator is None:
        raise NotFoundError("Operator profile not found", user_id=user_id)
    return operator


def resolve_operator(session: Session, operator_id: int) -> models.Operator:
    operator = session.get(models.Operator, operator_id)
    if operator is None:
        raise NotFoundError("Operator not found", operator_id=operator_id)
    return operator


def resolve_approved_operator(
    session: Session, project_id: int, structure_id: int
) -> models.Operator:
    """Return the approved operator of a structure.

    When several are approved the earliest created one wins, so the choice
    does not depend on storage order.
    """

    operator = session.exec(
        select(models.Operator)
        .where(
            (models.Operator.project_id == project_id)
            & (models.Operator.structure_id == structure_id)
            & (models.Operator.status == ApprovalStatus.APPROVED.value)
        )
        .order_by(models.Operator.created_at, models.Operator.id)
    ).first()
    if operator is None:
        raise NotFoundError(
            "No operator assigned to this parking system",
            project_id=project_id,
            structure_id=structure_id,
        )
    return operator


def resolve_structure(session: Session, structure_id: int) -> models.Structure:
    structure = session.get(models.Structure, structure_id)
    if structure is None:
        raise NotFoundError("Parking system not found", structure_id=structure_id)
    return structure


def resolve_project(session: Session, project_id: int) -> models.Project:
    project = session.get(models.Project, project_id)
    if project is None:
        raise NotFoundError("Project not found", project_id=project_id)
    return project
