"""Parking request lifecycle.

Customers open requests, and the approved operator of their structure moves
each request through ``Pending -> Accepted -> Completed`` (or straight from
``Pending`` to ``Completed``).
"""

from __future__ import annotations

import logging

from sqlalchemy import update
from sqlmodel import Session, select

from palletpark.errors import (
    ConflictError,
    NotFoundError,
    StateTransitionError,
    ValidationError,
)
from palletpark.states import RequestStatus, can_transition

from . import lookups, models

logger = logging.getLogger(__name__)


def _coerce_status(value: RequestStatus | str) -> RequestStatus:
    try:
        return RequestStatus(value)
    except ValueError as exc:
        raise ValidationError(
            f"Status must be one of: {', '.join(s.value for s in RequestStatus)}",
            field="status",
        ) from exc


def create_request(
    session: Session, customer_user_id: int, car_id: int
) -> models.ParkingRequest:
    """Open a pending request for ``car_id`` on behalf of a customer user."""

    car = lookups.resolve_car_for_user(session, car_id, customer_user_id)
    customer = lookups.resolve_customer_by_user(session, customer_user_id)
    operator = lookups.resolve_approved_operator(
        session, customer.project_id, customer.structure_id
    )

    parking_request = models.ParkingRequest(
        user_id=customer_user_id,
        operator_id=operator.id,
        car_id=car.id,
        status=RequestStatus.PENDING.value,
    )
    session.add(parking_request)
    session.flush()
    session.refresh(parking_request)
    logger.info(
        "Parking request %s created by user %s for operator %s",
        parking_request.id,
        customer_user_id,
        operator.id,
    )
    return parking_request


def list_for_operator(
    session: Session, operator_user_id: int
) -> list[models.ParkingRequest]:
    operator = lookups.resolve_operator_by_user(session, operator_user_id)
    return list(
        session.exec(
            select(models.ParkingRequest)
            .where(models.ParkingRequest.operator_id == operator.id)
            .order_by(
                models.ParkingRequest.created_at.desc(),
                models.ParkingRequest.id.desc(),
            )
        ).all()
    )


def list_for_customer(
    session: Session,
    customer_user_id: int,
    status: RequestStatus | str | None = None,
) -> list[models.ParkingRequest]:
    statement = select(models.ParkingRequest).where(
        models.ParkingRequest.user_id == customer_user_id
    )
    if status is not None:
        statement = statement.where(
            models.ParkingRequest.status == _coerce_status(status).value
        )
    return list(
        session.exec(
            statement.order_by(
                models.ParkingRequest.created_at.desc(),
                models.ParkingRequest.id.desc(),
            )
        ).all()
    )


def latest_open_request_for_car(
    session: Session, car_id: int
) -> models.ParkingRequest | None:
    """Newest request for ``car_id`` that is not yet completed."""

    return session.exec(
        select(models.ParkingRequest)
        .where(
            (models.ParkingRequest.car_id == car_id)
            & (models.ParkingRequest.status != RequestStatus.COMPLETED.value)
        )
        .order_by(
            models.ParkingRequest.created_at.desc(),
            models.ParkingRequest.id.desc(),
        )
    ).first()


def _get_assigned_request(
    session: Session, request_id: int, operator_id: int
) -> models.ParkingRequest:
    parking_request = session.exec(
        select(models.ParkingRequest)
        .where(
            (models.ParkingRequest.id == request_id)
            & (models.ParkingRequest.operator_id == operator_id)
        )
        .execution_options(populate_existing=True)
    ).first()
    if parking_request is None:
        raise NotFoundError(
            "Parking request not found or not assigned to you",
            request_id=request_id,
        )
    return parking_request


def update_status(
    session: Session,
    operator_user_id: int,
    request_id: int,
    new_status: RequestStatus | str,
) -> models.ParkingRequest:
    """Move a request to ``new_status`` if the transition table allows it.

    The write only applies while the stored status is still the one that was
    checked.  When a concurrent change wins, the caller gets
    :class:`ConflictError` if ``new_status`` is still reachable from the
    status now stored, and :class:`StateTransitionError` otherwise.
    """

    target = _coerce_status(new_status)
    operator = lookups.resolve_operator_by_user(session, operator_user_id)
    parking_request = _get_assigned_request(session, request_id, operator.id)
    current = parking_request.status

    if not can_transition(current, target):
        raise StateTransitionError(current, target.value, request_id)

    result = session.execute(
        update(models.ParkingRequest)
        .where(
            (models.ParkingRequest.id == request_id)
            & (models.ParkingRequest.operator_id == operator.id)
            & (models.ParkingRequest.status == current)
        )
        .values(status=target.value, updated_at=models.utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        latest = _get_assigned_request(session, request_id, operator.id)
        if can_transition(latest.status, target):
            raise ConflictError(
                "Parking request was updated concurrently, retry with its current status",
                request_id=request_id,
                expected=current,
                observed=latest.status,
            )
        raise StateTransitionError(latest.status, target.value, request_id)

    logger.info(
        "Parking request %s moved from %s to %s by operator %s",
        request_id,
        current,
        target.value,
        operator.id,
    )
    return _get_assigned_request(session, request_id, operator.id)
