"""Operator routes: request handling, pallet allocation and customer approval."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlmodel import Session

from palletpark.errors import NotFoundError
from palletpark.states import ApprovalStatus, RequestStatus, UserRole

from .. import allocation, lookups, models, schemas, serializers, workflow
from ..auth import require_role
from ..database import get_session
from ..notifications import ConnectionRegistry, EventKind, Notification, get_connections

router = APIRouter(prefix="/operators", tags=["operators"])

operator_only = require_role(UserRole.OPERATOR)

STATUS_EVENTS = {
    RequestStatus.ACCEPTED.value: EventKind.REQUEST_ACCEPTED,
    RequestStatus.COMPLETED.value: EventKind.REQUEST_COMPLETED,
}


@router.get("/requests", response_model=list[schemas.ParkingRequestRead])
def list_requests(
    current_user: models.User = Depends(operator_only),
    session: Session = Depends(get_session),
):
    return [
        serializers.parking_request_read(session, parking_request)
        for parking_request in workflow.list_for_operator(session, current_user.id)
    ]


@router.patch("/requests/{request_id}", response_model=schemas.ParkingRequestRead)
def update_request_status(
    request_id: int,
    payload: schemas.ParkingRequestStatusUpdate,
    background: BackgroundTasks,
    current_user: models.User = Depends(operator_only),
    session: Session = Depends(get_session),
    connections: ConnectionRegistry = Depends(get_connections),
):
    parking_request = workflow.update_status(
        session, current_user.id, request_id, payload.status
    )
    session.commit()
    session.refresh(parking_request)

    result = serializers.parking_request_read(session, parking_request)
    event = STATUS_EVENTS.get(parking_request.status)
    if event is not None:
        background.add_task(
            connections.send,
            Notification(
                recipient_id=parking_request.user_id,
                kind=event,
                data=serializers.public_fields(result),
            ),
        )
    return result


@router.get("/slots", response_model=list[schemas.SlotRead])
def list_slots(
    current_user: models.User = Depends(operator_only),
    session: Session = Depends(get_session),
):
    return allocation.list_operator_slots(session, current_user.id)


@router.post("/slots/assign", response_model=schemas.SlotDetail)
def assign_slot(
    payload: schemas.SlotAssign,
    background: BackgroundTasks,
    current_user: models.User = Depends(operator_only),
    session: Session = Depends(get_session),
    connections: ConnectionRegistry = Depends(get_connections),
):
    assignment = allocation.assign_slot(
        session,
        current_user.id,
        payload.slot_id,
        payload.customer_id,
        payload.car_id,
    )
    session.commit()
    result = serializers.slot_detail(assignment)
    if assignment.customer is not None:
        background.add_task(
            connections.send,
            Notification(
                recipient_id=assignment.customer.user_id,
                kind=EventKind.SLOT_ASSIGNED,
                data=serializers.public_fields(result),
            ),
        )
    return result


@router.post("/slots/{slot_id}/release", response_model=schemas.SlotDetail)
def release_slot(
    slot_id: int,
    background: BackgroundTasks,
    current_user: models.User = Depends(operator_only),
    session: Session = Depends(get_session),
    connections: ConnectionRegistry = Depends(get_connections),
):
    assignment = allocation.release_slot(session, current_user.id, slot_id)
    session.commit()
    result = serializers.slot_detail(assignment)
    if assignment.owner is not None:
        background.add_task(
            connections.send,
            Notification(
                recipient_id=assignment.owner.id,
                kind=EventKind.SLOT_RELEASED,
                data=serializers.public_fields(result),
            ),
        )
    return result


@router.get("/customers", response_model=list[schemas.CustomerWithCars])
def list_customers(
    current_user: models.User = Depends(operator_only),
    session: Session = Depends(get_session),
):
    return [
        serializers.customer_with_cars(entry)
        for entry in allocation.list_operator_customers(session, current_user.id)
    ]


@router.patch("/customers/{customer_id}", response_model=schemas.CustomerRead)
def update_customer_status(
    customer_id: int,
    payload: schemas.CustomerDecision,
    current_user: models.User = Depends(operator_only),
    session: Session = Depends(get_session),
):
    operator = lookups.resolve_operator_by_user(session, current_user.id)
    customer = lookups.resolve_customer(session, customer_id)
    if customer.project_id != operator.project_id:
        raise NotFoundError(
            "Customer does not belong to the same project as the operator",
            customer_id=customer_id,
        )
    customer.status = payload.status
    customer.updated_at = models.utcnow()
    if payload.status == ApprovalStatus.APPROVED.value:
        customer.approved_at = customer.updated_at
        customer.approved_by = current_user.id
    session.add(customer)
    session.commit()
    session.refresh(customer)
    return customer
