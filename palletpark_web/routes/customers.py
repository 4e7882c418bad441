"""Customer routes: profile, cars and parking requests."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlmodel import Session

from palletpark.errors import ConflictError, NotFoundError
from palletpark.states import RequestStatus, UserRole

from .. import allocation, lookups, models, schemas, serializers, workflow
from ..auth import require_role
from ..database import get_session
from ..notifications import ConnectionRegistry, EventKind, Notification, get_connections

router = APIRouter(prefix="/customers", tags=["customers"])

customer_only = require_role(UserRole.CUSTOMER)


@router.post("/profile", response_model=schemas.CustomerRead, status_code=status.HTTP_201_CREATED)
def create_profile(
    payload: schemas.CustomerCreate,
    current_user: models.User = Depends(customer_only),
    session: Session = Depends(get_session),
):
    if lookups.find_customer_by_user(session, current_user.id) is not None:
        raise ConflictError("Customer profile already exists", user_id=current_user.id)
    structure = lookups.resolve_structure(session, payload.structure_id)
    if structure.project_id != payload.project_id:
        raise NotFoundError(
            "Parking system not found in this project",
            project_id=payload.project_id,
            structure_id=payload.structure_id,
        )
    customer = models.Customer(user_id=current_user.id, **payload.model_dump())
    session.add(customer)
    session.commit()
    session.refresh(customer)
    return customer


@router.get("/profile", response_model=schemas.CustomerRead)
def read_profile(
    current_user: models.User = Depends(customer_only),
    session: Session = Depends(get_session),
):
    return lookups.resolve_customer_by_user(session, current_user.id)


@router.post("/cars", response_model=schemas.CarRead, status_code=status.HTTP_201_CREATED)
def add_car(
    payload: schemas.CarCreate,
    current_user: models.User = Depends(customer_only),
    session: Session = Depends(get_session),
):
    car = models.Car(user_id=current_user.id, **payload.model_dump())
    session.add(car)
    session.commit()
    session.refresh(car)
    return car


@router.get("/cars", response_model=list[schemas.CarRead])
def list_cars(
    current_user: models.User = Depends(customer_only),
    session: Session = Depends(get_session),
):
    return lookups.cars_for_user(session, current_user.id)


@router.get("/cars/available", response_model=list[schemas.CarRead])
def list_available_cars(
    current_user: models.User = Depends(customer_only),
    session: Session = Depends(get_session),
):
    return allocation.available_cars(session, current_user.id)


@router.get("/pallet-status", response_model=schemas.PalletStatusRead)
def read_pallet_status(
    current_user: models.User = Depends(customer_only),
    session: Session = Depends(get_session),
):
    return serializers.pallet_status(
        session,
        allocation.customer_pallets(session, current_user.id),
        workflow.list_for_customer(session, current_user.id, RequestStatus.PENDING),
    )


@router.post("/requests", response_model=schemas.ParkingRequestRead, status_code=status.HTTP_201_CREATED)
def create_parking_request(
    payload: schemas.ParkingRequestCreate,
    background: BackgroundTasks,
    current_user: models.User = Depends(customer_only),
    session: Session = Depends(get_session),
    connections: ConnectionRegistry = Depends(get_connections),
):
    parking_request = workflow.create_request(session, current_user.id, payload.car_id)
    session.commit()
    session.refresh(parking_request)

    result = serializers.parking_request_read(session, parking_request)
    operator = lookups.resolve_operator(session, parking_request.operator_id)
    background.add_task(
        connections.send,
        Notification(
            recipient_id=operator.user_id,
            kind=EventKind.REQUEST_CREATED,
            data=serializers.public_fields(result),
        ),
    )
    return result


@router.get("/requests", response_model=list[schemas.ParkingRequestRead])
def list_parking_requests(
    current_user: models.User = Depends(customer_only),
    session: Session = Depends(get_session),
):
    return [
        serializers.parking_request_read(session, parking_request)
        for parking_request in workflow.list_for_customer(session, current_user.id)
    ]
