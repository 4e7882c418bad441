"""Administrator routes: projects, structures, inventory and operators."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlmodel import Session, select

from palletpark import geometry
from palletpark.errors import ConflictError
from palletpark.states import UserRole

from .. import lookups, models, schemas
from ..auth import create_user, require_role
from ..database import get_session
from ..inventory import generate_inventory
from ..slots import SlotStore

router = APIRouter(prefix="/admin", tags=["admin"])

logger = logging.getLogger(__name__)

admin_only = require_role(UserRole.ADMIN)


@router.post("/projects", response_model=schemas.ProjectRead, status_code=status.HTTP_201_CREATED)
def create_project(
    payload: schemas.ProjectCreate,
    _admin: models.User = Depends(admin_only),
    session: Session = Depends(get_session),
):
    existing = session.exec(
        select(models.Project).where(models.Project.project_name == payload.project_name)
    ).first()
    if existing:
        raise ConflictError("Project already exists", project_name=payload.project_name)
    project = models.Project(
        project_name=payload.project_name.strip(),
        society_name=payload.society_name.strip(),
    )
    session.add(project)
    session.commit()
    session.refresh(project)
    return project


@router.post("/structures", response_model=schemas.StructureRead, status_code=status.HTTP_201_CREATED)
def create_structure(
    payload: schemas.StructureCreate,
    _admin: models.User = Depends(admin_only),
    session: Session = Depends(get_session),
):
    lookups.resolve_project(session, payload.project_id)
    total = geometry.total_slots(
        payload.kind,
        payload.levels_above_ground,
        payload.columns,
        payload.levels_below_ground,
    )
    structure = models.Structure(
        project_id=payload.project_id,
        wing_name=payload.wing_name,
        kind=payload.kind.value,
        levels_above_ground=payload.levels_above_ground,
        levels_below_ground=payload.levels_below_ground,
        columns=payload.columns,
        total_slots=total,
        time_per_level=payload.time_per_level,
        horizontal_move_time=payload.horizontal_move_time,
        buffer_time=payload.buffer_time,
    )
    session.add(structure)
    session.commit()
    session.refresh(structure)
    logger.info("Created %s structure %s with %s pallets", structure.kind, structure.id, total)
    return structure


@router.get("/structures/{structure_id}", response_model=schemas.StructureRead)
def read_structure(
    structure_id: int,
    _admin: models.User = Depends(admin_only),
    session: Session = Depends(get_session),
):
    return lookups.resolve_structure(session, structure_id)


@router.post(
    "/structures/{structure_id}/slots",
    response_model=schemas.InventoryRead,
    status_code=status.HTTP_201_CREATED,
)
def generate_structure_slots(
    structure_id: int,
    payload: schemas.InventoryCreate,
    _admin: models.User = Depends(admin_only),
    session: Session = Depends(get_session),
):
    result = generate_inventory(session, structure_id, payload.starting_number)
    session.commit()
    return schemas.InventoryRead(
        slots=[schemas.SlotRead.model_validate(slot) for slot in result.slots],
        total_created=result.total_created,
        starting_number=result.starting_number,
        ending_number=result.ending_number,
    )


@router.get("/structures/{structure_id}/slots", response_model=list[schemas.SlotRead])
def list_structure_slots(
    structure_id: int,
    _admin: models.User = Depends(admin_only),
    session: Session = Depends(get_session),
):
    lookups.resolve_structure(session, structure_id)
    return SlotStore(session).list_by_structure(structure_id)


@router.post("/operators", response_model=schemas.OperatorRead, status_code=status.HTTP_201_CREATED)
def create_operator(
    payload: schemas.OperatorCreate,
    _admin: models.User = Depends(admin_only),
    session: Session = Depends(get_session),
):
    structure = lookups.resolve_structure(session, payload.structure_id)
    if structure.project_id != payload.project_id:
        raise ConflictError(
            "Parking system does not belong to this project",
            project_id=payload.project_id,
            structure_id=payload.structure_id,
        )
    user = create_user(session, payload.username, payload.password, UserRole.OPERATOR)
    operator = models.Operator(
        user_id=user.id,
        project_id=payload.project_id,
        structure_id=payload.structure_id,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        mobile_number=payload.mobile_number,
        status=payload.status.value,
    )
    session.add(operator)
    session.commit()
    session.refresh(operator)
    return operator


@router.patch("/operators/{operator_id}", response_model=schemas.OperatorRead)
def update_operator_status(
    operator_id: int,
    payload: schemas.ApprovalUpdate,
    _admin: models.User = Depends(admin_only),
    session: Session = Depends(get_session),
):
    operator = lookups.resolve_operator(session, operator_id)
    operator.status = payload.status.value
    operator.updated_at = models.utcnow()
    session.add(operator)
    session.commit()
    session.refresh(operator)
    return operator
