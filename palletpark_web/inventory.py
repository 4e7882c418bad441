"""One-time generation of the pallet inventory of a structure."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from palletpark import geometry
from palletpark.errors import ConflictError, ValidationError
from palletpark.states import SlotStatus

from . import lookups, models
from .slots import SlotStore

logger = logging.getLogger(__name__)


@dataclass
class InventoryResult:
    slots: list[models.Slot] = field(default_factory=list)
    total_created: int = 0
    starting_number: int = 0
    ending_number: int = 0


def _validate_starting_number(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(
            "Starting pallet number must be a positive integer",
            field="starting_number",
        )
    return value


def generate_inventory(
    session: Session, structure_id: int, starting_number: int
) -> InventoryResult:
    """Create every slot of ``structure_id`` numbered from ``starting_number``.

    Generation happens once per structure.  The :class:`models.InventoryRun`
    row is flushed before any slot so its unique ``structure_id`` rejects a
    concurrent second run.  The caller commits, or rolls back when this
    raises.
    """

    start = _validate_starting_number(starting_number)
    structure = lookups.resolve_structure(session, structure_id)
    coordinates = geometry.slot_coordinates(
        structure.kind,
        structure.levels_above_ground,
        structure.columns,
        structure.levels_below_ground,
    )

    store = SlotStore(session)
    existing_run = session.exec(
        select(models.InventoryRun).where(
            models.InventoryRun.structure_id == structure_id
        )
    ).first()
    if existing_run is not None or store.count_for_structure(structure_id):
        raise ConflictError(
            "Pallets have already been generated for this parking system",
            structure_id=structure_id,
        )

    end = start + len(coordinates) - 1
    session.add(
        models.InventoryRun(
            structure_id=structure_id,
            starting_number=start,
            ending_number=end,
            total_created=len(coordinates),
        )
    )
    try:
        session.flush()
    except IntegrityError as exc:
        raise ConflictError(
            "Pallets have already been generated for this parking system",
            structure_id=structure_id,
        ) from exc

    slots = store.add_many(
        models.Slot(
            structure_id=structure.id,
            project_id=structure.project_id,
            level=coordinate.level,
            below_ground_level=coordinate.below_ground_level,
            column=coordinate.column,
            display_number=number,
            status=SlotStatus.RELEASED.value,
        )
        for number, coordinate in enumerate(coordinates, start=start)
    )

    if structure.total_slots is None:
        structure.total_slots = len(slots)
        structure.updated_at = models.utcnow()
        session.add(structure)
        session.flush()

    logger.info(
        "Generated %s pallets for structure %s numbered %s-%s",
        len(slots),
        structure_id,
        start,
        end,
    )
    return InventoryResult(
        slots=slots,
        total_created=len(slots),
        starting_number=start,
        ending_number=end,
    )
