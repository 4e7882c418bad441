"""Persistence of pallet slots.

Status and car binding of a slot only change through :meth:`SlotStore.claim`
and :meth:`SlotStore.release`.  Both are single conditional ``UPDATE``
statements, so two writers racing for the same slot or the same car cannot
both succeed.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import aliased
from sqlmodel import Session, select

from palletpark.errors import ConflictError, NotFoundError
from palletpark.states import SlotStatus

from . import models

logger = logging.getLogger(__name__)

ASSIGNED = SlotStatus.ASSIGNED.value
RELEASED = SlotStatus.RELEASED.value


class SlotStore:
    """Slot queries and atomic state changes bound to one session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, slot_id: int) -> models.Slot:
        slot = self.session.get(models.Slot, slot_id, populate_existing=True)
        if slot is None:
            raise NotFoundError("Pallet not found", slot_id=slot_id)
        return slot

    def list_by_structure(self, structure_id: int) -> list[models.Slot]:
        """Return slots above ground first, then below ground, by column."""

        statement = (
            select(models.Slot)
            .where(models.Slot.structure_id == structure_id)
            .order_by(
                models.Slot.level.asc().nulls_last(),
                models.Slot.below_ground_level.asc().nulls_last(),
                models.Slot.column.asc(),
            )
        )
        return list(self.session.exec(statement).all())

    def count_for_structure(self, structure_id: int) -> int:
        return self.session.exec(
            select(func.count())
            .select_from(models.Slot)
            .where(models.Slot.structure_id == structure_id)
        ).one()

    def add_many(self, slots: Iterable[models.Slot]) -> list[models.Slot]:
        created = list(slots)
        self.session.add_all(created)
        self.session.flush()
        return created

    def active_slot_for_car(
        self, car_id: int, exclude_slot_id: Optional[int] = None
    ) -> Optional[models.Slot]:
        statement = select(models.Slot).where(
            (models.Slot.car_id == car_id) & (models.Slot.status == ASSIGNED)
        )
        if exclude_slot_id is not None:
            statement = statement.where(models.Slot.id != exclude_slot_id)
        return self.session.exec(statement).first()

    def claim(self, slot_id: int, car_id: int) -> models.Slot:
        """Bind ``car_id`` to a released slot.

        Fails with :class:`ConflictError` when the slot is no longer released
        or the car already holds an assigned slot.
        """

        holder = aliased(models.Slot)
        car_busy = (
            select(holder.id)
            .where((holder.car_id == car_id) & (holder.status == ASSIGNED))
            .exists()
        )
        statement = (
            update(models.Slot)
            .where(
                (models.Slot.id == slot_id)
                & (models.Slot.status == RELEASED)
                & ~car_busy
            )
            .values(status=ASSIGNED, car_id=car_id, updated_at=models.utcnow())
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.session.execute(statement)
        except IntegrityError as exc:
            raise ConflictError(
                "Car is already assigned to another pallet",
                slot_id=slot_id,
                car_id=car_id,
            ) from exc

        if result.rowcount != 1:
            slot = self.get(slot_id)
            if slot.status != RELEASED:
                raise ConflictError(
                    "Pallet is already assigned to another customer",
                    slot_id=slot_id,
                )
            raise ConflictError(
                "Car is already assigned to another pallet",
                slot_id=slot_id,
                car_id=car_id,
            )

        logger.info("Slot %s claimed by car %s", slot_id, car_id)
        return self.get(slot_id)

    def release(self, slot_id: int) -> models.Slot:
        """Return an assigned slot to the released pool."""

        statement = (
            update(models.Slot)
            .where((models.Slot.id == slot_id) & (models.Slot.status == ASSIGNED))
            .values(status=RELEASED, car_id=None, updated_at=models.utcnow())
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        if result.rowcount != 1:
            self.get(slot_id)
            raise ConflictError(
                "Pallet is not assigned to any customer or car", slot_id=slot_id
            )
        logger.info("Slot %s released", slot_id)
        return self.get(slot_id)
