"""Slot layout of Tower and Puzzle parking structures.

A Tower has ``levels * columns`` pallets, numbered row by row starting from
the lowest level.  A Puzzle keeps one column position on every above-ground
level free as the shared sliding lane, so each of those levels holds
``columns - 1`` pallets.  The lane itself has a single resting pallet at
level 1, and every below-ground level uses the full column count::

    total = (columns - 1) * levels + 1 + columns * levels_below_ground

All functions here are pure and raise :class:`~palletpark.errors.ValidationError`
before producing anything when the geometry is invalid.
"""

from __future__ import annotations

from typing import Iterator, NamedTuple, Optional

from .errors import ValidationError
from .states import StructureKind


class SlotCoordinate(NamedTuple):
    """Position of one pallet.

    Exactly one of ``level`` and ``below_ground_level`` is set.
    """

    level: Optional[int]
    column: int
    below_ground_level: Optional[int] = None


def _as_kind(kind: StructureKind | str) -> StructureKind:
    try:
        return StructureKind(kind)
    except ValueError as exc:
        raise ValidationError(
            f"Structure type must be one of: {', '.join(k.value for k in StructureKind)}",
            field="kind",
        ) from exc


def validate_geometry(
    kind: StructureKind | str,
    levels_above_ground: int,
    columns: int,
    levels_below_ground: Optional[int] = None,
) -> StructureKind:
    """Check the geometry fields and return the normalised structure kind."""

    structure_kind = _as_kind(kind)
    if not isinstance(levels_above_ground, int) or levels_above_ground < 1:
        raise ValidationError(
            "Level must be a positive integer", field="levels_above_ground"
        )
    if not isinstance(columns, int) or columns < 1:
        raise ValidationError("Column must be a positive integer", field="columns")

    if structure_kind is StructureKind.PUZZLE:
        if levels_below_ground is None:
            raise ValidationError(
                "Level Below Ground is required for Puzzle parking system",
                field="levels_below_ground",
            )
        if not isinstance(levels_below_ground, int) or levels_below_ground < 0:
            raise ValidationError(
                "Level Below Ground must be a non-negative integer",
                field="levels_below_ground",
            )
    elif levels_below_ground:
        raise ValidationError(
            "Level Below Ground should not be provided for Tower parking system",
            field="levels_below_ground",
        )
    return structure_kind


def total_slots(
    kind: StructureKind | str,
    levels_above_ground: int,
    columns: int,
    levels_below_ground: Optional[int] = None,
) -> int:
    """Return the number of pallets the structure holds."""

    structure_kind = validate_geometry(
        kind, levels_above_ground, columns, levels_below_ground
    )
    if structure_kind is StructureKind.TOWER:
        return levels_above_ground * columns
    return (columns - 1) * levels_above_ground + 1 + columns * levels_below_ground


def iter_slot_coordinates(
    kind: StructureKind | str,
    levels_above_ground: int,
    columns: int,
    levels_below_ground: Optional[int] = None,
) -> Iterator[SlotCoordinate]:
    """Yield pallet coordinates in display-number order."""

    structure_kind = validate_geometry(
        kind, levels_above_ground, columns, levels_below_ground
    )
    if structure_kind is StructureKind.TOWER:
        for level in range(1, levels_above_ground + 1):
            for column in range(1, columns + 1):
                yield SlotCoordinate(level, column)
        return

    for level in range(1, levels_above_ground + 1):
        for column in range(1, columns):
            yield SlotCoordinate(level, column)
    # Resting pallet of the shared lane.
    yield SlotCoordinate(1, columns)
    for below in range(1, levels_below_ground + 1):
        for column in range(1, columns + 1):
            yield SlotCoordinate(None, column, below)


def slot_coordinates(
    kind: StructureKind | str,
    levels_above_ground: int,
    columns: int,
    levels_below_ground: Optional[int] = None,
) -> list[SlotCoordinate]:
    return list(
        iter_slot_coordinates(kind, levels_above_ground, columns, levels_below_ground)
    )
