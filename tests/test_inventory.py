import pytest

from palletpark.errors import ConflictError, NotFoundError, ValidationError
from palletpark.states import SlotStatus, StructureKind
from palletpark_web import models
from palletpark_web.inventory import generate_inventory
from palletpark_web.slots import SlotStore


def test_tower_inventory_numbers_and_coordinates(session, factory):
    structure = factory.structure(factory.project(), StructureKind.TOWER, levels=3, columns=2)

    result = generate_inventory(session, structure.id, 100)
    session.commit()

    assert result.total_created == 6
    assert (result.starting_number, result.ending_number) == (100, 105)
    assert [s.display_number for s in result.slots] == list(range(100, 106))
    assert [(s.level, s.column) for s in result.slots] == [
        (1, 1), (1, 2), (2, 1), (2, 2), (3, 1), (3, 2)
    ]
    assert all(s.status == SlotStatus.RELEASED.value for s in result.slots)
    assert all(s.car_id is None for s in result.slots)
    assert all(s.project_id == structure.project_id for s in result.slots)


def test_puzzle_inventory_layout(session, factory):
    structure = factory.structure(
        factory.project(), StructureKind.PUZZLE, levels=2, columns=3, below=1
    )

    result = generate_inventory(session, structure.id, 1)

    assert result.total_created == 8
    coords = [(s.display_number, s.level, s.column, s.below_ground_level) for s in result.slots]
    assert coords == [
        (1, 1, 1, None),
        (2, 1, 2, None),
        (3, 2, 1, None),
        (4, 2, 2, None),
        (5, 1, 3, None),
        (6, None, 1, 1),
        (7, None, 2, 1),
        (8, None, 3, 1),
    ]


def test_second_generation_conflicts_without_new_slots(session, factory):
    structure = factory.structure(factory.project(), levels=2, columns=2)
    generate_inventory(session, structure.id, 1)
    session.commit()

    with pytest.raises(ConflictError):
        generate_inventory(session, structure.id, 50)
    session.rollback()

    assert SlotStore(session).count_for_structure(structure.id) == 4


def test_concurrent_run_conflicts_and_leaves_rollback_to_caller(
    session, engine, factory, monkeypatch
):
    from sqlmodel import Session, select

    structure = factory.structure(factory.project(), levels=2, columns=2)
    structure_id = structure.id
    real_count = SlotStore.count_for_structure

    def count_after_rival_run(self, target_id):
        with Session(engine) as other:
            other.add(
                models.InventoryRun(
                    structure_id=target_id,
                    starting_number=1,
                    ending_number=4,
                    total_created=4,
                )
            )
            other.commit()
        return real_count(self, target_id)

    monkeypatch.setattr(SlotStore, "count_for_structure", count_after_rival_run)

    with pytest.raises(ConflictError):
        generate_inventory(session, structure_id, 1)

    assert session.in_transaction()
    session.rollback()
    monkeypatch.undo()

    runs = session.exec(
        select(models.InventoryRun).where(models.InventoryRun.structure_id == structure_id)
    ).all()
    assert len(runs) == 1
    assert SlotStore(session).count_for_structure(structure_id) == 0


def test_generation_conflicts_when_slots_exist_without_run(session, factory):
    structure = factory.structure(factory.project(), levels=1, columns=1)
    session.add(
        models.Slot(
            structure_id=structure.id,
            project_id=structure.project_id,
            level=1,
            column=1,
            display_number=1,
        )
    )
    session.commit()

    with pytest.raises(ConflictError):
        generate_inventory(session, structure.id, 1)


@pytest.mark.parametrize("start", [0, -5, True, "10"])
def test_starting_number_must_be_positive_int(session, factory, start):
    structure = factory.structure(factory.project())
    with pytest.raises(ValidationError):
        generate_inventory(session, structure.id, start)
    assert SlotStore(session).count_for_structure(structure.id) == 0


def test_unknown_structure(session):
    with pytest.raises(NotFoundError):
        generate_inventory(session, 999, 1)


def test_total_slots_filled_when_missing(session, factory):
    project = factory.project()
    structure = models.Structure(
        project_id=project.id,
        kind="Puzzle",
        levels_above_ground=3,
        levels_below_ground=2,
        columns=4,
    )
    session.add(structure)
    session.commit()

    generate_inventory(session, structure.id, 10)
    session.commit()
    session.refresh(structure)

    assert structure.total_slots == 3 * 3 + 1 + 4 * 2


def test_listing_groups_above_ground_before_below_ground(session, factory):
    structure = factory.structure(
        factory.project(), StructureKind.PUZZLE, levels=2, columns=3, below=2
    )
    generate_inventory(session, structure.id, 1)
    session.commit()

    listed = SlotStore(session).list_by_structure(structure.id)

    assert [(s.level, s.below_ground_level, s.column) for s in listed] == [
        (1, None, 1),
        (1, None, 2),
        (1, None, 3),
        (2, None, 1),
        (2, None, 2),
        (None, 1, 1),
        (None, 1, 2),
        (None, 1, 3),
        (None, 2, 1),
        (None, 2, 2),
        (None, 2, 3),
    ]
