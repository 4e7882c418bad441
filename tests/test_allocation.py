import pytest
from sqlmodel import select

from palletpark.errors import ConflictError, NotFoundError
from palletpark.states import ApprovalStatus, SlotStatus
from palletpark_web import allocation, models, workflow
from palletpark_web.inventory import generate_inventory
from palletpark_web.slots import SlotStore


@pytest.fixture
def site(session, factory):
    project = factory.project()
    structure = factory.structure(project, levels=2, columns=2)
    slots = generate_inventory(session, structure.id, 1).slots
    session.commit()
    operator = factory.operator(structure)
    customer = factory.customer(structure)
    car = factory.car(customer.user_id)
    return {
        "project": project,
        "structure": structure,
        "slots": slots,
        "operator": operator,
        "customer": customer,
        "car": car,
    }


def assigned_slots_for(session, car_id):
    return session.exec(
        select(models.Slot).where(
            (models.Slot.car_id == car_id)
            & (models.Slot.status == SlotStatus.ASSIGNED.value)
        )
    ).all()


def test_assign_binds_car_and_hydrates(session, site):
    slot = site["slots"][0]

    assignment = allocation.assign_slot(
        session, site["operator"].user_id, slot.id, site["customer"].id, site["car"].id
    )
    session.commit()

    assert assignment.slot.status == SlotStatus.ASSIGNED.value
    assert assignment.slot.car_id == site["car"].id
    assert assignment.car.id == site["car"].id
    assert assignment.customer.id == site["customer"].id
    assert assignment.structure.id == site["structure"].id
    assert assignment.project.id == site["project"].id
    assert assignment.owner.id == site["customer"].user_id


def test_assign_defaults_to_earliest_car(session, factory, site):
    factory.car(site["customer"].user_id)

    assignment = allocation.assign_slot(
        session, site["operator"].user_id, site["slots"][1].id, site["customer"].id
    )

    assert assignment.car.id == site["car"].id


def test_assign_without_cars_fails(session, factory, site):
    customer = factory.customer(site["structure"])
    with pytest.raises(NotFoundError, match="no cars"):
        allocation.assign_slot(
            session, site["operator"].user_id, site["slots"][0].id, customer.id
        )


def test_assigned_slot_conflicts(session, factory, site):
    slot = site["slots"][0]
    allocation.assign_slot(session, site["operator"].user_id, slot.id, site["customer"].id)
    session.commit()

    other = factory.customer(site["structure"])
    factory.car(other.user_id)
    with pytest.raises(ConflictError, match="already assigned to another customer"):
        allocation.assign_slot(session, site["operator"].user_id, slot.id, other.id)


def test_car_cannot_hold_two_slots(session, site):
    first, second = site["slots"][0], site["slots"][1]
    allocation.assign_slot(session, site["operator"].user_id, first.id, site["customer"].id)
    session.commit()

    with pytest.raises(ConflictError, match="Car is already assigned"):
        allocation.assign_slot(
            session, site["operator"].user_id, second.id, site["customer"].id
        )
    session.rollback()

    assert [s.id for s in assigned_slots_for(session, site["car"].id)] == [first.id]
    assert SlotStore(session).get(second.id).status == SlotStatus.RELEASED.value


def test_claim_is_conditional(session, site):
    store = SlotStore(session)
    slot = site["slots"][0]
    store.claim(slot.id, site["car"].id)

    with pytest.raises(ConflictError, match="already assigned to another customer"):
        store.claim(slot.id, site["car"].id)
    with pytest.raises(ConflictError, match="Car is already assigned"):
        store.claim(site["slots"][2].id, site["car"].id)


def test_car_must_belong_to_customer(session, factory, site):
    stranger_car = factory.car(factory.user().id)
    with pytest.raises(NotFoundError, match="does not belong to customer"):
        allocation.assign_slot(
            session,
            site["operator"].user_id,
            site["slots"][0].id,
            site["customer"].id,
            stranger_car.id,
        )


def test_unapproved_customer_rejected(session, factory, site):
    pending = factory.customer(site["structure"], status=ApprovalStatus.PENDING)
    factory.car(pending.user_id)
    with pytest.raises(ConflictError, match="not approved"):
        allocation.assign_slot(
            session, site["operator"].user_id, site["slots"][0].id, pending.id
        )


def test_operator_of_other_structure_cannot_assign(session, factory, site):
    other_structure = factory.structure(site["project"], levels=1, columns=1)
    outsider = factory.operator(other_structure)
    with pytest.raises(NotFoundError):
        allocation.assign_slot(
            session, outsider.user_id, site["slots"][0].id, site["customer"].id
        )


def test_customer_of_other_project_rejected(session, factory, site):
    foreign_structure = factory.structure(factory.project())
    foreigner = factory.customer(foreign_structure)
    factory.car(foreigner.user_id)
    with pytest.raises(NotFoundError, match="project"):
        allocation.assign_slot(
            session, site["operator"].user_id, site["slots"][0].id, foreigner.id
        )


def test_missing_entities(session, site):
    with pytest.raises(NotFoundError, match="Operator profile not found"):
        allocation.assign_slot(session, 9999, site["slots"][0].id, site["customer"].id)
    with pytest.raises(NotFoundError, match="Pallet not found"):
        allocation.assign_slot(session, site["operator"].user_id, 9999, site["customer"].id)
    with pytest.raises(NotFoundError, match="Customer not found"):
        allocation.assign_slot(session, site["operator"].user_id, site["slots"][0].id, 9999)


def test_release_frees_slot_for_reassignment(session, site):
    first, second = site["slots"][0], site["slots"][1]
    allocation.assign_slot(session, site["operator"].user_id, first.id, site["customer"].id)
    session.commit()

    released = allocation.release_slot(session, site["operator"].user_id, first.id)
    session.commit()

    assert released.slot.status == SlotStatus.RELEASED.value
    assert released.slot.car_id is None
    assert released.car.id == site["car"].id
    assert released.customer.id == site["customer"].id

    moved = allocation.assign_slot(
        session, site["operator"].user_id, second.id, site["customer"].id
    )
    assert moved.slot.car_id == site["car"].id


def test_release_of_free_slot_conflicts(session, site):
    with pytest.raises(ConflictError, match="not assigned"):
        allocation.release_slot(session, site["operator"].user_id, site["slots"][0].id)


def test_list_operator_slots(session, site):
    slots = allocation.list_operator_slots(session, site["operator"].user_id)
    assert [s.display_number for s in slots] == [1, 2, 3, 4]


def test_operator_customer_directory_lists_scope_with_cars(session, factory, site):
    second_car = factory.car(site["customer"].user_id)
    newcomer = factory.customer(site["structure"], status=ApprovalStatus.PENDING)
    factory.customer(factory.structure(site["project"], levels=1, columns=1))

    entries = allocation.list_operator_customers(session, site["operator"].user_id)

    assert {entry.customer.id for entry in entries} == {site["customer"].id, newcomer.id}
    by_id = {entry.customer.id: entry for entry in entries}
    assert [car.id for car in by_id[site["customer"].id].cars] == [second_car.id, site["car"].id]
    assert by_id[newcomer.id].cars == []


def test_customer_pallets_and_available_cars(session, factory, site):
    spare = factory.car(site["customer"].user_id)
    user_id = site["customer"].user_id
    assert allocation.customer_pallets(session, user_id) == []

    allocation.assign_slot(
        session, site["operator"].user_id, site["slots"][2].id, site["customer"].id, site["car"].id
    )
    open_request = workflow.create_request(session, user_id, site["car"].id)
    session.commit()

    statuses = allocation.customer_pallets(session, user_id)
    assert len(statuses) == 1
    assert statuses[0].assignment.slot.id == site["slots"][2].id
    assert statuses[0].assignment.car.id == site["car"].id
    assert statuses[0].request.id == open_request.id
    assert [car.id for car in allocation.available_cars(session, user_id)] == [spare.id]

    allocation.release_slot(session, site["operator"].user_id, site["slots"][2].id)
    session.commit()

    assert allocation.customer_pallets(session, user_id) == []
    assert [car.id for car in allocation.available_cars(session, user_id)] == [
        site["car"].id,
        spare.id,
    ]
