from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from barbershop import schemas
from barbershop.store import SlotAlreadyBooked, StoreUnavailable

DAY = date(2024, 2, 15)


def make_record(time_slot="09:00", professional_id="1", day=DAY):
    return schemas.AppointmentCreate(
        professional_id=professional_id,
        client_name="Ana Silva",
        client_phone="11999990000",
        date=day,
        time_slot=time_slot,
        service_id="1",
    )


@pytest.mark.asyncio
async def test_insert_assigns_id_and_created_at(store):
    appointment = await store.insert_appointment(make_record())
    assert appointment.id is not None
    assert appointment.created_at is not None
    assert appointment.time_slot == "09:00"


@pytest.mark.asyncio
async def test_list_by_professional_and_date_is_ordered(store):
    for slot in ("15:00", "09:00", "11:00"):
        await store.insert_appointment(make_record(slot))
    await store.insert_appointment(make_record("10:00", professional_id="2"))

    assert await store.list_by_professional_and_date("1", DAY) == ["09:00", "11:00", "15:00"]
    assert await store.list_by_professional_and_date("3", DAY) == []


@pytest.mark.asyncio
async def test_exists_by_professional_date_slot(store):
    await store.insert_appointment(make_record("14:00"))
    assert await store.exists_by_professional_date_slot("1", DAY, "14:00")
    assert not await store.exists_by_professional_date_slot("1", DAY, "15:00")
    assert not await store.exists_by_professional_date_slot("1", date(2024, 2, 16), "14:00")


@pytest.mark.asyncio
async def test_duplicate_slot_violates_unique_constraint(store):
    await store.insert_appointment(make_record())
    with pytest.raises(SlotAlreadyBooked):
        await store.insert_appointment(make_record())

    # После отката сессия остаётся рабочей
    assert await store.list_by_professional_and_date("1", DAY) == ["09:00"]


@pytest.mark.asyncio
async def test_driver_errors_become_store_unavailable(store, monkeypatch):
    async def broken_execute(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    rollbacks = []

    async def spy_rollback():
        rollbacks.append(True)

    monkeypatch.setattr(store.session, "execute", broken_execute)
    monkeypatch.setattr(store.session, "rollback", spy_rollback)

    with pytest.raises(StoreUnavailable):
        await store.list_by_professional_and_date("1", DAY)
    with pytest.raises(StoreUnavailable):
        await store.exists_by_professional_date_slot("1", DAY, "09:00")
    # Прерванную транзакцию откатываем после каждого сбоя
    assert len(rollbacks) == 2


@pytest.mark.asyncio
async def test_other_integrity_errors_are_not_slot_conflicts(store):
    # В обход валидации pydantic: NOT NULL нарушается в самой базе
    broken = schemas.AppointmentCreate.model_construct(
        professional_id="1",
        client_name=None,
        client_phone="11999990000",
        date=DAY,
        time_slot="09:00",
        service_id="1",
    )
    with pytest.raises(StoreUnavailable):
        await store.insert_appointment(broken)

    # Слот при этом свободен
    assert await store.list_by_professional_and_date("1", DAY) == []
