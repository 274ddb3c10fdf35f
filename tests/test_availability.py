import logging
from datetime import date

import pytest

from barbershop import schemas
from barbershop.availability import available_slots, list_occupied_slots
from barbershop.catalog import TIME_SLOTS

DAY = date(2024, 2, 15)


async def book(store, time_slot, professional_id="1", day=DAY):
    await store.insert_appointment(schemas.AppointmentCreate(
        professional_id=professional_id,
        client_name="Cliente",
        client_phone="11988887777",
        date=day,
        time_slot=time_slot,
        service_id="2",
    ))


@pytest.mark.asyncio
async def test_occupied_slots_match_stored_appointments(store):
    for slot in ("09:00", "14:00", "18:00"):
        await book(store, slot)
    # Другой мастер и другой день не должны попадать в результат
    await book(store, "10:00", professional_id="2")
    await book(store, "11:00", day=date(2024, 2, 16))

    occupied = await list_occupied_slots(store, "1", DAY)
    assert occupied == {"09:00", "14:00", "18:00"}


@pytest.mark.asyncio
async def test_occupied_slots_empty_store(store):
    assert await list_occupied_slots(store, "1", DAY) == frozenset()


@pytest.mark.asyncio
async def test_store_failure_fails_open(failing_store, caplog):
    with caplog.at_level(logging.WARNING, logger="barbershop.availability"):
        occupied = await list_occupied_slots(failing_store, "1", DAY)

    assert occupied == frozenset()
    assert available_slots(TIME_SLOTS, occupied) == list(TIME_SLOTS)
    assert "showing all slots" in caplog.text


def test_available_slots_keeps_canonical_order():
    assert available_slots(TIME_SLOTS, {"18:00", "09:00", "14:00"}) == [
        "10:00", "11:00", "15:00", "16:00", "17:00",
    ]


@pytest.mark.parametrize("occupied", [
    set(),
    {"09:00"},
    {"11:00", "14:00", "17:00"},
    set(TIME_SLOTS),
])
def test_available_and_occupied_partition_all_slots(occupied):
    available = available_slots(TIME_SLOTS, occupied)

    assert set(available) | occupied == set(TIME_SLOTS)
    assert set(available) & occupied == set()
    # Повторное применение ничего не меняет
    assert available_slots(available, occupied) == available
