"""Защита от двойной записи на один слот.

reserve() перепроверяет слот прямо перед вставкой, но последнее слово
за уникальным ключом (мастер, дата, слот) в базе: если два посетителя
прошли проверку одновременно, второй получит SLOT_TAKEN от вставки.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Union

from barbershop import models, schemas
from barbershop.store import AppointmentStore, SlotAlreadyBooked, StoreError

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = "Desculpe, este horário acabou de ser reservado. Escolha outro."
STORE_UNAVAILABLE_MESSAGE = "Erro ao criar agendamento. Tente novamente."


class ConflictReason(str, enum.Enum):
    SLOT_TAKEN = "slot_taken"
    STORE_UNAVAILABLE = "store_unavailable"


@dataclass(frozen=True)
class Confirmed:
    appointment: models.Appointment


@dataclass(frozen=True)
class Conflict:
    reason: ConflictReason
    message: str


ReservationResult = Union[Confirmed, Conflict]


def _slot_taken() -> Conflict:
    return Conflict(ConflictReason.SLOT_TAKEN, SLOT_TAKEN_MESSAGE)


def _store_unavailable() -> Conflict:
    return Conflict(ConflictReason.STORE_UNAVAILABLE, STORE_UNAVAILABLE_MESSAGE)


async def reserve(store: AppointmentStore, candidate: schemas.AppointmentCreate) -> ReservationResult:
    slot = (candidate.professional_id, candidate.date.isoformat(), candidate.time_slot)

    try:
        taken = await store.exists_by_professional_date_slot(
            candidate.professional_id, candidate.date, candidate.time_slot
        )
    except StoreError as exc:
        logger.error("Availability re-check failed for %s: %s", slot, exc)
        return _store_unavailable()

    if taken:
        logger.info("Slot %s already booked, rejecting", slot)
        return _slot_taken()

    try:
        appointment = await store.insert_appointment(candidate)
    except SlotAlreadyBooked:
        logger.info("Slot %s was booked concurrently, rejecting", slot)
        return _slot_taken()
    except StoreError as exc:
        logger.error("Could not insert appointment for %s: %s", slot, exc)
        return _store_unavailable()

    logger.info("Appointment %s confirmed for %s", appointment.id, slot)
    return Confirmed(appointment)
