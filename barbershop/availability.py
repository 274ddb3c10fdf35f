import logging
from datetime import date
from typing import Iterable

from barbershop.store import AppointmentStore, StoreError

logger = logging.getLogger(__name__)


async def list_occupied_slots(store: AppointmentStore, professional_id: str, day: date) -> frozenset[str]:
    """Слоты, уже занятые у мастера на эту дату.

    Если хранилище не ответило - возвращаем пустое множество (fail-open):
    виджет покажет все слоты, а занятый слот всё равно отсечёт reserve().
    """
    try:
        slots = await store.list_by_professional_and_date(professional_id, day)
    except StoreError as exc:
        logger.warning(
            "Could not load occupied slots for professional=%s date=%s, showing all slots: %s",
            professional_id, day, exc,
        )
        return frozenset()
    return frozenset(slots)


def available_slots(all_slots: Iterable[str], occupied: Iterable[str]) -> list[str]:
    taken = set(occupied)
    return [slot for slot in all_slots if slot not in taken]
