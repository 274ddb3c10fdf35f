"""Доступ к таблице записей.

Хранилище отдаёт ровно три операции, которые нужны процессу записи:
список занятых слотов, проверка одного слота и вставка записи.
Ошибки SQLAlchemy наружу не выходят - они переводятся в StoreError.
"""
import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from barbershop import models, schemas

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Базовая ошибка хранилища."""


class StoreUnavailable(StoreError):
    """Хранилище недоступно или ответило ошибкой."""


class SlotAlreadyBooked(StoreError):
    """Вставка нарушила уникальность (мастер, дата, слот)."""


def _is_slot_violation(exc: IntegrityError) -> bool:
    # Postgres называет ограничение, SQLite перечисляет его колонки
    message = str(exc.orig)
    return models.SLOT_CONSTRAINT in message or (
        "UNIQUE constraint failed" in message and "appointments.time_slot" in message
    )


class AppointmentStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_by_professional_and_date(self, professional_id: str, day: date) -> list[str]:
        stmt = (
            select(models.Appointment.time_slot)
            .where(models.Appointment.professional_id == professional_id)
            .where(models.Appointment.date == day)
            .order_by(models.Appointment.time_slot)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            # Иначе в Postgres транзакция остаётся прерванной для следующих запросов
            await self.session.rollback()
            raise StoreUnavailable(str(exc)) from exc
        return list(result.scalars().all())

    async def exists_by_professional_date_slot(self, professional_id: str, day: date, time_slot: str) -> bool:
        stmt = (
            select(models.Appointment.id)
            .where(models.Appointment.professional_id == professional_id)
            .where(models.Appointment.date == day)
            .where(models.Appointment.time_slot == time_slot)
            .limit(1)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            # Иначе в Postgres транзакция остаётся прерванной для следующих запросов
            await self.session.rollback()
            raise StoreUnavailable(str(exc)) from exc
        return result.scalar_one_or_none() is not None

    async def insert_appointment(self, record: schemas.AppointmentCreate) -> models.Appointment:
        db_appointment = models.Appointment(**record.model_dump())
        self.session.add(db_appointment)
        try:
            await self.session.commit()
            # id и created_at назначает база
            await self.session.refresh(db_appointment)
        except IntegrityError as exc:
            await self.session.rollback()
            if _is_slot_violation(exc):
                raise SlotAlreadyBooked(str(exc.orig)) from exc
            raise StoreUnavailable(str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StoreUnavailable(str(exc)) from exc
        return db_appointment
