"""Пошаговый мастер записи: услуга -> мастер -> дата/время -> контакты.

Черновик строго упорядочен по шагам: возврат назад сбрасывает всё,
что было выбрано на последующих шагах, а смена даты сбрасывает время.
"""
import enum
import logging
import secrets
from dataclasses import dataclass, field
from datetime import date as Date, datetime, timedelta
from typing import Callable, Optional

from barbershop import catalog, models, schemas
from barbershop.availability import available_slots, list_occupied_slots
from barbershop.guard import Confirmed, Conflict, ReservationResult, reserve
from barbershop.store import AppointmentStore

logger = logging.getLogger(__name__)


class Step(str, enum.Enum):
    SELECTING_SERVICE = "service"
    SELECTING_PROFESSIONAL = "professional"
    SELECTING_DATE_TIME = "datetime"
    ENTERING_CONTACT = "contact"
    CONFIRMED = "confirmation"


STEP_ORDER = list(Step)

# Какие поля черновика заполняются на каком шаге
STEP_FIELDS = {
    Step.SELECTING_SERVICE: ("service",),
    Step.SELECTING_PROFESSIONAL: ("professional",),
    Step.SELECTING_DATE_TIME: ("date", "time_slot"),
    Step.ENTERING_CONTACT: ("client_name", "client_phone"),
    Step.CONFIRMED: (),
}


class WizardError(ValueError):
    """Недопустимый переход или неверный выбор посетителя."""


@dataclass
class Draft:
    service: Optional[schemas.Service] = None
    professional: Optional[schemas.Professional] = None
    date: Optional[Date] = None
    time_slot: Optional[str] = None
    client_name: Optional[str] = None
    client_phone: Optional[str] = None


class BookingWizard:
    def __init__(self, session_id: str, today: Optional[Callable[[], Date]] = None):
        self.session_id = session_id
        # Окно считаем заново при каждом обращении: черновик может пережить полночь
        self._today = today
        self.step = Step.SELECTING_SERVICE
        self.draft = Draft()
        self.occupied: frozenset[str] = frozenset()
        self.error: Optional[Conflict] = None
        self.appointment: Optional[models.Appointment] = None
        self.submitting = False
        # Разовое сообщение для HTML-виджета
        self.notice: Optional[str] = None
        self._generation = 0

    def _require(self, step: Step):
        if self.step != step:
            raise WizardError(f"Ação indisponível na etapa atual ({self.step.value}).")

    @property
    def window(self) -> list[Date]:
        start = self._today() if self._today is not None else None
        return [day.date for day in catalog.scheduling_window(start)]

    def _require_idle(self):
        if self.submitting:
            raise WizardError("Agendamento em andamento, aguarde.")

    def _invalidate_occupied(self):
        # Ответы запросов, начатых до этого момента, больше не применяются
        self._generation += 1
        self.occupied = frozenset()

    @property
    def available_slots(self) -> list[str]:
        return available_slots(catalog.TIME_SLOTS, self.occupied)

    async def refresh_occupied(self, store: AppointmentStore) -> frozenset[str]:
        professional, day = self.draft.professional, self.draft.date
        if professional is None or day is None:
            self._invalidate_occupied()
            return self.occupied

        self._generation += 1
        generation = self._generation
        occupied = await list_occupied_slots(store, professional.id, day)
        if generation != self._generation:
            logger.debug("Discarding stale occupied slots for professional=%s date=%s", professional.id, day)
            return self.occupied
        self.occupied = occupied
        return occupied

    def choose_service(self, service_id: str) -> None:
        self._require(Step.SELECTING_SERVICE)
        service = catalog.get_service(service_id)
        if service is None:
            raise WizardError("Serviço não encontrado.")
        self.draft.service = service
        self.step = Step.SELECTING_PROFESSIONAL

    async def choose_professional(self, store: AppointmentStore, professional_id: str) -> None:
        self._require(Step.SELECTING_PROFESSIONAL)
        professional = catalog.get_professional(professional_id)
        if professional is None:
            raise WizardError("Profissional não encontrado.")
        self.draft.professional = professional
        self.step = Step.SELECTING_DATE_TIME
        await self.refresh_occupied(store)

    async def choose_date(self, store: AppointmentStore, day: Date) -> None:
        self._require(Step.SELECTING_DATE_TIME)
        if day not in self.window:
            raise WizardError("Data fora do período de agendamento.")
        if day != self.draft.date:
            self.draft.time_slot = None
        self.draft.date = day
        await self.refresh_occupied(store)

    def choose_time(self, time_slot: str) -> None:
        self._require(Step.SELECTING_DATE_TIME)
        if self.draft.date is None:
            raise WizardError("Escolha uma data primeiro.")
        if time_slot not in catalog.TIME_SLOTS:
            raise WizardError("Horário inválido.")
        if time_slot in self.occupied:
            raise WizardError("Este horário já está ocupado.")
        self.draft.time_slot = time_slot
        self.error = None
        self.step = Step.ENTERING_CONTACT

    async def submit_contact(self, store: AppointmentStore, client_name: str, client_phone: str) -> ReservationResult:
        self._require(Step.ENTERING_CONTACT)
        client_name = (client_name or "").strip()
        client_phone = (client_phone or "").strip()
        if not client_name or not client_phone:
            raise WizardError("Informe nome e telefone.")
        self._require_idle()
        if self.draft.date not in self.window:
            raise WizardError("Data fora do período de agendamento.")

        candidate = schemas.AppointmentCreate(
            professional_id=self.draft.professional.id,
            client_name=client_name,
            client_phone=client_phone,
            date=self.draft.date,
            time_slot=self.draft.time_slot,
            service_id=self.draft.service.id,
        )
        self.submitting = True
        self.error = None
        try:
            result = await reserve(store, candidate)
            if isinstance(result, Confirmed):
                self.draft.client_name = client_name
                self.draft.client_phone = client_phone
                self.appointment = result.appointment
                self.step = Step.CONFIRMED
            else:
                # Остаёмся на контактах; слот мог уйти - обновляем занятость
                self.error = result
                await self.refresh_occupied(store)
        finally:
            self.submitting = False
        return result

    def back(self) -> None:
        self._require_idle()
        if self.step in (Step.SELECTING_SERVICE, Step.CONFIRMED):
            raise WizardError("Não é possível voltar desta etapa.")
        target = STEP_ORDER[STEP_ORDER.index(self.step) - 1]
        for later in STEP_ORDER[STEP_ORDER.index(target) + 1:]:
            for name in STEP_FIELDS[later]:
                setattr(self.draft, name, None)
        if self.draft.date is None:
            self._invalidate_occupied()
        self.error = None
        self.step = target

    def reset(self) -> None:
        self._require_idle()
        self.draft = Draft()
        self._invalidate_occupied()
        self.error = None
        self.notice = None
        self.appointment = None
        self.step = Step.SELECTING_SERVICE

    def snapshot(self) -> schemas.WizardSnapshot:
        error = None
        if self.error is not None:
            error = schemas.BookingError(reason=self.error.reason.value, message=self.error.message)
        appointment = None
        if self.appointment is not None:
            appointment = schemas.AppointmentResponse.model_validate(self.appointment)
        return schemas.WizardSnapshot(
            session_id=self.session_id,
            step=self.step.value,
            service=self.draft.service,
            professional=self.draft.professional,
            date=self.draft.date,
            time_slot=self.draft.time_slot,
            client_name=self.draft.client_name,
            client_phone=self.draft.client_phone,
            occupied_slots=sorted(self.occupied),
            available_slots=self.available_slots,
            error=error,
            appointment=appointment,
        )


@dataclass
class _Entry:
    wizard: BookingWizard
    last_seen: datetime = field(default_factory=datetime.now)


class WizardRegistry:
    """Черновики посетителей в памяти процесса."""

    def __init__(self, ttl: timedelta = timedelta(hours=2)):
        self.ttl = ttl
        self._entries: dict[str, _Entry] = {}

    def create(self) -> BookingWizard:
        self.purge_expired()
        session_id = secrets.token_urlsafe(16)
        wizard = BookingWizard(session_id)
        self._entries[session_id] = _Entry(wizard)
        return wizard

    def get(self, session_id: Optional[str]) -> Optional[BookingWizard]:
        entry = self._entries.get(session_id) if session_id else None
        if entry is None:
            return None
        if datetime.now() - entry.last_seen > self.ttl:
            del self._entries[session_id]
            return None
        entry.last_seen = datetime.now()
        return entry.wizard

    def discard(self, session_id: str) -> None:
        self._entries.pop(session_id, None)

    def purge_expired(self) -> None:
        now = datetime.now()
        expired = [sid for sid, entry in self._entries.items() if now - entry.last_seen > self.ttl]
        for sid in expired:
            del self._entries[sid]
        if expired:
            logger.debug("Purged %d expired booking drafts", len(expired))

    def __len__(self):
        return len(self._entries)
