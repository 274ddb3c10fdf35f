"""Статический каталог салона: услуги, мастера, слоты и окно записи."""
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from barbershop import config
from barbershop.schemas import Professional, ScheduleDay, Service

SERVICES: list[Service] = [
    Service(id="1", name="Corte Premium", duration="45min", price="R$ 120",
            description="Corte personalizado com acabamento impecável"),
    Service(id="2", name="Barba Clássica", duration="30min", price="R$ 80",
            description="Aparar e modelar com navalha e toalha quente"),
    Service(id="3", name="Combo Executivo", duration="75min", price="R$ 180",
            description="Corte + Barba + Tratamento facial"),
]

PROFESSIONALS: list[Professional] = [
    Professional(
        id="1",
        name="Ricardo Silva",
        specialty="Especialista em Navalha",
        image="https://images.unsplash.com/photo-1507003211169-0a1dd7228f2d?w=600&h=800&fit=crop",
        bio="15 anos de experiência em técnicas clássicas",
    ),
    Professional(
        id="2",
        name="Carlos Mendes",
        specialty="Visagismo",
        image="https://images.unsplash.com/photo-1500648767791-00dcc994a43e?w=600&h=800&fit=crop",
        bio="Especialista em harmonização facial",
    ),
    Professional(
        id="3",
        name="André Costa",
        specialty="Master Barber",
        image="https://images.unsplash.com/photo-1506794778202-cad84cf45f1d?w=600&h=800&fit=crop",
        bio="Certificado internacional em barbering",
    ),
]

# Канонический порядок слотов
TIME_SLOTS: tuple[str, ...] = ("09:00", "10:00", "11:00", "14:00", "15:00", "16:00", "17:00", "18:00")

PORTFOLIO_IMAGES = [
    "https://images.unsplash.com/photo-1621605815971-fbc98d665033?w=600&h=800&fit=crop",
    "https://images.unsplash.com/photo-1622286342621-4bd786c2447c?w=600&h=600&fit=crop",
    "https://images.unsplash.com/photo-1605497788044-5a32c7078486?w=600&h=900&fit=crop",
    "https://images.unsplash.com/photo-1503951914875-452162b0f3f1?w=600&h=600&fit=crop",
    "https://images.unsplash.com/photo-1599351431202-1e0f0137899a?w=600&h=800&fit=crop",
    "https://images.unsplash.com/photo-1621607512214-68297480165e?w=600&h=700&fit=crop",
]

_WEEKDAYS = ["Seg", "Ter", "Qua", "Qui", "Sex", "Sáb", "Dom"]
_MONTHS = ["Jan", "Fev", "Mar", "Abr", "Mai", "Jun", "Jul", "Ago", "Set", "Out", "Nov", "Dez"]


def get_service(service_id: str) -> Optional[Service]:
    return next((s for s in SERVICES if s.id == service_id), None)


def get_professional(professional_id: str) -> Optional[Professional]:
    return next((p for p in PROFESSIONALS if p.id == professional_id), None)


def shop_today() -> date:
    # Сегодня по часовому поясу салона, а не сервера
    return datetime.now(timezone(timedelta(hours=config.SHOP_UTC_OFFSET_HOURS))).date()


def day_label(day: date) -> str:
    return f"{_WEEKDAYS[day.weekday()]}, {day.day:02d} {_MONTHS[day.month - 1]}"


def scheduling_window(start: Optional[date] = None, days: Optional[int] = None) -> list[ScheduleDay]:
    """Ближайшие рабочие дни начиная со start; воскресенье пропускаем."""
    current = start or shop_today()
    remaining = config.BOOKING_WINDOW_DAYS if days is None else days
    window = []
    while remaining > 0:
        if current.weekday() != 6:
            window.append(ScheduleDay(date=current, label=day_label(current)))
            remaining -= 1
        current += timedelta(days=1)
    return window
