import logging
from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Depends, HTTPException, Request, Form, Cookie, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from barbershop import catalog, config, database, models, schemas
from barbershop.availability import available_slots, list_occupied_slots
from barbershop.guard import Confirmed, ConflictReason, reserve
from barbershop.store import AppointmentStore
from barbershop.wizard import BookingWizard, WizardError, WizardRegistry

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

SESSION_COOKIE = "booking_session"
BOOKING_ANCHOR = "/#agendamento"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s booking service", config.SHOP_NAME)
    async with database.engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.create_all)
    yield
    await database.engine.dispose()


app = FastAPI(title=config.SHOP_NAME, lifespan=lifespan)

# Черновики записи живут в памяти процесса
registry = WizardRegistry()


def get_registry() -> WizardRegistry:
    return registry


async def get_store(db: AsyncSession = Depends(database.get_db)) -> AppointmentStore:
    return AppointmentStore(db)


@app.exception_handler(WizardError)
async def wizard_error_handler(request: Request, exc: WizardError):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


def _window_dates() -> list[date]:
    return [day.date for day in catalog.scheduling_window()]


# --- API Endpoints ---

@app.get("/api/services", response_model=list[schemas.Service])
async def read_services():
    return catalog.SERVICES


@app.get("/api/professionals", response_model=list[schemas.Professional])
async def read_professionals():
    return catalog.PROFESSIONALS


@app.get("/api/dates", response_model=list[schemas.ScheduleDay])
async def read_dates():
    return catalog.scheduling_window()


@app.get("/api/time-slots", response_model=list[str])
async def read_time_slots():
    return list(catalog.TIME_SLOTS)


@app.get("/api/availability", response_model=schemas.AvailabilityResponse)
async def read_availability(professional_id: str, date: date, store: AppointmentStore = Depends(get_store)):
    if catalog.get_professional(professional_id) is None:
        raise HTTPException(status_code=404, detail="Professional not found")
    occupied = await list_occupied_slots(store, professional_id, date)
    return schemas.AvailabilityResponse(
        professional_id=professional_id,
        date=date,
        occupied=sorted(occupied),
        available=available_slots(catalog.TIME_SLOTS, occupied),
    )


@app.post("/api/appointments", response_model=schemas.AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def create_appointment(appointment: schemas.AppointmentCreate, store: AppointmentStore = Depends(get_store)):
    if catalog.get_service(appointment.service_id) is None:
        raise HTTPException(status_code=404, detail="Service not found")
    if catalog.get_professional(appointment.professional_id) is None:
        raise HTTPException(status_code=404, detail="Professional not found")
    if appointment.time_slot not in catalog.TIME_SLOTS:
        raise HTTPException(status_code=422, detail="Unknown time slot")
    if appointment.date not in _window_dates():
        raise HTTPException(status_code=422, detail="Date is outside the booking window")

    result = await reserve(store, appointment)
    if isinstance(result, Confirmed):
        return result.appointment
    code = 409 if result.reason is ConflictReason.SLOT_TAKEN else 503
    raise HTTPException(status_code=code, detail={"reason": result.reason.value, "message": result.message})


# --- Wizard API ---

def _get_wizard(session_id: str, wizards: WizardRegistry) -> BookingWizard:
    wizard = wizards.get(session_id)
    if wizard is None:
        raise HTTPException(status_code=404, detail="Booking session not found")
    return wizard


@app.post("/api/wizard", response_model=schemas.WizardSnapshot, status_code=status.HTTP_201_CREATED)
async def start_wizard(wizards: WizardRegistry = Depends(get_registry)):
    return wizards.create().snapshot()


@app.get("/api/wizard/{session_id}", response_model=schemas.WizardSnapshot)
async def read_wizard(session_id: str, wizards: WizardRegistry = Depends(get_registry)):
    return _get_wizard(session_id, wizards).snapshot()


@app.post("/api/wizard/{session_id}/service", response_model=schemas.WizardSnapshot)
async def wizard_service(session_id: str, choice: schemas.ServiceChoice,
                         wizards: WizardRegistry = Depends(get_registry)):
    wizard = _get_wizard(session_id, wizards)
    wizard.choose_service(choice.service_id)
    return wizard.snapshot()


@app.post("/api/wizard/{session_id}/professional", response_model=schemas.WizardSnapshot)
async def wizard_professional(session_id: str, choice: schemas.ProfessionalChoice,
                              wizards: WizardRegistry = Depends(get_registry),
                              store: AppointmentStore = Depends(get_store)):
    wizard = _get_wizard(session_id, wizards)
    await wizard.choose_professional(store, choice.professional_id)
    return wizard.snapshot()


@app.post("/api/wizard/{session_id}/date", response_model=schemas.WizardSnapshot)
async def wizard_date(session_id: str, choice: schemas.DateChoice,
                      wizards: WizardRegistry = Depends(get_registry),
                      store: AppointmentStore = Depends(get_store)):
    wizard = _get_wizard(session_id, wizards)
    await wizard.choose_date(store, choice.date)
    return wizard.snapshot()


@app.post("/api/wizard/{session_id}/time", response_model=schemas.WizardSnapshot)
async def wizard_time(session_id: str, choice: schemas.TimeChoice,
                      wizards: WizardRegistry = Depends(get_registry)):
    wizard = _get_wizard(session_id, wizards)
    wizard.choose_time(choice.time_slot)
    return wizard.snapshot()


@app.post("/api/wizard/{session_id}/contact", response_model=schemas.WizardSnapshot)
async def wizard_contact(session_id: str, contact: schemas.ContactForm,
                         wizards: WizardRegistry = Depends(get_registry),
                         store: AppointmentStore = Depends(get_store)):
    # Конфликт не ошибка запроса: мастер остаётся на шаге контактов с сообщением
    wizard = _get_wizard(session_id, wizards)
    await wizard.submit_contact(store, contact.client_name, contact.client_phone)
    return wizard.snapshot()


@app.post("/api/wizard/{session_id}/back", response_model=schemas.WizardSnapshot)
async def wizard_back(session_id: str, wizards: WizardRegistry = Depends(get_registry)):
    wizard = _get_wizard(session_id, wizards)
    wizard.back()
    return wizard.snapshot()


@app.post("/api/wizard/{session_id}/reset", response_model=schemas.WizardSnapshot)
async def wizard_reset(session_id: str, wizards: WizardRegistry = Depends(get_registry)):
    wizard = _get_wizard(session_id, wizards)
    wizard.reset()
    return wizard.snapshot()


# --- Frontend Endpoints (Работа с формами) ---

@app.get("/", response_class=HTMLResponse)
async def read_root(request: Request,
                    booking_session: Optional[str] = Cookie(None),
                    wizards: WizardRegistry = Depends(get_registry)):
    wizard = wizards.get(booking_session)
    notice = None
    if wizard is not None:
        notice, wizard.notice = wizard.notice, None

    return templates.TemplateResponse(request, "index.html", {
        "shop_name": config.SHOP_NAME,
        "services": catalog.SERVICES,
        "professionals": catalog.PROFESSIONALS,
        "portfolio": catalog.PORTFOLIO_IMAGES,
        "dates": catalog.scheduling_window(),
        "time_slots": catalog.TIME_SLOTS,
        "booking": wizard.snapshot() if wizard is not None else None,
        "notice": notice,
    })


def _redirect_with_session(wizard: BookingWizard) -> RedirectResponse:
    response = RedirectResponse(url=BOOKING_ANCHOR, status_code=303)
    response.set_cookie(SESSION_COOKIE, wizard.session_id, httponly=True, samesite="lax")
    return response


def _current_wizard(session_id: Optional[str], wizards: WizardRegistry) -> BookingWizard:
    # Если черновик истёк - начинаем заново, а не падаем
    return wizards.get(session_id) or wizards.create()


def _parse_form_date(raw: Optional[str]) -> date:
    if not raw or raw.strip() == "":
        raise WizardError("Escolha uma data.")
    try:
        return date.fromisoformat(raw.strip())
    except ValueError as exc:
        raise WizardError("Data inválida.") from exc


@app.post("/booking/open")
async def open_booking_form(booking_session: Optional[str] = Cookie(None),
                            wizards: WizardRegistry = Depends(get_registry)):
    return _redirect_with_session(_current_wizard(booking_session, wizards))


@app.post("/booking/service")
async def service_form(service_id: str = Form(...),
                       booking_session: Optional[str] = Cookie(None),
                       wizards: WizardRegistry = Depends(get_registry)):
    wizard = _current_wizard(booking_session, wizards)
    try:
        wizard.choose_service(service_id)
    except WizardError as exc:
        wizard.notice = str(exc)
    return _redirect_with_session(wizard)


@app.post("/booking/professional")
async def professional_form(professional_id: str = Form(...),
                            booking_session: Optional[str] = Cookie(None),
                            wizards: WizardRegistry = Depends(get_registry),
                            store: AppointmentStore = Depends(get_store)):
    wizard = _current_wizard(booking_session, wizards)
    try:
        await wizard.choose_professional(store, professional_id)
    except WizardError as exc:
        wizard.notice = str(exc)
    return _redirect_with_session(wizard)


@app.post("/booking/date")
async def date_form(date: str = Form(None),  # None, чтобы обработать пустое поле вручную
                    booking_session: Optional[str] = Cookie(None),
                    wizards: WizardRegistry = Depends(get_registry),
                    store: AppointmentStore = Depends(get_store)):
    wizard = _current_wizard(booking_session, wizards)
    try:
        day = _parse_form_date(date)
        await wizard.choose_date(store, day)
    except WizardError as exc:
        wizard.notice = str(exc)
    return _redirect_with_session(wizard)


@app.post("/booking/time")
async def time_form(time_slot: str = Form(None),
                    booking_session: Optional[str] = Cookie(None),
                    wizards: WizardRegistry = Depends(get_registry)):
    wizard = _current_wizard(booking_session, wizards)
    try:
        wizard.choose_time(time_slot or "")
    except WizardError as exc:
        wizard.notice = str(exc)
    return _redirect_with_session(wizard)


@app.post("/booking/contact")
async def contact_form(client_name: str = Form(None),
                       client_phone: str = Form(None),
                       booking_session: Optional[str] = Cookie(None),
                       wizards: WizardRegistry = Depends(get_registry),
                       store: AppointmentStore = Depends(get_store)):
    wizard = _current_wizard(booking_session, wizards)
    try:
        await wizard.submit_contact(store, client_name, client_phone)
    except WizardError as exc:
        wizard.notice = str(exc)
    return _redirect_with_session(wizard)


@app.post("/booking/back")
async def back_form(booking_session: Optional[str] = Cookie(None),
                    wizards: WizardRegistry = Depends(get_registry)):
    wizard = _current_wizard(booking_session, wizards)
    try:
        wizard.back()
    except WizardError as exc:
        wizard.notice = str(exc)
    return _redirect_with_session(wizard)


@app.post("/booking/reset")
async def reset_form(booking_session: Optional[str] = Cookie(None),
                     wizards: WizardRegistry = Depends(get_registry)):
    # Закрываем виджет: черновик выбрасываем целиком
    if booking_session:
        wizards.discard(booking_session)
    response = RedirectResponse(url="/", status_code=303)
    response.delete_cookie(SESSION_COOKIE)
    return response


if __name__ == "__main__":
    import uvicorn

    print("\n" + "=" * 50)
    print(f"💈 {config.SHOP_NAME} запущен!")
    print("👉 Локальная ссылка: http://127.0.0.1:8000")
    print("=" * 50 + "\n")

    uvicorn.run(app, host="0.0.0.0", port=8000)
