from pydantic import BaseModel, Field, ConfigDict
from datetime import date as Date, datetime
from typing import Optional

SLOT_PATTERN = r"^\d{2}:\d{2}$"


class Service(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    duration: str
    price: str
    description: str


class Professional(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    specialty: str
    image: str
    bio: str


class ScheduleDay(BaseModel):
    date: Date
    label: str


class ContactForm(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    client_name: str = Field(..., min_length=1, title="Nome do cliente")
    client_phone: str = Field(..., min_length=1, title="Telefone")


class AppointmentBase(ContactForm):
    professional_id: str = Field(..., min_length=1)
    date: Date
    time_slot: str = Field(..., pattern=SLOT_PATTERN)
    service_id: str = Field(..., min_length=1)


class AppointmentCreate(AppointmentBase):
    pass


class AppointmentResponse(AppointmentBase):
    id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AvailabilityResponse(BaseModel):
    professional_id: str
    date: Date
    occupied: list[str]
    available: list[str]


class ServiceChoice(BaseModel):
    service_id: str


class ProfessionalChoice(BaseModel):
    professional_id: str


class DateChoice(BaseModel):
    date: Date


class TimeChoice(BaseModel):
    time_slot: str = Field(..., pattern=SLOT_PATTERN)


class BookingError(BaseModel):
    reason: str
    message: str


class WizardSnapshot(BaseModel):
    session_id: str
    step: str
    service: Optional[Service] = None
    professional: Optional[Professional] = None
    date: Optional[Date] = None
    time_slot: Optional[str] = None
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    occupied_slots: list[str] = []
    available_slots: list[str] = []
    error: Optional[BookingError] = None
    appointment: Optional[AppointmentResponse] = None
