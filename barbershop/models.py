from sqlalchemy import Column, Integer, String, Date, DateTime, UniqueConstraint, func
from barbershop.database import Base

SLOT_CONSTRAINT = "uq_appointments_slot"


class Appointment(Base):
    __tablename__ = "appointments"
    # Один мастер, один день, один слот - не больше одной записи
    __table_args__ = (
        UniqueConstraint("professional_id", "date", "time_slot", name=SLOT_CONSTRAINT),
    )

    id = Column(Integer, primary_key=True, index=True)
    professional_id = Column(String, nullable=False, index=True)
    client_name = Column(String, nullable=False)
    client_phone = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    time_slot = Column(String(5), nullable=False)  # Например: "14:00"
    service_id = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
