"""Helpers shared by the booking and dashboard routers."""

import uuid
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_desk.core.models import Appointment
from clinic_desk.core.repository import ScheduleRepository
from clinic_desk.core.schemas import (
    AppointmentRead,
    AppointmentRequest,
    BookingResponse,
    ScheduleRead,
    SlotsResponse,
)
from clinic_desk.scheduling.availability import NO_SLOTS_MESSAGE
from clinic_desk.scheduling.booking import BookingService
from clinic_desk.scheduling.errors import DateUnavailableError, SlotUnavailableError
from clinic_desk.scheduling.models import AppointmentStatus


def parse_uuid(value: str, name: str = "ID") -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {name}: {value}")


def appt_to_read(appt: Appointment) -> AppointmentRead:
    return AppointmentRead(
        id=appt.id,
        confirmation_id=appt.confirmation_id,
        patient_id=appt.patient_id,
        patient_name=appt.patient.name if appt.patient else None,
        patient_phone=appt.patient.phone if appt.patient else None,
        doctor_id=appt.doctor_id,
        doctor_name=appt.doctor.name if appt.doctor else None,
        date=appt.date,
        time=appt.time,
        type=appt.type,
        status=appt.status,
        notes=appt.notes,
        payment_status=appt.payment_status,
        created_at=appt.created_at,
    )


def booking_response(appt: Appointment) -> BookingResponse:
    return BookingResponse(
        appointment_id=appt.id,
        confirmation_id=appt.confirmation_id,
        doctor_id=appt.doctor_id,
        date=appt.date,
        time=appt.time,
        status=appt.status,
    )


async def slots_for(db: AsyncSession, doctor_id: uuid.UUID, day: date) -> SlotsResponse:
    result = await BookingService(db).day_availability(doctor_id, day)
    return SlotsResponse(
        doctor_id=doctor_id,
        date=day,
        available=result.available,
        reason=result.reason,
        slots=result.slots,
        message=NO_SLOTS_MESSAGE if not result.slots else None,
    )


async def book_from_request(
    db: AsyncSession,
    doctor_id: uuid.UUID,
    body: AppointmentRequest,
    status: AppointmentStatus = AppointmentStatus.PENDING,
) -> Appointment:
    """Run a booking and translate scheduling errors to HTTP errors."""
    try:
        return await BookingService(db).book(
            doctor_id=doctor_id,
            day=body.date,
            slot=body.time,
            patient=body.patient.model_dump(),
            service=body.service,
            payment_reference=body.payment_reference,
            status=status,
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DateUnavailableError as e:
        raise HTTPException(status_code=400, detail=e.reason)
    except SlotUnavailableError as e:
        raise HTTPException(status_code=409, detail=e.reason)


async def schedule_read(db: AsyncSession, doctor_id: uuid.UUID, create: bool = False) -> ScheduleRead:
    repo = ScheduleRepository(db)
    if create:
        row = await repo.get_or_create_default(doctor_id)
    else:
        row = await repo.get_by_doctor(doctor_id)
    schedule = await repo.load(doctor_id)
    return ScheduleRead(
        doctor_id=doctor_id,
        working_hours=schedule.working_hours,
        breaks=schedule.breaks,
        leaves=schedule.leaves,
        weekly_schedule=schedule.weekly_schedule,
        updated_at=row.updated_at if row else None,
    )


def parse_status_filter(status: Optional[str]) -> Optional[str]:
    if status is None:
        return None
    try:
        return AppointmentStatus(status).value
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status}")
