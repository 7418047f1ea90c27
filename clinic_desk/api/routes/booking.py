"""Public booking endpoints: doctors, availability, booking and status lookup."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_desk.api.routes.common import (
    appt_to_read,
    book_from_request,
    booking_response,
    parse_uuid,
    slots_for,
)
from clinic_desk.core.database import get_db
from clinic_desk.core.repository import AppointmentRepository, DoctorRepository, ScheduleRepository
from clinic_desk.core.schemas import (
    AppointmentRead,
    BookingRequest,
    BookingResponse,
    DoctorRead,
    LookupRequest,
    SlotsResponse,
)
from clinic_desk.scheduling.booking import default_resolver
from clinic_desk.scheduling.models import AvailabilityResult

router = APIRouter(prefix="/api")


async def _require_doctor(db: AsyncSession, doctor_id: str):
    did = parse_uuid(doctor_id, "doctor_id")
    if await DoctorRepository(db).get_by_id(did) is None:
        raise HTTPException(status_code=404, detail="Doctor not found")
    return did


@router.get("/doctors", response_model=list[DoctorRead])
async def list_doctors(db: AsyncSession = Depends(get_db)) -> list[DoctorRead]:
    doctors = await DoctorRepository(db).list()
    return [DoctorRead.model_validate(d) for d in doctors]


@router.get("/availability/{doctor_id}/date", response_model=AvailabilityResult)
async def check_date(
    doctor_id: str,
    day: date = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db),
) -> AvailabilityResult:
    """Date-level verdict shown when a patient picks a date."""
    did = await _require_doctor(db, doctor_id)
    schedule = await ScheduleRepository(db).load(did)
    booked = await AppointmentRepository(db).booked_times(did, day)
    return default_resolver().check_date(day, schedule, booked_times=booked)


@router.get("/availability/{doctor_id}/slots", response_model=SlotsResponse)
async def list_slots(
    doctor_id: str,
    day: date = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db),
) -> SlotsResponse:
    did = await _require_doctor(db, doctor_id)
    return await slots_for(db, did, day)


@router.post("/appointments", response_model=BookingResponse, status_code=201)
async def book_appointment(
    body: BookingRequest,
    db: AsyncSession = Depends(get_db),
) -> BookingResponse:
    """Book a slot. 400 when the date is rejected, 409 when the slot is gone."""
    appt = await book_from_request(db, body.doctor_id, body)
    return booking_response(appt)


@router.post("/appointments/lookup", response_model=AppointmentRead)
async def lookup_appointment(
    body: LookupRequest,
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    appt = await AppointmentRepository(db).lookup(body.confirmation_id, body.phone)
    if not appt:
        raise HTTPException(status_code=404, detail="Invalid confirmation ID or phone number")
    return appt_to_read(appt)


@router.get("/appointments/confirmation/{confirmation_id}", response_model=AppointmentRead)
async def get_confirmation(
    confirmation_id: str,
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    appt = await AppointmentRepository(db).get_by_confirmation(confirmation_id)
    if not appt:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return appt_to_read(appt)
