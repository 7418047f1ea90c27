"""Receptionist dashboard - all appointments, stats, doctor schedules and walk-ins."""

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_desk.api.dependencies import require_staff
from clinic_desk.api.routes.common import (
    appt_to_read,
    book_from_request,
    booking_response,
    parse_status_filter,
    parse_uuid,
    schedule_read,
    slots_for,
)
from clinic_desk.core.database import get_db
from clinic_desk.core.models import StaffUser
from clinic_desk.core.repository import AppointmentRepository, DoctorRepository
from clinic_desk.core.schemas import (
    AppointmentRead,
    AppointmentStats,
    BookingResponse,
    ScheduleRead,
    SlotsResponse,
    StatusUpdate,
    WalkInRequest,
)
from clinic_desk.scheduling.models import AppointmentStatus

router = APIRouter(prefix="/receptionist-dashboard")


async def _doctor_id(db: AsyncSession, doctor_id: str):
    did = parse_uuid(doctor_id, "doctor_id")
    if await DoctorRepository(db).get_by_id(did) is None:
        raise HTTPException(status_code=404, detail="Doctor not found")
    return did


@router.get("/appointments", response_model=list[AppointmentRead])
async def list_appointments(
    when: Literal["today", "upcoming", "past", "all"] = Query("today", alias="filter"),
    status: Optional[str] = Query(None),
    doctor_id: Optional[str] = Query(None),
    user: StaffUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> list[AppointmentRead]:
    did = parse_uuid(doctor_id, "doctor_id") if doctor_id else None
    appts = await AppointmentRepository(db).list_filtered(
        when, doctor_id=did, status=parse_status_filter(status)
    )
    return [appt_to_read(a) for a in appts]


@router.patch("/appointments/{appointment_id}/status", response_model=AppointmentRead)
async def update_appointment_status(
    appointment_id: str,
    body: StatusUpdate,
    user: StaffUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    aid = parse_uuid(appointment_id, "appointment_id")
    repo = AppointmentRepository(db)
    try:
        appt = await repo.update_status(aid, body.status.value)
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Failed to update status: the slot has been rebooked")
    if not appt:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return appt_to_read(appt)


@router.get("/stats", response_model=AppointmentStats)
async def appointment_stats(
    doctor_id: Optional[str] = Query(None),
    user: StaffUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> AppointmentStats:
    did = parse_uuid(doctor_id, "doctor_id") if doctor_id else None
    counts = await AppointmentRepository(db).stats(doctor_id=did)
    return AppointmentStats(**counts)


@router.get("/doctors/{doctor_id}/schedule", response_model=ScheduleRead)
async def doctor_schedule(
    doctor_id: str,
    user: StaffUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> ScheduleRead:
    """Read-only view; falls back to the default schedule without storing it."""
    did = await _doctor_id(db, doctor_id)
    return await schedule_read(db, did)


@router.get("/doctors/{doctor_id}/slots", response_model=SlotsResponse)
async def doctor_slots(
    doctor_id: str,
    day: date = Query(..., alias="date"),
    user: StaffUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> SlotsResponse:
    did = await _doctor_id(db, doctor_id)
    return await slots_for(db, did, day)


@router.post("/appointments", response_model=BookingResponse, status_code=201)
async def create_walk_in(
    body: WalkInRequest,
    user: StaffUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> BookingResponse:
    doctor_id = body.doctor_id or user.doctor_id
    if doctor_id is None:
        raise HTTPException(status_code=422, detail="doctor_id is required")
    appt = await book_from_request(db, doctor_id, body, status=AppointmentStatus.CONFIRMED)
    return booking_response(appt)
