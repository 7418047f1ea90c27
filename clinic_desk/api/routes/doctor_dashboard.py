"""Doctor dashboard - own appointments, patients, prescriptions and schedule."""

import logging
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_desk.api.dependencies import require_doctor
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
from clinic_desk.core.repository import (
    AppointmentRepository,
    PatientRepository,
    PrescriptionRepository,
    ScheduleRepository,
)
from clinic_desk.core.schemas import (
    AppointmentRead,
    BookingResponse,
    BreaksUpdate,
    LeavesUpdate,
    PatientDetails,
    PatientRead,
    PrescriptionCreate,
    PrescriptionRead,
    ScheduleRead,
    SlotsResponse,
    StatusUpdate,
    WalkInRequest,
    WeeklyScheduleUpdate,
)
from clinic_desk.scheduling.errors import ScheduleValidationError
from clinic_desk.scheduling.models import AppointmentStatus, WorkingHours, validate_weekly_schedule

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/doctor-dashboard")


# ---------------------------------------------------------------------------
# Appointments
# ---------------------------------------------------------------------------

@router.get("/appointments", response_model=list[AppointmentRead])
async def list_appointments(
    when: Literal["today", "upcoming", "past", "all"] = Query("today", alias="filter"),
    status: Optional[str] = Query(None),
    user: StaffUser = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
) -> list[AppointmentRead]:
    appts = await AppointmentRepository(db).list_filtered(
        when, doctor_id=user.doctor_id, status=parse_status_filter(status)
    )
    return [appt_to_read(a) for a in appts]


@router.patch("/appointments/{appointment_id}/status", response_model=AppointmentRead)
async def update_appointment_status(
    appointment_id: str,
    body: StatusUpdate,
    user: StaffUser = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    aid = parse_uuid(appointment_id, "appointment_id")
    repo = AppointmentRepository(db)
    appt = await repo.get_by_id(aid)
    if not appt or appt.doctor_id != user.doctor_id:
        raise HTTPException(status_code=404, detail="Appointment not found")
    try:
        appt = await repo.update_status(aid, body.status.value)
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Failed to update status: the slot has been rebooked")
    return appt_to_read(appt)


@router.post("/appointments", response_model=BookingResponse, status_code=201)
async def create_appointment(
    body: WalkInRequest,
    user: StaffUser = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
) -> BookingResponse:
    """Book on the doctor's own calendar; desk bookings start confirmed."""
    appt = await book_from_request(db, user.doctor_id, body, status=AppointmentStatus.CONFIRMED)
    return booking_response(appt)


@router.get("/slots", response_model=SlotsResponse)
async def own_slots(
    day: date = Query(..., alias="date"),
    user: StaffUser = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
) -> SlotsResponse:
    return await slots_for(db, user.doctor_id, day)


# ---------------------------------------------------------------------------
# Patients
# ---------------------------------------------------------------------------

@router.get("/patients", response_model=list[PatientRead])
async def list_patients(
    q: Optional[str] = Query(None, min_length=1),
    user: StaffUser = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
) -> list[PatientRead]:
    repo = PatientRepository(db)
    patients = await repo.search(q) if q else await repo.list()
    return [PatientRead.model_validate(p) for p in patients]


@router.get("/patients/{patient_id}", response_model=PatientDetails)
async def get_patient(
    patient_id: str,
    user: StaffUser = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
) -> PatientDetails:
    """Patient profile with every appointment they have booked, newest first."""
    pid = parse_uuid(patient_id, "patient_id")
    patient = await PatientRepository(db).get_by_id(pid)
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")
    appts = await AppointmentRepository(db).list_for_patient(pid)
    return PatientDetails(
        **PatientRead.model_validate(patient).model_dump(),
        appointments=[appt_to_read(a) for a in appts],
    )


# ---------------------------------------------------------------------------
# Prescriptions
# ---------------------------------------------------------------------------

@router.get("/prescriptions", response_model=list[PrescriptionRead])
async def list_prescriptions(
    q: Optional[str] = Query(None, min_length=1),
    user: StaffUser = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
) -> list[PrescriptionRead]:
    rxs = await PrescriptionRepository(db).list(doctor_id=user.doctor_id, query=q)
    return [PrescriptionRead.model_validate(rx) for rx in rxs]


@router.post("/prescriptions", response_model=PrescriptionRead, status_code=201)
async def create_prescription(
    body: PrescriptionCreate,
    user: StaffUser = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
) -> PrescriptionRead:
    """Create a prescription; it and its medications are stored together or not at all."""
    if await PatientRepository(db).get_by_id(body.patient_id) is None:
        raise HTTPException(status_code=404, detail="Patient not found")
    try:
        rx = await PrescriptionRepository(db).create(
            medications=[m.model_dump() for m in body.medications],
            patient_id=body.patient_id,
            doctor_id=user.doctor_id,
            diagnosis=body.diagnosis,
            notes=body.notes,
            status=body.status,
        )
    except IntegrityError as e:
        await db.rollback()
        logger.error("Prescription insert failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create prescription")
    return PrescriptionRead.model_validate(rx)


@router.get("/prescriptions/{prescription_id}", response_model=PrescriptionRead)
async def get_prescription(
    prescription_id: str,
    user: StaffUser = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
) -> PrescriptionRead:
    pid = parse_uuid(prescription_id, "prescription_id")
    rx = await PrescriptionRepository(db).get_by_id(pid)
    if not rx or rx.doctor_id != user.doctor_id:
        raise HTTPException(status_code=404, detail="Prescription not found")
    return PrescriptionRead.model_validate(rx)


@router.delete("/prescriptions/{prescription_id}")
async def delete_prescription(
    prescription_id: str,
    user: StaffUser = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
) -> dict:
    pid = parse_uuid(prescription_id, "prescription_id")
    repo = PrescriptionRepository(db)
    rx = await repo.get_by_id(pid)
    if not rx or rx.doctor_id != user.doctor_id:
        raise HTTPException(status_code=404, detail="Prescription not found")
    await repo.delete(pid)
    return {"ok": True}


# ---------------------------------------------------------------------------
# Schedule
# ---------------------------------------------------------------------------

@router.get("/schedule", response_model=ScheduleRead)
async def get_schedule(
    user: StaffUser = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
) -> ScheduleRead:
    """The doctor's schedule; a default one is stored on first access."""
    return await schedule_read(db, user.doctor_id, create=True)


async def _save(db: AsyncSession, user: StaffUser, **changes) -> ScheduleRead:
    repo = ScheduleRepository(db)
    schedule = await repo.load(user.doctor_id)
    await repo.save(user.doctor_id, schedule.model_copy(update=changes))
    logger.info("Doctor %s updated schedule fields: %s", user.doctor_id, ", ".join(changes))
    return await schedule_read(db, user.doctor_id)


@router.put("/schedule/working-hours", response_model=ScheduleRead)
async def update_working_hours(
    body: WorkingHours,
    user: StaffUser = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
) -> ScheduleRead:
    return await _save(db, user, working_hours=body)


@router.put("/schedule/breaks", response_model=ScheduleRead)
async def update_breaks(
    body: BreaksUpdate,
    user: StaffUser = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
) -> ScheduleRead:
    return await _save(db, user, breaks=body.breaks)


@router.put("/schedule/leaves", response_model=ScheduleRead)
async def update_leaves(
    body: LeavesUpdate,
    user: StaffUser = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
) -> ScheduleRead:
    return await _save(db, user, leaves=body.leaves)


@router.put("/schedule/weekly", response_model=ScheduleRead)
async def update_weekly_schedule(
    body: WeeklyScheduleUpdate,
    user: StaffUser = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
) -> ScheduleRead:
    try:
        days = validate_weekly_schedule(body.weekly_schedule)
    except ScheduleValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return await _save(db, user, weekly_schedule=days)
