"""CRUD repositories for the clinic models."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_desk.core.models import (
    Appointment,
    Doctor,
    DoctorScheduleDB,
    Medication,
    Patient,
    Prescription,
    StaffUser,
)
from clinic_desk.scheduling.models import AppointmentStatus, DoctorSchedule

APPOINTMENT_FILTERS = ("today", "upcoming", "past", "all")


class DoctorRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> Doctor:
        doctor = Doctor(**kwargs)
        self.session.add(doctor)
        await self.session.flush()
        return doctor

    async def get_by_id(self, doctor_id: uuid.UUID) -> Optional[Doctor]:
        return await self.session.get(Doctor, doctor_id)

    async def get_by_email(self, email: str) -> Optional[Doctor]:
        result = await self.session.execute(select(Doctor).where(Doctor.email == email))
        return result.scalar_one_or_none()

    async def list(self) -> Sequence[Doctor]:
        result = await self.session.execute(select(Doctor).order_by(Doctor.name))
        return result.scalars().all()


class StaffRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> StaffUser:
        user = StaffUser(**kwargs)
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[StaffUser]:
        return await self.session.get(StaffUser, user_id)

    async def get_active_by_email(self, email: str) -> Optional[StaffUser]:
        result = await self.session.execute(
            select(StaffUser).where(StaffUser.email == email, StaffUser.active.is_(True))
        )
        return result.scalar_one_or_none()


class PatientRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> Patient:
        patient = Patient(**kwargs)
        self.session.add(patient)
        await self.session.flush()
        return patient

    async def get_by_id(self, patient_id: uuid.UUID) -> Optional[Patient]:
        return await self.session.get(Patient, patient_id)

    async def get_by_email(self, email: str) -> Optional[Patient]:
        result = await self.session.execute(select(Patient).where(Patient.email == email))
        return result.scalar_one_or_none()

    async def upsert_by_email(self, email: str, **fields) -> Patient:
        """Insert the patient, or refresh the existing row with the same email."""
        patient = await self.get_by_email(email)
        if patient is None:
            return await self.create(email=email, **fields)
        for k, v in fields.items():
            if v is not None:
                setattr(patient, k, v)
        await self.session.flush()
        return patient

    async def list(self, offset: int = 0, limit: int = 100) -> Sequence[Patient]:
        stmt = select(Patient).order_by(Patient.name).offset(offset).limit(limit)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def search(self, query: str, limit: int = 20) -> Sequence[Patient]:
        pattern = f"%{query}%"
        stmt = (
            select(Patient)
            .where(
                or_(
                    Patient.name.ilike(pattern),
                    Patient.email.ilike(pattern),
                    Patient.phone.ilike(pattern),
                )
            )
            .order_by(Patient.name)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()


class AppointmentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> Appointment:
        appt = Appointment(**kwargs)
        self.session.add(appt)
        await self.session.flush()
        return appt

    async def get_by_id(self, appointment_id: uuid.UUID) -> Optional[Appointment]:
        return await self.session.get(Appointment, appointment_id)

    async def get_by_confirmation(self, confirmation_id: str) -> Optional[Appointment]:
        result = await self.session.execute(
            select(Appointment).where(Appointment.confirmation_id == confirmation_id.strip().upper())
        )
        return result.scalar_one_or_none()

    async def lookup(self, confirmation_id: str, phone: str) -> Optional[Appointment]:
        """Find an appointment by confirmation ID, checked against the patient's phone."""
        stmt = (
            select(Appointment)
            .join(Patient, Appointment.patient_id == Patient.id)
            .where(
                Appointment.confirmation_id == confirmation_id.strip().upper(),
                Patient.phone == phone.strip(),
            )
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def booked_times(self, doctor_id: uuid.UUID, day: date) -> list[str]:
        """Times already taken by non-cancelled appointments."""
        stmt = select(Appointment.time).where(
            Appointment.doctor_id == doctor_id,
            Appointment.date == day,
            Appointment.status != AppointmentStatus.CANCELLED.value,
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_filtered(
        self,
        when: str = "all",
        doctor_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        today: Optional[date] = None,
        limit: int = 200,
    ) -> Sequence[Appointment]:
        """List appointments for ``today``, ``upcoming``, ``past`` or ``all``."""
        if when not in APPOINTMENT_FILTERS:
            raise ValueError(f"Unknown filter: {when}")
        today = today or date.today()

        stmt = select(Appointment)
        if doctor_id is not None:
            stmt = stmt.where(Appointment.doctor_id == doctor_id)
        if status:
            stmt = stmt.where(Appointment.status == status)

        if when == "today":
            stmt = stmt.where(Appointment.date == today)
        elif when == "upcoming":
            stmt = stmt.where(Appointment.date > today)
        elif when == "past":
            stmt = stmt.where(Appointment.date < today)

        if when == "past":
            stmt = stmt.order_by(Appointment.date.desc(), Appointment.time.desc())
        else:
            stmt = stmt.order_by(Appointment.date, Appointment.time)
        result = await self.session.execute(stmt.limit(limit))
        return result.scalars().all()

    async def list_for_patient(self, patient_id: uuid.UUID) -> Sequence[Appointment]:
        """A patient's appointments with any doctor, newest first."""
        stmt = (
            select(Appointment)
            .where(Appointment.patient_id == patient_id)
            .order_by(Appointment.date.desc(), Appointment.time.desc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def update_status(self, appointment_id: uuid.UUID, status: str) -> Optional[Appointment]:
        appt = await self.get_by_id(appointment_id)
        if appt:
            appt.status = status
            appt.updated_at = datetime.now(timezone.utc)
            await self.session.flush()
        return appt

    async def stats(self, doctor_id: Optional[uuid.UUID] = None) -> dict[str, int]:
        stmt = select(Appointment.status, func.count()).group_by(Appointment.status)
        if doctor_id is not None:
            stmt = stmt.where(Appointment.doctor_id == doctor_id)
        result = await self.session.execute(stmt)
        counts = {s.value: 0 for s in AppointmentStatus}
        for status, count in result.all():
            counts[status] = count
        counts["total"] = sum(counts.values())
        return counts


class ScheduleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_doctor(self, doctor_id: uuid.UUID) -> Optional[DoctorScheduleDB]:
        result = await self.session.execute(
            select(DoctorScheduleDB).where(DoctorScheduleDB.doctor_id == doctor_id)
        )
        return result.scalar_one_or_none()

    async def get_or_create_default(self, doctor_id: uuid.UUID) -> DoctorScheduleDB:
        row = await self.get_by_doctor(doctor_id)
        if row is not None:
            return row
        default = DoctorSchedule.default(str(doctor_id))
        row = DoctorScheduleDB(doctor_id=doctor_id, **schedule_columns(default))
        self.session.add(row)
        await self.session.flush()
        return row

    async def load(self, doctor_id: uuid.UUID) -> DoctorSchedule:
        """Domain view of the doctor's schedule, defaulting when none is stored."""
        row = await self.get_by_doctor(doctor_id)
        if row is None:
            return DoctorSchedule.default(str(doctor_id))
        return to_domain(row)

    async def save(self, doctor_id: uuid.UUID, schedule: DoctorSchedule) -> DoctorScheduleDB:
        row = await self.get_or_create_default(doctor_id)
        for k, v in schedule_columns(schedule).items():
            setattr(row, k, v)
        row.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return row


def schedule_columns(schedule: DoctorSchedule) -> dict:
    data = schedule.model_dump(mode="json", exclude={"doctor_id"})
    return {
        "working_hours": data["working_hours"],
        "breaks": data["breaks"],
        "leaves": data["leaves"],
        "weekly_schedule": data["weekly_schedule"],
    }


def to_domain(row: DoctorScheduleDB) -> DoctorSchedule:
    return DoctorSchedule(
        doctor_id=str(row.doctor_id),
        working_hours=row.working_hours,
        breaks=row.breaks or [],
        leaves=row.leaves or [],
        weekly_schedule=row.weekly_schedule or [],
    )


class PrescriptionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, medications: list[dict], **kwargs) -> Prescription:
        """Insert a prescription and its medications in a single flush."""
        rx = Prescription(**kwargs)
        rx.medications = [Medication(**m) for m in medications]
        self.session.add(rx)
        await self.session.flush()
        return rx

    async def get_by_id(self, prescription_id: uuid.UUID) -> Optional[Prescription]:
        return await self.session.get(Prescription, prescription_id)

    async def list(
        self,
        doctor_id: Optional[uuid.UUID] = None,
        query: Optional[str] = None,
        limit: int = 100,
    ) -> Sequence[Prescription]:
        stmt = select(Prescription)
        if doctor_id is not None:
            stmt = stmt.where(Prescription.doctor_id == doctor_id)
        if query:
            pattern = f"%{query}%"
            stmt = stmt.join(Patient, Prescription.patient_id == Patient.id).where(
                or_(Patient.name.ilike(pattern), Prescription.diagnosis.ilike(pattern))
            )
        stmt = stmt.order_by(Prescription.created_at.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def delete(self, prescription_id: uuid.UUID) -> bool:
        rx = await self.get_by_id(prescription_id)
        if not rx:
            return False
        await self.session.delete(rx)
        await self.session.flush()
        return True
