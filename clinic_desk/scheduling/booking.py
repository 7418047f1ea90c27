"""Appointment booking shared by the public flow and the dashboards."""

import logging
import secrets
import string
import uuid
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_desk.config import get_settings
from clinic_desk.core.models import Appointment
from clinic_desk.core.repository import (
    AppointmentRepository,
    DoctorRepository,
    PatientRepository,
    ScheduleRepository,
)
from clinic_desk.scheduling.availability import AvailabilityResolver
from clinic_desk.scheduling.errors import DateUnavailableError, SlotUnavailableError
from clinic_desk.scheduling.models import AppointmentStatus, DayAvailability
from clinic_desk.scheduling.timeslots import normalize_time

logger = logging.getLogger(__name__)

CONFIRMATION_PREFIX = "HC"
_CONFIRMATION_ALPHABET = string.ascii_uppercase + string.digits


def default_resolver() -> AvailabilityResolver:
    settings = get_settings()
    return AvailabilityResolver(
        slot_interval_minutes=settings.slot_interval_minutes,
        booking_window_months=settings.booking_window_months,
    )


def generate_confirmation_id(length: int = 6) -> str:
    """Human-readable booking reference, e.g. ``HC7Q2K9A``."""
    return CONFIRMATION_PREFIX + "".join(
        secrets.choice(_CONFIRMATION_ALPHABET) for _ in range(length)
    )


class BookingService:
    """Checks availability and writes appointments for one session."""

    def __init__(self, session: AsyncSession, resolver: Optional[AvailabilityResolver] = None) -> None:
        self.session = session
        self.resolver = resolver or default_resolver()
        self.appointments = AppointmentRepository(session)
        self.schedules = ScheduleRepository(session)
        self.patients = PatientRepository(session)
        self.doctors = DoctorRepository(session)

    async def day_availability(
        self,
        doctor_id: uuid.UUID,
        day: date,
        today: Optional[date] = None,
    ) -> DayAvailability:
        schedule = await self.schedules.load(doctor_id)
        booked = await self.appointments.booked_times(doctor_id, day)
        return self.resolver.resolve_day(day, schedule, booked, today=today)

    async def _unused_confirmation_id(self, attempts: int = 5) -> str:
        for _ in range(attempts):
            candidate = generate_confirmation_id()
            if await self.appointments.get_by_confirmation(candidate) is None:
                return candidate
            logger.info("Confirmation ID %s already issued, drawing another", candidate)
        raise RuntimeError(f"No unused confirmation ID after {attempts} attempts")

    async def book(
        self,
        doctor_id: uuid.UUID,
        day: date,
        slot: str,
        patient: dict,
        service: str,
        payment_reference: Optional[str] = None,
        status: AppointmentStatus = AppointmentStatus.PENDING,
        today: Optional[date] = None,
    ) -> Appointment:
        """Book *slot* on *day* with *doctor_id* for *patient*.

        Raises:
            LookupError: the doctor does not exist.
            DateUnavailableError: the date fails a date-level rule.
            SlotUnavailableError: the slot is not offered or was just taken.
        """
        slot = normalize_time(slot)
        if await self.doctors.get_by_id(doctor_id) is None:
            raise LookupError(f"Doctor not found: {doctor_id}")

        schedule = await self.schedules.load(doctor_id)
        booked = await self.appointments.booked_times(doctor_id, day)

        verdict = self.resolver.check_date(day, schedule, today=today)
        if not verdict.available:
            raise DateUnavailableError(verdict.reason)
        if not self.resolver.is_slot_free(day, slot, schedule, booked):
            raise SlotUnavailableError(day, slot)

        fields = dict(patient)
        email = fields.pop("email")
        record = await self.patients.upsert_by_email(email, **fields)

        confirmation_id = await self._unused_confirmation_id()
        notes = f"Payment UTR: {payment_reference}" if payment_reference else None
        try:
            appt = await self.appointments.create(
                confirmation_id=confirmation_id,
                patient_id=record.id,
                doctor_id=doctor_id,
                date=day,
                time=slot,
                type=service,
                status=status.value,
                notes=notes,
                payment_status=bool(payment_reference),
                payment_details={"utr": payment_reference} if payment_reference else None,
            )
        except IntegrityError:
            # Lost the race for the slot to a concurrent booking.
            await self.session.rollback()
            logger.info("Slot %s on %s for doctor %s was taken concurrently", slot, day, doctor_id)
            raise SlotUnavailableError(day, slot)

        logger.info(
            "Booked %s for doctor %s on %s at %s",
            appt.confirmation_id, doctor_id, day.isoformat(), slot,
        )
        return appt
