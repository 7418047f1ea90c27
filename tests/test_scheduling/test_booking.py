"""DB-backed tests for the booking service."""

import re
import uuid

import pytest
from sqlalchemy import select

from clinic_desk.core.models import Appointment, Patient
from clinic_desk.scheduling.availability import AvailabilityResolver
from clinic_desk.scheduling.booking import BookingService, generate_confirmation_id
from clinic_desk.scheduling.errors import DateUnavailableError, SlotUnavailableError
from clinic_desk.scheduling.models import AppointmentStatus

DOCTOR_ID = uuid.UUID("aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa")


def _patient(email: str = "jane@example.com", **kw) -> dict:
    data = {"name": "Jane Doe", "email": email, "phone": "9876543210"}
    data.update(kw)
    return data


class _OptimisticResolver(AvailabilityResolver):
    """Skips the slot pre-check so the insert meets the unique index."""

    def is_slot_free(self, day, slot, schedule, booked_times=()):
        return True


class TestConfirmationId:
    def test_format(self):
        for _ in range(20):
            assert re.fullmatch(r"HC[A-Z0-9]{6}", generate_confirmation_id())


class TestBookingService:
    @pytest.mark.asyncio
    async def test_book_creates_pending_appointment(self, session, seed_data, monday):
        svc = BookingService(session)
        appt = await svc.book(DOCTOR_ID, monday, "10:00 AM", _patient(), "General Consultation", "UTR999")
        await session.commit()

        assert appt.time == "10:00"
        assert appt.status == AppointmentStatus.PENDING.value
        assert appt.notes == "Payment UTR: UTR999"
        assert appt.payment_status is True
        assert appt.confirmation_id.startswith("HC")

    @pytest.mark.asyncio
    async def test_booked_slot_disappears(self, session, seed_data, monday):
        svc = BookingService(session)
        await svc.book(DOCTOR_ID, monday, "09:00", _patient(), "Checkup")
        result = await svc.day_availability(DOCTOR_ID, monday)
        assert "09:00" not in result.slots

    @pytest.mark.asyncio
    async def test_patient_upserted_by_email(self, session, seed_data, monday):
        svc = BookingService(session)
        await svc.book(DOCTOR_ID, monday, "09:00", _patient(phone="111111"), "Checkup")
        await svc.book(DOCTOR_ID, monday, "09:30", _patient(phone="222222"), "Follow-up")
        await session.commit()

        patients = (await session.execute(select(Patient))).scalars().all()
        assert len(patients) == 1
        assert patients[0].phone == "222222"

    @pytest.mark.asyncio
    async def test_closed_day_rejected(self, session, seed_data, sunday):
        with pytest.raises(DateUnavailableError) as exc:
            await BookingService(session).book(DOCTOR_ID, sunday, "10:00", _patient(), "Checkup")
        assert exc.value.reason == "The doctor doesn't work on Sundays"

    @pytest.mark.asyncio
    async def test_slot_in_break_rejected(self, session, seed_data, monday):
        with pytest.raises(SlotUnavailableError):
            await BookingService(session).book(DOCTOR_ID, monday, "13:30", _patient(), "Checkup")

    @pytest.mark.asyncio
    async def test_taken_slot_rejected(self, session, seed_data, monday):
        svc = BookingService(session)
        await svc.book(DOCTOR_ID, monday, "11:00", _patient(), "Checkup")
        with pytest.raises(SlotUnavailableError):
            await svc.book(DOCTOR_ID, monday, "11:00", _patient("other@example.com"), "Checkup")

    @pytest.mark.asyncio
    async def test_unknown_doctor(self, session, seed_data, monday):
        with pytest.raises(LookupError):
            await BookingService(session).book(uuid.uuid4(), monday, "10:00", _patient(), "Checkup")

    @pytest.mark.asyncio
    async def test_concurrent_insert_hits_unique_index(self, session_factory, seed_data, monday):
        async with session_factory() as first:
            await BookingService(first).book(DOCTOR_ID, monday, "15:00", _patient(), "Checkup")
            await first.commit()

        async with session_factory() as second:
            svc = BookingService(second, resolver=_OptimisticResolver())
            with pytest.raises(SlotUnavailableError) as exc:
                await svc.book(DOCTOR_ID, monday, "15:00", _patient("late@example.com"), "Checkup")
            assert "15:00" in exc.value.reason

        async with session_factory() as check:
            rows = (await check.execute(select(Appointment))).scalars().all()
            assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_doctor_without_stored_schedule_uses_default(self, session, seed_data, saturday):
        other = seed_data["other_doctor_id"]
        result = await BookingService(session).day_availability(other, saturday)
        assert result.available
        assert result.slots[-1] == "12:30"


class TestConfirmationCollisions:
    @pytest.mark.asyncio
    async def test_issued_code_is_not_reused(self, session, seed_data, monday, monkeypatch):
        codes = iter(["HCAAAAAA", "HCAAAAAA", "HCBBBBBB"])
        monkeypatch.setattr("clinic_desk.scheduling.booking.generate_confirmation_id", lambda: next(codes))
        svc = BookingService(session)

        first = await svc.book(DOCTOR_ID, monday, "09:00", _patient(), "Checkup")
        second = await svc.book(DOCTOR_ID, monday, "09:30", _patient("b@example.com"), "Checkup")
        await session.commit()

        assert first.confirmation_id == "HCAAAAAA"
        assert second.confirmation_id == "HCBBBBBB"

    @pytest.mark.asyncio
    async def test_gives_up_after_repeated_collisions(self, session, seed_data, monday, monkeypatch):
        monkeypatch.setattr("clinic_desk.scheduling.booking.generate_confirmation_id", lambda: "HCAAAAAA")
        svc = BookingService(session)
        await svc.book(DOCTOR_ID, monday, "09:00", _patient(), "Checkup")

        with pytest.raises(RuntimeError):
            await svc.book(DOCTOR_ID, monday, "09:30", _patient("b@example.com"), "Checkup")
