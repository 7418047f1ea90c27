"""Tests for the clinic repositories against an in-memory database."""

import uuid
from datetime import date, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from clinic_desk.core.repository import (
    AppointmentRepository,
    DoctorRepository,
    PatientRepository,
    PrescriptionRepository,
    ScheduleRepository,
)
from clinic_desk.scheduling.models import DayStatus, Leave

DOCTOR_ID = uuid.UUID("aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa")
OTHER_DOCTOR_ID = uuid.UUID("cccccccc-cccc-cccc-cccc-cccccccccccc")
TODAY = date(2026, 3, 2)


async def _patient(session, email="jane@example.com", name="Jane Doe", phone="9876543210"):
    return await PatientRepository(session).create(name=name, email=email, phone=phone)


async def _appointment(session, patient, day, time="10:00", status="pending", doctor_id=DOCTOR_ID, code=None):
    return await AppointmentRepository(session).create(
        confirmation_id=code or f"HC{uuid.uuid4().hex[:6].upper()}",
        patient_id=patient.id,
        doctor_id=doctor_id,
        date=day,
        time=time,
        type="Checkup",
        status=status,
    )


class TestDoctorRepository:
    @pytest.mark.asyncio
    async def test_list_sorted_by_name(self, session, seed_data):
        doctors = await DoctorRepository(session).list()
        assert [d.name for d in doctors] == ["Dr. Asha Rao", "Dr. Vikram Sen"]


class TestPatientRepository:
    @pytest.mark.asyncio
    async def test_upsert_creates_then_updates(self, session):
        repo = PatientRepository(session)
        first = await repo.upsert_by_email("a@example.com", name="A", phone="1")
        second = await repo.upsert_by_email("a@example.com", name="A B", phone=None)
        assert first.id == second.id
        assert second.name == "A B"
        assert second.phone == "1"

    @pytest.mark.asyncio
    async def test_search_matches_name_email_or_phone(self, session):
        await _patient(session, "jane@example.com", "Jane Doe", "555-0100")
        await _patient(session, "raj@example.com", "Raj Patel", "555-0200")
        repo = PatientRepository(session)
        assert [p.name for p in await repo.search("jane")] == ["Jane Doe"]
        assert [p.name for p in await repo.search("raj@")] == ["Raj Patel"]
        assert [p.name for p in await repo.search("0200")] == ["Raj Patel"]


class TestAppointmentRepository:
    @pytest.mark.asyncio
    async def test_same_slot_twice_violates_unique_index(self, session, seed_data):
        patient = await _patient(session)
        day = TODAY + timedelta(days=7)
        await _appointment(session, patient, day, "10:00")
        with pytest.raises(IntegrityError):
            await _appointment(session, patient, day, "10:00")
        await session.rollback()

    @pytest.mark.asyncio
    async def test_cancelled_row_frees_the_slot(self, session, seed_data):
        patient = await _patient(session)
        day = TODAY + timedelta(days=7)
        appt = await _appointment(session, patient, day, "10:00")
        repo = AppointmentRepository(session)

        assert await repo.booked_times(DOCTOR_ID, day) == ["10:00"]
        await repo.update_status(appt.id, "cancelled")
        assert await repo.booked_times(DOCTOR_ID, day) == []

        await _appointment(session, patient, day, "10:00")
        assert await repo.booked_times(DOCTOR_ID, day) == ["10:00"]

    @pytest.mark.asyncio
    async def test_same_time_different_doctor_allowed(self, session, seed_data):
        patient = await _patient(session)
        day = TODAY + timedelta(days=7)
        await _appointment(session, patient, day, "10:00")
        await _appointment(session, patient, day, "10:00", doctor_id=OTHER_DOCTOR_ID)
        assert await AppointmentRepository(session).booked_times(OTHER_DOCTOR_ID, day) == ["10:00"]

    @pytest.mark.asyncio
    async def test_lookup_requires_matching_phone(self, session, seed_data):
        patient = await _patient(session, phone="9876543210")
        await _appointment(session, patient, TODAY, code="HCABC123")
        repo = AppointmentRepository(session)
        assert await repo.lookup("hcabc123", "9876543210") is not None
        assert await repo.lookup("HCABC123", "0000000000") is None
        assert await repo.lookup("HCZZZ999", "9876543210") is None

    @pytest.mark.asyncio
    async def test_filters(self, session, seed_data):
        patient = await _patient(session)
        await _appointment(session, patient, TODAY - timedelta(days=1), "09:00")
        await _appointment(session, patient, TODAY, "09:00")
        await _appointment(session, patient, TODAY + timedelta(days=1), "09:00")
        await _appointment(session, patient, TODAY + timedelta(days=2), "09:00")
        repo = AppointmentRepository(session)

        assert len(await repo.list_filtered("today", today=TODAY)) == 1
        assert len(await repo.list_filtered("upcoming", today=TODAY)) == 2
        assert len(await repo.list_filtered("past", today=TODAY)) == 1
        assert len(await repo.list_filtered("all", today=TODAY)) == 4
        assert await repo.list_filtered("all", doctor_id=OTHER_DOCTOR_ID, today=TODAY) == []

    @pytest.mark.asyncio
    async def test_patient_history_newest_first(self, session, seed_data):
        jane = await _patient(session)
        other = await _patient(session, email="other@example.com")
        await _appointment(session, jane, TODAY, "09:00")
        await _appointment(session, jane, TODAY + timedelta(days=7), "09:00", doctor_id=OTHER_DOCTOR_ID)
        await _appointment(session, jane, TODAY, "15:00")
        await _appointment(session, other, TODAY, "11:00")

        history = await AppointmentRepository(session).list_for_patient(jane.id)
        assert [(a.date, a.time) for a in history] == [
            (TODAY + timedelta(days=7), "09:00"),
            (TODAY, "15:00"),
            (TODAY, "09:00"),
        ]

    @pytest.mark.asyncio
    async def test_unknown_filter(self, session):
        with pytest.raises(ValueError):
            await AppointmentRepository(session).list_filtered("tomorrow")

    @pytest.mark.asyncio
    async def test_stats_by_status(self, session, seed_data):
        patient = await _patient(session)
        day = TODAY + timedelta(days=7)
        await _appointment(session, patient, day, "09:00", status="pending")
        await _appointment(session, patient, day, "09:30", status="confirmed")
        await _appointment(session, patient, day, "10:00", status="confirmed")
        await _appointment(session, patient, day, "10:30", status="cancelled")

        stats = await AppointmentRepository(session).stats()
        assert stats == {
            "pending": 1,
            "confirmed": 2,
            "cancelled": 1,
            "completed": 0,
            "total": 4,
        }


class TestScheduleRepository:
    @pytest.mark.asyncio
    async def test_default_created_on_first_access(self, session, seed_data):
        repo = ScheduleRepository(session)
        assert await repo.get_by_doctor(OTHER_DOCTOR_ID) is None
        row = await repo.get_or_create_default(OTHER_DOCTOR_ID)
        assert row.working_hours == {"start": "09:00", "end": "17:00"}
        assert row.breaks[0]["type"] == "Lunch Break"
        assert await repo.get_by_doctor(OTHER_DOCTOR_ID) is not None

    @pytest.mark.asyncio
    async def test_save_round_trip(self, session, seed_data):
        repo = ScheduleRepository(session)
        schedule = await repo.load(DOCTOR_ID)
        schedule.leaves.append(Leave(start_date=date(2026, 4, 1), end_date=date(2026, 4, 3), reason="CME"))
        await repo.save(DOCTOR_ID, schedule)

        loaded = await repo.load(DOCTOR_ID)
        assert loaded.leaves[0].reason == "CME"
        assert loaded.day_entry(date(2026, 3, 7)).status == DayStatus.HALF_DAY

    @pytest.mark.asyncio
    async def test_legacy_leave_rows_are_read(self, session, seed_data):
        repo = ScheduleRepository(session)
        row = await repo.get_by_doctor(DOCTOR_ID)
        row.leaves = [{"date": "2026-04-10", "reason": "Personal"}]
        await session.flush()

        schedule = await repo.load(DOCTOR_ID)
        assert schedule.leave_on(date(2026, 4, 10)).reason == "Personal"


class TestPrescriptionRepository:
    @pytest.mark.asyncio
    async def test_create_with_medications(self, session, seed_data):
        patient = await _patient(session)
        repo = PrescriptionRepository(session)
        rx = await repo.create(
            medications=[
                {"name": "Amoxicillin", "dosage": "500mg", "frequency": "3x daily", "duration": "7 days"},
                {"name": "Paracetamol", "dosage": "650mg", "frequency": "as needed"},
            ],
            patient_id=patient.id,
            doctor_id=DOCTOR_ID,
            diagnosis="Acute sinusitis",
        )
        assert len(rx.medications) == 2
        assert rx.status == "active"

        found = await repo.list(doctor_id=DOCTOR_ID, query="sinus")
        assert [r.id for r in found] == [rx.id]
        found = await repo.list(doctor_id=DOCTOR_ID, query="Jane")
        assert [r.id for r in found] == [rx.id]

    @pytest.mark.asyncio
    async def test_missing_medication_field_stores_nothing(self, session, seed_data):
        patient = await _patient(session)
        await session.commit()
        repo = PrescriptionRepository(session)
        with pytest.raises(IntegrityError):
            await repo.create(
                medications=[{"name": "Ibuprofen", "dosage": None, "frequency": "2x daily"}],
                patient_id=patient.id,
                doctor_id=DOCTOR_ID,
                diagnosis="Back pain",
            )
        await session.rollback()
        assert await repo.list(doctor_id=DOCTOR_ID) == []

    @pytest.mark.asyncio
    async def test_delete(self, session, seed_data):
        patient = await _patient(session)
        repo = PrescriptionRepository(session)
        rx = await repo.create(medications=[], patient_id=patient.id, doctor_id=DOCTOR_ID, diagnosis="Cold")
        assert await repo.delete(rx.id) is True
        assert await repo.get_by_id(rx.id) is None
        assert await repo.delete(uuid.uuid4()) is False
