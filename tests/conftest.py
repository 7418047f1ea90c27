"""Pytest configuration and fixtures."""

import uuid
from datetime import date, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from clinic_desk.api.app import create_app
from clinic_desk.core.auth import ACCESS_COOKIE, create_access_token, hash_password
from clinic_desk.core.database import get_db
from clinic_desk.core.models import Base, Doctor, DoctorScheduleDB, StaffUser
from clinic_desk.core.repository import schedule_columns
from clinic_desk.scheduling.models import DoctorSchedule

DOCTOR_ID = uuid.UUID("aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa")
OTHER_DOCTOR_ID = uuid.UUID("cccccccc-cccc-cccc-cccc-cccccccccccc")
DOCTOR_USER_ID = uuid.UUID("bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb")
RECEPTIONIST_ID = uuid.UUID("dddddddd-dddd-dddd-dddd-dddddddddddd")
RECEPTIONIST_EMAIL = "desk@clinic.test"
RECEPTIONIST_PASSWORD = "front-desk-pass"


def next_weekday(weekday: int, start: date | None = None) -> date:
    """First date strictly after *start* (default today) falling on *weekday* (0=Mon)."""
    start = start or date.today()
    days_ahead = (weekday - start.weekday() - 1) % 7 + 1
    return start + timedelta(days=days_ahead)


def patient_payload(email: str = "jane@example.com", phone: str = "9876543210") -> dict:
    return {
        "name": "Jane Doe",
        "email": email,
        "phone": phone,
        "dob": "1990-04-12",
        "gender": "female",
        "blood_group": "O+",
    }


def booking_payload(day: date, time: str, doctor_id: uuid.UUID = DOCTOR_ID, **kwargs) -> dict:
    body = {
        "doctor_id": str(doctor_id),
        "patient": patient_payload(**kwargs),
        "service": "General Consultation",
        "date": day.isoformat(),
        "time": time,
        "payment_reference": "412345678901",
    }
    return body


@pytest.fixture
def monday() -> date:
    return next_weekday(0)


@pytest.fixture
def saturday() -> date:
    return next_weekday(5)


@pytest.fixture
def sunday() -> date:
    return next_weekday(6)


@pytest.fixture
def booking_body():
    """Factory for public booking request bodies."""
    return booking_payload


# ---------------------------------------------------------------------------
# Database: in-memory SQLite engine + seeded clinic
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as sess:
        yield sess


@pytest_asyncio.fixture
async def seed_data(session_factory):
    """Two doctors (one with the default schedule stored), a doctor login and a receptionist."""
    async with session_factory() as sess:
        doctor = Doctor(
            id=DOCTOR_ID,
            name="Dr. Asha Rao",
            email="asha@clinic.test",
            specialization="General Medicine",
        )
        other = Doctor(
            id=OTHER_DOCTOR_ID,
            name="Dr. Vikram Sen",
            email="vikram@clinic.test",
            specialization="Dermatology",
        )
        schedule = DoctorScheduleDB(doctor_id=DOCTOR_ID, **schedule_columns(DoctorSchedule.default()))
        doctor_user = StaffUser(
            id=DOCTOR_USER_ID,
            name="Dr. Asha Rao",
            email="asha@clinic.test",
            role="doctor",
            doctor_id=DOCTOR_ID,
        )
        receptionist = StaffUser(
            id=RECEPTIONIST_ID,
            name="Front Desk",
            email=RECEPTIONIST_EMAIL,
            role="receptionist",
            password_hash=hash_password(RECEPTIONIST_PASSWORD),
        )
        sess.add_all([doctor, other, schedule, doctor_user, receptionist])
        await sess.commit()
    return {"doctor_id": DOCTOR_ID, "other_doctor_id": OTHER_DOCTOR_ID}


# ---------------------------------------------------------------------------
# HTTP clients
# ---------------------------------------------------------------------------

@pytest.fixture
def app(session_factory, seed_data):
    async def _override_get_db():
        async with session_factory() as sess:
            try:
                yield sess
                await sess.commit()
            except Exception:
                await sess.rollback()
                raise

    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    return application


def _client(app, cookies: dict | None = None) -> AsyncClient:
    return AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies=cookies,
    )


@pytest_asyncio.fixture
async def client(app):
    async with _client(app) as ac:
        yield ac


@pytest_asyncio.fixture
async def doctor_client(app):
    token = create_access_token(str(DOCTOR_USER_ID), "doctor")
    async with _client(app, {ACCESS_COOKIE: token}) as ac:
        yield ac


@pytest_asyncio.fixture
async def receptionist_client(app):
    token = create_access_token(str(RECEPTIONIST_ID), "receptionist")
    async with _client(app, {ACCESS_COOKIE: token}) as ac:
        yield ac
