"""Pydantic schemas for clinic API I/O."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clinic_desk.scheduling.models import (
    AppointmentStatus,
    BreakPeriod,
    DaySchedule,
    Leave,
    WorkingHours,
)
from clinic_desk.scheduling.timeslots import normalize_time


# --- Doctor ---

class DoctorRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    phone: Optional[str] = None
    specialization: Optional[str] = None
    experience: Optional[str] = None
    avatar_url: Optional[str] = None


# --- Patient ---

class PatientInfo(BaseModel):
    """Patient details captured at the desk."""

    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: str = Field(min_length=10)
    dob: Optional[date] = None
    gender: Optional[Literal["male", "female", "other"]] = None
    blood_group: Optional[Literal["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]] = None
    medical_history: Optional[dict] = None

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v

    @field_validator("dob")
    @classmethod
    def _dob_in_past(cls, v: Optional[date]) -> Optional[date]:
        if v is not None and v >= date.today():
            raise ValueError("Date of birth must be in the past")
        return v


class BookingPatientInfo(PatientInfo):
    """Patient details required by the public booking form."""

    dob: date
    gender: Literal["male", "female", "other"]


class PatientRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    dob: Optional[date] = None
    gender: Optional[str] = None
    blood_group: Optional[str] = None
    medical_history: Optional[dict] = None
    created_at: datetime


# --- Appointment ---

class AppointmentRequest(BaseModel):
    patient: PatientInfo
    service: str = Field(min_length=1)
    date: date
    time: str
    payment_reference: Optional[str] = None

    @field_validator("time", mode="before")
    @classmethod
    def _normalize_time(cls, v: str) -> str:
        return normalize_time(v)


class BookingRequest(AppointmentRequest):
    """Public booking form; payment is confirmed with a 12-digit UTR."""

    doctor_id: uuid.UUID
    patient: BookingPatientInfo
    payment_reference: str = Field(pattern=r"^\d{12}$")

    @field_validator("payment_reference", mode="before")
    @classmethod
    def _strip_reference(cls, v):
        return v.strip() if isinstance(v, str) else v


class WalkInRequest(AppointmentRequest):
    """Desk booking; a doctor's own dashboard fills in ``doctor_id``."""

    doctor_id: Optional[uuid.UUID] = None


class BookingResponse(BaseModel):
    appointment_id: uuid.UUID
    confirmation_id: str
    doctor_id: uuid.UUID
    date: date
    time: str
    status: str


class AppointmentRead(BaseModel):
    id: uuid.UUID
    confirmation_id: str
    patient_id: uuid.UUID
    patient_name: Optional[str] = None
    patient_phone: Optional[str] = None
    doctor_id: uuid.UUID
    doctor_name: Optional[str] = None
    date: date
    time: str
    type: Optional[str] = None
    status: str
    notes: Optional[str] = None
    payment_status: bool = False
    created_at: Optional[datetime] = None


class LookupRequest(BaseModel):
    confirmation_id: str = Field(min_length=1)
    phone: str = Field(min_length=1)


class PatientDetails(PatientRead):
    """A patient with their appointment history."""

    appointments: list[AppointmentRead] = []


class StatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentStats(BaseModel):
    total: int = 0
    pending: int = 0
    confirmed: int = 0
    cancelled: int = 0
    completed: int = 0


# --- Availability ---

class SlotsResponse(BaseModel):
    doctor_id: uuid.UUID
    date: date
    available: bool
    reason: Optional[str] = None
    slots: list[str] = []
    message: Optional[str] = None


# --- Schedule ---

class ScheduleRead(BaseModel):
    doctor_id: uuid.UUID
    working_hours: WorkingHours
    breaks: list[BreakPeriod] = []
    leaves: list[Leave] = []
    weekly_schedule: list[DaySchedule] = []
    updated_at: Optional[datetime] = None


class BreaksUpdate(BaseModel):
    breaks: list[BreakPeriod]


class LeavesUpdate(BaseModel):
    leaves: list[Leave]


class WeeklyScheduleUpdate(BaseModel):
    weekly_schedule: list[DaySchedule]


# --- Prescription ---

class MedicationIn(BaseModel):
    name: str = Field(min_length=1)
    dosage: str = Field(min_length=1)
    frequency: str = Field(min_length=1)
    duration: Optional[str] = None


class MedicationRead(MedicationIn):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID


class PrescriptionCreate(BaseModel):
    patient_id: uuid.UUID
    diagnosis: str = Field(min_length=1)
    notes: Optional[str] = None
    status: Literal["active", "inactive"] = "active"
    medications: list[MedicationIn] = []


class PrescriptionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    patient_id: uuid.UUID
    doctor_id: Optional[uuid.UUID] = None
    diagnosis: str
    notes: Optional[str] = None
    status: str
    created_at: datetime
    medications: list[MedicationRead] = []
