"""Pydantic models for doctor schedules and availability."""

from datetime import date
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from clinic_desk.scheduling.errors import ScheduleValidationError
from clinic_desk.scheduling.timeslots import normalize_time, parse_range

# Indexed by date.weekday(): 0=Monday .. 6=Sunday
WEEKDAYS = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


class AppointmentStatus(str, Enum):
    """Appointment lifecycle statuses."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class DayStatus(str, Enum):
    HALF_DAY = "Half Day"
    CLOSED = "Closed"


class WorkingHours(BaseModel):
    """Daily opening hours used to generate candidate slots."""

    start: str = "09:00"
    end: str = "17:00"

    @field_validator("start", "end", mode="before")
    @classmethod
    def _normalize(cls, v: Any) -> str:
        return normalize_time(v)

    @model_validator(mode="after")
    def _end_after_start(self) -> "WorkingHours":
        if self.end <= self.start:
            raise ValueError("Working hours end time must be after start time")
        return self


class BreakPeriod(BaseModel):
    """A recurring daily break, e.g. lunch."""

    start: str
    end: str
    type: str = "Short Break"

    @field_validator("start", "end", mode="before")
    @classmethod
    def _normalize(cls, v: Any) -> str:
        return normalize_time(v)

    @model_validator(mode="after")
    def _end_after_start(self) -> "BreakPeriod":
        if self.end <= self.start:
            raise ValueError("Break end time must be after start time")
        return self

    def covers(self, slot: str) -> bool:
        """True if *slot* starts within ``[start, end)``."""
        return self.start <= normalize_time(slot) < self.end


class Leave(BaseModel):
    """A date range (inclusive) during which the doctor is away.

    Older rows store either a single ``date`` or camel-case
    ``startDate``/``endDate``; both are folded into the range form.
    """

    start_date: date
    end_date: date
    reason: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _fold_legacy_shapes(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "startDate" in data and "start_date" not in data:
            data["start_date"] = data.pop("startDate")
        if "endDate" in data and "end_date" not in data:
            data["end_date"] = data.pop("endDate")
        single = data.pop("date", None)
        if single is not None:
            data.setdefault("start_date", single)
            data.setdefault("end_date", single)
        if "start_date" in data and not data.get("end_date"):
            data["end_date"] = data["start_date"]
        return data

    @model_validator(mode="after")
    def _end_not_before_start(self) -> "Leave":
        if self.end_date < self.start_date:
            raise ValueError("End date must be after start date")
        return self

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class DaySchedule(BaseModel):
    """One weekday entry; ``slots`` holds ranges like ``"09:00 - 13:00"``."""

    day: str
    slots: list[str] = []
    status: Optional[DayStatus] = None

    @field_validator("day")
    @classmethod
    def _known_day(cls, v: str) -> str:
        name = v.strip().title()
        if name not in WEEKDAYS:
            raise ValueError(f"Unknown weekday: {v!r}")
        return name

    @property
    def is_closed(self) -> bool:
        return self.status == DayStatus.CLOSED or not self.slots

    def ranges(self) -> list[tuple[str, str]]:
        """Parsed slot ranges; entries that do not parse are ignored."""
        return [r for r in (parse_range(s) for s in self.slots) if r is not None]


class DoctorSchedule(BaseModel):
    """A doctor's working configuration as stored in ``doctor_schedules``."""

    doctor_id: Optional[str] = None
    working_hours: WorkingHours = Field(default_factory=WorkingHours)
    breaks: list[BreakPeriod] = []
    leaves: list[Leave] = []
    weekly_schedule: list[DaySchedule] = []

    def day_entry(self, day: date) -> Optional[DaySchedule]:
        name = WEEKDAYS[day.weekday()]
        return next((d for d in self.weekly_schedule if d.day == name), None)

    def leave_on(self, day: date) -> Optional[Leave]:
        return next((lv for lv in self.leaves if lv.covers(day)), None)

    @classmethod
    def default(cls, doctor_id: Optional[str] = None) -> "DoctorSchedule":
        """Schedule given to a doctor who has never configured one."""
        full_day = ["09:00 - 13:00", "14:00 - 17:00"]
        return cls(
            doctor_id=doctor_id,
            working_hours=WorkingHours(start="09:00", end="17:00"),
            breaks=[BreakPeriod(start="13:00", end="14:00", type="Lunch Break")],
            leaves=[],
            weekly_schedule=[
                *(DaySchedule(day=d, slots=list(full_day)) for d in WEEKDAYS[:5]),
                DaySchedule(day="Saturday", slots=["09:00 - 13:00"], status=DayStatus.HALF_DAY),
                DaySchedule(day="Sunday", slots=[], status=DayStatus.CLOSED),
            ],
        )


class AvailabilityResult(BaseModel):
    """Date-level verdict."""

    available: bool
    reason: Optional[str] = None


class DayAvailability(BaseModel):
    """Date-level verdict together with the free slots for that date."""

    date: date
    available: bool
    reason: Optional[str] = None
    slots: list[str] = []


def validate_weekly_schedule(days: list[DaySchedule]) -> list[DaySchedule]:
    """Reject edits that leave a working day without slots or repeat a day."""
    seen: set[str] = set()
    for entry in days:
        if entry.day in seen:
            raise ScheduleValidationError(f"{entry.day} appears more than once")
        seen.add(entry.day)
        if entry.status != DayStatus.CLOSED and not entry.slots:
            raise ScheduleValidationError(
                f"{entry.day} must have at least one time slot or be marked as Closed"
            )
        for slot in entry.slots:
            if parse_range(slot) is None:
                raise ScheduleValidationError(f"Invalid time range for {entry.day}: {slot!r}")
    return days
