"""Slot availability and booking for the clinic."""

from clinic_desk.scheduling.availability import NO_SLOTS_MESSAGE, AvailabilityResolver, add_months
from clinic_desk.scheduling.errors import (
    DateUnavailableError,
    ScheduleValidationError,
    SchedulingError,
    SlotUnavailableError,
)
from clinic_desk.scheduling.models import (
    AppointmentStatus,
    AvailabilityResult,
    BreakPeriod,
    DayAvailability,
    DaySchedule,
    DoctorSchedule,
    Leave,
    WorkingHours,
)

__all__ = [
    "AppointmentStatus",
    "AvailabilityResolver",
    "AvailabilityResult",
    "BreakPeriod",
    "DateUnavailableError",
    "DayAvailability",
    "DaySchedule",
    "DoctorSchedule",
    "Leave",
    "NO_SLOTS_MESSAGE",
    "ScheduleValidationError",
    "SchedulingError",
    "SlotUnavailableError",
    "WorkingHours",
    "add_months",
]
