"""Domain errors raised by the scheduling layer."""

from datetime import date


class SchedulingError(Exception):
    """Base class for scheduling failures."""


class DateUnavailableError(SchedulingError):
    """The requested date cannot be booked."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class SlotUnavailableError(SchedulingError):
    """The requested slot is outside the schedule or already taken."""

    def __init__(self, day: date, slot: str, reason: str | None = None):
        self.day = day
        self.slot = slot
        self.reason = reason or f"The {slot} slot on {day.isoformat()} is no longer available"
        super().__init__(self.reason)


class ScheduleValidationError(SchedulingError):
    """A schedule edit was rejected."""
