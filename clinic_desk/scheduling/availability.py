"""Availability resolution for a doctor on a given date.

This is the single implementation used by the public booking flow and both
dashboards. It is pure: callers fetch the schedule and the times already
booked for the date and pass them in.
"""

import calendar
import logging
from collections.abc import Iterable
from datetime import date
from typing import Optional

from clinic_desk.scheduling.models import (
    WEEKDAYS,
    AvailabilityResult,
    DayAvailability,
    DoctorSchedule,
)
from clinic_desk.scheduling.timeslots import generate_time_slots, normalize_time

logger = logging.getLogger(__name__)

NO_SLOTS_MESSAGE = "No slots available for this date"


def add_months(day: date, months: int) -> date:
    """Shift *day* by *months*, clamping to the last day of the target month."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def _normalize_booked(booked_times: Iterable[str]) -> set[str]:
    normalized: set[str] = set()
    for t in booked_times:
        try:
            normalized.add(normalize_time(t))
        except ValueError:
            logger.warning("Ignoring unparseable booked time %r", t)
    return normalized


class AvailabilityResolver:
    """Combines working hours, breaks, leaves and bookings into free slots."""

    def __init__(self, slot_interval_minutes: int = 30, booking_window_months: int = 3) -> None:
        self.slot_interval_minutes = slot_interval_minutes
        self.booking_window_months = booking_window_months

    # ------------------------------------------------------------------
    # Slot level
    # ------------------------------------------------------------------

    def candidate_slots(self, day: date, schedule: DoctorSchedule) -> list[str]:
        """Slots inside working hours and the weekday's ranges, minus breaks."""
        hours = schedule.working_hours
        slots = generate_time_slots(hours.start, hours.end, self.slot_interval_minutes)

        entry = schedule.day_entry(day)
        ranges = entry.ranges() if entry else []
        if ranges:
            slots = [s for s in slots if any(start <= s < end for start, end in ranges)]

        return [s for s in slots if not any(b.covers(s) for b in schedule.breaks)]

    def available_slots(
        self,
        day: date,
        schedule: DoctorSchedule,
        booked_times: Iterable[str] = (),
    ) -> list[str]:
        """Free slots for *day* in chronological order.

        Does not apply the date-level rules; use :meth:`resolve_day` for that.
        """
        booked = _normalize_booked(booked_times)
        return [s for s in self.candidate_slots(day, schedule) if s not in booked]

    # ------------------------------------------------------------------
    # Date level
    # ------------------------------------------------------------------

    def check_date(
        self,
        day: date,
        schedule: DoctorSchedule,
        booked_times: Optional[Iterable[str]] = None,
        today: Optional[date] = None,
    ) -> AvailabilityResult:
        """Decide whether *day* can be booked at all. First failing rule wins.

        When *booked_times* is given, a date with every slot taken is also
        rejected.
        """
        today = today or date.today()

        if day < today:
            return AvailabilityResult(
                available=False,
                reason="You cannot book an appointment for a past date",
            )

        if self.booking_window_months > 0:
            max_day = add_months(today, self.booking_window_months)
            if day > max_day:
                return AvailabilityResult(
                    available=False,
                    reason=(
                        "Appointments can only be booked up to "
                        f"{self.booking_window_months} months in advance"
                    ),
                )

        leave = schedule.leave_on(day)
        if leave is not None:
            reason = "The doctor is on leave on this date"
            if leave.reason:
                reason = f"{reason}: {leave.reason}"
            return AvailabilityResult(available=False, reason=reason)

        entry = schedule.day_entry(day)
        if entry is None or entry.is_closed:
            return AvailabilityResult(
                available=False,
                reason=f"The doctor doesn't work on {WEEKDAYS[day.weekday()]}s",
            )

        if booked_times is not None and not self.available_slots(day, schedule, booked_times):
            return AvailabilityResult(available=False, reason="All slots are booked for this date")

        return AvailabilityResult(available=True)

    def resolve_day(
        self,
        day: date,
        schedule: DoctorSchedule,
        booked_times: Iterable[str] = (),
        today: Optional[date] = None,
    ) -> DayAvailability:
        """Date verdict plus the free slots; a rejected date has no slots."""
        booked = _normalize_booked(booked_times)
        verdict = self.check_date(day, schedule, today=today)
        if not verdict.available:
            return DayAvailability(date=day, available=False, reason=verdict.reason)

        slots = self.available_slots(day, schedule, booked)
        if not slots:
            return DayAvailability(date=day, available=False, reason=NO_SLOTS_MESSAGE)
        return DayAvailability(date=day, available=True, slots=slots)

    def is_slot_free(
        self,
        day: date,
        slot: str,
        schedule: DoctorSchedule,
        booked_times: Iterable[str] = (),
    ) -> bool:
        return normalize_time(slot) in self.available_slots(day, schedule, booked_times)
