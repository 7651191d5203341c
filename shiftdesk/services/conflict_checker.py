"""
ConflictChecker: an employee may never hold two shifts whose time ranges overlap.

Shifts are compared on absolute datetimes. A shift whose end time lies before its
start time runs past midnight; a shift without end time (punched in, still open)
is treated as lasting until 23:59 of its own date.
"""
import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from shiftdesk.core.errors import NotFound, SchedulingConflict
from shiftdesk.services.shift_repository import ShiftRepository

logger = logging.getLogger(__name__)

OPEN_SHIFT_END = time(23, 59)


def shift_interval(day: date, start_time: time, end_time: time | None) -> tuple[datetime, datetime]:
    start = datetime.combine(day, start_time)
    if end_time is None:
        return start, datetime.combine(day, OPEN_SHIFT_END)
    end = datetime.combine(day, end_time)
    if end < start:
        end += timedelta(days=1)
    return start, end


def intervals_overlap(a: tuple[datetime, datetime], b: tuple[datetime, datetime]) -> bool:
    return a[0] < b[1] and a[1] > b[0]


@dataclass(frozen=True)
class ShiftConflict:
    shift_id: uuid.UUID
    date: date
    start_time: time
    end_time: time | None

    @property
    def time_range(self) -> str:
        end = self.end_time or OPEN_SHIFT_END
        return f"{self.start_time:%H:%M}-{end:%H:%M}"


class ConflictChecker:

    def __init__(self, repo: ShiftRepository):
        self.repo = repo

    async def check(
        self,
        employee_id: uuid.UUID,
        day: date,
        start_time: time,
        end_time: time | None,
        exclude_shift_ids: Iterable[uuid.UUID] = (),
    ) -> ShiftConflict | None:
        """Return the first shift of ``employee_id`` overlapping the candidate, or None."""
        excluded = set(exclude_shift_ids)
        candidate = shift_interval(day, start_time, end_time)

        # neighbours: a shift from yesterday may run into today, today's may run into tomorrow
        existing = await self.repo.find_shifts_for_employee_between(
            employee_id, day - timedelta(days=1), day + timedelta(days=1)
        )
        for shift in existing:
            if shift.id in excluded:
                continue
            interval = shift_interval(shift.date, shift.start_time, shift.end_time)
            if intervals_overlap(candidate, interval):
                conflict = ShiftConflict(
                    shift_id=shift.id,
                    date=shift.date,
                    start_time=shift.start_time,
                    end_time=shift.end_time,
                )
                logger.warning(
                    "Scheduling conflict for employee %s on %s: overlaps shift %s (%s)",
                    employee_id, day, shift.id, conflict.time_range,
                )
                return conflict
        return None

    async def ensure_free(
        self,
        employee_id: uuid.UUID,
        day: date,
        start_time: time,
        end_time: time | None,
        exclude_shift_ids: Iterable[uuid.UUID] = (),
    ) -> None:
        """Check the candidate against the employee's schedule and claim the schedule.

        The employee row is locked before the check and written after it, so of two
        sessions assigning overlapping shifts to the same employee only the first
        commit goes through. The other fails with ``StaleDataError`` on flush, or
        waits for the lock and then sees the new shift.
        """
        employee = await self.repo.lock_employee(employee_id)
        if employee is None:
            raise NotFound("Employee not found")
        conflict = await self.check(employee_id, day, start_time, end_time, exclude_shift_ids)
        if conflict is not None:
            raise SchedulingConflict(conflict)
        employee.schedule_changed_at = datetime.now(timezone.utc)
