"""
Free slot calculation.

Carves each planned day's working-hours window into free slots around fixed
commitments (meetings, synced calendar events, expanded fixed tasks).
All datetimes are naive local time.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, Protocol

from models import FreeSlot, WorkWindowConfig

logger = logging.getLogger(__name__)

MIN_SLOT_MINUTES = 15
ROUNDING_MINUTES = 15


class Busy(Protocol):
    """Anything with a start and end: FixedCommitment, CalendarEvent, ExpandedEventInstance."""
    start: datetime
    end: datetime


def ceil_to_quarter_hour(moment: datetime) -> datetime:
    """Round up to the next 15-minute boundary. Exact boundaries are kept."""
    floored = moment.replace(
        minute=moment.minute - moment.minute % ROUNDING_MINUTES,
        second=0,
        microsecond=0,
    )
    if floored == moment:
        return moment
    return floored + timedelta(minutes=ROUNDING_MINUTES)


def _make_slot(start: datetime, end: datetime) -> FreeSlot:
    return FreeSlot(
        start=start,
        end=end,
        duration_minutes=round((end - start).total_seconds() / 60),
    )


def work_window_for(day: date, config: WorkWindowConfig, now: datetime) -> tuple[datetime, datetime] | None:
    """
    Working window for one day, or None when the day has nothing left to offer.
    On now's date the window start is moved up to now, rounded to the next quarter hour.
    """
    if config.work_week_only and day.weekday() >= 5:  # 5=Sat, 6=Sun
        return None

    work_start = datetime.combine(day, time(config.day_start_hour))
    work_end = datetime.combine(day, time(config.day_end_hour))

    if day == now.date():
        if now > work_end:
            return None
        if now > work_start:
            work_start = max(work_start, ceil_to_quarter_hour(now))

    if work_start >= work_end:
        return None
    return work_start, work_end


def compute_free_slots(
    fixed_commitments: Iterable[Busy],
    window_start: date,
    days_to_plan: int,
    config: WorkWindowConfig,
    now: datetime,
) -> list[FreeSlot]:
    """
    Compute free slots of at least 15 minutes for days_to_plan days from window_start.

    Slots come out ordered by day, then by start time. A commitment counts
    against a day only when it strictly overlaps the working window, so one
    ending exactly at work start does not block anything.

    Raises ValueError for days_to_plan < 1 or an empty working window.
    """
    if days_to_plan < 1:
        raise ValueError(f"days_to_plan must be at least 1, got {days_to_plan}")
    if config.day_start_hour >= config.day_end_hour:
        raise ValueError(
            f"day_start_hour ({config.day_start_hour}) must be before day_end_hour ({config.day_end_hour})"
        )

    commitments = list(fixed_commitments)
    min_gap = timedelta(minutes=MIN_SLOT_MINUTES)
    slots: list[FreeSlot] = []

    for offset in range(days_to_plan):
        day = window_start + timedelta(days=offset)
        window = work_window_for(day, config, now)
        if window is None:
            continue
        work_start, work_end = window

        day_commitments = sorted(
            (c for c in commitments if c.start < work_end and c.end > work_start),
            key=lambda c: c.start,
        )

        cursor = work_start
        for commitment in day_commitments:
            busy_start = max(commitment.start, work_start)
            busy_end = min(commitment.end, work_end)
            if busy_start - cursor >= min_gap:
                slots.append(_make_slot(cursor, busy_start))
            cursor = max(cursor, busy_end)

        if work_end - cursor >= min_gap:
            slots.append(_make_slot(cursor, work_end))

    logger.debug("Computed %d free slots over %d days from %s", len(slots), days_to_plan, window_start)
    return slots


def total_free_minutes(slots: Iterable[FreeSlot]) -> int:
    return sum(slot.duration_minutes for slot in slots)


def fits_in_slots(start: datetime, end: datetime, slots: Iterable[FreeSlot]) -> bool:
    """True if [start, end) lies entirely inside one free slot."""
    return any(slot.start <= start and end <= slot.end for slot in slots)
